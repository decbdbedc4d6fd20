"""Per-test lifecycle: start bookkeeping and result finalization."""
from __future__ import annotations

import datetime as dt
import logging
import re
import shutil
from typing import Callable, Optional

from .context import TestContext
from .models import TestOutcome, TestResult, TestStatus
from .store import ResultStore
from .text import format_duration, strip_ansi

logger = logging.getLogger(__name__)

TEST_KEY_PATTERN = re.compile(r"^([A-Z]+-[0-9]+):")

Clock = Callable[[], dt.datetime]


def extract_test_key(title: str) -> Optional[str]:
    """``PXX-10`` from ``"PXX-10: demo"``; ``None`` for unkeyed titles."""

    match = TEST_KEY_PATTERN.match(title)
    return match.group(1) if match else None


def format_timestamp(moment: dt.datetime) -> str:
    utc = moment.astimezone(dt.timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class ResultRecorder:
    """Owns the start and end of each test and hands results to the store."""

    def __init__(self, store: ResultStore, *, clock: Clock = _utc_now) -> None:
        self._store = store
        self._clock = clock

    @property
    def store(self) -> ResultStore:
        return self._store

    def start(self, context: TestContext) -> None:
        context.steps.clear()
        context.end_step()
        context.started_at = self._clock()
        if context.output_dir.exists():
            shutil.rmtree(context.output_dir, ignore_errors=True)

    def finish(self, context: TestContext, outcome: TestOutcome) -> Optional[TestResult]:
        test_key = extract_test_key(context.title)
        if test_key is None:
            return None
        finish = self._clock()
        start = context.started_at or finish
        duration = format_duration((finish - start).total_seconds())
        status = TestStatus.FAILED if outcome.failed else TestStatus.PASSED
        if outcome.failed:
            message = strip_ansi(outcome.message or "Test failed").strip()
            comment = f"{message}\n\nDuration: {duration}"
        else:
            comment = f"Test completed successfully\nDuration: {duration}"
        result = TestResult(
            test_key=test_key,
            start=format_timestamp(start),
            finish=format_timestamp(finish),
            status=status,
            comment=comment,
            steps=tuple(context.steps),
            spec_file=context.spec_file,
            target_execution_key=context.target_execution_key,
        )
        self._store.persist(result)
        logger.info("Test result collected: %s - %s (%s)", test_key, status.value, duration)
        return result
