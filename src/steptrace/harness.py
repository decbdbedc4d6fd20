"""Explicit composition of the step, evidence and result components per test."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence, Tuple

from steptrace.core.context import TestContext
from steptrace.core.evidence import EvidenceCollector
from steptrace.core.models import (
    Deferred,
    EvidenceContent,
    Image,
    ScreenshotSource,
    StepOptions,
    Structured,
    Text,
)
from steptrace.core.recorder import ResultRecorder
from steptrace.core.steps import StepExecutor
from steptrace.core.store import ResultStore
from steptrace.core.text import sanitize_name

logger = logging.getLogger(__name__)


class Snapper:
    """Call-site API for evidence; each method picks one content variant."""

    def __init__(
        self,
        collector: EvidenceCollector,
        context: TestContext,
        source: Optional[ScreenshotSource] = None,
    ) -> None:
        self._collector = collector
        self._context = context
        self._source = source

    def __call__(self, name: str, content: EvidenceContent) -> Optional[Path]:
        return self._collector.snap(self._context, name, content, self._source)

    def text(self, name: str, text: str) -> Optional[Path]:
        return self(name, Text(text))

    def json(self, name: str, data: Any) -> Optional[Path]:
        return self(name, Structured(data))

    def image(self, name: str, source: Optional[ScreenshotSource] = None, **options: Any) -> Optional[Path]:
        target = source or self._source
        if target is None:
            logger.warning("Snap '%s' requested a screenshot but no page is available", name)
            return None
        return self(name, Image(source=target, options=options))

    def after(self, name: str, action: Callable[[], Any]) -> Optional[Path]:
        return self(name, Deferred(action))


class TestHarness:
    """What a single test sees: ``step`` and ``snap`` bound to its context."""

    __test__ = False

    def __init__(
        self,
        context: TestContext,
        executor: StepExecutor,
        collector: EvidenceCollector,
        source: Optional[ScreenshotSource] = None,
    ) -> None:
        self.context = context
        self._executor = executor
        self._source = source
        self.snap = Snapper(collector, context, source)

    def step(
        self,
        name: str,
        body: Callable[[], Any],
        *,
        capture_screenshot: bool = True,
        additional_evidences: Sequence[str | Path] = (),
        screenshot_options: Optional[Mapping[str, Any]] = None,
    ) -> None:
        options = StepOptions(
            capture_screenshot=capture_screenshot,
            additional_evidences=tuple(str(path) for path in additional_evidences),
            screenshot_options=dict(screenshot_options or {}),
        )
        self._executor.run(self.context, name, body, self._source, options)


class TraceBuilder:
    """Builds the per-test context and harness from session-wide components."""

    def __init__(self, store: ResultStore, output_root: Path) -> None:
        self._store = store
        self._output_root = Path(output_root)
        self._executor = StepExecutor()
        self._collector = EvidenceCollector()
        self._recorder = ResultRecorder(store)

    @property
    def store(self) -> ResultStore:
        return self._store

    @property
    def recorder(self) -> ResultRecorder:
        return self._recorder

    def context_for(
        self,
        title: str,
        spec_file: str,
        test_id: str,
        annotations: Iterable[Tuple[str, str]] = (),
    ) -> TestContext:
        output_dir = self._output_root / sanitize_name(test_id, default="test")
        return TestContext(
            title=title,
            spec_file=spec_file,
            output_dir=output_dir,
            annotations=list(annotations),
        )

    def harness(self, context: TestContext, source: Optional[ScreenshotSource] = None) -> TestHarness:
        return TestHarness(context, self._executor, self._collector, source)
