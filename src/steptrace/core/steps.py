"""Step execution with pass/fail/skip bookkeeping and automatic screenshots."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence

from .context import TestContext
from .evidence import inline_screenshot, load_evidence
from .models import OCTET_STREAM, Evidence, ScreenshotSource, StepOptions, StepRecord, StepStatus
from .text import error_message

logger = logging.getLogger(__name__)


class StepExecutor:
    """Runs named step bodies strictly in order within one test.

    Once a step has failed, every later step is recorded as ``TODO`` and its
    body is never called. A failing body is recorded, evidenced and re-raised
    so that the enclosing test fails.
    """

    def run(
        self,
        context: TestContext,
        name: str,
        body: Callable[[], Any],
        source: Optional[ScreenshotSource] = None,
        options: Optional[StepOptions] = None,
    ) -> None:
        options = options or StepOptions()
        if context.has_failed_step:
            logger.info("Skipping step '%s' (previous step failed)", name)
            context.append_step(
                StepRecord(name=name, status=StepStatus.TODO, result_text=f"{name} (Skipped)")
            )
            return

        logger.info("Step: %s", name)
        index = len(context.steps) + 1
        active = context.begin_step(name)
        try:
            body()
        except (KeyboardInterrupt, SystemExit):
            context.end_step()
            raise
        except BaseException as exc:  # pytest.fail() raises outside the Exception tree
            logger.info("Step failed: '%s'", name)
            evidences: List[Evidence] = []
            screenshot = self._screenshot(
                source, {**options.screenshot_options, "full_page": True}, f"step-{index}-failure.png"
            )
            if screenshot is not None:
                evidences.append(screenshot)
            evidences.extend(_collect(active.evidence_paths, options.additional_evidences))
            context.append_step(
                StepRecord(
                    name=name,
                    status=StepStatus.FAILED,
                    result_text=f"{name} - FAILED: {error_message(exc)}",
                    evidences=tuple(evidences),
                )
            )
            context.end_step()
            raise

        evidences = []
        if options.capture_screenshot:
            screenshot = self._screenshot(
                source, dict(options.screenshot_options), f"step-{index}-success.png"
            )
            if screenshot is not None:
                evidences.append(screenshot)
        evidences.extend(_collect(active.evidence_paths, options.additional_evidences))
        context.append_step(
            StepRecord(name=name, status=StepStatus.PASSED, result_text=name, evidences=tuple(evidences))
        )
        context.end_step()

    def _screenshot(
        self, source: Optional[ScreenshotSource], screenshot_options: dict, filename: str
    ) -> Optional[Evidence]:
        if source is None:
            return None
        try:
            payload = source.screenshot(**screenshot_options)
        except Exception as exc:  # best effort, never alters the step status
            logger.warning("Failed to capture %s: %s", filename, exc)
            return None
        return inline_screenshot(payload, filename)


def _collect(snapped: Sequence[Path], additional: Sequence[str]) -> List[Evidence]:
    """Inline snapped files, then additional files not already snapped."""

    evidences: List[Evidence] = []
    seen = set()
    for path in snapped:
        if path in seen:
            continue
        seen.add(path)
        evidence = load_evidence(path)
        if evidence is not None:
            evidences.append(evidence)
    for raw in additional:
        path = Path(raw)
        if path in seen:
            continue
        seen.add(path)
        evidence = load_evidence(path, OCTET_STREAM)
        if evidence is not None:
            evidences.append(evidence)
    return evidences
