"""Per-test private execution context."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .models import StepRecord, StepStatus

EXECUTION_ANNOTATION = "xray_execution"


@dataclass
class ActiveStep:
    """Evidence-accumulation buffer of the step currently executing."""

    name: str
    evidence_paths: List[Path] = field(default_factory=list)


@dataclass
class TestContext:
    """State owned by exactly one test: its steps, start time and active step.

    The active step reference is never shared across tests; it is set and
    cleared only through :meth:`begin_step` and :meth:`end_step`.
    """

    __test__ = False

    title: str
    spec_file: str
    output_dir: Path
    steps: List[StepRecord] = field(default_factory=list)
    started_at: Optional[dt.datetime] = None
    annotations: List[Tuple[str, str]] = field(default_factory=list)
    _active_step: Optional[ActiveStep] = field(default=None, repr=False)

    @property
    def has_failed_step(self) -> bool:
        return any(step.status is StepStatus.FAILED for step in self.steps)

    @property
    def in_step(self) -> bool:
        return self._active_step is not None

    def begin_step(self, name: str) -> ActiveStep:
        if self._active_step is not None:
            raise RuntimeError(
                f"Step '{name}' started while '{self._active_step.name}' is still running"
            )
        self._active_step = ActiveStep(name=name)
        return self._active_step

    def end_step(self) -> None:
        self._active_step = None

    def register_evidence(self, path: Path) -> bool:
        """Attach ``path`` to the running step; False when no step is active."""

        if self._active_step is None:
            return False
        self._active_step.evidence_paths.append(path)
        return True

    def append_step(self, record: StepRecord) -> None:
        self.steps.append(record)

    def annotate(self, kind: str, description: str) -> None:
        self.annotations.append((kind, description))

    def annotation(self, kind: str) -> Optional[str]:
        for name, description in reversed(self.annotations):
            if name == kind:
                return description
        return None

    @property
    def target_execution_key(self) -> Optional[str]:
        return self.annotation(EXECUTION_ANNOTATION) or None

    def statuses(self) -> Sequence[StepStatus]:
        return tuple(step.status for step in self.steps)
