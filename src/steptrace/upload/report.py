"""Result data structures produced by an orchestration run."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


@dataclass
class SpecReport:
    """What happened to one spec group during upload."""

    spec: str
    tests: int
    execution_key: Optional[str] = None
    created: bool = False
    summary: Optional[str] = None
    batches_sent: int = 0
    batches_failed: int = 0

    @property
    def ok(self) -> bool:
        return self.batches_failed == 0


@dataclass
class UploadReport:
    total_results: int
    upload_enabled: bool
    bundle_dir: Optional[Path] = None
    specs: List[SpecReport] = field(default_factory=list)
    debug_file: Optional[Path] = None

    @property
    def batches_failed(self) -> int:
        return sum(spec.batches_failed for spec in self.specs)

    @property
    def ok(self) -> bool:
        return self.batches_failed == 0
