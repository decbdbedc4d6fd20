"""Per-run result store: one durable file per test plus a process-local list."""
from __future__ import annotations

import json
import logging
import os
import shutil
import time
from pathlib import Path
from typing import List

from steptrace.reporting.schema import result_errors

from .models import TestResult
from .text import sanitize_name

logger = logging.getLogger(__name__)

DEFAULT_RESULTS_DIR = ".steptrace-results"


class ResultStore:
    """Collects finished test results across worker processes.

    Workers only ever write their own uniquely named files; the single
    orchestrating process reads them all after the run and then clears the
    store. The in-memory list is a same-process fallback only.
    """

    def __init__(self, results_dir: Path) -> None:
        self._results_dir = Path(results_dir)
        self._local: List[TestResult] = []

    @property
    def results_dir(self) -> Path:
        return self._results_dir

    @property
    def local_results(self) -> List[TestResult]:
        return list(self._local)

    def persist(self, result: TestResult) -> Path | None:
        document = result.to_dict()
        errors = result_errors(document)
        if errors:
            raise ValueError(f"Result for {result.test_key} violates the result schema: {'; '.join(errors)}")
        self._local.append(result)
        filename = f"result-{sanitize_name(result.test_key)}-{time.time_ns()}-{os.getpid()}.json"
        path = self._results_dir / filename
        try:
            self._results_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as exc:
            logger.error("Failed to persist result for %s to %s: %s", result.test_key, path, exc)
            return None
        return path

    def collect(self) -> List[TestResult]:
        """Every persisted result, or the local list when no file yields one."""

        results = self._read_files()
        if not results and self._local:
            logger.info("No persisted results found; using %d in-process result(s)", len(self._local))
            results = list(self._local)
        return results

    def clear(self) -> None:
        if self._results_dir.exists():
            shutil.rmtree(self._results_dir, ignore_errors=True)
        self._local.clear()

    def _read_files(self) -> List[TestResult]:
        if not self._results_dir.is_dir():
            return []
        results: List[TestResult] = []
        for path in sorted(self._results_dir.glob("*.json")):
            try:
                document = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                logger.error("Error reading result file %s: %s", path.name, exc)
                continue
            errors = result_errors(document) if isinstance(document, dict) else ["root: not an object"]
            if errors:
                logger.error("Skipping invalid result file %s: %s", path.name, "; ".join(errors))
                continue
            results.append(TestResult.from_dict(document))
        return results
