"""Manual-import bundle: a durable per-spec copy of the run's results."""
from __future__ import annotations

import datetime as dt
import json
import logging
import shutil
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence

from steptrace.core.models import TestResult

from .config import UploadSettings

logger = logging.getLogger(__name__)


def bundle_timestamp(moment: dt.datetime) -> str:
    """Fixed-width ``ddmmyyyyHHMMSS`` token naming one bundle directory."""

    return moment.strftime("%d%m%Y%H%M%S")


class ManualBundleWriter:
    """Writes one JSON file per spec that Xray's "Import Execution Results" accepts."""

    def __init__(self, settings: UploadSettings) -> None:
        self._settings = settings

    def write(
        self,
        grouped: Mapping[str, Sequence[TestResult]],
        *,
        now: Optional[dt.datetime] = None,
    ) -> Path:
        moment = now or dt.datetime.now()
        bundle_dir = self._settings.manual_reports_dir / bundle_timestamp(moment)
        bundle_dir.mkdir(parents=True, exist_ok=True)
        for filename, results in grouped.items():
            document = {
                "info": self._info(filename, moment),
                "tests": [result.to_upload_dict() for result in results],
            }
            path = bundle_dir / filename
            path.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
            logger.info("Manual report generated: %s (%d tests)", path, len(results))
        self._move_html_report(bundle_dir)
        return bundle_dir

    def _info(self, filename: str, moment: dt.datetime) -> Dict[str, Any]:
        info: Dict[str, Any] = {
            "summary": f"Manual Test Export - {moment.isoformat(timespec='seconds')}",
            "description": f"Generated by steptrace for manual Xray import ({filename})",
        }
        if self._settings.project_key:
            info["project"] = self._settings.project_key
        if self._settings.test_plan_key:
            info["testPlanKey"] = self._settings.test_plan_key
        return info

    def _move_html_report(self, bundle_dir: Path) -> None:
        source = self._settings.html_report
        if source is None or not source.is_file():
            return
        destination = bundle_dir / "report.html"
        try:
            shutil.move(str(source), str(destination))
            if not any(source.parent.iterdir()):
                source.parent.rmdir()
        except OSError as exc:
            logger.error("Failed to move HTML report %s: %s", source, exc)
            return
        logger.info("HTML report moved to %s", destination)
