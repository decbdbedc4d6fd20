"""Post-run orchestration: group persisted results and upload them in batches."""
from __future__ import annotations

import datetime as dt
import json
import logging
import re
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

from steptrace.core.models import SpecTarget, TestResult
from steptrace.core.store import ResultStore

from .bundle import ManualBundleWriter
from .client import UploadClient, XrayClient
from .config import UploadSettings
from .report import SpecReport, UploadReport

logger = logging.getLogger(__name__)

BATCH_SIZE = 20
DEFAULT_GROUP = "consolidated.json"
EXECUTION_DESCRIPTION = "Imported via steptrace pytest integration"

_SPEC_SUFFIX = re.compile(r"\.(spec\.)?(py|js|ts)$")


def group_name(spec_file: str) -> str:
    """Bundle/group file name for a spec: ``test_login.py`` -> ``test_login.json``."""

    if not spec_file:
        return DEFAULT_GROUP
    return _SPEC_SUFFIX.sub("", Path(spec_file).name) + ".json"


def group_by_spec(results: Sequence[TestResult]) -> Dict[str, List[TestResult]]:
    grouped: Dict[str, List[TestResult]] = OrderedDict()
    for result in results:
        grouped.setdefault(group_name(result.spec_file), []).append(result)
    return grouped


def resolve_targets(
    specs: Sequence[str],
    execution_keys: Sequence[str],
    summaries: Sequence[str],
) -> List[SpecTarget]:
    """Map alphabetically sorted specs onto configured keys and summaries.

    The spec at sorted index ``i`` appends to ``execution_keys[i]`` when that
    entry exists. Every other spec creates a new execution and consumes the
    next unused summary; summary order follows creation order, not spec order.
    """

    targets: List[SpecTarget] = []
    created = 0
    for index, spec in enumerate(sorted(specs)):
        key = execution_keys[index] if index < len(execution_keys) else None
        if key:
            targets.append(SpecTarget(spec=spec, execution_key=key))
            continue
        summary = None
        if created < len(summaries):
            summary = summaries[created] or None
            created += 1
        targets.append(SpecTarget(spec=spec, summary=summary))
    return targets


def batched(items: Sequence[Any], size: int) -> Iterator[Sequence[Any]]:
    if size < 1:
        raise ValueError("batch size must be positive")
    for start in range(0, len(items), size):
        yield items[start : start + size]


class UploadOrchestrator:
    """Consumes the result store once after the whole run has finished.

    Uploads are strictly sequential: the execution key returned by the first
    batch of a spec decides where that spec's remaining batches go.
    """

    def __init__(
        self,
        store: ResultStore,
        settings: UploadSettings,
        *,
        client: Optional[UploadClient] = None,
        bundle_writer: Optional[ManualBundleWriter] = None,
        batch_size: int = BATCH_SIZE,
    ) -> None:
        self._store = store
        self._settings = settings
        self._client = client
        self._bundle_writer = bundle_writer or ManualBundleWriter(settings)
        self._batch_size = batch_size
        self._failed_payloads: List[Mapping[str, Any]] = []

    def run(self) -> Optional[UploadReport]:
        try:
            return self._run()
        finally:
            self._store.clear()

    def _run(self) -> Optional[UploadReport]:
        self._failed_payloads = []
        results = self._store.collect()
        if not results:
            logger.info("No test results to process")
            return None
        grouped = group_by_spec(results)
        report = UploadReport(total_results=len(results), upload_enabled=self._settings.enabled)
        report.bundle_dir = self._write_bundle(grouped)
        if not self._settings.enabled:
            logger.info("Skipping Xray upload (upload is disabled)")
            return report

        client = self._client or XrayClient.from_settings(self._settings)
        logger.info("Starting upload for %d spec file(s)", len(grouped))
        targets = resolve_targets(list(grouped), self._settings.execution_keys, self._settings.summaries)
        for index, target in enumerate(targets, start=1):
            group = grouped[target.spec]
            logger.info("Processing spec [%d]: %s (%d tests)", index, target.spec, len(group))
            report.specs.append(self._upload_spec(client, target, group))
        if self._failed_payloads:
            report.debug_file = self._dump_failed()
        return report

    def _upload_spec(self, client: UploadClient, target: SpecTarget, group: Sequence[TestResult]) -> SpecReport:
        spec_report = SpecReport(
            spec=target.spec,
            tests=len(group),
            execution_key=target.execution_key,
            created=target.creates_execution,
            summary=target.summary,
        )
        if target.execution_key:
            logger.info("Mapped to existing execution %s", target.execution_key)
        else:
            logger.info("No mapping found; creating a new execution")
        execution_key = target.execution_key
        total = -(-len(group) // self._batch_size)
        for number, chunk in enumerate(batched(list(group), self._batch_size), start=1):
            logger.info("Uploading batch %d/%d", number, total)
            payload = self._payload(chunk, execution_key, target.summary)
            try:
                response = client.upload(payload)
            except Exception as exc:  # one failed batch never stops the rest
                logger.error("Failed to upload batch %d/%d of %s: %s", number, total, target.spec, exc)
                spec_report.batches_failed += 1
                self._failed_payloads.append(payload)
                continue
            spec_report.batches_sent += 1
            new_key = (response or {}).get("key")
            if new_key and not execution_key:
                execution_key = str(new_key)
                logger.info("Secured test execution key %s", execution_key)
        spec_report.execution_key = execution_key
        return spec_report

    def _payload(
        self, chunk: Sequence[TestResult], execution_key: Optional[str], summary: Optional[str]
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"tests": [result.to_upload_dict() for result in chunk]}
        if execution_key:
            # Appending: creation metadata would overwrite the existing execution.
            payload["testExecutionKey"] = execution_key
            return payload
        info: Dict[str, Any] = {
            "summary": summary or f"Automated Test Execution - {_now_iso()}",
            "description": EXECUTION_DESCRIPTION,
        }
        if self._settings.test_plan_key:
            info["testPlanKey"] = self._settings.test_plan_key
        if self._settings.project_key:
            info["project"] = self._settings.project_key
        payload["info"] = info
        return payload

    def _write_bundle(self, grouped: Mapping[str, Sequence[TestResult]]) -> Optional[Path]:
        logger.info("Generating manual import files for %d spec file(s)", len(grouped))
        try:
            return self._bundle_writer.write(grouped)
        except OSError as exc:
            logger.error("Failed to write manual import bundle: %s", exc)
            return None

    def _dump_failed(self) -> Optional[Path]:
        path = self._settings.debug_file
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(self._failed_payloads, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as exc:
            logger.error("Failed to save unsent payloads to %s: %s", path, exc)
            return None
        logger.warning("Saved %d failed upload payload(s) to %s", len(self._failed_payloads), path)
        return path


def _now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")
