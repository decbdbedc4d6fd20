"""Terminal rendering of upload reports and persisted results."""
from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

import click

from steptrace.core.models import StepStatus, TestResult

if TYPE_CHECKING:
    from steptrace.upload.report import UploadReport

STATUS_COLORS = {
    "passed": "green",
    "failed": "red",
    "todo": "yellow",
}

Line = Tuple[str, Optional[str]]


def upload_summary_lines(report: Optional["UploadReport"]) -> List[Line]:
    """(text, colour) pairs describing an orchestration run."""

    if report is None:
        return [("steptrace: no keyed test results were collected", None)]
    lines: List[Line] = [(f"steptrace: {report.total_results} result(s) collected", "cyan")]
    if report.bundle_dir is not None:
        lines.append((f"  manual import bundle: {report.bundle_dir}", None))
    if not report.upload_enabled:
        lines.append(("  upload disabled; import the bundle manually", "yellow"))
        return lines
    for spec in report.specs:
        mode = "created" if spec.created else "appended to"
        target = spec.execution_key or "<no execution>"
        text = (
            f"  {spec.spec}: {spec.tests} test(s) {mode} {target} "
            f"batches sent={spec.batches_sent} failed={spec.batches_failed}"
        )
        lines.append((text, "green" if spec.ok else "red"))
        if spec.summary:
            lines.append((f"    summary: {spec.summary}", None))
    if report.debug_file is not None:
        lines.append((f"  unsent payloads saved to {report.debug_file}", "red"))
    return lines


def result_lines(results: Sequence[TestResult]) -> List[Line]:
    lines: List[Line] = []
    for result in results:
        counts = {status: 0 for status in StepStatus}
        for step in result.steps:
            counts[step.status] += 1
        text = (
            f"{result.test_key} {result.status.value} "
            f"steps(passed={counts[StepStatus.PASSED]} failed={counts[StepStatus.FAILED]} "
            f"todo={counts[StepStatus.TODO]}) spec={result.spec_file or '?'}"
        )
        lines.append((text, STATUS_COLORS.get(result.status.value.lower())))
    return lines


class TerminalReporter:
    """Human-readable renderer that streams to stdout through click."""

    def __init__(self, *, use_color: bool = True) -> None:
        self._use_color = use_color

    def render_upload(self, report: Optional["UploadReport"]) -> None:
        self._echo(upload_summary_lines(report))

    def render_results(self, results: Sequence[TestResult]) -> None:
        if not results:
            click.echo("No persisted results found.")
            return
        self._echo(result_lines(results))
        click.echo(self._styled(f"Total: {len(results)} result(s)", "cyan"))

    def _echo(self, lines: Sequence[Line]) -> None:
        for text, color in lines:
            click.echo(self._styled(text, color))

    def _styled(self, text: str, color: Optional[str]) -> str:
        if not self._use_color or not color:
            return text
        return click.style(text, fg=color)
