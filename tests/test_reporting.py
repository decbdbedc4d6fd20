from __future__ import annotations

from dataclasses import replace
from pathlib import Path

from steptrace.core.models import StepRecord, StepStatus, TestStatus
from steptrace.reporting.schema import result_errors
from steptrace.reporting.terminal import TerminalReporter, result_lines, upload_summary_lines
from steptrace.upload.report import SpecReport, UploadReport


def test_summary_for_empty_run() -> None:
    assert upload_summary_lines(None) == [("steptrace: no keyed test results were collected", None)]


def test_summary_lists_specs_and_debug_file() -> None:
    report = UploadReport(
        total_results=3,
        upload_enabled=True,
        bundle_dir=Path("manual-reports/01012024000000"),
        specs=[
            SpecReport(spec="a.json", tests=2, execution_key="PXX-1", batches_sent=1),
            SpecReport(spec="b.json", tests=1, created=True, summary="Nightly", batches_failed=1),
        ],
        debug_file=Path("xray-results-debug.json"),
    )
    lines = upload_summary_lines(report)
    texts = [text for text, _ in lines]
    assert texts[0] == "steptrace: 3 result(s) collected"
    assert "  a.json: 2 test(s) appended to PXX-1 batches sent=1 failed=0" in texts
    assert ("  b.json: 1 test(s) created <no execution> batches sent=0 failed=1", "red") in lines
    assert "    summary: Nightly" in texts
    assert texts[-1] == "  unsent payloads saved to xray-results-debug.json"
    assert not report.ok


def test_result_lines_count_steps(make_result) -> None:
    result = replace(
        make_result("PXX-5", status=TestStatus.FAILED),
        steps=(
            StepRecord(name="a", status=StepStatus.PASSED, result_text="a"),
            StepRecord(name="b", status=StepStatus.FAILED, result_text="b - FAILED: x"),
            StepRecord(name="c", status=StepStatus.TODO, result_text="c (Skipped)"),
        ),
    )
    ((text, color),) = result_lines([result])
    assert text == "PXX-5 FAILED steps(passed=1 failed=1 todo=1) spec=test_login.py"
    assert color == "red"


def test_render_results_without_color(capsys, make_result) -> None:
    TerminalReporter(use_color=False).render_results([make_result("PXX-1")])
    out = capsys.readouterr().out
    assert "PXX-1 PASSED" in out
    assert "\x1b[" not in out
    assert "Total: 1 result(s)" in out


def test_schema_accepts_persisted_shape(make_result) -> None:
    assert result_errors(make_result().to_dict()) == []


def test_schema_reports_bad_fields(make_result) -> None:
    document = make_result().to_dict()
    document["status"] = "SKIPPED"
    document["steps"][0]["status"] = "BLOCKED"
    errors = result_errors(document)
    assert any(error.startswith("status:") for error in errors)
    assert any(error.startswith("steps/0/status:") for error in errors)
