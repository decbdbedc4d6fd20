from __future__ import annotations

import json

import pytest

from steptrace.core.models import StepStatus, TestStatus
from steptrace.core.store import ResultStore

TEST_MODULE = '''
import pytest


class Page:
    def __init__(self):
        self.calls = []

    def screenshot(self, **options):
        self.calls.append(options)
        return b"png"


@pytest.fixture
def page():
    return Page()


def _boom():
    raise AssertionError("boom")


@pytest.mark.xray_execution("PXX-99")
def test_login(step, snap):
    """PXX-10: login works"""
    step("Open", lambda: None)
    step("Note", lambda: snap.text("note", "hi"))


@pytest.mark.title("PXX-11: checkout")
def test_checkout(step):
    ran = []
    step("one", lambda: None)
    try:
        step("two", _boom)
    except AssertionError:
        step("three", lambda: ran.append("three"))
        with open("step-three-ran.txt", "w") as log:
            log.write(str(bool(ran)))
        raise


def test_skipped(step):
    """PXX-12: not ready"""
    pytest.skip("later")


def test_unkeyed(step):
    step("x", lambda: None)
'''


@pytest.fixture(autouse=True)
def _no_upload_env(monkeypatch) -> None:
    for name in ("UPLOAD_JIRA", "XRAY_TEST_EXECUTION_KEY", "XRAY_TEST_SUMMARY", "XRAY_CLIENT_ID"):
        monkeypatch.delenv(name, raising=False)


def test_results_are_persisted_per_test(pytester: pytest.Pytester) -> None:
    pytester.makepyfile(test_flow=TEST_MODULE)
    result = pytester.runpytest("-p", "steptrace.plugin", "--steptrace-no-upload")
    result.assert_outcomes(passed=2, failed=1, skipped=1)

    results = {r.test_key: r for r in ResultStore(pytester.path / ".steptrace-results").collect()}
    assert sorted(results) == ["PXX-10", "PXX-11", "PXX-12"]

    login = results["PXX-10"]
    assert login.status is TestStatus.PASSED
    assert login.spec_file == "test_flow.py"
    assert login.target_execution_key == "PXX-99"
    assert login.comment.startswith("Test completed successfully\nDuration: ")
    assert [e.filename for e in login.steps[1].evidences] == ["step-2-success.png", "note.txt"]
    assert (pytester.path / "test-results" / "test_flow.py__test_login" / "note.txt").exists()

    checkout = results["PXX-11"]
    assert checkout.status is TestStatus.FAILED
    assert [s.status for s in checkout.steps] == [StepStatus.PASSED, StepStatus.FAILED, StepStatus.TODO]
    assert checkout.steps[2].result_text == "three (Skipped)"
    assert (pytester.path / "step-three-ran.txt").read_text() == "False"
    assert "boom" in checkout.comment

    assert results["PXX-12"].status is TestStatus.PASSED
    assert results["PXX-12"].steps == ()


def test_session_end_writes_bundle_and_clears_results(pytester: pytest.Pytester) -> None:
    pytester.makepyfile(test_flow=TEST_MODULE)
    result = pytester.runpytest("-p", "steptrace.plugin")
    result.assert_outcomes(passed=2, failed=1, skipped=1)
    result.stdout.fnmatch_lines(["*steptrace: 3 result(s) collected*", "*upload disabled*"])

    assert not (pytester.path / ".steptrace-results").exists()
    (bundle_dir,) = (pytester.path / "manual-reports").iterdir()
    document = json.loads((bundle_dir / "test_flow.json").read_text(encoding="utf-8"))
    assert sorted(t["testKey"] for t in document["tests"]) == ["PXX-10", "PXX-11", "PXX-12"]
    assert all("specFile" not in t for t in document["tests"])


def test_unkeyed_session_reports_nothing(pytester: pytest.Pytester) -> None:
    pytester.makepyfile(
        test_plain="""
        def test_plain(step):
            step("only", lambda: None)
        """
    )
    result = pytester.runpytest("-p", "steptrace.plugin")
    result.assert_outcomes(passed=1)
    assert not (pytester.path / "manual-reports").exists()


def test_invalid_config_is_a_usage_error(pytester: pytest.Pytester) -> None:
    pytester.makefile(".yaml", steptrace="bogus: true\n")
    pytester.makepyfile(test_plain="def test_plain():\n    pass\n")
    result = pytester.runpytest("-p", "steptrace.plugin", "--steptrace-config", "steptrace.yaml")
    assert result.ret != pytest.ExitCode.OK
    assert "schema validation failed" in result.stderr.str()
