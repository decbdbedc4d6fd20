from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, List

import pytest

from steptrace.core.context import TestContext
from steptrace.core.models import StepRecord, StepStatus, TestResult, TestStatus
from steptrace.core.store import ResultStore

pytest_plugins = ["pytester"]

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake"


class FakePage:
    """Screenshot source recording the options of every call."""

    def __init__(self, payload: bytes = PNG_BYTES, fail: bool = False) -> None:
        self.payload = payload
        self.fail = fail
        self.calls: List[Dict[str, Any]] = []

    def screenshot(self, **options: Any) -> bytes:
        self.calls.append(options)
        if self.fail:
            raise RuntimeError("page closed")
        return self.payload


@pytest.fixture
def page() -> FakePage:
    return FakePage()


@pytest.fixture
def broken_page() -> FakePage:
    return FakePage(fail=True)


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture
def context(tmp_path: Path) -> TestContext:
    return TestContext(title="PXX-10: demo", spec_file="test_demo.py", output_dir=tmp_path / "out")


@pytest.fixture
def store(tmp_path: Path) -> ResultStore:
    return ResultStore(tmp_path / "results")


def _make_result(
    key: str = "PXX-1",
    spec_file: str = "test_login.py",
    status: TestStatus = TestStatus.PASSED,
    target: str | None = None,
) -> TestResult:
    return TestResult(
        test_key=key,
        start="2024-05-01T10:00:00.000Z",
        finish="2024-05-01T10:00:03.000Z",
        status=status,
        comment="Test completed successfully\nDuration: 0m 3s",
        steps=(StepRecord(name="Open", status=StepStatus.PASSED, result_text="Open"),),
        spec_file=spec_file,
        target_execution_key=target,
    )


@pytest.fixture
def make_result() -> Callable[..., TestResult]:
    """Factory for keyed results with one passed step."""

    return _make_result
