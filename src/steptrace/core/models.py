"""Core dataclasses shared across steptrace subsystems."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Tuple, Union


TEXT_PLAIN = "text/plain"
APPLICATION_JSON = "application/json"
IMAGE_PNG = "image/png"
OCTET_STREAM = "application/octet-stream"


class StepStatus(str, Enum):
    """Status of a single step as reported to Xray."""

    PASSED = "PASSED"
    FAILED = "FAILED"
    TODO = "TODO"


class TestStatus(str, Enum):
    """Two-valued final status of a test."""

    __test__ = False

    PASSED = "PASSED"
    FAILED = "FAILED"


class ScreenshotSource(Protocol):
    """Anything that can render itself to PNG bytes (a page, a locator)."""

    def screenshot(self, **options: Any) -> bytes:  # pragma: no cover - protocol
        ...


@dataclass(frozen=True)
class Evidence:
    """A captured artifact inlined as base64."""

    data: str
    filename: str
    content_type: str = OCTET_STREAM

    def to_dict(self) -> Dict[str, str]:
        return {"data": self.data, "filename": self.filename, "contentType": self.content_type}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Evidence":
        return cls(
            data=str(data["data"]),
            filename=str(data["filename"]),
            content_type=str(data.get("contentType", OCTET_STREAM)),
        )


@dataclass(frozen=True)
class StepRecord:
    """Outcome of one step; immutable once appended to a test's step list."""

    name: str
    status: StepStatus
    result_text: str
    evidences: Tuple[Evidence, ...] = tuple()

    @property
    def failed(self) -> bool:
        return self.status is StepStatus.FAILED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "actualResult": self.result_text,
            "evidences": [evidence.to_dict() for evidence in self.evidences],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StepRecord":
        # Persisted steps carry only the result text; the name is recovered from it.
        result_text = str(data.get("actualResult", ""))
        return cls(
            name=result_text,
            status=StepStatus(data["status"]),
            result_text=result_text,
            evidences=tuple(Evidence.from_dict(item) for item in data.get("evidences", [])),
        )


@dataclass(frozen=True)
class TestResult:
    """Finalized record of one keyed test, written exactly once."""

    __test__ = False

    test_key: str
    start: str
    finish: str
    status: TestStatus
    comment: str
    steps: Tuple[StepRecord, ...] = tuple()
    spec_file: str = ""
    target_execution_key: Optional[str] = None

    @property
    def passed(self) -> bool:
        return self.status is TestStatus.PASSED

    def to_dict(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "testKey": self.test_key,
            "start": self.start,
            "finish": self.finish,
            "status": self.status.value,
            "comment": self.comment,
            "steps": [step.to_dict() for step in self.steps],
            "specFile": self.spec_file,
        }
        if self.target_execution_key:
            record["targetExecutionKey"] = self.target_execution_key
        return record

    def to_upload_dict(self) -> Dict[str, Any]:
        """Shape sent to Xray: internal routing fields stripped."""

        record = self.to_dict()
        record.pop("specFile", None)
        record.pop("targetExecutionKey", None)
        return record

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TestResult":
        return cls(
            test_key=str(data["testKey"]),
            start=str(data["start"]),
            finish=str(data["finish"]),
            status=TestStatus(data["status"]),
            comment=str(data.get("comment", "")),
            steps=tuple(StepRecord.from_dict(item) for item in data.get("steps", [])),
            spec_file=str(data.get("specFile") or ""),
            target_execution_key=data.get("targetExecutionKey") or None,
        )


@dataclass(frozen=True)
class TestOutcome:
    """What the runner reports about a finished test."""

    __test__ = False

    failed: bool
    message: Optional[str] = None


# Evidence content variants, selected explicitly at the call site.


@dataclass(frozen=True)
class Text:
    text: str


@dataclass(frozen=True)
class Structured:
    data: Any


@dataclass(frozen=True)
class Image:
    source: ScreenshotSource
    options: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Deferred:
    """Run ``action`` first, then screenshot the page if one is available."""

    action: Callable[[], Any]


EvidenceContent = Union[Text, Structured, Image, Deferred]


@dataclass(frozen=True)
class StepOptions:
    """Per-step knobs accepted by :class:`StepExecutor`."""

    capture_screenshot: bool = True
    additional_evidences: Tuple[str, ...] = tuple()
    screenshot_options: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SpecTarget:
    """Where one spec group's results go during an orchestration run."""

    spec: str
    execution_key: Optional[str] = None
    summary: Optional[str] = None

    @property
    def creates_execution(self) -> bool:
        return self.execution_key is None
