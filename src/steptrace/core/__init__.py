"""Core models and helpers exposed at the package level."""
from .context import TestContext
from .evidence import EvidenceCollector
from .models import (
    Deferred,
    Evidence,
    Image,
    StepOptions,
    StepRecord,
    StepStatus,
    Structured,
    TestOutcome,
    TestResult,
    TestStatus,
    Text,
)
from .recorder import ResultRecorder, extract_test_key
from .steps import StepExecutor
from .store import ResultStore

__all__ = [
    "Deferred",
    "Evidence",
    "EvidenceCollector",
    "Image",
    "ResultRecorder",
    "ResultStore",
    "StepExecutor",
    "StepOptions",
    "StepRecord",
    "StepStatus",
    "Structured",
    "TestContext",
    "TestOutcome",
    "TestResult",
    "TestStatus",
    "Text",
    "extract_test_key",
]
