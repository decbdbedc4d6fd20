"""steptrace: step-level evidence for browser tests and batched Xray upload."""
from __future__ import annotations

from .core import (
    Deferred,
    Image,
    StepOptions,
    StepStatus,
    Structured,
    TestContext,
    TestResult,
    TestStatus,
    Text,
)
from .harness import Snapper, TestHarness, TraceBuilder
from .version import __version__

__all__ = [
    "__version__",
    "Deferred",
    "Image",
    "Snapper",
    "StepOptions",
    "StepStatus",
    "Structured",
    "TestContext",
    "TestHarness",
    "TestResult",
    "TestStatus",
    "Text",
    "TraceBuilder",
]
