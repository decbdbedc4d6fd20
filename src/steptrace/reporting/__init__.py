"""Reporting exports."""
from .schema import RESULT_SCHEMA_V1, SCHEMA_VERSION, result_errors
from .terminal import TerminalReporter, result_lines, upload_summary_lines

__all__ = [
    "RESULT_SCHEMA_V1",
    "SCHEMA_VERSION",
    "TerminalReporter",
    "result_errors",
    "result_lines",
    "upload_summary_lines",
]
