"""Upload orchestration exports."""
from .bundle import ManualBundleWriter
from .client import UploadClient, UploadError, XrayClient
from .config import ConfigError, UploadSettings, load_settings, parse_list
from .orchestrator import BATCH_SIZE, UploadOrchestrator, group_by_spec, resolve_targets
from .report import SpecReport, UploadReport

__all__ = [
    "BATCH_SIZE",
    "ConfigError",
    "ManualBundleWriter",
    "SpecReport",
    "UploadClient",
    "UploadError",
    "UploadOrchestrator",
    "UploadReport",
    "UploadSettings",
    "XrayClient",
    "group_by_spec",
    "load_settings",
    "parse_list",
    "resolve_targets",
]
