"""Upload configuration: defaults, optional YAML file, then environment."""
from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml
from jsonschema import Draft7Validator

DEFAULT_BASE_URL = "https://xray.cloud.getxray.app/api/v2"

_TRUTHY = {"on", "true", "1", "yes"}
_QUOTES = re.compile(r"^[\"']|[\"']$")

_STR_OR_LIST = {
    "anyOf": [
        {"type": "string"},
        {"type": "array", "items": {"type": "string"}},
    ]
}

CONFIG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "steptrace upload configuration",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "upload": {"type": "boolean"},
        "execution_keys": _STR_OR_LIST,
        "summaries": _STR_OR_LIST,
        "project_key": {"type": "string"},
        "test_plan_key": {"type": "string"},
        "base_url": {"type": "string"},
        "manual_reports_dir": {"type": "string"},
        "html_report": {"type": ["string", "null"]},
        "debug_file": {"type": "string"},
    },
}

_validator = Draft7Validator(CONFIG_SCHEMA)


class ConfigError(ValueError):
    """Raised when the configuration file cannot be used."""


@dataclass(frozen=True)
class UploadSettings:
    enabled: bool = False
    execution_keys: Tuple[str, ...] = tuple()
    summaries: Tuple[str, ...] = tuple()
    project_key: Optional[str] = None
    test_plan_key: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    manual_reports_dir: Path = Path("manual-reports")
    html_report: Optional[Path] = Path("custom-report") / "index.html"
    debug_file: Path = Path("xray-results-debug.json")

    def relative_to(self, base: Path) -> "UploadSettings":
        """Anchor relative output paths at ``base``."""

        return replace(
            self,
            manual_reports_dir=_anchor(self.manual_reports_dir, base),
            html_report=_anchor(self.html_report, base) if self.html_report else None,
            debug_file=_anchor(self.debug_file, base),
        )


def parse_list(raw: Any) -> Tuple[str, ...]:
    """Parse a key or summary list given as a JSON array or comma separated text.

    >>> parse_list('["PXX-1", "PXX-5"]')
    ('PXX-1', 'PXX-5')
    >>> parse_list('"PXX-1", PXX-5')
    ('PXX-1', 'PXX-5')
    """

    if raw is None:
        return tuple()
    if isinstance(raw, (list, tuple)):
        items = [str(item) for item in raw]
    else:
        text = str(raw).strip()
        if not text:
            return tuple()
        items = None
        if text.startswith("[") and text.endswith("]"):
            try:
                decoded = json.loads(text)
            except ValueError:
                text = text.replace("[", "").replace("]", "")
            else:
                if isinstance(decoded, list):
                    items = [str(item) for item in decoded]
        if items is None:
            items = text.split(",")
    # Blank items keep their slot: a spec mapped to "" creates a new execution.
    return tuple(_unquote(item.strip()) for item in items)


def load_settings(
    path: Optional[str | Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    base_dir: Optional[Path] = None,
) -> UploadSettings:
    """Build settings from an optional YAML file overlaid with the environment."""

    env = os.environ if environ is None else environ
    settings = UploadSettings()
    if path:
        settings = _apply_file(settings, Path(path).expanduser())
    settings = _apply_env(settings, env)
    if base_dir is not None:
        settings = settings.relative_to(base_dir)
    return settings


def _apply_file(settings: UploadSettings, path: Path) -> UploadSettings:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file {path} is not valid YAML: {exc}") from exc
    if not isinstance(raw, Mapping):
        raise ConfigError("Config file must contain a mapping at the top level")
    errors = sorted(_validator.iter_errors(raw), key=lambda e: list(e.path))
    if errors:
        messages = "; ".join(f"{'/'.join(map(str, err.path)) or 'root'}: {err.message}" for err in errors)
        raise ConfigError(f"Config schema validation failed: {messages}")
    updates: Dict[str, Any] = {}
    if "upload" in raw:
        updates["enabled"] = bool(raw["upload"])
    if "execution_keys" in raw:
        updates["execution_keys"] = parse_list(raw["execution_keys"])
    if "summaries" in raw:
        updates["summaries"] = parse_list(raw["summaries"])
    for key in ("project_key", "test_plan_key", "base_url"):
        if raw.get(key):
            updates[key] = str(raw[key]).strip()
    for key in ("manual_reports_dir", "debug_file"):
        if raw.get(key):
            updates[key] = Path(raw[key])
    if "html_report" in raw:
        updates["html_report"] = Path(raw["html_report"]) if raw["html_report"] else None
    return replace(settings, **updates)


def _apply_env(settings: UploadSettings, env: Mapping[str, str]) -> UploadSettings:
    updates: Dict[str, Any] = {}
    flag = env.get("UPLOAD_JIRA")
    if flag is not None:
        updates["enabled"] = flag.strip().lower() in _TRUTHY
    if env.get("XRAY_TEST_EXECUTION_KEY"):
        updates["execution_keys"] = parse_list(env["XRAY_TEST_EXECUTION_KEY"])
    if env.get("XRAY_TEST_SUMMARY"):
        updates["summaries"] = parse_list(env["XRAY_TEST_SUMMARY"])
    for name, field_name in (
        ("XRAY_PROJECT_KEY", "project_key"),
        ("XRAY_TEST_PLAN_KEY", "test_plan_key"),
        ("XRAY_CLIENT_ID", "client_id"),
        ("XRAY_CLIENT_SECRET", "client_secret"),
        ("XRAY_BASE_URL", "base_url"),
    ):
        value = env.get(name, "").strip()
        if value:
            updates[field_name] = value
    return replace(settings, **updates)


def _unquote(text: str) -> str:
    return _QUOTES.sub("", text).strip()


def _anchor(path: Path, base: Path) -> Path:
    return path if path.is_absolute() else base / path
