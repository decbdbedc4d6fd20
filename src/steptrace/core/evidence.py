"""Evidence capture: text, structured data and screenshots written to disk."""
from __future__ import annotations

import base64
import json
import logging
from pathlib import Path
from typing import Optional

from .context import TestContext
from .models import (
    APPLICATION_JSON,
    IMAGE_PNG,
    TEXT_PLAIN,
    Deferred,
    Evidence,
    EvidenceContent,
    Image,
    ScreenshotSource,
    Structured,
    Text,
)
from .text import sanitize_name

logger = logging.getLogger(__name__)

_EXTENSION_TYPES = {
    ".json": APPLICATION_JSON,
    ".png": IMAGE_PNG,
}


def content_type_for(path: Path) -> str:
    """Content type of a snapped file, judged by its extension."""

    return _EXTENSION_TYPES.get(path.suffix.lower(), TEXT_PLAIN)


def unique_path(directory: Path, stem: str, suffix: str) -> Path:
    """First ``stem[-N]suffix`` in ``directory`` that does not exist yet."""

    candidate = directory / f"{stem}{suffix}"
    counter = 1
    while candidate.exists():
        candidate = directory / f"{stem}-{counter}{suffix}"
        counter += 1
    return candidate


def load_evidence(path: Path, content_type: Optional[str] = None) -> Optional[Evidence]:
    """Inline a file as base64 evidence; unreadable files yield ``None``."""

    try:
        payload = path.read_bytes()
    except OSError as exc:
        logger.warning("Could not read evidence file %s: %s", path, exc)
        return None
    return Evidence(
        data=base64.b64encode(payload).decode("ascii"),
        filename=path.name,
        content_type=content_type or content_type_for(path),
    )


def inline_screenshot(payload: bytes, filename: str) -> Evidence:
    return Evidence(
        data=base64.b64encode(payload).decode("ascii"),
        filename=filename,
        content_type=IMAGE_PNG,
    )


class EvidenceCollector:
    """Writes named evidence into a test's output directory.

    Every written file is registered with the context's active step (when a
    step is running) so the step executor inlines it into the step record.
    Write and screenshot failures are logged and yield ``None``.
    """

    def snap(
        self,
        context: TestContext,
        name: str,
        content: EvidenceContent,
        source: Optional[ScreenshotSource] = None,
    ) -> Optional[Path]:
        stem = sanitize_name(name)
        if isinstance(content, Deferred):
            content.action()
            if source is None:
                logger.warning("Snap '%s' ran its action but no page was available to screenshot", name)
                return None
            content = Image(source=source)
        if not isinstance(content, (Text, Structured, Image)):
            raise TypeError(f"Unsupported evidence content {type(content).__name__}")
        try:
            path = self._write(context.output_dir, stem, content)
        except Exception as exc:  # screenshot engines raise their own error types
            logger.warning("Failed to capture evidence '%s': %s", name, exc)
            return None
        logger.info("Snapped %s evidence '%s' -> %s", type(content).__name__.lower(), name, path.name)
        if not context.register_evidence(path):
            logger.debug("Evidence '%s' captured outside of a step", name)
        return path

    def _write(self, directory: Path, stem: str, content: EvidenceContent) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        if isinstance(content, Text):
            path = unique_path(directory, stem, ".txt")
            path.write_text(content.text, encoding="utf-8")
            return path
        if isinstance(content, Structured):
            text = json.dumps(content.data, indent=2, ensure_ascii=False)
            path = unique_path(directory, stem, ".json")
            path.write_text(text, encoding="utf-8")
            return path
        payload = content.source.screenshot(**dict(content.options))
        path = unique_path(directory, stem, ".png")
        path.write_bytes(payload)
        return path
