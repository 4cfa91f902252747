"""Filesystem helpers."""

from __future__ import annotations

import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def ensure_directory(path: Path) -> Path:
    """Create a directory if it does not exist."""

    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)
    return path


def default_output_path(sheet_path: Path, suffix: str = ".gif") -> Path:
    """GIF path next to the sprite sheet, same stem."""

    if not suffix.startswith("."):
        suffix = "." + suffix
    return sheet_path.with_suffix(suffix)


def download_filename(upload_name: str | None, timestamp: int | None = None) -> str:
    """Attachment name for a rendered upload, e.g. ``hero_motion_1700000000.gif``."""

    stem = _UNSAFE_NAME_CHARS.sub("_", Path(upload_name or "sprite").stem).strip("._") or "sprite"
    if timestamp is None:
        return f"{stem}_motion.gif"
    return f"{stem}_motion_{timestamp}.gif"


def write_bytes(path: Path, data: bytes) -> Path:
    """Write a binary artifact atomically, creating the parent directory first."""

    ensure_directory(path.parent)
    partial = path.with_name(path.name + ".part")
    partial.write_bytes(data)
    partial.replace(path)
    logger.info("Wrote %s bytes to %s", len(data), path)
    return path
