"""Validation helpers for user inputs."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

from ..core import ALIGN_BOTTOM, ALIGN_CENTER, COLUMN_MAJOR, ROW_MAJOR, SpriteConfig
from ..core.errors import InvalidImageError, ValidationError


ALLOWED_IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp", ".gif", ".bmp"}
READ_ORDERS = (ROW_MAJOR, COLUMN_MAJOR)
ALIGN_MODES = (ALIGN_CENTER, ALIGN_BOTTOM)

_HEX_COLOR = re.compile(r"^#?([0-9a-f]{2})([0-9a-f]{2})([0-9a-f]{2})$", re.IGNORECASE)


def validate_image_path(path: Path) -> Path:
    """Ensure the image path exists and appears to be a supported format."""

    if not path:
        raise InvalidImageError(Path("<unset>"), reason="No path provided")
    if not path.exists():
        raise InvalidImageError(path, reason="File not found")
    if path.suffix.lower() not in ALLOWED_IMAGE_EXTENSIONS:
        raise InvalidImageError(path, reason="Unsupported format")
    return path


def parse_hex_color(value: str | None) -> Optional[tuple[int, int, int]]:
    """Parse a ``#rrggbb`` (or ``rrggbb``) color string."""

    if value is None or value.strip() == "":
        return None
    match = _HEX_COLOR.match(value.strip())
    if not match:
        raise ValidationError("Transparent color must be a hex value like #ffffff", field="transparent")
    return tuple(int(part, 16) for part in match.groups())  # type: ignore


def parse_frame_list(value: str | None) -> frozenset[int]:
    """Parse zero-based frame indices like ``'0,3,5-7'``."""

    if value is None or value.strip() == "":
        return frozenset()
    indices: set[int] = set()
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        start_text, _, end_text = part.partition("-")
        try:
            start = int(start_text)
            end = int(end_text) if end_text else start
        except ValueError as exc:
            raise ValidationError(f"Frame list entries must be integers, got {part!r}", field="excluded_frames") from exc
        if end < start:
            raise ValidationError(f"Invalid frame range {part!r}", field="excluded_frames")
        indices.update(range(start, end + 1))
    if any(index < 0 for index in indices):
        raise ValidationError("Frame indices must be zero or greater", field="excluded_frames")
    return frozenset(indices)


def validate_grid(rows: int, cols: int, total_frames: int) -> None:
    """Ensure grid dimensions are positive and the frame cutoff fits the grid."""

    if rows <= 0:
        raise ValidationError("Rows must be greater than zero", field="rows")
    if cols <= 0:
        raise ValidationError("Columns must be greater than zero", field="cols")
    if total_frames < 0:
        raise ValidationError("Total frames must be zero or greater", field="total_frames")
    if total_frames > rows * cols:
        raise ValidationError(
            f"Total frames ({total_frames}) exceeds grid capacity ({rows * cols})", field="total_frames"
        )


def validate_tolerance(value: float) -> None:
    """Tolerance is a percentage of the maximum RGB distance."""

    if value < 0 or value > 100:
        raise ValidationError("Tolerance must be between 0 and 100", field="tolerance")


def validate_config(config: SpriteConfig) -> SpriteConfig:
    """Check every field that can be validated without the source image."""

    validate_grid(config.rows, config.cols, config.total_frames)
    if config.fps <= 0:
        raise ValidationError("FPS must be greater than zero", field="fps")
    if config.scale <= 0:
        raise ValidationError("Scale must be greater than zero", field="scale")
    validate_tolerance(config.tolerance)
    if config.read_order not in READ_ORDERS:
        raise ValidationError(f"Read order must be one of {', '.join(READ_ORDERS)}", field="read_order")
    if config.align_mode not in ALIGN_MODES:
        raise ValidationError(f"Align mode must be one of {', '.join(ALIGN_MODES)}", field="align_mode")
    if config.align_margin < 0:
        raise ValidationError("Align margin must be zero or greater", field="align_margin")
    for side in ("top", "bottom", "left", "right"):
        if getattr(config.crop, side) < 0:
            raise ValidationError(f"Crop {side} must be zero or greater", field=f"crop.{side}")
    parse_hex_color(config.transparent)
    return config
