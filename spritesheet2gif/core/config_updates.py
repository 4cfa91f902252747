"""Pure edits that derive a new SpriteConfig from an old one."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Optional

from . import CropMargins, GridEstimate, SpriteConfig
from .errors import ValidationError

logger = logging.getLogger(__name__)


def with_grid(config: SpriteConfig, rows: Optional[int] = None, cols: Optional[int] = None) -> SpriteConfig:
    """Change the grid shape.

    A frame cutoff that covered the whole old grid keeps covering the whole new
    grid; a narrower cutoff is kept but never exceeds the new capacity.
    """

    new_rows = config.rows if rows is None else rows
    new_cols = config.cols if cols is None else cols
    if new_rows <= 0 or new_cols <= 0:
        raise ValidationError("Rows and columns must be greater than zero", field="rows" if new_rows <= 0 else "cols")

    capacity = new_rows * new_cols
    if config.total_frames == config.rows * config.cols:
        total = capacity
    else:
        total = min(config.total_frames, capacity)
    return replace(config, rows=new_rows, cols=new_cols, total_frames=total)


def with_crop(config: SpriteConfig, **margins: float) -> SpriteConfig:
    """Replace individual crop margins (``top``, ``bottom``, ``left``, ``right``)."""

    unknown = set(margins) - {"top", "bottom", "left", "right"}
    if unknown:
        raise ValidationError(f"Unknown crop margin(s): {', '.join(sorted(unknown))}", field="crop")
    for side, value in margins.items():
        if value < 0:
            raise ValidationError(f"Crop {side} must be zero or greater", field=f"crop.{side}")
    return replace(config, crop=replace(config.crop, **margins))


def toggle_excluded_frame(config: SpriteConfig, index: int) -> SpriteConfig:
    """Exclude a frame, or restore it if already excluded."""

    if index < 0 or index >= config.total_frames:
        raise ValidationError(
            f"Frame {index} is outside the first {config.total_frames} frames", field="excluded_frames"
        )
    if index in config.excluded_frames:
        excluded = config.excluded_frames - {index}
    else:
        excluded = config.excluded_frames | {index}
    return replace(config, excluded_frames=frozenset(excluded))


def apply_grid_estimate(
    config: SpriteConfig,
    estimate: GridEstimate,
    locked: Iterable[str] = (),
) -> SpriteConfig:
    """Fill rows, cols and total_frames from an estimate.

    Fields named in ``locked`` were set by the user and are left alone.
    """

    locked = set(locked)
    rows = config.rows if "rows" in locked else estimate.rows
    cols = config.cols if "cols" in locked else estimate.cols
    if "total_frames" in locked:
        total = config.total_frames
    else:
        total = estimate.total_frames or rows * cols
    total = min(total, rows * cols)
    logger.info("Applying grid estimate %sx%s (%s frames), locked=%s", rows, cols, total, sorted(locked) or "none")
    return replace(config, rows=rows, cols=cols, total_frames=total)


def config_from_options(
    *,
    crop: Optional[CropMargins] = None,
    excluded_frames: Iterable[int] = (),
    **options,
) -> SpriteConfig:
    """Build a config from loose keyword options, dropping ``None`` values.

    Without an explicit ``total_frames`` every cell of the grid is used.
    """

    values = {key: value for key, value in options.items() if value is not None}
    defaults = SpriteConfig()
    values.setdefault("total_frames", values.get("rows", defaults.rows) * values.get("cols", defaults.cols))
    if crop is not None:
        values["crop"] = crop
    values["excluded_frames"] = frozenset(excluded_frames)
    return SpriteConfig(**values)
