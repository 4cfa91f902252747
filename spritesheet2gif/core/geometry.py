"""Canvas geometry shared by every frame of a render."""

from __future__ import annotations

import logging
import math

from . import RenderGeometry, SpriteConfig
from .errors import CanvasAllocationError, InvalidCropError

logger = logging.getLogger(__name__)
MAX_OUTPUT_SIDE = 1024


def constrain_to_max_side(width: int, height: int, limit: int = MAX_OUTPUT_SIDE) -> tuple[int, int, float]:
    """Shrink ``(width, height)`` so the longest side is at most ``limit``.

    Returns the output size and the ratio applied. Sizes are floored with
    integer arithmetic so the longest side lands exactly on ``limit``.
    """

    longest = max(width, height)
    if longest <= limit:
        return width, height, 1.0
    return (width * limit) // longest, (height * limit) // longest, limit / longest


def resolve_geometry(
    image_size: tuple[int, int],
    config: SpriteConfig,
    content_size: tuple[float, float] | None = None,
) -> RenderGeometry:
    """Compute cell, crop, logical and output sizes for a render.

    ``content_size`` overrides the cropped size as the unscaled frame size
    (used by auto-align once the content extents are known).
    """

    image_width, image_height = image_size
    cell_width = image_width / config.cols
    cell_height = image_height / config.rows

    crop = config.crop
    cropped_width = cell_width - crop.left - crop.right
    cropped_height = cell_height - crop.top - crop.bottom
    if cropped_width <= 0:
        raise InvalidCropError(
            f"Crop exceeds cell size: left+right ({crop.left + crop.right}) >= cell width ({cell_width:g})",
            field="crop.left",
        )
    if cropped_height <= 0:
        raise InvalidCropError(
            f"Crop exceeds cell size: top+bottom ({crop.top + crop.bottom}) >= cell height ({cell_height:g})",
            field="crop.top",
        )

    base_width, base_height = content_size or (cropped_width, cropped_height)
    logical_width = math.floor(base_width * config.scale)
    logical_height = math.floor(base_height * config.scale)
    if logical_width <= 0 or logical_height <= 0:
        raise CanvasAllocationError(
            f"Scaled frame would be {logical_width}x{logical_height}; increase scale", field="scale"
        )

    if config.max_resolution_1024:
        output_width, output_height, ratio = constrain_to_max_side(logical_width, logical_height)
    else:
        output_width, output_height, ratio = logical_width, logical_height, 1.0
    if output_width <= 0 or output_height <= 0:
        raise CanvasAllocationError(
            f"Output frame would be {output_width}x{output_height} after the 1024px cap",
            field="max_resolution_1024",
        )

    geometry = RenderGeometry(
        cell_width=cell_width,
        cell_height=cell_height,
        cropped_width=cropped_width,
        cropped_height=cropped_height,
        base_width=base_width,
        base_height=base_height,
        logical_width=logical_width,
        logical_height=logical_height,
        output_width=output_width,
        output_height=output_height,
        resize_ratio=ratio,
    )
    logger.debug("Resolved geometry %s", geometry)
    return geometry


def source_origin(row: int, col: int, geometry: RenderGeometry, config: SpriteConfig) -> tuple[float, float]:
    """Top-left corner of a cropped cell in sheet coordinates."""

    return col * geometry.cell_width + config.crop.left, row * geometry.cell_height + config.crop.top
