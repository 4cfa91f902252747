"""Frame compositing: sheet cells to finished GIF frames."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional

import numpy as np
from PIL import Image

from . import (
    ALIGN_BOTTOM,
    ChromaKeySpec,
    FrameBoundingBox,
    FrameCoordinate,
    RenderGeometry,
    RenderOutcome,
    SpriteConfig,
)
from .bounding_box import content_bounding_box
from .chroma_key import apply_chroma_key, build_chroma_key
from .errors import CanvasAllocationError, MissingContentWarning, RenderCancelledError
from .geometry import resolve_geometry, source_origin
from .gif_encoder import GifEncoder
from .sequencer import build_sequence
from ..utils import validators

logger = logging.getLogger(__name__)

WHITE = (255, 255, 255, 255)
CLEAR = (0, 0, 0, 0)

ProgressCallback = Callable[[float], None]
CancelCheck = Callable[[], bool]


@dataclass
class RenderPlan:
    """Everything decided before the first frame is drawn."""

    sequence: list[FrameCoordinate]
    geometry: RenderGeometry
    chroma_key: Optional[ChromaKeySpec]
    delay_ms: int
    bounding_boxes: dict[int, Optional[FrameBoundingBox]] = field(default_factory=dict)
    warnings: list[MissingContentWarning] = field(default_factory=list)


@dataclass
class RenderedFrame:
    """A finished frame ready for the encoder."""

    position: int
    original_index: int
    image: Image.Image
    delay_ms: int


def as_rgba(image: Image.Image) -> Image.Image:
    """Return ``image`` in RGBA, converting only when needed."""

    return image if image.mode == "RGBA" else image.convert("RGBA")


def new_canvas(size: tuple[int, int], color: tuple[int, int, int, int] = CLEAR) -> Image.Image:
    """Allocate an RGBA working surface."""

    width, height = size
    if width <= 0 or height <= 0:
        raise CanvasAllocationError(f"Cannot allocate a {width}x{height} canvas")
    try:
        return Image.new("RGBA", (width, height), color)
    except (MemoryError, ValueError) as exc:
        raise CanvasAllocationError(f"Cannot allocate a {width}x{height} canvas: {exc}") from exc


def draw_region(
    canvas: Image.Image,
    source: Image.Image,
    box: tuple[float, float, float, float],
    size: tuple[int, int],
    dest: tuple[int, int] = (0, 0),
) -> None:
    """Scale ``box`` of ``source`` to ``size`` (nearest neighbour) and composite it at ``dest``.

    Parts falling outside the canvas are clipped.
    """

    width, height = size
    if width <= 0 or height <= 0:
        return
    left, top, right, bottom = box
    clamped = (
        max(0.0, left),
        max(0.0, top),
        min(float(source.width), right),
        min(float(source.height), bottom),
    )
    if clamped[2] <= clamped[0] or clamped[3] <= clamped[1]:
        return
    region = source.resize(size, Image.Resampling.NEAREST, box=clamped)

    visible = (min(width, canvas.width - dest[0]), min(height, canvas.height - dest[1]))
    if visible[0] <= 0 or visible[1] <= 0:
        return
    if visible != size:
        region = region.crop((0, 0, *visible))
    canvas.alpha_composite(region, dest=dest)


def alignment_offset(canvas_size: tuple[int, int], content_size: tuple[int, int], mode: str) -> tuple[int, int]:
    """Where content lands: centered horizontally, centered or bottom-anchored vertically."""

    canvas_width, canvas_height = canvas_size
    content_width, content_height = content_size
    x = (canvas_width - content_width) // 2
    if mode == ALIGN_BOTTOM:
        y = canvas_height - content_height
    else:
        y = (canvas_height - content_height) // 2
    return x, y


def extract_cell(source: Image.Image, coordinate: FrameCoordinate, geometry: RenderGeometry, config: SpriteConfig) -> Image.Image:
    """Copy a cropped cell at 1:1 scale into its own RGBA image."""

    width = int(geometry.cropped_width)
    height = int(geometry.cropped_height)
    x, y = source_origin(coordinate.row, coordinate.col, geometry, config)
    cell = new_canvas((width, height))
    draw_region(cell, source, (x, y, x + width, y + height), (width, height))
    return cell


def analyze_alignment(
    source: Image.Image,
    sequence: list[FrameCoordinate],
    geometry: RenderGeometry,
    config: SpriteConfig,
    chroma_key: Optional[ChromaKeySpec],
) -> tuple[dict[int, Optional[FrameBoundingBox]], tuple[int, int], list[MissingContentWarning]]:
    """Pre-pass over every frame: content boxes and the largest extent seen."""

    target = chroma_key.target if chroma_key else None
    threshold_sq = chroma_key.threshold_sq if chroma_key else 0.0
    boxes: dict[int, Optional[FrameBoundingBox]] = {}
    warnings: list[MissingContentWarning] = []
    max_width = max_height = 0

    for coordinate in sequence:
        cell = np.asarray(extract_cell(source, coordinate, geometry, config))
        box = content_bounding_box(cell, target, threshold_sq)
        boxes[coordinate.original_index] = box
        if box is None:
            warnings.append(MissingContentWarning(coordinate.original_index))
            logger.info("Frame %s has no content; it will not be re-centered", coordinate.original_index)
            continue
        max_width = max(max_width, box.width)
        max_height = max(max_height, box.height)

    return boxes, (max_width, max_height), warnings


def plan_render(source: Image.Image, config: SpriteConfig) -> RenderPlan:
    """Validate the config and settle geometry, keying and alignment."""

    source = as_rgba(source)
    validators.validate_config(config)
    geometry = resolve_geometry(source.size, config)
    sequence = build_sequence(config)
    chroma_key = build_chroma_key(config)
    plan = RenderPlan(sequence=sequence, geometry=geometry, chroma_key=chroma_key, delay_ms=config.delay_ms)

    if config.auto_align:
        boxes, (max_width, max_height), warnings = analyze_alignment(source, sequence, geometry, config, chroma_key)
        plan.bounding_boxes = boxes
        plan.warnings = warnings
        if max_width > 0 and max_height > 0:
            content_size = (max_width + config.align_margin, max_height + config.align_margin)
            plan.geometry = resolve_geometry(source.size, config, content_size=content_size)

    logger.info(
        "Planned %s frames at %sx%s (logical %sx%s, ratio %.3f)",
        len(plan.sequence),
        plan.geometry.output_width,
        plan.geometry.output_height,
        plan.geometry.logical_width,
        plan.geometry.logical_height,
        plan.geometry.resize_ratio,
    )
    return plan


def compose_frame(source: Image.Image, coordinate: FrameCoordinate, plan: RenderPlan, config: SpriteConfig) -> Image.Image:
    """Draw, key and downsample one frame."""

    geometry = plan.geometry
    logical_size = (geometry.logical_width, geometry.logical_height)
    canvas = new_canvas(logical_size, CLEAR if config.transparent else WHITE)
    x, y = source_origin(coordinate.row, coordinate.col, geometry, config)

    if config.auto_align:
        box = plan.bounding_boxes.get(coordinate.original_index)
        if box is not None:
            scaled = (int(box.width * config.scale), int(box.height * config.scale))
            dest = alignment_offset(logical_size, scaled, config.align_mode)
            region = (x + box.min_x, y + box.min_y, x + box.min_x + box.width, y + box.min_y + box.height)
            draw_region(canvas, source, region, scaled, dest)
        else:
            scaled = (int(geometry.cropped_width * config.scale), int(geometry.cropped_height * config.scale))
            region = (x, y, x + geometry.cropped_width, y + geometry.cropped_height)
            draw_region(canvas, source, region, scaled)
    else:
        region = (x, y, x + geometry.cropped_width, y + geometry.cropped_height)
        draw_region(canvas, source, region, logical_size)

    if plan.chroma_key is not None:
        pixels = np.array(canvas)
        apply_chroma_key(pixels, plan.chroma_key, output="sentinel")
        canvas = Image.fromarray(pixels)

    if geometry.needs_resize:
        resample = Image.Resampling.NEAREST if config.transparent else Image.Resampling.BILINEAR
        canvas = canvas.resize((geometry.output_width, geometry.output_height), resample)
    return canvas


def iter_rendered_frames(
    source: Image.Image,
    config: SpriteConfig,
    plan: Optional[RenderPlan] = None,
    should_cancel: Optional[CancelCheck] = None,
) -> Iterator[RenderedFrame]:
    """Yield finished frames in sequence order."""

    source = as_rgba(source)
    plan = plan or plan_render(source, config)
    for position, coordinate in enumerate(plan.sequence):
        if should_cancel is not None and should_cancel():
            raise RenderCancelledError(f"Render cancelled before frame {position + 1} of {len(plan.sequence)}")
        image = compose_frame(source, coordinate, plan, config)
        logger.debug("Composed frame %s (sheet index %s)", position, coordinate.original_index)
        yield RenderedFrame(
            position=position,
            original_index=coordinate.original_index,
            image=image,
            delay_ms=plan.delay_ms,
        )


def render_frames(source: Image.Image, config: SpriteConfig) -> list[RenderedFrame]:
    """Render every frame eagerly."""

    return list(iter_rendered_frames(source, config))


def render_gif(
    source: Image.Image,
    config: SpriteConfig,
    progress: Optional[ProgressCallback] = None,
    should_cancel: Optional[CancelCheck] = None,
    encoder_factory: Callable[..., GifEncoder] = GifEncoder,
) -> RenderOutcome:
    """Render a sprite sheet into GIF bytes.

    Progress covers compositing (0 to 0.5) then encoding (0.5 to 1). On any
    failure the encoder is discarded and the error propagates.
    """

    source = as_rgba(source)
    plan = plan_render(source, config)
    geometry = plan.geometry
    total = len(plan.sequence)

    def report(fraction: float) -> None:
        if progress is None:
            return
        try:
            progress(min(1.0, max(0.0, fraction)))
        except Exception:  # progress is advisory
            logger.warning("Progress callback failed", exc_info=True)

    encoder = encoder_factory(
        geometry.output_width,
        geometry.output_height,
        key_color=plan.chroma_key.key_color if plan.chroma_key else None,
        progress=lambda fraction: report(0.5 + fraction / 2),
    )
    indices = []
    try:
        for frame in iter_rendered_frames(source, config, plan=plan, should_cancel=should_cancel):
            encoder.add_frame(frame.image, frame.delay_ms)
            indices.append(frame.original_index)
            report((frame.position + 1) / total / 2)
        data = encoder.finish()
    except Exception:
        encoder.discard()
        raise

    return RenderOutcome(
        data=data,
        frame_count=total,
        width=geometry.output_width,
        height=geometry.output_height,
        delay_ms=plan.delay_ms,
        frame_indices=indices,
        warnings=list(plan.warnings),
    )
