"""Single-frame previews for live playback.

Previews key the 1:1 crop to alpha 0 before scaling and align on the alpha
extent, so they can be drawn over a checkerboard without the 1024px cap or
the GIF sentinel color.
"""

from __future__ import annotations

import math

from PIL import Image

from . import SpriteConfig
from .bounding_box import content_bounding_box
from .chroma_key import apply_chroma_key_image, build_chroma_key
from .compositor import CLEAR, WHITE, alignment_offset, as_rgba, draw_region, extract_cell, new_canvas
from .geometry import resolve_geometry
from .sequencer import build_sequence
from ..utils import validators


def frame_position_at(elapsed_ms: float, fps: float, frame_count: int) -> int:
    """Sequence position shown ``elapsed_ms`` into looping playback."""

    if frame_count <= 0:
        return 0
    tick = math.floor(elapsed_ms / (1000 / fps))
    return tick % frame_count


def render_preview_frame(source: Image.Image, config: SpriteConfig, position: int = 0) -> Image.Image:
    """Render the frame at ``position`` (wrapping) the way the live preview shows it."""

    validators.validate_config(config)
    source = as_rgba(source)
    geometry = resolve_geometry(source.size, config)
    sequence = build_sequence(config)
    coordinate = sequence[position % len(sequence)]

    frame = extract_cell(source, coordinate, geometry, config)
    chroma_key = build_chroma_key(config)
    if chroma_key is not None:
        frame = apply_chroma_key_image(frame, chroma_key, output="alpha")

    canvas_size = (geometry.logical_width, geometry.logical_height)
    canvas = new_canvas(canvas_size, CLEAR if config.transparent else WHITE)

    if config.auto_align:
        box = content_bounding_box(frame)
        if box is not None:
            scaled = (int(box.width * config.scale), int(box.height * config.scale))
            dest = alignment_offset(canvas_size, scaled, config.align_mode)
            region = (box.min_x, box.min_y, box.min_x + box.width, box.min_y + box.height)
            draw_region(canvas, frame, region, scaled, dest)
    else:
        draw_region(canvas, frame, (0, 0, frame.width, frame.height), canvas_size)
    return canvas
