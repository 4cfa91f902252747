"""Content bounding boxes used by auto-align."""

from __future__ import annotations

from typing import Optional

import numpy as np
from PIL import Image

from . import RGB, FrameBoundingBox
from .chroma_key import squared_distance


def content_mask(pixels: np.ndarray, target: Optional[RGB] = None, threshold_sq: float = 0.0) -> np.ndarray:
    """Pixels that are visible and, when a target is set, not background."""

    mask = pixels[..., 3] > 0
    if target is not None:
        mask &= squared_distance(pixels, target) > threshold_sq
    return mask


def content_bounding_box(
    pixels: np.ndarray | Image.Image,
    target: Optional[RGB] = None,
    threshold_sq: float = 0.0,
) -> Optional[FrameBoundingBox]:
    """Tightest box around content, or ``None`` when the frame is all background.

    The background test is the same one the chroma key uses, so sizing and
    keying agree on what counts as subject.
    """

    if isinstance(pixels, Image.Image):
        pixels = np.asarray(pixels.convert("RGBA"))
    mask = content_mask(pixels, target, threshold_sq)
    ys = np.flatnonzero(mask.any(axis=1))
    if ys.size == 0:
        return None
    xs = np.flatnonzero(mask.any(axis=0))
    return FrameBoundingBox(
        min_x=int(xs[0]),
        min_y=int(ys[0]),
        width=int(xs[-1] - xs[0] + 1),
        height=int(ys[-1] - ys[0] + 1),
    )
