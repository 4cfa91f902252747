"""Chroma key removal for rendered frames.

Pixel buffers are ``(height, width, 4)`` uint8 arrays. A pixel matches the key
when its alpha is already zero or its squared RGB distance to the target is
within the threshold. Matches are rewritten either to an opaque sentinel color
(for the GIF writer, whose transparency is a single palette index) or to
alpha 0 (for previews).
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Literal, Optional

import numpy as np
from PIL import Image

from . import ChromaKeySpec, RGB, SpriteConfig
from ..utils import validators

logger = logging.getLogger(__name__)

MAX_RGB_DISTANCE = 441.67
MAGENTA: RGB = (255, 0, 255)
GREEN: RGB = (0, 255, 0)
SENTINEL_CLASH_DISTANCE = 100

KeyOutput = Literal["sentinel", "alpha"]


def key_color_for(target: RGB) -> RGB:
    """Pick a sentinel that cannot be confused with the target color."""

    distance = sum((a - b) ** 2 for a, b in zip(target, MAGENTA)) ** 0.5
    return GREEN if distance < SENTINEL_CLASH_DISTANCE else MAGENTA


def tolerance_to_threshold_sq(tolerance: float) -> float:
    """Convert a 0-100 tolerance into a squared RGB distance."""

    threshold = (tolerance / 100) * MAX_RGB_DISTANCE
    return threshold * threshold


def build_chroma_key(config: SpriteConfig) -> Optional[ChromaKeySpec]:
    """Resolve the chroma key for a config, or ``None`` when keying is off."""

    target = validators.parse_hex_color(config.transparent)
    if target is None:
        return None
    return ChromaKeySpec(
        target=target,
        key_color=key_color_for(target),
        threshold_sq=tolerance_to_threshold_sq(config.tolerance),
        fill_mode="flood" if config.use_flood_fill else "global",
    )


def squared_distance(pixels: np.ndarray, target: RGB) -> np.ndarray:
    """Per-pixel squared RGB distance to ``target``."""

    diff = pixels[..., :3].astype(np.int32) - np.asarray(target, dtype=np.int32)
    return np.einsum("...c,...c->...", diff, diff)


def match_mask(pixels: np.ndarray, spec: ChromaKeySpec) -> np.ndarray:
    """Pixels that pass the global key test."""

    return (pixels[..., 3] == 0) | (squared_distance(pixels, spec.target) <= spec.threshold_sq)


def edge_connected(mask: np.ndarray) -> np.ndarray:
    """Restrict ``mask`` to regions 4-connected to the image border."""

    mask = np.asarray(mask, dtype=bool)
    if mask.all() or not mask.any():
        return mask.copy()

    height, width = mask.shape
    total = width * height
    matched = np.ascontiguousarray(mask, dtype=bool).tobytes()
    reached = bytearray(total)
    queue: deque[int] = deque()

    border = set(range(width))
    border.update(range(total - width, total))
    border.update(range(0, total, width))
    border.update(range(width - 1, total, width))
    for idx in sorted(border):
        if matched[idx]:
            reached[idx] = 1
            queue.append(idx)

    while queue:
        idx = queue.popleft()
        x = idx % width
        if x + 1 < width:
            nxt = idx + 1
            if matched[nxt] and not reached[nxt]:
                reached[nxt] = 1
                queue.append(nxt)
        if x > 0:
            nxt = idx - 1
            if matched[nxt] and not reached[nxt]:
                reached[nxt] = 1
                queue.append(nxt)
        nxt = idx + width
        if nxt < total and matched[nxt] and not reached[nxt]:
            reached[nxt] = 1
            queue.append(nxt)
        nxt = idx - width
        if nxt >= 0 and matched[nxt] and not reached[nxt]:
            reached[nxt] = 1
            queue.append(nxt)

    return np.frombuffer(bytes(reached), dtype=np.uint8).reshape(height, width).astype(bool)


def key_mask(pixels: np.ndarray, spec: ChromaKeySpec) -> np.ndarray:
    """Pixels the key will rewrite under its fill mode."""

    mask = match_mask(pixels, spec)
    if spec.fill_mode == "flood":
        mask = edge_connected(mask)
    return mask


def apply_chroma_key(pixels: np.ndarray, spec: ChromaKeySpec, output: KeyOutput = "sentinel") -> np.ndarray:
    """Rewrite keyed pixels in place and return the buffer."""

    mask = key_mask(pixels, spec)
    if output == "sentinel":
        pixels[mask, :3] = spec.key_color
        pixels[mask, 3] = 255
    else:
        pixels[mask, 3] = 0
    logger.debug("Keyed %s of %s pixels (%s)", int(mask.sum()), mask.size, spec.fill_mode)
    return pixels


def apply_chroma_key_image(image: Image.Image, spec: ChromaKeySpec, output: KeyOutput = "sentinel") -> Image.Image:
    """Return a keyed RGBA copy of ``image``."""

    pixels = np.array(image.convert("RGBA"))
    apply_chroma_key(pixels, spec, output)
    return Image.fromarray(pixels)
