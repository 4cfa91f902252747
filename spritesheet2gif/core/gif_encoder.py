"""GIF writer that accepts rendered RGBA frames in order."""

from __future__ import annotations

import logging
from io import BytesIO
from typing import Callable, Optional

import numpy as np
from PIL import GifImagePlugin, Image

from . import RGB
from .errors import EncodingError

logger = logging.getLogger(__name__)

KEY_INDEX = 255
ProgressCallback = Callable[[float], None]


class GifEncoder:
    """Collects frames and writes a looping GIF.

    When ``key_color`` is set, pixels of exactly that color become palette
    index 255, which is declared transparent; the remaining colors are
    quantized into the first 255 entries.
    """

    def __init__(
        self,
        width: int,
        height: int,
        key_color: Optional[RGB] = None,
        progress: Optional[ProgressCallback] = None,
    ):
        if width <= 0 or height <= 0:
            raise EncodingError(f"GIF size must be positive, got {width}x{height}")
        self.width = width
        self.height = height
        self.key_color = key_color
        self.progress = progress
        self._frames: list[Image.Image] = []
        self._delays: list[int] = []

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    def add_frame(self, image: Image.Image, delay_ms: int) -> None:
        if image.size != (self.width, self.height):
            raise EncodingError(
                f"Frame size {image.size[0]}x{image.size[1]} does not match GIF size {self.width}x{self.height}"
            )
        self._frames.append(image.copy())
        self._delays.append(int(delay_ms))

    def discard(self) -> None:
        """Drop buffered frames after a failed render."""

        if self._frames:
            logger.debug("Discarding %s buffered frames", len(self._frames))
        self._frames.clear()
        self._delays.clear()

    def finish(self) -> bytes:
        if not self._frames:
            raise EncodingError("Cannot write a GIF without frames")

        total = len(self._frames)
        palettized = []
        for position, frame in enumerate(self._frames):
            palettized.append(self._palettize(frame))
            self._report((position + 1) / (total + 1))

        buffer = BytesIO()
        try:
            self._write(buffer, palettized)
        except (OSError, ValueError) as exc:
            raise EncodingError(f"Failed to write GIF: {exc}") from exc
        finally:
            self.discard()

        self._report(1.0)
        data = buffer.getvalue()
        logger.info("Encoded %s frames into %s bytes", total, len(data))
        return data

    def _write(self, buffer: BytesIO, palettized: list[Image.Image]) -> None:
        """Write the header, one image block per frame, then the trailer.

        Frames go out one by one instead of through ``save_all``, which folds
        a frame identical to its predecessor into the previous frame's delay.
        """

        header, _ = GifImagePlugin.getheader(palettized[0], info={"loop": 0})
        buffer.write(b"".join(header))
        for frame, delay in zip(palettized, self._delays):
            params = {"duration": delay, "disposal": 2, "include_color_table": True}
            if self.key_color is not None:
                params["transparency"] = KEY_INDEX
            buffer.write(b"".join(GifImagePlugin.getdata(frame, **params)))
        buffer.write(b";")

    def _palettize(self, frame: Image.Image) -> Image.Image:
        rgb = frame.convert("RGB")
        if self.key_color is None:
            return rgb.quantize(colors=256, method=Image.Quantize.MEDIANCUT, dither=Image.Dither.NONE)

        key_pixels = np.all(np.asarray(rgb) == np.asarray(self.key_color, dtype=np.uint8), axis=-1)
        quantized = rgb.quantize(colors=KEY_INDEX, method=Image.Quantize.MEDIANCUT, dither=Image.Dither.NONE)
        indices = np.array(quantized, dtype=np.uint8)
        indices[key_pixels] = KEY_INDEX

        palette = list(quantized.getpalette() or [])[: KEY_INDEX * 3]
        palette += [0] * (KEY_INDEX * 3 - len(palette))
        palette += list(self.key_color)

        result = Image.frombytes("P", rgb.size, indices.tobytes())
        result.putpalette(palette)
        result.info["transparency"] = KEY_INDEX
        return result

    def _report(self, fraction: float) -> None:
        if self.progress is None:
            return
        try:
            self.progress(fraction)
        except Exception:  # progress is advisory
            logger.warning("Progress callback failed", exc_info=True)
