"""Sprite sheet loading and validation."""

from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from . import ImageDimensions
from .errors import InvalidImageError
from ..utils import validators

logger = logging.getLogger(__name__)


def load_sprite_sheet(image_path: Path) -> Image.Image:
    """Open a sprite sheet from disk as RGBA."""

    validated_path = validators.validate_image_path(image_path)
    try:
        with Image.open(validated_path) as handle:
            image = handle.convert("RGBA")
    except (UnidentifiedImageError, OSError) as exc:
        raise InvalidImageError(validated_path, reason=f"Could not decode image: {exc}") from exc

    logger.debug("Loaded %s -> %sx%s", validated_path, image.width, image.height)
    return image


def load_sprite_sheet_bytes(data: bytes, name: str = "<upload>") -> Image.Image:
    """Decode an uploaded sprite sheet as RGBA."""

    if not data:
        raise InvalidImageError(name, reason="Empty upload")
    try:
        with Image.open(BytesIO(data)) as handle:
            image = handle.convert("RGBA")
    except (UnidentifiedImageError, OSError) as exc:
        raise InvalidImageError(name, reason=f"Could not decode image: {exc}") from exc
    return image


def image_dimensions(image: Image.Image) -> ImageDimensions:
    return ImageDimensions(width=image.width, height=image.height)
