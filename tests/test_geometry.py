import pytest

from spritesheet2gif.core import CropMargins, SpriteConfig
from spritesheet2gif.core.errors import CanvasAllocationError, InvalidCropError
from spritesheet2gif.core.geometry import constrain_to_max_side, resolve_geometry, source_origin


def test_cells_may_be_fractional():
    geometry = resolve_geometry((100, 50), SpriteConfig(rows=2, cols=3, total_frames=6))
    assert geometry.cell_width == pytest.approx(100 / 3)
    assert geometry.cell_height == 25
    assert geometry.logical_width == 33
    assert geometry.logical_height == 25


def test_crop_and_scale_feed_logical_size():
    config = SpriteConfig(rows=1, cols=2, total_frames=2, scale=2.5, crop=CropMargins(top=1, bottom=2, left=3, right=1))
    geometry = resolve_geometry((40, 20), config)
    assert (geometry.cropped_width, geometry.cropped_height) == (16, 17)
    assert (geometry.logical_width, geometry.logical_height) == (40, 42)
    assert (geometry.output_width, geometry.output_height) == (40, 42)
    assert geometry.resize_ratio == 1.0


def test_max_resolution_downscales_to_1024():
    config = SpriteConfig(rows=1, cols=1, total_frames=1, scale=4, max_resolution_1024=True)
    geometry = resolve_geometry((500, 250), config)
    assert (geometry.logical_width, geometry.logical_height) == (2000, 1000)
    assert (geometry.output_width, geometry.output_height) == (1024, 512)
    assert geometry.resize_ratio == pytest.approx(0.512)
    assert geometry.needs_resize


def test_max_resolution_leaves_small_canvas_alone():
    config = SpriteConfig(rows=1, cols=1, total_frames=1, max_resolution_1024=True)
    geometry = resolve_geometry((800, 600), config)
    assert (geometry.output_width, geometry.output_height) == (800, 600)
    assert geometry.resize_ratio == 1.0
    assert not geometry.needs_resize


def test_constrain_floors_short_side():
    assert constrain_to_max_side(3000, 1000) == (1024, 341, pytest.approx(1024 / 3000))
    assert constrain_to_max_side(1024, 10) == (1024, 10, 1.0)


def test_crop_wider_than_cell_raises():
    config = SpriteConfig(rows=1, cols=2, total_frames=2, crop=CropMargins(left=6, right=4))
    with pytest.raises(InvalidCropError) as excinfo:
        resolve_geometry((20, 10), config)
    assert excinfo.value.field == "crop.left"
    assert "Crop exceeds cell size" in str(excinfo.value)


def test_crop_taller_than_cell_raises():
    config = SpriteConfig(rows=2, cols=1, total_frames=2, crop=CropMargins(top=5, bottom=5))
    with pytest.raises(InvalidCropError) as excinfo:
        resolve_geometry((10, 20), config)
    assert excinfo.value.field == "crop.top"


def test_tiny_scale_fails_allocation():
    config = SpriteConfig(rows=1, cols=1, total_frames=1, scale=0.01)
    with pytest.raises(CanvasAllocationError):
        resolve_geometry((10, 10), config)


def test_content_size_overrides_cropped_size():
    config = SpriteConfig(rows=1, cols=1, total_frames=1, scale=2)
    geometry = resolve_geometry((50, 50), config, content_size=(12, 8))
    assert (geometry.cropped_width, geometry.cropped_height) == (50, 50)
    assert (geometry.logical_width, geometry.logical_height) == (24, 16)


def test_source_origin_includes_crop():
    config = SpriteConfig(rows=2, cols=3, total_frames=6, crop=CropMargins(top=2, left=1))
    geometry = resolve_geometry((30, 20), config)
    assert source_origin(1, 2, geometry, config) == (21, 12)
