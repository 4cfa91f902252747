import numpy as np
import pytest

from spritesheet2gif.core import ChromaKeySpec, SpriteConfig
from spritesheet2gif.core.chroma_key import (
    GREEN,
    MAGENTA,
    MAX_RGB_DISTANCE,
    apply_chroma_key,
    build_chroma_key,
    edge_connected,
    key_color_for,
    tolerance_to_threshold_sq,
)
from spritesheet2gif.core.errors import ValidationError


def ringed_frame():
    """9x9 white frame with a black ring enclosing a white 3x3 center."""

    pixels = np.full((9, 9, 4), 255, dtype=np.uint8)
    pixels[2:7, 2:7, :3] = 0
    pixels[3:6, 3:6, :3] = 255
    return pixels


def white_key(fill_mode):
    return ChromaKeySpec(target=(255, 255, 255), key_color=MAGENTA, threshold_sq=100.0, fill_mode=fill_mode)


def test_flood_fill_preserves_enclosed_region():
    pixels = apply_chroma_key(ringed_frame(), white_key("flood"))
    assert tuple(pixels[0, 0]) == (255, 0, 255, 255)
    assert tuple(pixels[8, 4]) == (255, 0, 255, 255)
    assert tuple(pixels[4, 4]) == (255, 255, 255, 255)
    assert tuple(pixels[2, 2]) == (0, 0, 0, 255)


def test_global_mode_keys_enclosed_region():
    pixels = apply_chroma_key(ringed_frame(), white_key("global"))
    assert tuple(pixels[0, 0]) == (255, 0, 255, 255)
    assert tuple(pixels[4, 4]) == (255, 0, 255, 255)
    assert tuple(pixels[2, 2]) == (0, 0, 0, 255)


@pytest.mark.parametrize("fill_mode", ["flood", "global"])
def test_zero_alpha_pixels_always_match(fill_mode):
    pixels = np.zeros((3, 3, 4), dtype=np.uint8)
    pixels[..., 0] = 12
    apply_chroma_key(pixels, white_key(fill_mode))
    assert (pixels[..., 3] == 255).all()
    assert (pixels[..., :3] == MAGENTA).all()


def test_flood_travels_through_transparent_pixels():
    pixels = np.zeros((5, 5, 4), dtype=np.uint8)
    pixels[..., 3] = 255
    pixels[0, :, :3] = 255
    pixels[1, 2] = (0, 0, 0, 0)
    pixels[2, 2, :3] = 255
    apply_chroma_key(pixels, white_key("flood"))
    assert tuple(pixels[1, 2]) == (255, 0, 255, 255)
    assert tuple(pixels[2, 2]) == (255, 0, 255, 255)
    assert tuple(pixels[3, 3]) == (0, 0, 0, 255)


def test_alpha_output_clears_alpha_only():
    pixels = apply_chroma_key(ringed_frame(), white_key("flood"), output="alpha")
    assert pixels[0, 0, 3] == 0
    assert tuple(pixels[0, 0, :3]) == (255, 255, 255)
    assert pixels[4, 4, 3] == 255


def test_edge_connected_uses_four_neighbours():
    mask = np.array(
        [
            [True, False, False],
            [False, True, False],
            [False, False, False],
        ]
    )
    reached = edge_connected(mask)
    assert reached[0, 0]
    assert not reached[1, 1]


def test_tolerance_is_a_share_of_max_distance():
    assert tolerance_to_threshold_sq(0) == 0
    assert tolerance_to_threshold_sq(100) == pytest.approx(MAX_RGB_DISTANCE**2)
    assert tolerance_to_threshold_sq(10) == pytest.approx(44.167**2)


def test_sentinel_avoids_colors_near_magenta():
    assert key_color_for((255, 255, 255)) == MAGENTA
    assert key_color_for((250, 10, 240)) == GREEN


def test_build_chroma_key_from_config():
    assert build_chroma_key(SpriteConfig()) is None
    spec = build_chroma_key(SpriteConfig(transparent="#FF00FF", tolerance=0, use_flood_fill=False))
    assert spec.target == (255, 0, 255)
    assert spec.key_color == GREEN
    assert spec.threshold_sq == 0
    assert spec.fill_mode == "global"


def test_bad_hex_color_names_field():
    with pytest.raises(ValidationError) as excinfo:
        build_chroma_key(SpriteConfig(transparent="white"))
    assert excinfo.value.field == "transparent"


def test_edge_connected_ignores_diagonal_contact():
    mask = np.zeros((4, 5), dtype=bool)
    mask[0, 4] = True
    mask[1, 4] = True
    mask[2, 1:4] = True
    reached = edge_connected(mask)
    assert reached[1, 4]
    assert not reached[2, 1:4].any()


def test_edge_connected_full_and_empty_masks():
    full = np.ones((64, 48), dtype=bool)
    assert edge_connected(full).all()
    assert not edge_connected(np.zeros((64, 48), dtype=bool)).any()


def test_edge_connected_reaches_through_long_corridor():
    mask = np.zeros((40, 40), dtype=bool)
    mask[0, 0] = True
    mask[1:39, 1] = True
    mask[38, 1:39] = True
    mask[1, 0] = True
    mask[20, 20] = True
    reached = edge_connected(mask)
    assert reached[38, 38]
    assert not reached[20, 20]
