import numpy as np
import pytest
from PIL import Image

WHITE = (255, 255, 255, 255)
BLACK = (0, 0, 0, 255)


def build_sheet(rows, cols, cell=(10, 10), background=WHITE, boxes=None):
    """Sprite sheet with one filled rectangle per cell.

    ``boxes`` maps a row-major cell number to ``(x, y, width, height, color)``
    in cell coordinates. Without it every cell gets a distinct 4x4 square.
    """

    cell_width, cell_height = cell
    pixels = np.zeros((rows * cell_height, cols * cell_width, 4), dtype=np.uint8)
    pixels[:] = background
    if boxes is None:
        boxes = {
            index: (3, 3, 4, 4, (20 + 10 * index, 60, 200 - 10 * index, 255))
            for index in range(rows * cols)
        }
    for index, (x, y, width, height, color) in boxes.items():
        row, col = divmod(index, cols)
        top = row * cell_height + y
        left = col * cell_width + x
        pixels[top : top + height, left : left + width] = color
    return Image.fromarray(pixels)


@pytest.fixture
def make_sheet():
    return build_sheet
