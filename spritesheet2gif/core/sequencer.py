"""Frame ordering over the sprite grid.

``index_of`` and ``cell_of`` are the only place the index formula lives. The
renderer and the preview map sequence indices to cells through ``cell_of``
(via ``build_sequence``); the grid overlay labels cells through ``index_of``.
"""

from __future__ import annotations

import logging

from . import COLUMN_MAJOR, FrameCoordinate, GridCell, SpriteConfig
from .errors import EmptySequenceError

logger = logging.getLogger(__name__)


def index_of(row: int, col: int, rows: int, cols: int, order: str) -> int:
    """Sequence index assigned to a grid cell."""

    if order == COLUMN_MAJOR:
        return col * rows + row
    return row * cols + col


def cell_of(index: int, rows: int, cols: int, order: str) -> tuple[int, int]:
    """Inverse of :func:`index_of`, returning ``(row, col)``."""

    if order == COLUMN_MAJOR:
        return index % rows, index // rows
    return index // cols, index % cols


def build_sequence(config: SpriteConfig) -> list[FrameCoordinate]:
    """Ordered frames to emit, after the cutoff and exclusions."""

    sequence = []
    for index in range(min(config.total_frames, config.rows * config.cols)):
        if index in config.excluded_frames:
            continue
        row, col = cell_of(index, config.rows, config.cols, config.read_order)
        sequence.append(FrameCoordinate(row=row, col=col, original_index=index))

    if not sequence:
        raise EmptySequenceError(
            "No frames left to render: every frame below total_frames is excluded"
            if config.total_frames > 0
            else "No frames left to render: total_frames is zero",
            field="excluded_frames" if config.total_frames > 0 else "total_frames",
        )
    logger.debug("Sequenced %s frames (%s)", len(sequence), config.read_order)
    return sequence


def emitted_frame_count(config: SpriteConfig) -> int:
    """Frames a render will emit; zero when the selection is empty."""

    excluded = sum(1 for index in config.excluded_frames if 0 <= index < config.total_frames)
    return max(0, config.total_frames - excluded)


def describe_grid(config: SpriteConfig) -> list[GridCell]:
    """Cells in display order (row by row) with their sequence index and state."""

    cells = []
    for row in range(config.rows):
        for col in range(config.cols):
            index = index_of(row, col, config.rows, config.cols, config.read_order)
            cells.append(
                GridCell(
                    row=row,
                    col=col,
                    sequence_index=index,
                    excluded=index in config.excluded_frames,
                    out_of_range=index >= config.total_frames,
                )
            )
    return cells
