"""Core data model for sprite sheet to GIF rendering."""

__all__ = [
    "ROW_MAJOR",
    "COLUMN_MAJOR",
    "ALIGN_CENTER",
    "ALIGN_BOTTOM",
    "ImageDimensions",
    "CropMargins",
    "SpriteConfig",
    "RenderGeometry",
    "FrameCoordinate",
    "FrameBoundingBox",
    "ChromaKeySpec",
    "GridEstimate",
    "GridCell",
    "RenderOutcome",
]

from dataclasses import dataclass, field
from typing import Literal, Optional

ROW_MAJOR = "row-major"
COLUMN_MAJOR = "column-major"
ALIGN_CENTER = "center"
ALIGN_BOTTOM = "bottom"

ReadOrder = Literal["row-major", "column-major"]
AlignMode = Literal["center", "bottom"]
RGB = tuple[int, int, int]


@dataclass(frozen=True)
class ImageDimensions:
    """Pixel size of a loaded sprite sheet."""

    width: int
    height: int


@dataclass(frozen=True)
class CropMargins:
    """Margins trimmed from every grid cell, in source pixels."""

    top: float = 0
    bottom: float = 0
    left: float = 0
    right: float = 0


@dataclass(frozen=True)
class SpriteConfig:
    """User-configurable settings for one render.

    Instances are immutable; use the helpers in ``config_updates`` or
    ``dataclasses.replace`` to derive an edited copy.
    """

    rows: int = 4
    cols: int = 4
    total_frames: int = 16
    excluded_frames: frozenset[int] = field(default_factory=frozenset)
    fps: float = 12
    scale: float = 1.0
    transparent: Optional[str] = None
    tolerance: float = 10
    use_flood_fill: bool = True
    auto_align: bool = False
    align_mode: AlignMode = ALIGN_CENTER
    read_order: ReadOrder = ROW_MAJOR
    crop: CropMargins = field(default_factory=CropMargins)
    max_resolution_1024: bool = False
    align_margin: int = 2

    @property
    def delay_ms(self) -> int:
        return round(1000 / self.fps)


@dataclass(frozen=True)
class RenderGeometry:
    """Sizes shared by every frame of a render.

    ``base_width``/``base_height`` is the unscaled frame size: the cropped cell,
    or the auto-align content size when alignment found content.
    """

    cell_width: float
    cell_height: float
    cropped_width: float
    cropped_height: float
    base_width: float
    base_height: float
    logical_width: int
    logical_height: int
    output_width: int
    output_height: int
    resize_ratio: float = 1.0

    @property
    def needs_resize(self) -> bool:
        return self.resize_ratio < 1.0


@dataclass(frozen=True)
class FrameCoordinate:
    """Grid position of a frame that will be emitted."""

    row: int
    col: int
    original_index: int


@dataclass(frozen=True)
class FrameBoundingBox:
    """Tightest rectangle around frame content, in cropped-frame coordinates."""

    min_x: int
    min_y: int
    width: int
    height: int

    @property
    def max_x(self) -> int:
        return self.min_x + self.width - 1

    @property
    def max_y(self) -> int:
        return self.min_y + self.height - 1


@dataclass(frozen=True)
class ChromaKeySpec:
    """Resolved chroma key parameters for one render."""

    target: RGB
    key_color: RGB
    threshold_sq: float
    fill_mode: Literal["flood", "global"] = "flood"


@dataclass(frozen=True)
class GridEstimate:
    """Advisory grid layout returned by an estimator."""

    rows: int
    cols: int
    total_frames: int


@dataclass(frozen=True)
class GridCell:
    """One cell of the sheet as shown in a grid overlay."""

    row: int
    col: int
    sequence_index: int
    excluded: bool
    out_of_range: bool

    @property
    def label(self) -> str:
        return str(self.sequence_index + 1)


@dataclass
class RenderOutcome:
    """Result of a completed GIF render."""

    data: bytes
    frame_count: int
    width: int
    height: int
    delay_ms: int
    frame_indices: list[int] = field(default_factory=list)
    warnings: list = field(default_factory=list)
