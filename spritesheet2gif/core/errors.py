"""Domain-specific exceptions for the sprite sheet renderer."""

from pathlib import Path


class InvalidImageError(ValueError):
    """Raised when the selected sprite sheet is missing or unreadable."""

    def __init__(self, path: Path | str, reason: str | None = None):
        message = f"Invalid sprite sheet: {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class ValidationError(ValueError):
    """Raised when user-provided settings fail validation.

    ``field`` names the config option the caller should correct.
    """

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class InvalidCropError(ValidationError):
    """Raised when crop margins leave no pixels in a cell."""

    def __init__(self, message: str = "Crop exceeds cell size", field: str = "crop"):
        super().__init__(message, field=field)


class EmptySequenceError(ValidationError):
    """Raised when frame selection leaves nothing to animate."""

    def __init__(self, message: str = "No frames left to render", field: str = "excluded_frames"):
        super().__init__(message, field=field)


class ProcessingError(RuntimeError):
    """Raised when the pipeline fails unexpectedly."""


class CanvasAllocationError(ProcessingError):
    """Raised when a working canvas cannot be created."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class RenderCancelledError(ProcessingError):
    """Raised when a caller aborts a render between frames."""


class EncodingError(ProcessingError):
    """Raised when the GIF writer rejects a frame or fails to finish."""


class GridEstimationError(ProcessingError):
    """Raised when the grid estimator cannot produce a usable answer."""


class MissingContentWarning(UserWarning):
    """Recorded when auto-align finds no content in a frame."""

    def __init__(self, frame_index: int):
        super().__init__(f"Frame {frame_index} has no content to align; emitted un-recentered")
        self.frame_index = frame_index
