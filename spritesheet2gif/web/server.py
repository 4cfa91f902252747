"""FastAPI surface for sprite sheet to GIF rendering."""

from __future__ import annotations

import json
import logging
import os
import time
from io import BytesIO
from pathlib import Path
from typing import Callable, Optional

from fastapi import FastAPI, File, Form, HTTPException, Request, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, field_validator
from starlette.concurrency import run_in_threadpool

from ..core import ALIGN_CENTER, ROW_MAJOR, CropMargins, SpriteConfig
from ..core import compositor, image_loader, preview, sequencer
from ..core.errors import GridEstimationError, InvalidImageError, ProcessingError, ValidationError
from ..core.grid_estimator import GeminiGridEstimator, GridEstimator
from ..utils import file_tools, validators

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = int(os.environ.get("SPRITEMOTION_MAX_UPLOAD_MB", "25")) * 1024 * 1024
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("SPRITEMOTION_ALLOWED_ORIGINS", "http://localhost:8000").split(",")
    if origin.strip()
]


class CropRequest(BaseModel):
    top: float = Field(0, ge=0)
    bottom: float = Field(0, ge=0)
    left: float = Field(0, ge=0)
    right: float = Field(0, ge=0)


class RenderRequest(BaseModel):
    """Incoming settings payload for a render or preview."""

    rows: int = Field(4, ge=1)
    cols: int = Field(4, ge=1)
    total_frames: Optional[int] = Field(None, ge=0)
    excluded_frames: list[int] = Field(default_factory=list)
    read_order: str = ROW_MAJOR
    crop: CropRequest = Field(default_factory=CropRequest)
    scale: float = Field(1.0, gt=0)
    fps: float = Field(12, gt=0)
    transparent: Optional[str] = None
    tolerance: float = Field(10, ge=0, le=100)
    use_flood_fill: bool = True
    auto_align: bool = False
    align_mode: str = ALIGN_CENTER
    align_margin: int = Field(2, ge=0)
    max_resolution_1024: bool = False

    @field_validator("transparent", mode="before")
    @classmethod
    def _parse_color(cls, value):
        if value in (None, "", "null"):
            return None
        if not isinstance(value, str):
            raise ValueError("Transparent color must be a hex string like #ffffff")
        rgb = validators.parse_hex_color(value)
        return "#{:02x}{:02x}{:02x}".format(*rgb)

    @field_validator("read_order")
    @classmethod
    def _check_read_order(cls, value):
        if value not in validators.READ_ORDERS:
            raise ValueError(f"read_order must be one of {', '.join(validators.READ_ORDERS)}")
        return value

    @field_validator("align_mode")
    @classmethod
    def _check_align_mode(cls, value):
        if value not in validators.ALIGN_MODES:
            raise ValueError(f"align_mode must be one of {', '.join(validators.ALIGN_MODES)}")
        return value

    def to_config(self) -> SpriteConfig:
        return SpriteConfig(
            rows=self.rows,
            cols=self.cols,
            total_frames=self.rows * self.cols if self.total_frames is None else self.total_frames,
            excluded_frames=frozenset(self.excluded_frames),
            fps=self.fps,
            scale=self.scale,
            transparent=self.transparent,
            tolerance=self.tolerance,
            use_flood_fill=self.use_flood_fill,
            auto_align=self.auto_align,
            align_mode=self.align_mode,  # type: ignore[arg-type]
            read_order=self.read_order,  # type: ignore[arg-type]
            crop=CropMargins(**self.crop.model_dump()),
            max_resolution_1024=self.max_resolution_1024,
            align_margin=self.align_margin,
        )


class GridEstimateResponse(BaseModel):
    rows: int
    cols: int
    total_frames: int


class GridCellResponse(BaseModel):
    row: int
    col: int
    sequence_index: int
    label: str
    excluded: bool
    out_of_range: bool


class GridResponse(BaseModel):
    emitted_frames: int
    cells: list[GridCellResponse]


def create_app(estimator_factory: Callable[[], GridEstimator] = GeminiGridEstimator) -> FastAPI:
    app = FastAPI(title="SpriteMotion", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/render")
    async def render(
        request: Request,
        image: UploadFile = File(...),
        settings: str = Form("{}"),
    ) -> Response:
        render_request = _parse_settings(settings)
        source = await _read_upload(request, image)
        try:
            outcome = await run_in_threadpool(compositor.render_gif, source, render_request.to_config())
        except Exception as exc:
            raise _to_http_error(exc) from exc

        filename = file_tools.download_filename(image.filename, timestamp=int(time.time()))
        headers = {
            "Content-Disposition": f'attachment; filename="{filename}"',
            "X-Frame-Count": str(outcome.frame_count),
            "X-Output-Size": f"{outcome.width}x{outcome.height}",
            "X-Frame-Delay-Ms": str(outcome.delay_ms),
        }
        if outcome.warnings:
            headers["X-Missing-Content-Frames"] = ",".join(str(w.frame_index) for w in outcome.warnings)
        return Response(content=outcome.data, media_type="image/gif", headers=headers)

    @app.post("/api/preview")
    async def render_preview(
        request: Request,
        image: UploadFile = File(...),
        settings: str = Form("{}"),
        position: int = Form(0, ge=0),
    ) -> Response:
        render_request = _parse_settings(settings)
        source = await _read_upload(request, image)
        try:
            frame = await run_in_threadpool(preview.render_preview_frame, source, render_request.to_config(), position)
        except Exception as exc:
            raise _to_http_error(exc) from exc

        buffer = BytesIO()
        frame.save(buffer, format="PNG")
        return Response(content=buffer.getvalue(), media_type="image/png")

    @app.post("/api/estimate-grid", response_model=GridEstimateResponse)
    async def estimate_grid(request: Request, image: UploadFile = File(...)) -> GridEstimateResponse:
        source = await _read_upload(request, image)
        try:
            estimate = await run_in_threadpool(estimator_factory().estimate, source)
        except Exception as exc:
            raise _to_http_error(exc) from exc
        return GridEstimateResponse(rows=estimate.rows, cols=estimate.cols, total_frames=estimate.total_frames)

    @app.post("/api/grid", response_model=GridResponse)
    async def grid_overlay(settings: str = Form("{}")) -> GridResponse:
        config = _parse_settings(settings).to_config()
        try:
            validators.validate_config(config)
        except ValidationError as exc:
            raise _to_http_error(exc) from exc
        cells = [
            GridCellResponse(
                row=cell.row,
                col=cell.col,
                sequence_index=cell.sequence_index,
                label=cell.label,
                excluded=cell.excluded,
                out_of_range=cell.out_of_range,
            )
            for cell in sequencer.describe_grid(config)
        ]
        return GridResponse(emitted_frames=sequencer.emitted_frame_count(config), cells=cells)

    return app


def _parse_settings(settings: str) -> RenderRequest:
    try:
        payload = json.loads(settings) if settings else {}
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid settings JSON: {exc}") from exc
    try:
        return RenderRequest.model_validate(payload)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


async def _read_upload(request: Request, upload: UploadFile):
    """Read an uploaded sprite sheet, enforcing the size limit."""

    _enforce_size_limit(request)
    data = await upload.read()
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File too large")
    suffix = Path(upload.filename or "").suffix.lower()
    if suffix and suffix not in validators.ALLOWED_IMAGE_EXTENSIONS:
        raise HTTPException(status_code=400, detail="Unsupported file type")
    try:
        return image_loader.load_sprite_sheet_bytes(data, name=upload.filename or "<upload>")
    except InvalidImageError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _enforce_size_limit(request: Request) -> None:
    """Simple guardrail on upload size based on Content-Length."""

    content_length = request.headers.get("content-length")
    if not content_length:
        return
    try:
        size = int(content_length)
    except ValueError:
        return
    if size > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="Upload exceeds limit")


def _to_http_error(exc: Exception) -> HTTPException:
    """Map domain errors to HTTP responses naming the setting to fix."""

    if isinstance(exc, HTTPException):
        return exc
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail={"message": str(exc), "field": exc.field})
    if isinstance(exc, InvalidImageError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, GridEstimationError):
        return HTTPException(status_code=502, detail=str(exc))
    if isinstance(exc, ProcessingError):
        return HTTPException(status_code=500, detail={"message": str(exc), "field": getattr(exc, "field", None)})
    logger.exception("Unexpected failure during render", exc_info=exc)
    return HTTPException(status_code=500, detail="Unexpected error")


app = create_app()
