"""Grid layout estimation using Gemini vision.

The estimate is advisory: callers merge it with
``config_updates.apply_grid_estimate`` so user-set fields win.
"""

from __future__ import annotations

import json
import logging
import os
import re
from typing import Any, Optional, Protocol

from PIL import Image

from . import GridEstimate
from .errors import GridEstimationError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"
API_KEY_ENV = "GEMINI_API_KEY"

GRID_PROMPT = """\
Analyze this sprite sheet image. It contains a sequence of animation frames arranged in a grid.
Count the number of rows and columns.
Also estimate the total number of valid frames (sometimes the last row is not full).

Return ONLY a JSON object with exactly these fields and no other text:
{"rows": <int>, "cols": <int>, "totalFrames": <int>}
"""


class GridEstimator(Protocol):
    def estimate(self, image: Image.Image) -> GridEstimate: ...


def _strip_markdown_json(text: str) -> str:
    """Strip markdown code fences from a JSON response."""
    pattern = r"^```[a-zA-Z]*\s*\n(.*?)\n```\s*$"
    match = re.search(pattern, text.strip(), re.DOTALL)
    if match:
        return match.group(1).strip()
    return text.strip()


def parse_grid_reply(text: str) -> GridEstimate:
    """Turn the model's JSON reply into a validated estimate."""

    try:
        data = json.loads(_strip_markdown_json(text))
    except json.JSONDecodeError as exc:
        raise GridEstimationError(f"Grid estimate is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise GridEstimationError(f"Grid estimate must be a JSON object, got {type(data).__name__}")

    values = {}
    for key in ("rows", "cols"):
        value = data.get(key)
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            raise GridEstimationError(f"Grid estimate field {key!r} must be a positive integer, got {value!r}")
        values[key] = value

    capacity = values["rows"] * values["cols"]
    total = data.get("totalFrames")
    if not isinstance(total, int) or isinstance(total, bool) or total <= 0:
        total = capacity
    return GridEstimate(rows=values["rows"], cols=values["cols"], total_frames=min(total, capacity))


class GeminiGridEstimator:
    """Ask Gemini to count the rows, columns and frames of a sprite sheet."""

    def __init__(self, api_key: Optional[str] = None, model: str = DEFAULT_MODEL, client: Any = None):
        self.api_key = api_key or os.environ.get(API_KEY_ENV)
        self.model = model
        self._client = client

    def _resolve_client(self) -> Any:
        if self._client is not None:
            return self._client
        if not self.api_key:
            raise GridEstimationError(f"{API_KEY_ENV} is not set; grid estimation unavailable")
        try:
            from google import genai  # type: ignore
        except ModuleNotFoundError as exc:
            raise GridEstimationError("google-genai is not installed. Run pip install 'spritemotion[ai]'.") from exc
        self._client = genai.Client(api_key=self.api_key)
        return self._client

    def estimate(self, image: Image.Image) -> GridEstimate:
        client = self._resolve_client()
        try:
            response = client.models.generate_content(
                model=self.model,
                contents=[GRID_PROMPT, image],
                config={"response_mime_type": "application/json"},
            )
        except Exception as exc:
            raise GridEstimationError(f"Gemini request failed: {exc}") from exc

        text = getattr(response, "text", None)
        if not text:
            raise GridEstimationError("Gemini returned an empty response")
        estimate = parse_grid_reply(text)
        logger.info("Estimated grid %sx%s with %s frames", estimate.rows, estimate.cols, estimate.total_frames)
        return estimate
