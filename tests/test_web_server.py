import json
from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from spritesheet2gif.core import GridEstimate
from spritesheet2gif.core.errors import GridEstimationError
from spritesheet2gif.web.server import RenderRequest, create_app

from conftest import BLACK, build_sheet


def png_bytes(image):
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def upload(image=None, name="sheet.png"):
    image = image or build_sheet(1, 2)
    return {"image": (name, png_bytes(image), "image/png")}


class FakeEstimator:
    def estimate(self, image):
        return GridEstimate(rows=1, cols=2, total_frames=2)


class BrokenEstimator:
    def estimate(self, image):
        raise GridEstimationError("GEMINI_API_KEY is not set")


@pytest.fixture
def client():
    return TestClient(create_app(estimator_factory=FakeEstimator))


def test_render_request_parses_color_and_defaults_total():
    req = RenderRequest.model_validate({"rows": 2, "cols": 3, "transparent": "FFFFFF", "crop": {"top": 1}})
    assert req.transparent == "#ffffff"
    config = req.to_config()
    assert config.total_frames == 6
    assert config.crop.top == 1


def test_render_request_rejects_bad_values():
    with pytest.raises(ValueError):
        RenderRequest.model_validate({"read_order": "diagonal"})
    with pytest.raises(ValueError):
        RenderRequest.model_validate({"transparent": "#12"})


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_render_returns_gif_with_headers(client):
    settings = {"rows": 1, "cols": 2, "fps": 10, "transparent": "#ffffff"}
    response = client.post("/api/render", files=upload(), data={"settings": json.dumps(settings)})
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/gif"
    assert response.headers["x-frame-count"] == "2"
    assert response.headers["x-output-size"] == "10x10"
    assert response.headers["x-frame-delay-ms"] == "100"
    assert Image.open(BytesIO(response.content)).n_frames == 2


def test_render_reports_missing_content(client):
    sheet = build_sheet(1, 2, cell=(20, 20), boxes={0: (3, 2, 4, 6, BLACK)})
    settings = {"rows": 1, "cols": 2, "transparent": "#ffffff", "auto_align": True}
    response = client.post("/api/render", files=upload(sheet), data={"settings": json.dumps(settings)})
    assert response.status_code == 200
    assert response.headers["x-missing-content-frames"] == "1"


def test_render_crop_error_names_field(client):
    settings = {"rows": 1, "cols": 2, "crop": {"left": 5, "right": 5}}
    response = client.post("/api/render", files=upload(), data={"settings": json.dumps(settings)})
    assert response.status_code == 400
    assert response.json()["detail"]["field"] == "crop.left"


def test_render_rejects_bad_settings(client):
    response = client.post("/api/render", files=upload(), data={"settings": "{not json"})
    assert response.status_code == 400
    response = client.post("/api/render", files=upload(), data={"settings": json.dumps({"fps": 0})})
    assert response.status_code == 422


def test_render_rejects_unsupported_upload(client):
    response = client.post("/api/render", files={"image": ("sheet.txt", b"hello", "text/plain")})
    assert response.status_code == 400


def test_preview_returns_png(client):
    settings = {"rows": 1, "cols": 2, "transparent": "#ffffff"}
    response = client.post(
        "/api/preview", files=upload(), data={"settings": json.dumps(settings), "position": "1"}
    )
    assert response.status_code == 200
    frame = Image.open(BytesIO(response.content))
    assert frame.size == (10, 10)
    assert frame.getpixel((0, 0))[3] == 0


def test_grid_overlay(client):
    settings = {"rows": 2, "cols": 2, "total_frames": 3, "excluded_frames": [0]}
    response = client.post("/api/grid", data={"settings": json.dumps(settings)})
    assert response.status_code == 200
    body = response.json()
    assert body["emitted_frames"] == 2
    assert [cell["label"] for cell in body["cells"]] == ["1", "2", "3", "4"]
    assert [cell["out_of_range"] for cell in body["cells"]] == [False, False, False, True]


def test_grid_overlay_rejects_oversized_cutoff(client):
    response = client.post("/api/grid", data={"settings": json.dumps({"rows": 1, "cols": 2, "total_frames": 5})})
    assert response.status_code == 400
    assert response.json()["detail"]["field"] == "total_frames"


def test_estimate_grid(client):
    response = client.post("/api/estimate-grid", files=upload())
    assert response.json() == {"rows": 1, "cols": 2, "total_frames": 2}


def test_estimate_grid_failure_is_bad_gateway():
    client = TestClient(create_app(estimator_factory=BrokenEstimator))
    response = client.post("/api/estimate-grid", files=upload())
    assert response.status_code == 502
