"""Tests covering the FastAPI routes defined in :mod:`routes.session_route` and :mod:`routes.image_route`."""

from __future__ import annotations

import io
import time

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from fakes import FakeModelClient, make_image, png_bytes
from main import create_app
from services.errors import RemoteError


@pytest.fixture
def model_client() -> FakeModelClient:
    return FakeModelClient()


@pytest.fixture
def client(model_client: FakeModelClient):
    """Yield a :class:`TestClient` backed by the fake model client."""
    with TestClient(create_app(model_client)) as test_client:
        yield test_client


@pytest.fixture
def session_id(client: TestClient) -> str:
    response = client.post("/sessions")
    assert response.status_code == 201
    return response.json()["session_id"]


def _png_upload(name: str = "image.png", **kwargs):
    return {"image": (name, png_bytes(**kwargs), "image/png")}


def test_healthcheck_reports_model_and_sessions(client: TestClient, session_id: str) -> None:
    payload = client.get("/health").json()

    assert payload == {"ok": True, "model_available": True, "sessions": 1}


def test_new_session_snapshot_is_empty(client: TestClient, session_id: str) -> None:
    payload = client.get(f"/sessions/{session_id}").json()

    assert payload["target_image"] is None
    assert payload["input_images"] == []
    assert payload["prompt"] is None
    assert payload["operations"] == {
        "derive": {"status": "idle", "error": None},
        "refine": {"status": "idle", "error": None},
        "render": {"status": "idle", "error": None},
    }


def test_unknown_session_returns_404(client: TestClient) -> None:
    assert client.get("/sessions/does-not-exist").status_code == 404
    assert client.post("/sessions/does-not-exist/generate").status_code == 404


def test_generate_without_target_is_rejected(client: TestClient, session_id: str, model_client: FakeModelClient) -> None:
    response = client.post(f"/sessions/{session_id}/generate")

    assert response.status_code == 400
    assert response.json()["detail"] == "Please upload a target image."
    assert model_client.calls == []


def test_full_generate_optimize_and_test_flow(client: TestClient, session_id: str, model_client: FakeModelClient) -> None:
    model_client.results["render_from_prompt"] = make_image("rendered-bytes")

    assert client.put(f"/sessions/{session_id}/target", files=_png_upload()).status_code == 200
    client.post(f"/sessions/{session_id}/inputs", files=_png_upload("a.png"))
    client.put(f"/sessions/{session_id}/requirements", json={"text": "cartoon style"})

    generated = client.post(f"/sessions/{session_id}/generate", params={"wait": True})
    assert generated.status_code == 200
    payload = generated.json()
    assert payload["prompt"] == "edit: add hat"
    assert payload["test_reference_image"]["url"] == f"/sessions/{session_id}/images/reference"

    optimized = client.post(f"/sessions/{session_id}/optimize", params={"wait": True}).json()
    assert optimized["prompt"] == "A refined prompt"

    tested = client.post(f"/sessions/{session_id}/test", params={"wait": True}).json()
    assert tested["generated_test_image"]["size"] == len(b"rendered-bytes")

    image = client.get(f"/sessions/{session_id}/images/generated")
    assert image.status_code == 200
    assert image.content == b"rendered-bytes"
    assert image.headers["content-type"] == "image/png"


def test_generate_without_wait_returns_in_flight_snapshot(client: TestClient, session_id: str) -> None:
    client.put(f"/sessions/{session_id}/target", files=_png_upload())

    response = client.post(f"/sessions/{session_id}/generate")

    assert response.status_code == 202
    assert response.json()["operations"]["derive"]["status"] == "in_flight"
    assert response.json()["prompt"] is None

    for _ in range(100):
        payload = client.get(f"/sessions/{session_id}").json()
        if payload["operations"]["derive"]["status"] != "in_flight":
            break
        time.sleep(0.01)
    assert payload["prompt"] == "edit: add hat"


def test_remote_failure_is_reported_on_operation(client: TestClient, session_id: str, model_client: FakeModelClient) -> None:
    model_client.errors["derive_prompt"] = RemoteError("Quota exceeded")
    client.put(f"/sessions/{session_id}/target", files=_png_upload())

    response = client.post(f"/sessions/{session_id}/generate", params={"wait": True})

    assert response.status_code == 200
    assert response.json()["operations"]["derive"] == {"status": "failed", "error": "Quota exceeded"}


def test_non_image_uploads_are_refused(client: TestClient, session_id: str) -> None:
    response = client.put(
        f"/sessions/{session_id}/target",
        files={"image": ("notes.txt", b"hello", "text/plain")},
    )

    assert response.status_code == 415
    assert client.get(f"/sessions/{session_id}").json()["target_image"] is None


def test_empty_upload_is_reported_inline(client: TestClient, session_id: str) -> None:
    response = client.post(
        f"/sessions/{session_id}/inputs",
        files={"image": ("empty.png", b"", "image/png")},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["input_images"] == []
    assert payload["upload_errors"] == {"input": "Uploaded image is empty."}


def test_remove_input_image_by_index(client: TestClient, session_id: str) -> None:
    for color in ((255, 0, 0), (0, 255, 0), (0, 0, 255)):
        client.post(f"/sessions/{session_id}/inputs", files=_png_upload(color=color))

    payload = client.delete(f"/sessions/{session_id}/inputs/1").json()
    assert len(payload["input_images"]) == 2

    unchanged = client.delete(f"/sessions/{session_id}/inputs/7").json()
    assert len(unchanged["input_images"]) == 2


def test_edit_prompt_requires_existing_prompt(client: TestClient, session_id: str) -> None:
    response = client.put(f"/sessions/{session_id}/prompt", json={"text": "hello"})

    assert response.status_code == 400


def test_reference_can_be_replaced_and_removed(client: TestClient, session_id: str) -> None:
    uploaded = client.put(f"/sessions/{session_id}/reference", files=_png_upload()).json()
    assert uploaded["test_reference_image"]["mime_type"] == "image/png"

    removed = client.delete(f"/sessions/{session_id}/reference").json()
    assert removed["test_reference_image"] is None


def test_thumbnail_fits_preview_box(client: TestClient, session_id: str) -> None:
    client.put(f"/sessions/{session_id}/target", files=_png_upload(size=(1024, 512)))

    response = client.get(f"/sessions/{session_id}/images/target/thumbnail")

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    width, height = Image.open(io.BytesIO(response.content)).size
    assert width <= 256 and height <= 256


def test_missing_image_returns_404(client: TestClient, session_id: str) -> None:
    assert client.get(f"/sessions/{session_id}/images/target").status_code == 404
    assert client.get(f"/sessions/{session_id}/images/input", params={"index": 3}).status_code == 404


def test_delete_session(client: TestClient, session_id: str) -> None:
    assert client.delete(f"/sessions/{session_id}").json() == {"session_id": session_id, "deleted": True}
    assert client.get(f"/sessions/{session_id}").status_code == 404
