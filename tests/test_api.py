import time

import pytest
from fastapi.testclient import TestClient

from plume import main
from plume.core.config import settings
from plume.main import create_app
from plume.models.backend import CompressImageResponse
from plume.services.progress_estimator import ProgressEstimator
from plume.services.runtime import CompressionRuntime

from conftest import FakeBackend


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def client(fake_backend: FakeBackend):
    estimator = ProgressEstimator(tick_interval=0.005, min_duration=0.05, max_duration=0.2)
    app = create_app(lambda: CompressionRuntime.build(backend=fake_backend, estimator=estimator))
    with TestClient(app) as test_client:
        yield test_client
    assert fake_backend.closed


def wait_until_idle(client: TestClient, timeout: float = 3.0) -> dict:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        body = client.get("/v1/compression").json()
        if not body["is_processing"] and body["stats"]["pending"] == 0:
            return body
        time.sleep(0.02)
    raise AssertionError("compression run did not finish")


def test_health(client: TestClient):
    assert client.get("/healthz").json()["status"] == "ok"


def test_empty_collection_shows_drop_view(client: TestClient):
    body = client.get("/v1/images").json()

    assert body["images"] == []
    assert body["view"] == "drop"
    assert body["compression_state"] == "idle"


def test_add_then_compress_everything(client: TestClient, fake_backend: FakeBackend):
    fake_backend.sizes["/p/a.png"] = 1000

    response = client.post("/v1/images", json={"paths": ["/p/a.png", "/p/b.jpg"]})
    assert response.status_code == 201
    assert len(response.json()["added"]) == 2

    dropped = client.post("/v1/images/drop", json={"paths": ["/p/b.jpg", "/p/c.webp", " "]})
    assert [image["name"] for image in dropped.json()["added"]] == ["c.webp"]

    started = client.post("/v1/compression/start")
    assert started.status_code == 202
    assert started.json()["started"] is True

    status = wait_until_idle(client)
    assert status["compression_state"] == "completed"
    assert status["stats"]["completed"] == 3

    body = client.get("/v1/images").json()
    assert body["view"] == "success"
    first = body["images"][0]
    assert first["status"] == "completed"
    assert first["progress"] == 100
    assert first["savings"] == pytest.approx(0.5)


def test_failed_image_is_reported(client: TestClient, fake_backend: FakeBackend):
    fake_backend.outcomes["/p/bad.png"] = CompressImageResponse(success=False, error="truncated file")
    client.post("/v1/images", json={"paths": ["/p/bad.png"]})

    client.post("/v1/compression/start")
    wait_until_idle(client)

    body = client.get("/v1/images").json()
    assert body["images"][0]["status"] == "error"
    assert body["view"] == "list"

    notifications = client.get("/v1/notifications", params={"limit": 1}).json()
    assert notifications[0]["level"] == "error"
    assert notifications[0]["message"] == "Compression failed for bad.png: truncated file"


def test_compress_single_image(client: TestClient):
    image_id = client.post("/v1/images", json={"paths": ["/p/a.png"]}).json()["added"][0]["id"]

    response = client.post(f"/v1/images/{image_id}/compress")
    assert response.status_code == 202
    wait_until_idle(client)

    assert client.get(f"/v1/images/{image_id}").json()["status"] == "completed"
    assert client.post(f"/v1/images/{image_id}/compress").status_code == 409
    assert client.post("/v1/images/missing/compress").status_code == 404


def test_settings_update_clamps_quality(client: TestClient):
    response = client.patch("/v1/compression/settings", json={"quality": 0, "output_format": "keep"})

    assert response.status_code == 200
    assert response.json()["quality"] == 1
    assert response.json()["output_format"] == "keep"
    assert client.get("/v1/compression/settings").json()["compression_level"] == "balanced"


def test_invalid_settings_are_rejected(client: TestClient):
    response = client.patch("/v1/compression/settings", json={"output_format": "gif"})
    assert response.status_code == 422


def test_progress_events_reach_the_bridge(client: TestClient):
    response = client.post(
        "/v1/events/compression-progress",
        json={"image_id": "nobody", "image_name": "x.png", "stage": "Compressing", "progress": 0.5},
    )

    assert response.status_code == 202
    assert response.json() == {"delivered": 1}


def test_remove_and_clear(client: TestClient):
    added = client.post("/v1/images", json={"paths": ["/p/a.png", "/p/b.png"]}).json()["added"]

    assert client.delete(f"/v1/images/{added[0]['id']}").status_code == 204
    assert client.delete(f"/v1/images/{added[0]['id']}").status_code == 404
    assert len(client.get("/v1/images").json()["images"]) == 1

    assert client.delete("/v1/images").status_code == 204
    assert client.get("/v1/images").json()["view"] == "drop"


def test_reset_endpoint(client: TestClient):
    client.post("/v1/images", json={"paths": ["/p/a.png"]})

    body = client.post("/v1/images/reset").json()

    assert body["images"][0]["status"] == "pending"
    assert body["is_processing"] is False


def test_auth_check_rejects_missing_or_wrong_token(client: TestClient, monkeypatch):
    monkeypatch.setattr(settings, "auth_token", "s3cret")

    assert client.get("/auth-check").status_code == 401
    assert client.get("/auth-check", headers={"Authorization": "Bearer nope"}).status_code == 401
    assert client.get("/v1/images").status_code == 401

    authorized = client.get("/auth-check", headers={"Authorization": "Bearer s3cret"})
    assert authorized.status_code == 200
    assert authorized.json() == {"status": "authorized"}
    assert client.get("/v1/images", headers={"Authorization": "s3cret"}).status_code == 200


def test_auth_check_is_open_without_a_token(client: TestClient):
    assert client.get("/auth-check").json() == {"status": "authorized"}


def test_serve_runs_uvicorn_with_configured_address(monkeypatch):
    calls = []
    monkeypatch.setattr(main.uvicorn, "run", lambda target, **kwargs: calls.append((target, kwargs)))
    monkeypatch.setattr(settings, "port", 9123)

    main.serve()

    assert calls == [("plume.main:app", {"host": settings.host, "port": 9123, "log_config": None})]
