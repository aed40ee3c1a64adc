"""Tests for the image proxy endpoint."""

from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from app.api.v1.deps import get_image_cache
from app.main import app
from pipeline.ecfr.errors import (
    ImageBlockedError,
    ImageNotFoundError,
    InvalidImagePathError,
    TransientFetchError,
)


def _override(get: AsyncMock) -> AsyncMock:
    cache = MagicMock()
    cache.get = get
    app.dependency_overrides[get_image_cache] = lambda: cache
    return get


def test_serves_image_bytes(client: TestClient) -> None:
    get = _override(AsyncMock(return_value=(b"GIF89a", "image/gif")))

    response = client.get("/api/v1/images", params={"path": "/graphics/ec01fe91.001.gif"})

    assert response.status_code == 200
    assert response.content == b"GIF89a"
    assert response.headers["content-type"] == "image/gif"
    assert response.headers["cache-control"] == "public, max-age=604800"
    get.assert_awaited_once_with("/graphics/ec01fe91.001.gif")


def test_missing_path_rejected(client: TestClient) -> None:
    _override(AsyncMock())
    assert client.get("/api/v1/images").status_code == 422


def test_foreign_path_is_bad_request(client: TestClient) -> None:
    _override(AsyncMock(side_effect=InvalidImagePathError("https://elsewhere.test/a.gif")))
    response = client.get("/api/v1/images", params={"path": "https://elsewhere.test/a.gif"})
    assert response.status_code == 400


def test_not_found_upstream(client: TestClient) -> None:
    _override(AsyncMock(side_effect=ImageNotFoundError("/graphics/a.gif")))
    response = client.get("/api/v1/images", params={"path": "/graphics/a.gif"})
    assert response.status_code == 404


def test_blocked_upstream(client: TestClient) -> None:
    _override(AsyncMock(side_effect=ImageBlockedError("/graphics/a.gif", "text/html")))
    response = client.get("/api/v1/images", params={"path": "/graphics/a.gif"})
    assert response.status_code == 502
    assert response.json()["detail"] == "Blocked by eCFR"


def test_upstream_unavailable(client: TestClient) -> None:
    _override(AsyncMock(side_effect=TransientFetchError("/graphics/a.gif", 5)))
    response = client.get("/api/v1/images", params={"path": "/graphics/a.gif"})
    assert response.status_code == 502
