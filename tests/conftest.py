from __future__ import annotations

import base64
from typing import Dict, List

import cv2
import httpx
import numpy as np
import pytest
from fastapi.testclient import TestClient

from facematch.config import Settings
from facematch.main import create_app
from facematch.models.types import FaceDetection, NOT_DETECTED

UNREACHABLE_URL = "https://unreachable.test/photo.png"


def make_png(value: int, width: int = 8, height: int = 8) -> bytes:
    """Solid gray PNG; lossless so the pixel value survives decoding."""
    image = np.full((height, width, 3), value, dtype=np.uint8)
    ok, buf = cv2.imencode(".png", image)
    assert ok
    return buf.tobytes()


def to_data_uri(png: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")


class FakeFaceModel:
    """Stand-in for the dlib models.

    The descriptor is ``(pixel / 100, 0.0)`` so two solid images of values
    10 and 50 are 0.4 apart. A black image has no face.
    """

    def __init__(self, loaded: bool = True, fail_load: bool = False) -> None:
        self.calls = 0
        self._loaded = loaded
        self.fail_load = fail_load

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def load(self) -> None:
        if self.fail_load:
            raise RuntimeError("model file missing")
        self._loaded = True

    def detect_single_face(self, image) -> FaceDetection:
        self.calls += 1
        value = int(image[0, 0, 0])
        if value == 0:
            return NOT_DETECTED
        return FaceDetection.from_vector([value / 100.0, 0.0])


class RemoteImages:
    """URL -> PNG bytes served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.images: Dict[str, bytes] = {
            "https://img.test/alice-selfie.png": make_png(10),
            "https://img.test/alice-id.png": make_png(50),
            "https://img.test/bob-id.png": make_png(90),
            "https://img.test/empty-room.png": make_png(0),
            "https://img.test/not-an-image.png": b"<html>nope</html>",
        }
        self.requested: List[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requested.append(url)
        if url == UNREACHABLE_URL:
            raise httpx.ConnectError("Connection refused", request=request)
        if url in self.images:
            return httpx.Response(200, content=self.images[url])
        return httpx.Response(404, content=b"not found")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def fake_model() -> FakeFaceModel:
    return FakeFaceModel()


@pytest.fixture
def remote_images() -> RemoteImages:
    return RemoteImages()


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def client(settings: Settings, fake_model: FakeFaceModel, remote_images: RemoteImages):
    app = create_app(settings, model=fake_model, http_client=remote_images.client())
    with TestClient(app) as test_client:
        yield test_client
