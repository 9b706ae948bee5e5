"""Shared fixtures for OCR CLI tests."""
from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from config import ApiCredentials
from providers.vision_client import VisionApiClient

API_KEY = "sk-test-1234567890"
BASE_URL = "https://vision.example.test/v1"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32

Handler = Callable[[httpx.Request], httpx.Response]


def completion_body(content: str | None) -> dict[str, Any]:
	"""Build a minimal chat-completion response body."""
	return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def reply_with(content: str | None) -> Handler:
	"""Mock handler that always answers with the given assistant content."""
	return lambda request: httpx.Response(200, json=completion_body(content))


@pytest.fixture
def image_factory(tmp_path: Path) -> Callable[..., Path]:
	"""Create small image files inside the test's temporary directory."""
	def _make(name: str = "sample.png", data: bytes = PNG_BYTES) -> Path:
		path = tmp_path / name
		path.write_bytes(data)
		return path
	return _make


@pytest.fixture
def credentials() -> ApiCredentials:
	return ApiCredentials(api_key=API_KEY, base_url=BASE_URL, model="test-vision-model")


@pytest.fixture
def recorded_requests() -> list[httpx.Request]:
	return []


@pytest.fixture
def client_factory(
	credentials: ApiCredentials, recorded_requests: list[httpx.Request]
) -> Callable[[Handler], VisionApiClient]:
	"""Build VisionApiClient instances backed by an httpx.MockTransport."""
	def _make(handler: Handler, creds: ApiCredentials | None = None) -> VisionApiClient:
		def _record(request: httpx.Request) -> httpx.Response:
			recorded_requests.append(request)
			return handler(request)
		http_client = httpx.Client(transport=httpx.MockTransport(_record))
		return VisionApiClient(creds or credentials, http_client=http_client)
	return _make
