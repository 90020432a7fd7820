import json
from typing import Iterable, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from chatrelay.config import Settings
from chatrelay.main import create_app
from chatrelay.providers.router import ProviderRegistry

OPENAI_BASE = "https://openai.test/v1"
GOOGLE_BASE = "https://google.test/v1beta2"


def delta_event(text: str) -> dict:
    return {
        "id": "chatcmpl-123",
        "object": "chat.completion.chunk",
        "created": 1694268190,
        "model": "gpt-4o-mini",
        "choices": [{"index": 0, "delta": {"content": text}, "finish_reason": None}],
    }


def sse(*payloads) -> bytes:
    """Encode payloads (dicts or raw strings) as event-stream frames."""
    frames = []
    for p in payloads:
        data = p if isinstance(p, str) else json.dumps(p, ensure_ascii=False)
        frames.append(f"data: {data}\n\n")
    return "".join(frames).encode("utf-8")


# The three frames from the canonical "Hello" example
HELLO_STREAM = [
    sse(delta_event("Hel")),
    sse(delta_event("lo")),
    sse("[DONE]"),
]

MOCK_COMPLETION_RESPONSE = {
    "id": "chatcmpl-123",
    "object": "chat.completion",
    "created": 1677652288,
    "model": "gpt-4o-mini",
    "choices": [
        {
            "index": 0,
            "message": {"role": "assistant", "content": "Hello"},
            "finish_reason": "stop",
        }
    ],
}

MOCK_GOOGLE_RESPONSE = {
    "candidates": [{"output": "Bonjour from Google", "safetyRatings": []}],
}


class ChunkedBody(httpx.AsyncByteStream):
    """Response body delivered one chunk per read, optionally failing midway."""

    def __init__(self, chunks: Iterable[bytes], error: Optional[Exception] = None) -> None:
        self.chunks = list(chunks)
        self.error = error
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error

    async def aclose(self) -> None:
        self.closed = True


class ProviderFixture:
    """Deterministic stand-in for the upstream providers, recording each request."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.stream_chunks: List[bytes] = list(HELLO_STREAM)
        self.stream_error: Optional[Exception] = None
        self.openai_json = MOCK_COMPLETION_RESPONSE
        self.google_json = MOCK_GOOGLE_RESPONSE
        self.status = 200
        self.error_body = "upstream exploded"
        self.bodies: List[ChunkedBody] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status != 200:
            return httpx.Response(self.status, text=self.error_body)
        if request.url.path.endswith("/chat/completions"):
            if json.loads(request.content).get("stream"):
                body = ChunkedBody(self.stream_chunks, self.stream_error)
                self.bodies.append(body)
                return httpx.Response(
                    200, headers={"content-type": "text/event-stream"}, stream=body
                )
            return httpx.Response(200, json=self.openai_json)
        if request.url.path.endswith(":generateText"):
            return httpx.Response(200, json=self.google_json)
        return httpx.Response(404, text="unknown path")

    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def upstream():
    return ProviderFixture()


@pytest.fixture
def transport(upstream):
    return httpx.MockTransport(upstream.handler)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        openai_api_key="sk-test",
        openai_model="gpt-4o-mini",
        openai_base_url=OPENAI_BASE,
        google_api_key="google-test-key",
        google_model="models/text-bison-001",
        google_base_url=GOOGLE_BASE,
        allowed_origins="*",
    )


@pytest.fixture
def unconfigured_settings():
    return Settings(
        _env_file=None,
        openai_api_key="",
        openai_base_url=OPENAI_BASE,
        google_api_key="",
        google_base_url=GOOGLE_BASE,
    )


def _client(settings, transport):
    registry = ProviderRegistry.from_settings(settings, transport=transport)
    return TestClient(create_app(settings, registry))


@pytest.fixture
def test_client(settings, transport):
    with _client(settings, transport) as client:
        yield client


@pytest.fixture
def test_client_unconfigured(unconfigured_settings, transport):
    with _client(unconfigured_settings, transport) as client:
        yield client
