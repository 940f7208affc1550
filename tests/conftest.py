"""
gatewaychat - Pytest Configuration

Configures:
- Integration test marker (skip by default)
- A clean credential environment for every test
- A scripted gateway built on httpx.MockTransport
"""

import json
import os
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Sequence, Union

import httpx
import pytest

from gatewaychat import ChatTransport


# ============================================================
# Environment Configuration
# ============================================================

def _is_truthy(value: Optional[str]) -> bool:
    """Check if environment variable is truthy."""
    if value is None:
        return False
    return value.lower() in ("1", "true", "yes", "on")


RUN_INTEGRATION = _is_truthy(os.getenv("RUN_INTEGRATION"))

TEST_API_KEY = "sk-test-key"
TEST_BASE_URL = "https://gateway.test/v1"


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless RUN_INTEGRATION=1."""
    skip_integration = pytest.mark.skip(
        reason="Integration test - set RUN_INTEGRATION=1 to run"
    )
    for item in items:
        if "integration" in item.keywords and not RUN_INTEGRATION:
            item.add_marker(skip_integration)


@pytest.fixture(autouse=True)
def clean_credentials_env(monkeypatch, request):
    """Keep developer credentials out of unit tests."""
    if "integration" in request.keywords:
        return
    for name in (
        "GATEWAYCHAT_API_KEY",
        "GATEWAYCHAT_BASE_URL",
        "GATEWAYCHAT_DEV_API_KEY",
        "GATEWAYCHAT_SEARCH_URL",
        "MODE",
    ):
        monkeypatch.delenv(name, raising=False)


# ============================================================
# Scripted Gateway
# ============================================================

SSE_HEADERS = {"content-type": "text/event-stream; charset=utf-8"}
JSON_HEADERS = {"content-type": "application/json"}


def sse_frame(payload: Union[Dict[str, Any], str]) -> str:
    """Serialize one SSE data frame."""
    data = payload if isinstance(payload, str) else json.dumps(payload)
    return f"data: {data}\n\n"


def delta_frame(content: Optional[str] = None, **delta_fields) -> str:
    """Build a chat.completion.chunk frame with the given delta."""
    delta: Dict[str, Any] = dict(delta_fields)
    if content is not None:
        delta["content"] = content
    return sse_frame({
        "id": "chatcmpl-test",
        "object": "chat.completion.chunk",
        "choices": [{"index": 0, "delta": delta, "finish_reason": None}],
    })


DONE_FRAME = "data: [DONE]\n\n"


async def byte_chunks(chunks: Sequence[Union[str, bytes]]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk.encode("utf-8") if isinstance(chunk, str) else chunk


class ScriptedGateway:
    """
    Mock gateway that answers every request from a script.

    Records requests so tests can inspect headers and JSON bodies.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self._responder: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(404, json={"error": {"message": "not scripted"}})
        )

    # Scripting helpers

    def respond_stream(self, chunks: Sequence[Union[str, bytes]], status_code: int = 200, headers=None):
        def responder(request):
            return httpx.Response(
                status_code,
                headers=headers or SSE_HEADERS,
                content=byte_chunks(chunks),
            )
        self._responder = responder

    def respond_json(self, body: Any, status_code: int = 200, headers=None):
        def responder(request):
            merged = dict(JSON_HEADERS)
            merged.update(headers or {})
            return httpx.Response(status_code, headers=merged, content=json.dumps(body).encode())
        self._responder = responder

    def respond_text(self, text: str, status_code: int = 200, headers=None):
        def responder(request):
            return httpx.Response(status_code, headers=headers or {"content-type": "text/plain"}, text=text)
        self._responder = responder

    def respond_with(self, responder: Callable[[httpx.Request], httpx.Response]):
        self._responder = responder

    def raise_error(self, error_factory: Callable[[httpx.Request], Exception]):
        def responder(request):
            raise error_factory(request)
        self._responder = responder

    # Inspection helpers

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    @property
    def last_json(self) -> Dict[str, Any]:
        return json.loads(self.last_request.content)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responder(request)


@pytest.fixture
def gateway() -> ScriptedGateway:
    return ScriptedGateway()


@pytest.fixture
def http_client(gateway) -> httpx.AsyncClient:
    # MockTransport holds no sockets, so the client needs no explicit close
    return httpx.AsyncClient(transport=httpx.MockTransport(gateway.handler))


@pytest.fixture
def transport(http_client) -> ChatTransport:
    """ChatTransport wired to the scripted gateway."""
    return ChatTransport(api_key=TEST_API_KEY, base_url=TEST_BASE_URL, client=http_client)


@pytest.fixture
def tokens() -> List[str]:
    """Collector for on_token calls."""
    return []


@pytest.fixture
def mock_completion_body() -> Dict[str, Any]:
    """Non-streaming chat completion body."""
    return {
        "id": "chatcmpl-test123",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "gpt-4o-mini",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": "Hello! I'm a mock response."},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 10, "completion_tokens": 8, "total_tokens": 18},
    }
