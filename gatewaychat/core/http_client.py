"""
gatewaychat - HTTP Client

Thin httpx wrapper used by the transport:
- Request correlation (request_id on every log line and X-Request-ID header)
- Step-based logging with redacted payload summaries
- Non-2xx responses converted to classified errors
- httpx exceptions converted to TransportFailureError

Single attempt only: retry is a caller-level policy.
"""

import json
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, Optional

import httpx

from .errors import GatewayError, classify_http_error, classify_transport_error, parse_retry_after
from ..observability.logging import get_logger


logger = get_logger(__name__)

# httpx failures that mean the exchange itself did not happen or broke off
TRANSPORT_EXCEPTIONS = (httpx.RequestError, httpx.StreamError, httpx.InvalidURL)


def new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


@dataclass
class RequestContext:
    """Context for tracking one call through the transport."""
    request_id: str = field(default_factory=new_request_id)
    step_name: str = ""
    model: str = ""
    base_url: str = ""


def summarize_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Create a safe payload summary (no secrets, no message bodies)."""
    summary: Dict[str, Any] = {}
    for key, value in payload.items():
        if key in ("api_key", "key", "token", "secret", "password", "authorization"):
            summary[key] = "***REDACTED***"
        elif key == "messages" and isinstance(value, list):
            summary[key] = f"[{len(value)} messages]"
        elif key == "tools" and isinstance(value, list):
            summary[key] = [t.get("function", {}).get("name") for t in value if isinstance(t, dict)]
        elif isinstance(value, str) and len(value) > 100:
            summary[key] = f"{value[:50]}...({len(value)} chars)"
        else:
            summary[key] = value
    return summary


def parse_json_body(content: bytes) -> Any:
    """Parse a response body as JSON, returning None when it is not JSON."""
    if not content:
        return None
    try:
        return json.loads(content)
    except ValueError:
        return None


def error_for_response(response: httpx.Response, request_id: str = "") -> GatewayError:
    """Classify a non-2xx response whose body has already been read."""
    return classify_http_error(
        response.status_code,
        parse_json_body(response.content),
        reason_phrase=response.reason_phrase,
        request_id=request_id,
        retry_after=parse_retry_after(response.headers.get("Retry-After")),
    )


class GatewayHttpClient:
    """
    HTTP client for one gateway.

    Owns its httpx.AsyncClient unless one is injected; an injected client
    is left open on close().

    Args:
        client: Pre-built httpx.AsyncClient (tests pass one on a MockTransport)
        timeout: Request timeout in seconds, None for no timeout
        user_agent: User-Agent header value
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        user_agent: str = "",
    ):
        self._client = client
        self._owns_client = client is None
        self.timeout = timeout
        self.user_agent = user_agent

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or (self._owns_client and self._client.is_closed):
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._client

    async def close(self):
        """Close the HTTP client if this instance created it."""
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()

    def build_headers(
        self,
        api_key: Optional[str],
        ctx: RequestContext,
        json_body: bool = True,
    ) -> Dict[str, str]:
        headers = {"X-Request-ID": ctx.request_id}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        if json_body:
            headers["Content-Type"] = "application/json"
        if self.user_agent:
            headers["User-Agent"] = self.user_agent
        return headers

    # ============================================================
    # Logging
    # ============================================================

    def _log_request_start(self, ctx: RequestContext, method: str, url: str, payload: Optional[Dict[str, Any]]):
        logger.info(
            f"STEP [{ctx.step_name}] Starting {method} {url}",
            step=ctx.step_name,
        )
        if payload is not None:
            logger.debug(f"Payload summary: {summarize_payload(payload)}", step=ctx.step_name)

    def _log_response(self, ctx: RequestContext, response: httpx.Response, started: float):
        latency_ms = (time.monotonic() - started) * 1000
        status = response.status_code
        content_type = response.headers.get("content-type", "")
        if response.is_success:
            logger.info(
                f"STEP [{ctx.step_name}] Response: status={status}, latency={latency_ms:.0f}ms",
                status_code=status,
                content_type=content_type,
            )
        else:
            logger.warning(
                f"STEP [{ctx.step_name}] Response: status={status}, latency={latency_ms:.0f}ms",
                status_code=status,
                content_type=content_type,
            )

    # ============================================================
    # Requests
    # ============================================================

    async def request(
        self,
        method: str,
        url: str,
        ctx: RequestContext,
        headers: Dict[str, str],
        json: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """
        Send a request and read the whole body.

        Raises:
            GatewayError: Non-2xx status (classified)
            TransportFailureError: Network level failure or invalid URL
        """
        self._log_request_start(ctx, method, url, json)
        client = self._get_client()
        started = time.monotonic()

        try:
            response = await client.request(method, url, json=json, headers=headers)
        except TRANSPORT_EXCEPTIONS as e:
            logger.warning(f"STEP [{ctx.step_name}] Transport failure: {e!r}")
            raise classify_transport_error(e, ctx.request_id) from e

        self._log_response(ctx, response, started)
        if not response.is_success:
            raise error_for_response(response, ctx.request_id)
        return response

    @asynccontextmanager
    async def stream(
        self,
        method: str,
        url: str,
        ctx: RequestContext,
        headers: Dict[str, str],
        json: Optional[Dict[str, Any]] = None,
    ) -> AsyncIterator[httpx.Response]:
        """
        Open a streaming response.

        The body is not read for 2xx responses; httpx errors raised while
        the caller reads it are converted to TransportFailureError.

        Raises:
            GatewayError: Non-2xx status (classified, body read first)
            TransportFailureError: Network level failure or invalid URL, at
                dispatch or mid-read
        """
        self._log_request_start(ctx, method, url, json)
        client = self._get_client()
        started = time.monotonic()

        try:
            async with client.stream(method, url, json=json, headers=headers) as response:
                self._log_response(ctx, response, started)
                if not response.is_success:
                    await response.aread()
                    raise error_for_response(response, ctx.request_id)
                yield response
        except TRANSPORT_EXCEPTIONS as e:
            logger.warning(f"STEP [{ctx.step_name}] Transport failure: {e!r}")
            raise classify_transport_error(e, ctx.request_id) from e
