"""
gatewaychat - Chat Transport

Drives one chat completion call end-to-end against an OpenAI-compatible
gateway: credential check, request construction, stream/non-stream
detection, the decode/normalize loop and token delivery.

Every call is a single attempt. Failures surface as GatewayError
subclasses; retrying (the regenerate UX) is a new call by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx

from .. import __version__
from ..auth.config import CredentialResolver, Credentials, resolve_search_url
from ..core.errors import AuthMissingError, GatewayError, MalformedStreamError
from ..core.http_client import GatewayHttpClient, RequestContext, parse_json_body
from ..core.models import ChatResult, ModelInfo, SearchResult, Usage
from ..observability.logging import get_logger, log_context
from ..streaming.decoder import FrameDecoder
from ..streaming.normalizer import PayloadNormalizer, image_generation_url
from .request import AttachmentInput, MessageInput, build_request
from .search import parse_search_results


logger = get_logger(__name__)


DEFAULT_MODEL = "gpt-4o-mini"
CHAT_COMPLETIONS_PATH = "/chat/completions"
MODELS_PATH = "/models"

TokenCallback = Callable[[str], Any]


def is_event_stream(response: httpx.Response) -> bool:
    """Check whether the response declares a server-sent event stream."""
    return "event-stream" in response.headers.get("content-type", "")


@dataclass
class StreamState:
    """
    Tracks delivery during one streaming call.

    The accumulated text is attached as partial_content to errors raised
    after the first token.
    """
    accumulated_content: str = ""
    tokens_delivered: int = 0
    done_received: bool = False

    @property
    def content_started(self) -> bool:
        return self.tokens_delivered > 0

    def deliver(self, text: str, on_token: TokenCallback) -> None:
        self.accumulated_content += text
        self.tokens_delivered += 1
        on_token(text)


class ChatTransport:
    """
    Streaming chat client for OpenAI-compatible gateways.

    Args:
        credentials: Object with resolve() -> Credentials. Defaults to a
            CredentialResolver built from api_key/base_url and the environment.
        api_key: Explicit API key for the default resolver
        base_url: Explicit base URL for the default resolver
        client: Pre-built httpx.AsyncClient (not closed by close())
        timeout: Request timeout in seconds; None disables timeouts
        lenient_json: Log and drop structurally invalid frames instead of
            raising MalformedStreamError
        search_url: Search endpoint for search(); defaults to
            GATEWAYCHAT_SEARCH_URL

    Example:
        >>> transport = ChatTransport(api_key="sk-xxx")
        >>> await transport.send_stream(
        ...     [{"role": "user", "content": "hi"}],
        ...     "gpt-4o-mini",
        ...     on_token=lambda t: print(t, end=""),
        ... )
    """

    def __init__(
        self,
        credentials: Optional[Any] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        lenient_json: bool = False,
        search_url: Optional[str] = None,
    ):
        self.credentials = credentials or CredentialResolver(api_key=api_key, base_url=base_url)
        self.lenient_json = lenient_json
        self._search_url = search_url
        self._http = GatewayHttpClient(
            client=client,
            timeout=timeout,
            user_agent=f"gatewaychat-python/{__version__}",
        )

    async def close(self):
        await self._http.close()

    async def __aenter__(self) -> ChatTransport:
        return self

    async def __aexit__(self, *args):
        await self.close()

    def _require_credentials(self) -> Credentials:
        credentials = self.credentials.resolve()
        if not credentials.has_key:
            raise AuthMissingError()
        return credentials

    # ============================================================
    # Streaming
    # ============================================================

    async def send_stream(
        self,
        messages: Sequence[MessageInput],
        model: str = DEFAULT_MODEL,
        use_web_search_tools: bool = False,
        attachments: Optional[Sequence[AttachmentInput]] = None,
        on_token: Optional[TokenCallback] = None,
    ) -> None:
        """
        Stream a chat completion, calling on_token for each text increment.

        on_token is called synchronously with non-empty strings, in frame
        arrival order. Returns once [DONE] arrives or the body ends.

        Raises:
            AuthMissingError: No API key (no request is sent)
            UnauthorizedError, RateLimitedError, QuotaExhaustedError,
            UpstreamError: Non-2xx status or in-band error object
            MalformedStreamError: Unparsable non-stream body, or a
                structurally invalid frame (unless lenient_json is set)
            TransportFailureError: Connection or read failure
        """
        if on_token is None:
            raise TypeError("on_token callback is required")

        credentials = self._require_credentials()
        envelope = build_request(
            messages,
            model,
            stream=True,
            use_web_search_tools=use_web_search_tools,
            attachments=attachments,
        )
        ctx = RequestContext(step_name="chat_stream", model=model, base_url=credentials.base_url)
        normalizer = PayloadNormalizer(request_id=ctx.request_id, lenient=self.lenient_json)
        state = StreamState()

        with log_context(request_id=ctx.request_id, model=model, endpoint=CHAT_COMPLETIONS_PATH):
            try:
                async with self._http.stream(
                    "POST",
                    credentials.base_url + CHAT_COMPLETIONS_PATH,
                    ctx,
                    headers=self._http.build_headers(credentials.api_key, ctx),
                    json=envelope.to_payload(),
                ) as response:
                    if is_event_stream(response):
                        await self._consume_event_stream(response, normalizer, state, on_token)
                    else:
                        await self._consume_single_document(response, normalizer, state, on_token)
            except GatewayError as e:
                if state.content_started and not e.error.partial_content:
                    e.error.partial_content = state.accumulated_content
                logger.warning(
                    "Chat stream failed",
                    error_code=e.code,
                    status_code=e.status_code,
                    tokens_delivered=state.tokens_delivered,
                )
                raise

            logger.info(
                "Chat stream finished",
                tokens_delivered=state.tokens_delivered,
                done_received=state.done_received,
                truncated_frames=normalizer.stats.truncated_frames,
                malformed_frames=normalizer.stats.malformed_frames,
            )

    async def _consume_event_stream(
        self,
        response: httpx.Response,
        normalizer: PayloadNormalizer,
        state: StreamState,
        on_token: TokenCallback,
    ) -> None:
        decoder = FrameDecoder()
        try:
            async for chunk in response.aiter_text():
                for line in decoder.feed(chunk):
                    delta = normalizer.normalize_line(line)
                    if delta.text:
                        state.deliver(delta.text, on_token)
                    if delta.terminal:
                        state.done_received = True
                        return
        finally:
            decoder.finish()

    async def _consume_single_document(
        self,
        response: httpx.Response,
        normalizer: PayloadNormalizer,
        state: StreamState,
        on_token: TokenCallback,
    ) -> None:
        """Gateways sometimes answer a stream request with one JSON body."""
        await response.aread()
        text = normalizer.normalize_document(
            self._parse_document(response, normalizer.request_id),
            status_code=response.status_code,
        )
        if text:
            state.deliver(text, on_token)

    @staticmethod
    def _parse_document(response: httpx.Response, request_id: str) -> Dict[str, Any]:
        document = parse_json_body(response.content)
        if not isinstance(document, dict):
            raise MalformedStreamError(
                "Response body is not a JSON object",
                raw=response.text,
                request_id=request_id,
            )
        return document

    # ============================================================
    # Non-streaming
    # ============================================================

    async def send_once(
        self,
        messages: Sequence[MessageInput],
        model: str = DEFAULT_MODEL,
        use_web_search_tools: bool = False,
        attachments: Optional[Sequence[AttachmentInput]] = None,
    ) -> ChatResult:
        """
        Send a non-streaming chat completion and return the full text.

        Used for the retry/regenerate path. Raises the same errors as
        send_stream.
        """
        credentials = self._require_credentials()
        envelope = build_request(
            messages,
            model,
            stream=False,
            use_web_search_tools=use_web_search_tools,
            attachments=attachments,
        )
        ctx = RequestContext(step_name="chat_once", model=model, base_url=credentials.base_url)
        normalizer = PayloadNormalizer(request_id=ctx.request_id, lenient=self.lenient_json)

        with log_context(request_id=ctx.request_id, model=model, endpoint=CHAT_COMPLETIONS_PATH):
            response = await self._http.request(
                "POST",
                credentials.base_url + CHAT_COMPLETIONS_PATH,
                ctx,
                headers=self._http.build_headers(credentials.api_key, ctx),
                json=envelope.to_payload(),
            )
            document = self._parse_document(response, ctx.request_id)
            content = normalizer.normalize_document(document, status_code=response.status_code)

        if image_generation_url(document):
            usage = Usage.from_dict(document.get("usage")) or Usage()
        else:
            usage = Usage.from_dict(document.get("usage"))
        return ChatResult(content=content, usage=usage)

    # ============================================================
    # Models
    # ============================================================

    async def list_models(self) -> List[ModelInfo]:
        """
        List the gateway's models.

        Best effort: returns an empty list on a missing key, any error
        status, transport failure or unexpected body. Never raises.
        """
        try:
            return await self._fetch_models()
        except GatewayError as e:
            logger.warning(
                "Failed to fetch models",
                error_code=e.code,
                status_code=e.status_code,
            )
        except Exception as e:
            logger.warning("Failed to fetch models", error=repr(e))
        return []

    async def _fetch_models(self) -> List[ModelInfo]:
        credentials = self.credentials.resolve()
        if not credentials.has_key:
            return []

        ctx = RequestContext(step_name="list_models", base_url=credentials.base_url)
        with log_context(request_id=ctx.request_id, endpoint=MODELS_PATH):
            response = await self._http.request(
                "GET",
                credentials.base_url + MODELS_PATH,
                ctx,
                headers=self._http.build_headers(credentials.api_key, ctx, json_body=False),
            )

            body = parse_json_body(response.content)
            data = body.get("data") if isinstance(body, dict) else None
            if not isinstance(data, list):
                logger.warning("Model listing has no data array")
                return []

        return [ModelInfo.from_dict(m) for m in data if isinstance(m, dict)]

    # ============================================================
    # Search
    # ============================================================

    async def search(self, query: str) -> List[SearchResult]:
        """
        Fetch web search results for a query from the search endpoint.

        The endpoint receives {"query": ...} and answers with a JSON array
        of {title, url, content}. Best effort like list_models: returns an
        empty list when no endpoint is configured, the query is blank, or
        the request fails in any way. Never raises.

        Example:
            >>> results = await transport.search("bitcoin price today")
            >>> prompt = question + format_search_context(results)
        """
        search_url = resolve_search_url(self._search_url)
        if not search_url or not query or not query.strip():
            return []

        try:
            return await self._fetch_search_results(search_url, query)
        except GatewayError as e:
            logger.warning(
                "Search request failed",
                error_code=e.code,
                status_code=e.status_code,
            )
        except Exception as e:
            logger.warning("Search request failed", error=repr(e))
        return []

    async def _fetch_search_results(self, search_url: str, query: str) -> List[SearchResult]:
        ctx = RequestContext(step_name="search", base_url=search_url)
        with log_context(request_id=ctx.request_id, endpoint=search_url):
            response = await self._http.request(
                "POST",
                search_url,
                ctx,
                headers=self._http.build_headers(None, ctx),
                json={"query": query},
            )
            results = parse_search_results(parse_json_body(response.content))
            logger.info("Search finished", result_count=len(results))
        return results
