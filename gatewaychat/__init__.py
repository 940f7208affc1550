"""
gatewaychat - Streaming Chat Transport

A client for OpenAI-compatible AI gateways: sends chat completion
requests, decodes the server-sent event stream, normalizes the many
provider delta shapes into one text stream and reports failures as a
small typed error taxonomy.

Quick Start:
    from gatewaychat import ChatTransport

    transport = ChatTransport(api_key="sk-xxx", base_url="https://gateway.example/v1")

    await transport.send_stream(
        [{"role": "user", "content": "Hello!"}],
        "gpt-4o-mini",
        on_token=lambda token: print(token, end="", flush=True),
    )

    result = await transport.send_once([{"role": "user", "content": "Hello!"}])
    print(result.content)
"""

__version__ = "1.0.0"

from .auth import CredentialResolver, Credentials
from .core.errors import (
    GatewayError,
    AuthMissingError,
    UnauthorizedError,
    RateLimitedError,
    QuotaExhaustedError,
    UpstreamError,
    MalformedStreamError,
    TransportFailureError,
)
from .core.models import (
    Attachment,
    AttachmentKind,
    ChatMessage,
    ChatResult,
    ModelInfo,
    Role,
    SearchResult,
    Usage,
)
from .transport import ChatTransport, format_search_context

__all__ = [
    # Transport
    "ChatTransport",
    "format_search_context",
    # Credentials
    "CredentialResolver",
    "Credentials",
    # Models
    "Attachment",
    "AttachmentKind",
    "ChatMessage",
    "ChatResult",
    "ModelInfo",
    "Role",
    "SearchResult",
    "Usage",
    # Errors
    "GatewayError",
    "AuthMissingError",
    "UnauthorizedError",
    "RateLimitedError",
    "QuotaExhaustedError",
    "UpstreamError",
    "MalformedStreamError",
    "TransportFailureError",
]
