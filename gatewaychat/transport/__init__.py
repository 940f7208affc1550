"""
gatewaychat - Transport Module

Chat completion calls against OpenAI-compatible gateways.
"""

from .client import ChatTransport, StreamState, DEFAULT_MODEL, is_event_stream
from .request import (
    build_request,
    apply_attachments,
    attachment_parts,
    web_search_tools,
    WEB_SEARCH_TOOL,
)
from .search import format_search_context, parse_search_results

__all__ = [
    "ChatTransport",
    "StreamState",
    "DEFAULT_MODEL",
    "is_event_stream",
    "build_request",
    "apply_attachments",
    "attachment_parts",
    "web_search_tools",
    "WEB_SEARCH_TOOL",
    "format_search_context",
    "parse_search_results",
]
