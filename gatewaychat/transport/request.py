"""
gatewaychat - Request Construction

Builds the outgoing chat completion envelope from caller messages:
- Messages are copied into fresh wire dicts (caller objects never mutated)
- Attachments rewrite the final user message into multi-part content
- Web search adds a function tool plus aggregator compatibility flags
"""

import copy
from typing import Any, Dict, List, Optional, Sequence, Union

from ..core.models import (
    Attachment,
    ChatMessage,
    ImagePart,
    RequestEnvelope,
    Role,
    TextPart,
    message_to_dict,
)


MessageInput = Union[ChatMessage, Dict[str, Any]]
AttachmentInput = Union[Attachment, Dict[str, Any]]


WEB_SEARCH_TOOL: Dict[str, Any] = {
    "type": "function",
    "function": {
        "name": "web_search",
        "description": "Search the internet for real-time information",
        "parameters": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Search terms"},
            },
            "required": ["query"],
        },
    },
}

# Flags that common aggregators check to enable built-in search:
# plugins (OneAPI/NewAPI), google_search (Dify/FastGPT), web_search (custom gateways)
WEB_SEARCH_PLUGINS = ["search"]


def web_search_tools() -> List[Dict[str, Any]]:
    """Return a fresh copy of the web search tool declarations."""
    return [copy.deepcopy(WEB_SEARCH_TOOL)]


def attachment_parts(attachments: Sequence[AttachmentInput]) -> List[Dict[str, Any]]:
    """
    Convert attachments to image_url parts, in order.

    Non-image files are sent as image_url too: many aggregators sniff data
    URIs in image_url fields and route PDFs/documents to file-capable models.
    """
    return [ImagePart(Attachment.from_value(a).url).to_dict() for a in attachments]


def apply_attachments(
    messages: List[Dict[str, Any]],
    attachments: Optional[Sequence[AttachmentInput]],
) -> List[Dict[str, Any]]:
    """
    Rewrite the last message to carry the attachments.

    Only a trailing user message is rewritten; otherwise the attachments
    are ignored. Operates on already-copied wire dicts.
    """
    if not attachments or not messages:
        return messages

    last = messages[-1]
    if last.get("role") != Role.USER.value:
        return messages

    content = last.get("content")
    if isinstance(content, list):
        parts = list(content)
    else:
        parts = [TextPart(content if content is not None else "").to_dict()]

    last["content"] = parts + attachment_parts(attachments)
    return messages


def build_request(
    messages: Sequence[MessageInput],
    model: str,
    stream: bool,
    use_web_search_tools: bool = False,
    attachments: Optional[Sequence[AttachmentInput]] = None,
) -> RequestEnvelope:
    """
    Build the request envelope for one call.

    Args:
        messages: Conversation so far (ChatMessage objects or dicts)
        model: Target model identifier
        stream: Request an event stream (True) or a single JSON body (False)
        use_web_search_tools: Add the web_search tool and aggregator flags
        attachments: Attachments for the last user message

    Returns:
        RequestEnvelope ready to serialize
    """
    wire_messages = [message_to_dict(m) for m in messages]
    wire_messages = apply_attachments(wire_messages, attachments)

    envelope = RequestEnvelope(model=model, messages=wire_messages, stream=stream)

    if use_web_search_tools:
        envelope.tools = web_search_tools()
        envelope.plugins = list(WEB_SEARCH_PLUGINS)
        envelope.google_search = True
        envelope.web_search = True

    return envelope
