"""
gatewaychat - Core Data Models

Request-side and response-side data models shared by the streaming
pipeline and the transport.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


# ============================================================
# Enums
# ============================================================

class Role(str, Enum):
    """Message roles."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class AttachmentKind(str, Enum):
    """Attachment kinds accepted from the caller."""
    IMAGE = "image"
    FILE = "file"


class ContentType(str, Enum):
    """Content part types."""
    TEXT = "text"
    IMAGE_URL = "image_url"


class FrameKind(str, Enum):
    """Kinds of decoded stream lines."""
    DATA = "data"          # "data: " line carrying a JSON payload
    DONE = "done"          # Terminal "[DONE]" sentinel
    IGNORED = "ignored"    # Blank, comment or non-data line


# ============================================================
# Content Parts (for multimodal)
# ============================================================

@dataclass
class TextPart:
    """Text content part."""
    text: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"type": ContentType.TEXT.value, "text": self.text}


@dataclass
class ImagePart:
    """
    Image reference content part.

    The URL is either a remote URL or a data URI.
    """
    url: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"type": ContentType.IMAGE_URL.value, "image_url": {"url": self.url}}


ContentPart = Union[TextPart, ImagePart]
MessageContent = Union[str, List[Union[ContentPart, Dict[str, Any]]]]


def content_part_to_dict(part: Union[ContentPart, Dict[str, Any]]) -> Dict[str, Any]:
    """Convert a content part (dataclass or dict) to a fresh wire dict."""
    if isinstance(part, (TextPart, ImagePart)):
        return part.to_dict()
    return copy.deepcopy(dict(part))


# ============================================================
# Messages & Attachments
# ============================================================

@dataclass
class ChatMessage:
    """A single chat message on the request side."""
    role: Role
    content: MessageContent = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ChatMessage:
        return cls(role=Role(data.get("role", "user")), content=data.get("content", ""))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to OpenAI wire format. Always returns new objects."""
        role = self.role.value if isinstance(self.role, Role) else str(self.role)
        if isinstance(self.content, str):
            content: Any = self.content
        else:
            content = [content_part_to_dict(p) for p in self.content]
        return {"role": role, "content": content}


def message_to_dict(message: Union[ChatMessage, Dict[str, Any]]) -> Dict[str, Any]:
    """
    Convert a caller message to a wire dict.

    Dict messages are deep-copied so nothing the caller owns is shared with
    the outgoing request.
    """
    if isinstance(message, ChatMessage):
        return message.to_dict()
    wire = copy.deepcopy(dict(message))
    role = wire.get("role")
    if isinstance(role, Role):
        wire["role"] = role.value
    content = wire.get("content")
    if isinstance(content, list):
        wire["content"] = [content_part_to_dict(p) for p in content]
    return wire


@dataclass
class Attachment:
    """
    Caller-provided attachment.

    Owned by the caller and only forwarded into a single outgoing request.
    """
    kind: AttachmentKind
    url: str
    name: Optional[str] = None

    @property
    def is_image(self) -> bool:
        return self.kind == AttachmentKind.IMAGE

    @classmethod
    def from_value(cls, value: Union[Attachment, Dict[str, Any]]) -> Attachment:
        """Accept either an Attachment or a dict with type/kind, url and name."""
        if isinstance(value, Attachment):
            return value

        # Data URIs can be megabytes, so errors name the attachment instead
        label = value.get("name") or "unnamed"
        url = value.get("url")
        if not isinstance(url, str) or not url:
            raise ValueError(f"Attachment {label!r} has no url")

        kind = value.get("kind") or value.get("type") or AttachmentKind.FILE.value
        try:
            kind = AttachmentKind(kind)
        except ValueError:
            expected = ", ".join(k.value for k in AttachmentKind)
            raise ValueError(
                f"Attachment {label!r} has unknown type {kind!r} (expected one of: {expected})"
            ) from None

        return cls(kind=kind, url=url, name=value.get("name"))


# ============================================================
# Request Envelope
# ============================================================

@dataclass
class RequestEnvelope:
    """
    One outgoing chat completion request.

    Only the optional compatibility fields that are set end up in the payload.
    """
    model: str
    messages: List[Dict[str, Any]]
    stream: bool
    tools: Optional[List[Dict[str, Any]]] = None
    plugins: Optional[List[str]] = None
    google_search: Optional[bool] = None
    web_search: Optional[bool] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": self.messages,
            "stream": self.stream,
        }
        if self.tools is not None:
            payload["tools"] = self.tools
        if self.plugins is not None:
            payload["plugins"] = self.plugins
        if self.google_search is not None:
            payload["google_search"] = self.google_search
        if self.web_search is not None:
            payload["web_search"] = self.web_search
        return payload


# ============================================================
# Stream Units
# ============================================================

@dataclass
class StreamFrame:
    """One decoded logical line from the wire."""
    kind: FrameKind
    data: str = ""

    @property
    def is_done(self) -> bool:
        return self.kind == FrameKind.DONE


@dataclass
class NormalizedDelta:
    """Text extracted from one frame."""
    text: str = ""
    terminal: bool = False

    def __bool__(self) -> bool:
        return bool(self.text)


# ============================================================
# Responses
# ============================================================

@dataclass
class Usage:
    """Token usage statistics."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional[Usage]:
        if not isinstance(data, dict):
            return None
        return cls(
            prompt_tokens=data.get("prompt_tokens") or 0,
            completion_tokens=data.get("completion_tokens") or 0,
            total_tokens=data.get("total_tokens") or 0,
        )


@dataclass
class ChatResult:
    """Result of a non-streaming chat call."""
    content: str
    usage: Optional[Usage] = None

    @property
    def message(self) -> str:
        return self.content


@dataclass
class ModelInfo:
    """An entry of the gateway's model listing."""
    id: str
    name: str = ""
    provider: str = ""
    context_window: Optional[int] = None
    created: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ModelInfo:
        model_id = str(data.get("id", ""))
        return cls(
            id=model_id,
            name=data.get("name") or model_id,
            provider=data.get("provider") or data.get("owned_by") or "",
            context_window=data.get("context_window") or data.get("contextWindow"),
            created=data.get("created"),
            raw=dict(data),
        )


@dataclass
class SearchResult:
    """A single web search hit used to build prompt context."""
    title: str
    url: str
    content: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SearchResult:
        return cls(
            title=data.get("title", ""),
            url=data.get("url", ""),
            content=data.get("content", ""),
        )
