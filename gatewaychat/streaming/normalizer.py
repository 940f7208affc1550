"""
gatewaychat - Payload Normalizer

Extracts plain assistant text from the many response shapes that
OpenAI-compatible gateways emit.

Supported shapes, in precedence order:
- Top-level error object            -> raised as a classified error
- choices[0].delta.content          -> base text
- choices[0].delta.reasoning        -> appended (DeepSeek/Gemini thinking)
- choices[0].delta.reasoning_content-> appended
- choices[0].delta.images[]         -> appended as markdown images
- choices[0].text                   -> legacy completions (fallback)
- choices[0].message.content        -> full message while "streaming" (fallback)

Non-streaming documents additionally support the image-generation shape
(data[0].url).
"""

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..core.errors import MalformedStreamError, classify_payload_error
from ..core.models import FrameKind, NormalizedDelta, StreamFrame
from ..observability.logging import get_logger


logger = get_logger(__name__)


DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"
IMAGE_ALT_TEXT = "Generated Image"


def render_image(url: str) -> str:
    """Render an image URL as an inline markdown image."""
    return f"![{IMAGE_ALT_TEXT}]({url})"


# ============================================================
# Extractors
# ============================================================

# (payload, first choice, delta) -> contribution or None
Extractor = Callable[[Dict[str, Any], Dict[str, Any], Dict[str, Any]], Optional[str]]


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _first_choice(payload: Dict[str, Any]) -> Dict[str, Any]:
    choices = payload.get("choices")
    if isinstance(choices, list) and choices:
        return _as_dict(choices[0])
    return {}


def _text_or_none(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None


def _delta_content(payload, choice, delta) -> Optional[str]:
    return _text_or_none(delta.get("content"))


def _delta_reasoning(payload, choice, delta) -> Optional[str]:
    return _text_or_none(delta.get("reasoning"))


def _delta_reasoning_content(payload, choice, delta) -> Optional[str]:
    return _text_or_none(delta.get("reasoning_content"))


def _delta_images(payload, choice, delta) -> Optional[str]:
    images = delta.get("images")
    if not isinstance(images, list):
        return None

    rendered = []
    for image in images:
        image = _as_dict(image)
        url = _as_dict(image.get("image_url")).get("url") or image.get("url")
        if url:
            rendered.append(f"\n{render_image(url)}\n")
    return "".join(rendered) or None


def _legacy_text(payload, choice, delta) -> Optional[str]:
    return _text_or_none(choice.get("text"))


def _message_content(payload, choice, delta) -> Optional[str]:
    content = _as_dict(choice.get("message")).get("content")
    if isinstance(content, list):
        # Multi-part message content: keep the text parts
        content = "".join(
            part.get("text", "")
            for part in content
            if isinstance(part, dict) and part.get("type") == "text"
        )
    return _text_or_none(content)


# Contributions from these are concatenated in order
INCREMENTAL_EXTRACTORS: List[Tuple[str, Extractor]] = [
    ("delta.content", _delta_content),
    ("delta.reasoning", _delta_reasoning),
    ("delta.reasoning_content", _delta_reasoning_content),
    ("delta.images", _delta_images),
]

# Consulted only when the incremental extractors produced nothing; first hit wins
FALLBACK_EXTRACTORS: List[Tuple[str, Extractor]] = [
    ("choices.text", _legacy_text),
    ("message.content", _message_content),
]


def is_truncated_json(document: str, error: json.JSONDecodeError) -> bool:
    """
    Check whether a decode error means "ran out of input".

    Truncated payloads fail at the very end of the document or inside an
    unterminated string; anything else is structurally invalid.
    """
    if error.pos >= len(document.rstrip()):
        return True
    return error.msg.startswith("Unterminated string")


@dataclass
class NormalizerStats:
    """Per-stream frame counters."""
    frames_seen: int = 0
    data_frames: int = 0
    truncated_frames: int = 0
    malformed_frames: int = 0


class PayloadNormalizer:
    """
    Decides whether a decoded line carries content and extracts its text.

    One instance per call; it keeps only counters, never frames.

    Usage:
        normalizer = PayloadNormalizer(request_id="req_123")
        delta = normalizer.normalize_line('data: {"choices": [...]}')
        if delta.text:
            on_token(delta.text)
        if delta.terminal:
            ...

    Args:
        request_id: Request ID attached to raised errors
        lenient: Log and drop structurally invalid frames instead of
            raising MalformedStreamError
    """

    def __init__(self, request_id: str = "", lenient: bool = False):
        self.request_id = request_id
        self.lenient = lenient
        self.stats = NormalizerStats()

    # ============================================================
    # Framing
    # ============================================================

    def parse_frame(self, line: str) -> StreamFrame:
        """Classify one decoded line."""
        self.stats.frames_seen += 1
        trimmed = line.strip()

        if not trimmed:
            return StreamFrame(FrameKind.IGNORED)
        if trimmed == DATA_PREFIX + DONE_SENTINEL:
            return StreamFrame(FrameKind.DONE)
        if trimmed.startswith(DATA_PREFIX):
            return StreamFrame(FrameKind.DATA, trimmed[len(DATA_PREFIX):])
        return StreamFrame(FrameKind.IGNORED)

    def normalize_line(self, line: str) -> NormalizedDelta:
        return self.normalize_frame(self.parse_frame(line))

    def normalize_frame(self, frame: StreamFrame) -> NormalizedDelta:
        """
        Extract the text contribution of one frame.

        Raises:
            GatewayError: The payload carries an error object
            MalformedStreamError: Structurally invalid JSON (unless lenient)
        """
        if frame.kind == FrameKind.DONE:
            return NormalizedDelta(terminal=True)
        if frame.kind == FrameKind.IGNORED:
            return NormalizedDelta()

        self.stats.data_frames += 1
        payload = self._decode_payload(frame.data)
        if payload is None:
            return NormalizedDelta()

        return NormalizedDelta(text=self.extract_text(payload))

    def _decode_payload(self, data: str) -> Optional[Dict[str, Any]]:
        try:
            payload = json.loads(data)
        except json.JSONDecodeError as e:
            if is_truncated_json(data, e):
                self.stats.truncated_frames += 1
                logger.debug("Dropping truncated frame", error=e.msg, length=len(data))
                return None
            return self._malformed(f"Invalid JSON in stream frame: {e.msg}", data)

        if not isinstance(payload, dict):
            return self._malformed("Stream frame payload is not a JSON object", data)
        return payload

    def _malformed(self, reason: str, data: str) -> None:
        self.stats.malformed_frames += 1
        if not self.lenient:
            raise MalformedStreamError(reason, raw=data, request_id=self.request_id)
        logger.warning("Dropping malformed frame", reason=reason, preview=data[:80])
        return None

    # ============================================================
    # Extraction
    # ============================================================

    def raise_for_error(self, payload: Dict[str, Any], status_code: int = 200) -> None:
        """
        Raise the classified error carried in-band by a payload, if any.

        Any error object counts, even an empty one; a string counts when
        non-empty.
        """
        error = payload.get("error")
        if isinstance(error, dict) or (isinstance(error, str) and error):
            raise classify_payload_error(
                payload, status_code=status_code, request_id=self.request_id
            )

    def extract_text(self, payload: Dict[str, Any]) -> str:
        """Run the extractor chain over a parsed payload."""
        self.raise_for_error(payload)

        choice = _first_choice(payload)
        delta = _as_dict(choice.get("delta"))

        parts = []
        for _, extractor in INCREMENTAL_EXTRACTORS:
            contribution = extractor(payload, choice, delta)
            if contribution:
                parts.append(contribution)
        if parts:
            return "".join(parts)

        for _, extractor in FALLBACK_EXTRACTORS:
            contribution = extractor(payload, choice, delta)
            if contribution:
                return contribution
        return ""

    def normalize_document(self, document: Any, status_code: int = 200) -> str:
        """
        Extract the full text of a non-streaming response body.

        Raises:
            GatewayError: The body carries an error object
            MalformedStreamError: The body is not a JSON object
        """
        if not isinstance(document, dict):
            raise MalformedStreamError(
                "Response body is not a JSON object", request_id=self.request_id
            )

        self.raise_for_error(document, status_code=status_code)

        image_url = image_generation_url(document)
        if image_url:
            return render_image(image_url)

        return self.extract_text(document)


def image_generation_url(document: Dict[str, Any]) -> Optional[str]:
    """Return data[0].url for image-generation shaped bodies."""
    data = document.get("data")
    if isinstance(data, list) and data:
        url = _as_dict(data[0]).get("url")
        if isinstance(url, str) and url:
            return url
    return None
