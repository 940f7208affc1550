"""
gatewaychat - Streaming Module

Incremental parsing of OpenAI-compatible event streams:
- Frame decoding across arbitrary chunk boundaries
- Payload normalization over the known provider shapes
"""

from .decoder import (
    FrameDecoder,
    decode_lines,
    aiter_lines,
)
from .normalizer import (
    PayloadNormalizer,
    NormalizerStats,
    INCREMENTAL_EXTRACTORS,
    FALLBACK_EXTRACTORS,
    image_generation_url,
    is_truncated_json,
    render_image,
)

__all__ = [
    # Decoder
    "FrameDecoder",
    "decode_lines",
    "aiter_lines",
    # Normalizer
    "PayloadNormalizer",
    "NormalizerStats",
    "INCREMENTAL_EXTRACTORS",
    "FALLBACK_EXTRACTORS",
    "image_generation_url",
    "is_truncated_json",
    "render_image",
]
