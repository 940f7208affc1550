"""
gatewaychat Core Module

Data models, the error taxonomy/classifier and the HTTP plumbing.
"""

from .models import (
    # Enums
    Role,
    AttachmentKind,
    ContentType,
    FrameKind,

    # Messages
    ChatMessage,
    ContentPart,
    TextPart,
    ImagePart,
    Attachment,

    # Requests
    RequestEnvelope,

    # Stream units
    StreamFrame,
    NormalizedDelta,

    # Responses
    Usage,
    ChatResult,
    ModelInfo,
    SearchResult,

    # Serialization
    message_to_dict,
)

from .errors import (
    ErrorCode,
    ErrorDetails,
    GatewayError,
    AuthMissingError,
    UnauthorizedError,
    RateLimitedError,
    QuotaExhaustedError,
    UpstreamError,
    MalformedStreamError,
    TransportFailureError,
    QUOTA_EXHAUSTED_CODES,

    # Classifier
    classify_http_error,
    classify_payload_error,
    classify_transport_error,
    extract_error_message,
    extract_error_code,
)
