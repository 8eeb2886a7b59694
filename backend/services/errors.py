"""Error taxonomy for the chat core.

Only ValidationError and the Upstream* errors ever reach an API caller.
DataLookupFailure and IndexUnavailable are absorbed inside the pipeline.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class ErrorDetail:
    """Structured error information carried by every ChatbotError."""
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)


class ChatbotError(Exception):
    """Base class for errors raised by the chat core."""

    default_code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.error = ErrorDetail(
            code=code or self.default_code,
            message=message,
            details=details or {},
        )
        super().__init__(message)


class ValidationError(ChatbotError):
    """Malformed inbound message list."""
    default_code = "VALIDATION_ERROR"


class UpstreamUnavailable(ChatbotError):
    """Embedding or completion service unreachable; the caller may retry."""
    default_code = "UPSTREAM_UNAVAILABLE"


class UpstreamError(ChatbotError):
    """Upstream responded, but with a failure status or a malformed body."""
    default_code = "UPSTREAM_ERROR"


class ServiceUnavailable(UpstreamUnavailable):
    """Embedding endpoint unreachable or returned a non-success status."""
    default_code = "SERVICE_UNAVAILABLE"


class InvalidResponse(UpstreamError):
    """Embedding request or response has the wrong shape."""
    default_code = "INVALID_RESPONSE"


class DataLookupFailure(ChatbotError):
    """Fact store error."""
    default_code = "DATA_LOOKUP_FAILURE"


class IndexUnavailable(ChatbotError):
    """No usable knowledge index has been built yet."""
    default_code = "INDEX_UNAVAILABLE"
