"""
Shared error handling for the eBill console.
"""

from typing import Dict, Any, Optional


class EbillClientException(Exception):
    """Base exception for eBill console errors."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class RequestFailed(EbillClientException):
    """Backend answered with a non-2xx status."""

    def __init__(self, status_code: int, message: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None, code: str = "REQUEST_FAILED"):
        self.status_code = status_code
        details = dict(details or {})
        details.setdefault("status_code", status_code)
        super().__init__(code, message or generic_http_message(status_code), details)


class SessionExpired(RequestFailed):
    """Backend rejected the credential (401/403); the session has been cleared."""

    def __init__(self, status_code: int, message: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(status_code, message, details, code="SESSION_EXPIRED")


class AuthenticationError(RequestFailed):
    """Login was rejected."""

    def __init__(self, status_code: int, message: str = "Invalid username or password",
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(status_code, message, details, code="AUTHENTICATION_ERROR")


class MalformedResponse(EbillClientException):
    """Response declared JSON but the body could not be parsed."""

    def __init__(self, reason: str, excerpt: str, details: Optional[Dict[str, Any]] = None):
        self.reason = reason
        self.excerpt = excerpt
        details = dict(details or {})
        details.update({"reason": reason, "excerpt": excerpt})
        super().__init__(
            "MALFORMED_RESPONSE",
            f"Invalid JSON response from server: {reason}. Response started with: {excerpt}",
            details
        )


class UnexpectedFormat(EbillClientException):
    """Successful response whose body is not JSON."""

    def __init__(self, content_type: Optional[str], excerpt: str = "",
                 details: Optional[Dict[str, Any]] = None):
        self.content_type = content_type
        self.excerpt = excerpt
        details = dict(details or {})
        details.update({"content_type": content_type, "excerpt": excerpt})
        super().__init__(
            "UNEXPECTED_FORMAT",
            f"Unexpected response format. Expected JSON, got {content_type or 'unknown'}.",
            details
        )


class ValidationError(EbillClientException):
    """Local form validation failed."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class ServiceUnavailable(EbillClientException):
    """Backend could not be reached."""

    def __init__(self, message: str = "Backend unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("SERVICE_UNAVAILABLE", message, details)


def generic_http_message(status_code: int) -> str:
    """Fallback message for an HTTP failure without a usable body."""
    return f"HTTP error, status {status_code}"
