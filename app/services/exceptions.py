"""
Custom exceptions for repeater sanitization.
Value-safe: these exceptions never carry submitted field data.
"""
from enum import Enum


class SanitizerErrorCode(str, Enum):
    """Value-safe error codes for sanitization failures."""
    DECODE_ERROR = "DECODE_ERROR"
    UNKNOWN_CALLBACK = "UNKNOWN_CALLBACK"


class SanitizerError(Exception):
    """
    Base exception for sanitizer errors.

    Attributes:
        error_code: Value-safe error code for logging and response
        status_code: HTTP status code to return
        retryable: Whether the client should retry
        message: Value-safe message (no submitted data)
    """

    def __init__(
        self,
        error_code: SanitizerErrorCode,
        message: str = "Sanitization failed",
        status_code: int = 400,
        retryable: bool = False
    ):
        self.error_code = error_code
        self.message = message
        self.status_code = status_code
        self.retryable = retryable
        super().__init__(message)


class DecodeError(SanitizerError):
    """Raised when a repeater value is not valid percent-encoded JSON rows."""

    def __init__(self, reason: str = "Value is not valid encoded JSON"):
        super().__init__(
            error_code=SanitizerErrorCode.DECODE_ERROR,
            message=reason,
            status_code=400,
            retryable=False
        )


class UnknownCallbackError(SanitizerError):
    """Raised when a subfield names a sanitize callback that is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            error_code=SanitizerErrorCode.UNKNOWN_CALLBACK,
            message=f"Unknown sanitize callback: {name}",
            status_code=400,
            retryable=False
        )
