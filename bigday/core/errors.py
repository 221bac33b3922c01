"""
Error taxonomy shared by the storage core and the HTTP layer
"""

from typing import Any, Optional


class BigDayError(Exception):
    """Base error; every subclass maps to one stable HTTP status."""

    status_code = 500
    error_code = "internal_error"
    default_message = "Service unavailable"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class NotFound(BigDayError):
    status_code = 404
    error_code = "not_found"
    default_message = "Not found"


class ValidationFailed(BigDayError):
    status_code = 400
    error_code = "validation_failed"
    default_message = "Invalid payload"


class Unauthorized(BigDayError):
    status_code = 401
    error_code = "unauthorized"
    default_message = "Unauthorized"


class Conflict(BigDayError):
    status_code = 409
    error_code = "conflict"
    default_message = "The record was modified concurrently, please resubmit"


class StorageUnavailable(BigDayError):
    status_code = 500
    error_code = "storage_unavailable"
    default_message = "Service unavailable"


class PayloadTooLarge(BigDayError):
    status_code = 413
    error_code = "payload_too_large"
    default_message = "Payload too large"


class RateLimited(BigDayError):
    status_code = 429
    error_code = "rate_limited"
    default_message = "Rate limit exceeded. Please try again later."
