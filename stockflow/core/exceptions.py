"""
Domain exceptions

Services raise these; the API layer maps them to HTTP responses.
"""
from typing import Any, Dict, Optional


class WMSError(Exception):
    """Base class for all warehouse errors"""
    status_code = 500
    code = "WMS_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(WMSError):
    """Malformed or missing input, detected before any write"""
    status_code = 422
    code = "VALIDATION_ERROR"


class NotFoundError(WMSError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(WMSError):
    """Entity is not in the state the operation requires"""
    status_code = 409
    code = "CONFLICT"


class IllegalTransitionError(ConflictError):
    code = "ILLEGAL_TRANSITION"


class InsufficientStockError(ConflictError):
    """A reservation lost a race for the same units; retry with fresh data"""
    code = "INSUFFICIENT_STOCK"


class DependencyFailure(WMSError):
    """A downstream call failed after the core transaction committed"""
    status_code = 502
    code = "DEPENDENCY_FAILURE"


class IntegrityFailure(WMSError):
    """Internal invariant violated; the unit of work is aborted"""
    status_code = 500
    code = "INTEGRITY_FAILURE"
