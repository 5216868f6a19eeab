"""
Shared error handling for the NACM access layer.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field

from .logging import request_id_var


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class AccessLayerException(Exception):
    """Base exception for access layer services."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id_var.get(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(AccessLayerException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class UnknownTokenError(ValidationError):
    """A configuration token (effect, operation) was not recognised."""

    def __init__(self, kind: str, token: Any):
        self.kind = kind
        self.token = token
        super().__init__(
            f"Unknown {kind}: {token}",
            {"kind": kind, "token": token}
        )


class PolicyConstructionError(AccessLayerException):
    """A policy snapshot could not be assembled."""

    def __init__(self, message: str = "Policy construction failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("POLICY_CONSTRUCTION_ERROR", message, details)


class PolicyNotLoadedError(AccessLayerException):
    """No policy snapshot has been published yet."""

    def __init__(self, message: str = "No policy snapshot published", details: Optional[Dict[str, Any]] = None):
        super().__init__("POLICY_NOT_LOADED", message, details)
