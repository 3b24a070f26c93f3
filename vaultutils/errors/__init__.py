"""
Errors module - Classified errors and validation-error formatting.
"""

from vaultutils.errors.standard_error import (
    ErrorCode,
    coerce_code,
    status_for_code,
    build_rpc_status,
    StandardError,
    UnknownError,
    NotFoundError,
    BadRequestError,
    InternalError,
    UnauthenticatedError,
    UnauthorizedError,
    ConflictError,
    QuotaExceededError,
    wrap_error,
    new_error,
)
from vaultutils.errors.validation_error import (
    FieldViolation,
    ValidationError,
    build_violations,
)

__all__ = [
    "ErrorCode",
    "coerce_code",
    "status_for_code",
    "build_rpc_status",
    "StandardError",
    "UnknownError",
    "NotFoundError",
    "BadRequestError",
    "InternalError",
    "UnauthenticatedError",
    "UnauthorizedError",
    "ConflictError",
    "QuotaExceededError",
    "wrap_error",
    "new_error",
    "FieldViolation",
    "ValidationError",
    "build_violations",
]
