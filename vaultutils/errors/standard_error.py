"""
Standard Error Taxonomy
=======================

Classified errors shared by every vaultutils component.

Each failure is reported against a small closed set of kinds
(:class:`ErrorCode`). The kind decides how the error is surfaced to an
RPC or HTTP caller; the message is stable and human-readable, and the
low-level cause (when one exists) is kept for diagnostic chaining.

Security Notice:
- Messages never contain plaintext, keys or nonces
- Causes are kept for diagnostics, not for end users
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Final, Mapping, Optional

import grpc
from google.rpc import error_details_pb2, status_pb2
from grpc_status import rpc_status


class ErrorCode(IntEnum):
    """Closed set of error kinds."""

    UNKNOWN = 1
    NOT_FOUND = 2
    BAD_REQUEST = 3
    INTERNAL = 4
    UNAUTHENTICATED = 5
    UNAUTHORIZED = 6
    CONFLICT = 7
    QUOTA_EXCEEDED = 8


# (gRPC status code, HTTP status) for each kind
_STATUS_MAP: Final[Mapping[ErrorCode, tuple[grpc.StatusCode, int]]] = {
    ErrorCode.UNKNOWN: (grpc.StatusCode.UNKNOWN, 500),
    ErrorCode.NOT_FOUND: (grpc.StatusCode.NOT_FOUND, 404),
    ErrorCode.BAD_REQUEST: (grpc.StatusCode.INVALID_ARGUMENT, 400),
    ErrorCode.INTERNAL: (grpc.StatusCode.INTERNAL, 500),
    ErrorCode.UNAUTHENTICATED: (grpc.StatusCode.UNAUTHENTICATED, 401),
    ErrorCode.UNAUTHORIZED: (grpc.StatusCode.PERMISSION_DENIED, 403),
    ErrorCode.CONFLICT: (grpc.StatusCode.ALREADY_EXISTS, 409),
    ErrorCode.QUOTA_EXCEEDED: (grpc.StatusCode.RESOURCE_EXHAUSTED, 429),
}


def coerce_code(code: int) -> ErrorCode:
    """Map any integer to an error kind; unrecognised values are UNKNOWN."""
    try:
        return ErrorCode(code)
    except ValueError:
        return ErrorCode.UNKNOWN


def status_for_code(code: int) -> tuple[grpc.StatusCode, int]:
    """Return the (gRPC status code, HTTP status) pair for an error kind."""
    return _STATUS_MAP[coerce_code(code)]


def build_rpc_status(
    grpc_code: grpc.StatusCode,
    message: str,
    *details: Any,
) -> status_pb2.Status:
    """Build a google.rpc.Status with each detail message packed into an Any."""
    status = status_pb2.Status(code=grpc_code.value[0], message=message)
    for detail in details:
        status.details.add().Pack(detail)
    return status


class StandardError(Exception):
    """
    Base class for classified errors.

    Attributes:
        code: The error kind
        message: Stable, human-readable message
        original: Underlying cause, if any

    Usage:
        try:
            ...
        except OSError as e:
            raise InternalError("could not open file", original=e) from e

        # In a gRPC servicer
        except StandardError as e:
            context.abort_with_status(e.to_status())
    """

    code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(
        self,
        message: str,
        *,
        code: Optional[int] = None,
        original: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        if code is not None:
            self.code = coerce_code(code)
        self.message = message
        self.original = original

    def __str__(self) -> str:
        if self.original is not None:
            return f"code: {int(self.code)}, message: {self.message}, original error: {self.original}"
        return f"code: {int(self.code)}, message: {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code.name}, message={self.message!r})"

    @property
    def grpc_code(self) -> grpc.StatusCode:
        return status_for_code(self.code)[0]

    @property
    def http_status(self) -> int:
        return status_for_code(self.code)[1]

    def to_rpc_status(self) -> status_pb2.Status:
        """
        Build the google.rpc.Status for this error.

        An ErrorInfo detail (reason and custom_code) is attached only when
        an original cause is known.
        """
        details = []
        if self.original is not None:
            details.append(
                error_details_pb2.ErrorInfo(
                    reason=str(self.original),
                    metadata={"custom_code": str(int(self.code))},
                )
            )
        return build_rpc_status(self.grpc_code, self.message, *details)

    def to_status(self) -> grpc.Status:
        """Build a grpc.Status suitable for ServicerContext.abort_with_status()."""
        return rpc_status.to_status(self.to_rpc_status())

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation."""
        return {
            "error_code": int(self.code),
            "message": self.message,
            "original_error": str(self.original) if self.original is not None else None,
        }


class UnknownError(StandardError):
    code = ErrorCode.UNKNOWN


class NotFoundError(StandardError):
    code = ErrorCode.NOT_FOUND


class BadRequestError(StandardError):
    """Raised when caller-supplied input is malformed."""

    code = ErrorCode.BAD_REQUEST


class InternalError(StandardError):
    """Raised for operational failures not attributable to caller input."""

    code = ErrorCode.INTERNAL


class UnauthenticatedError(StandardError):
    code = ErrorCode.UNAUTHENTICATED


class UnauthorizedError(StandardError):
    code = ErrorCode.UNAUTHORIZED


class ConflictError(StandardError):
    code = ErrorCode.CONFLICT


class QuotaExceededError(StandardError):
    code = ErrorCode.QUOTA_EXCEEDED


_ERROR_CLASSES: Final[Mapping[ErrorCode, type[StandardError]]] = {
    cls.code: cls
    for cls in (
        UnknownError,
        NotFoundError,
        BadRequestError,
        InternalError,
        UnauthenticatedError,
        UnauthorizedError,
        ConflictError,
        QuotaExceededError,
    )
}


def wrap_error(
    original: Optional[BaseException],
    code: int,
    message: str,
    *args: Any,
) -> StandardError:
    """
    Classify a failure, keeping its cause.

    Args:
        original: Underlying exception (may be None)
        code: The error kind (unrecognised values become UNKNOWN)
        message: Message, %-formatted with args when args are given
        *args: Format arguments

    Returns:
        The StandardError subclass matching code. The returned error has
        ``__cause__`` set so tracebacks chain even when it is raised
        without ``from``.
    """
    if args:
        message = message % args
    error = _ERROR_CLASSES[coerce_code(code)](message, original=original)
    error.__cause__ = original
    return error


def new_error(code: int, message: str, *args: Any) -> StandardError:
    """Classify a failure that has no underlying cause."""
    return wrap_error(None, code, message, *args)
