"""
Request Validation Errors
=========================

Formats request-validation failures into field violations that an RPC or
HTTP layer can report as a single "invalid request" status.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

import grpc
from google.rpc import error_details_pb2, status_pb2
from grpc_status import rpc_status
from pydantic import ValidationError as PydanticValidationError

from vaultutils.errors.standard_error import ErrorCode, build_rpc_status, status_for_code


@dataclass(frozen=True, slots=True)
class FieldViolation:
    """A single invalid field and why it was rejected."""

    field: str
    description: str

    def __str__(self) -> str:
        return f"{self.field}: {self.description}"


class ValidationError(ValueError):
    """
    Raised when a request fails validation.

    Usage:
        try:
            request = CardRequest.model_validate(payload)
        except pydantic.ValidationError as e:
            raise ValidationError.from_pydantic(e) from e
    """

    def __init__(self, violations: Iterable[FieldViolation]) -> None:
        self.field_violations: tuple[FieldViolation, ...] = tuple(violations)
        super().__init__(str(self))

    def __str__(self) -> str:
        messages = [str(v) for v in self.field_violations]
        return f"validation error(s): [{', '.join(messages)}]"

    @property
    def grpc_code(self) -> grpc.StatusCode:
        return status_for_code(ErrorCode.BAD_REQUEST)[0]

    @property
    def http_status(self) -> int:
        return status_for_code(ErrorCode.BAD_REQUEST)[1]

    def to_rpc_status(self) -> status_pb2.Status:
        """Build an INVALID_ARGUMENT google.rpc.Status with a BadRequest detail."""
        bad_request = error_details_pb2.BadRequest(
            field_violations=[
                error_details_pb2.BadRequest.FieldViolation(field=v.field, description=v.description)
                for v in self.field_violations
            ]
        )
        return build_rpc_status(self.grpc_code, "invalid request", bad_request)

    def to_status(self) -> grpc.Status:
        return rpc_status.to_status(self.to_rpc_status())

    @classmethod
    def from_pydantic(cls, exc: PydanticValidationError) -> ValidationError:
        return cls(build_violations(exc))


def _format_loc(loc: Sequence[int | str]) -> str:
    """Join a pydantic error location into a dotted field path."""
    return ".".join(str(part) for part in loc) or "__root__"


def build_violations(exc: PydanticValidationError) -> list[FieldViolation]:
    """
    Convert a pydantic ValidationError into field violations.

    Args:
        exc: The error raised by pydantic model validation

    Returns:
        One FieldViolation per reported error, in pydantic's order
    """
    return [
        FieldViolation(field=_format_loc(error["loc"]), description=error["msg"])
        for error in exc.errors()
    ]
