"""Error taxonomy shared by the stores, the access policy and the services."""
from __future__ import annotations

from typing import Iterable, Optional

from pydantic import ValidationError


class ClinicBookError(Exception):
    """Base class for every error raised by the records core."""


class StorageIOError(ClinicBookError):
    """A backing file could not be read or written."""

    def __init__(self, path, cause: Optional[OSError] = None) -> None:
        self.path = path
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"I/O failure on {path}{detail}")


class AccessDenied(ClinicBookError):
    """A mutation was attempted outside the actor's scope."""

    def __init__(self, rule, message: str) -> None:
        self.rule = rule
        self.message = message
        super().__init__(message)


class ValidationFailure(ClinicBookError):
    """Caller supplied fields that do not parse; nothing was stored."""

    def __init__(self, kind: str, errors: list[dict]) -> None:
        self.kind = kind
        self.errors = errors
        fields = ", ".join(
            ".".join(str(part) for part in error.get("loc", ())) or "record"
            for error in errors
        )
        super().__init__(f"Invalid {kind} fields: {fields}")

    @classmethod
    def from_pydantic(cls, kind: str, error: ValidationError) -> "ValidationFailure":
        return cls(kind, error.errors(include_url=False))


class ReferencedRecordError(ClinicBookError):
    """Deletion blocked because other records still point at the target."""

    def __init__(self, kind: str, record_id: str, dependents: Iterable[str]) -> None:
        self.kind = kind
        self.record_id = record_id
        self.dependents = list(dependents)
        super().__init__(
            f"{kind} {record_id} is still referenced by {', '.join(self.dependents)}"
        )
