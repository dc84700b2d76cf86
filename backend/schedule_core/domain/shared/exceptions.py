"""
Domain Exceptions

Defines custom exceptions for scheduling errors with discriminated error types.
These exceptions represent business rule violations and domain constraints;
overlapping entries are never errors and are reported as conflict data instead.
"""

from datetime import date, datetime
from enum import Enum
from uuid import UUID


class ErrorType(str, Enum):
    """Error type enumeration for discriminated unions."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    INVALID_PATTERN = "invalid_pattern"
    INVALID_SCOPE = "invalid_scope"
    RANGE_TOO_LARGE = "range_too_large"
    TRANSACTION = "transaction"
    REPOSITORY = "repository"


class DomainError(Exception):
    """Base class for all domain errors with type discrimination."""

    def __init__(
        self,
        message: str,
        error_type: ErrorType,
        details: dict[str, str | int | bool | None] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.details = details or {}

    def to_dict(self) -> dict[str, str | dict[str, str | int | bool | None]]:
        """Convert error to dictionary for API responses."""
        return {
            "type": self.error_type.value,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(DomainError):
    """Raised when entry field validation rules are violated."""

    def __init__(
        self,
        field_name: str,
        value: str | int | float | bool | None,
        message: str,
        error_code: str | None = None,
    ) -> None:
        self.field_name = field_name
        self.value = value
        self.error_code = error_code or "VALIDATION_ERROR"

        full_message = f"Validation failed for field '{field_name}': {message}"
        details: dict[str, str | int | bool | None] = {
            "field": field_name,
            "value": str(value) if value is not None else None,
            "error_code": self.error_code,
        }
        super().__init__(full_message, ErrorType.VALIDATION, details)

    def to_dict(self) -> dict[str, str | None]:
        """Convert to dictionary for API responses."""
        return {
            "type": self.error_type.value,
            "field": self.field_name,
            "value": str(self.value) if self.value is not None else None,
            "message": self.message,
            "error_code": self.error_code,
        }


class UnknownAssigneeError(ValidationError):
    """Raised when assigned users are not known to the assignee directory."""

    def __init__(self, user_ids: list[str]) -> None:
        self.user_ids = user_ids
        super().__init__(
            "assigned_user_ids",
            ", ".join(user_ids),
            "unknown assignees",
            "UNKNOWN_ASSIGNEE",
        )


class EntryNotFoundError(DomainError):
    """Raised when a schedule entry or occurrence does not exist."""

    def __init__(self, entry_id: UUID, anchor_date: date | None = None) -> None:
        self.entry_id = entry_id
        self.anchor_date = anchor_date
        if anchor_date is None:
            message = f"Schedule entry not found: {entry_id}"
        else:
            message = (
                f"Occurrence {anchor_date.isoformat()} of series {entry_id} not found"
            )
        details: dict[str, str | int | bool | None] = {
            "entry_id": str(entry_id),
            "anchor_date": anchor_date.isoformat() if anchor_date else None,
            "entity_type": "schedule_entry",
        }
        super().__init__(message, ErrorType.NOT_FOUND, details)


class ConflictNotFoundError(DomainError):
    """Raised when a persisted conflict record does not exist."""

    def __init__(self, conflict_id: UUID) -> None:
        self.conflict_id = conflict_id
        super().__init__(
            f"Schedule conflict not found: {conflict_id}",
            ErrorType.NOT_FOUND,
            {"conflict_id": str(conflict_id), "entity_type": "schedule_conflict"},
        )


class InvalidPatternError(DomainError):
    """Raised when a recurrence pattern violates its invariants."""

    def __init__(self, message: str, field_name: str | None = None) -> None:
        self.field_name = field_name
        super().__init__(
            f"Invalid recurrence pattern: {message}",
            ErrorType.INVALID_PATTERN,
            {"field": field_name},
        )


class InvalidScopeError(DomainError):
    """Raised when an edit scope does not apply to the referenced entry."""

    def __init__(self, entry_id: UUID, scope: str, reason: str) -> None:
        self.entry_id = entry_id
        self.scope = scope
        super().__init__(
            f"Scope '{scope}' cannot be applied to entry {entry_id}: {reason}",
            ErrorType.INVALID_SCOPE,
            {"entry_id": str(entry_id), "scope": scope},
        )


class RangeTooLargeError(DomainError):
    """Raised when a query window or expansion would exceed the configured caps."""

    def __init__(
        self,
        message: str,
        limit_type: str,
        limit_value: int,
        window_start: datetime | None = None,
        window_end: datetime | None = None,
    ) -> None:
        self.limit_type = limit_type
        self.limit_value = limit_value
        super().__init__(
            message,
            ErrorType.RANGE_TOO_LARGE,
            {
                "limit_type": limit_type,
                "limit_value": limit_value,
                "window_start": window_start.isoformat() if window_start else None,
                "window_end": window_end.isoformat() if window_end else None,
            },
        )


class TransactionFailedError(DomainError):
    """Raised when a scoped mutation could not be committed; nothing was applied."""

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        super().__init__(
            f"Transaction for '{operation}' failed and was rolled back: {reason}",
            ErrorType.TRANSACTION,
            {"operation": operation},
        )
