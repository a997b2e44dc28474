from __future__ import annotations

from typing import Any, Iterable, List, Tuple

from order_api.core.validation import ValidationResult


class EntityValidationError(Exception):
    """Raised by save_changes when a staged entity fails validation."""

    def __init__(self, result: ValidationResult) -> None:
        super().__init__(result.message)
        self.result = result

    @property
    def member_names(self) -> Tuple[str, ...]:
        return self.result.member_names

    @property
    def errors(self) -> List[ValidationResult]:
        return [self.result]


class AggregateValidationError(EntityValidationError):
    """Raised when more than one validation failure was collected in a single save."""

    def __init__(self, errors: Iterable[ValidationResult]) -> None:
        self._errors = list(errors)
        members: List[str] = []
        for err in self._errors:
            members.extend(m for m in err.member_names if m not in members)
        super().__init__(ValidationResult("Entity validation failed", tuple(members)))

    @property
    def errors(self) -> List[ValidationResult]:
        return list(self._errors)

    def __str__(self) -> str:
        return "Entity validation failed: " + "; ".join(e.message for e in self._errors)


class ConcurrencyConflictError(Exception):
    """The stored concurrency token no longer matches the one the update was based on."""

    def __init__(self, message: str, entity_type: str | None = None, entity_id: Any = None) -> None:
        super().__init__(message)
        self.entity_type = entity_type
        self.entity_id = entity_id


class InvalidOperationError(Exception):
    """An operation was called with arguments that cannot be satisfied."""
