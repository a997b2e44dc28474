"""
Entity validation primitives.

Stateless rules are plain functions returning a ValidationResult on failure and
None on success. Entities that need the database to validate themselves (e.g.
uniqueness checks) implement the DatabaseValidatable protocol; the unit of work
awaits those callbacks before committing.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, Protocol, Tuple, runtime_checkable

if TYPE_CHECKING:
    from order_api.services.base import BaseUnitOfWork


@dataclass(frozen=True)
class ValidationResult:
    """A single validation failure with the names of the offending members."""
    message: str
    member_names: Tuple[str, ...] = field(default_factory=tuple)

    def __str__(self) -> str:
        return self.message


# PUBLIC_INTERFACE
@runtime_checkable
class DatabaseValidatable(Protocol):
    """Capability implemented by entities whose validation needs database access."""

    async def validate_with_database(self, unit_of_work: "BaseUnitOfWork") -> Optional[ValidationResult]:
        ...


def required(value: Any, member: str) -> Optional[ValidationResult]:
    """Fail for None and for empty/whitespace-only strings."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return ValidationResult(f"The {member} field is required.", (member,))
    return None


def max_length(value: Any, length: int, member: str) -> Optional[ValidationResult]:
    if isinstance(value, str) and len(value) > length:
        return ValidationResult(
            f"The field {member} must be a string with a maximum length of {length}.",
            (member,),
        )
    return None


# PUBLIC_INTERFACE
def customer_nr_checksum(customer_nr: Optional[str]) -> Optional[ValidationResult]:
    """
    Validate a customer number.

    The number must consist of digits only and the sum of its digits must be
    divisible by 10, e.g. "1111111111" passes while "1234567890" (sum 45) fails.
    """
    text = customer_nr or ""
    if any(not c.isdecimal() for c in text):
        return ValidationResult("CustomerNr must contain digits only", ("customer_nr",))
    if sum(int(c) for c in text) % 10 != 0:
        return ValidationResult("CustomerNr checksum does not match", ("customer_nr",))
    return None


# PUBLIC_INTERFACE
def names_length(first_name: Optional[str], last_name: Optional[str], minimum: int = 5) -> Optional[ValidationResult]:
    """First and last name together must be at least `minimum` characters long."""
    if len(first_name or "") + len(last_name or "") < minimum:
        return ValidationResult(
            f"FirstName and LastName together must be at least {minimum} characters long",
            ("first_name", "last_name"),
        )
    return None
