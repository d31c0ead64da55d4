"""Bulk quantity selector shared by every bulk command.

Commands take a plain integer: a positive count means "that many", and the
literal ``-1`` means "as many as possible".  Clients map their own modifiers
(for example 1, 10, 100 or all) onto this value; the domain never sees them.
"""

from __future__ import annotations

from dataclasses import dataclass


class InvalidQuantityError(ValueError):
    """Raised for quantities other than ``-1`` or a positive integer."""


@dataclass(frozen=True, slots=True)
class BulkResult:
    """Outcome of a bulk command.

    ``requested`` echoes the caller's selector, ``applied`` is what actually
    happened after clamping to the feasible maximum.
    """

    requested: int
    applied: int

    @property
    def clamped(self) -> bool:
        if self.requested == -1:
            return False
        return self.applied < self.requested


def validate_quantity(quantity: int) -> int:
    """Return ``quantity`` unchanged or raise :class:`InvalidQuantityError`."""

    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantityError(f"Quantity must be an integer, got {quantity!r}")
    if quantity == -1 or quantity >= 1:
        return quantity
    raise InvalidQuantityError(f"Quantity must be -1 or a positive integer, got {quantity}")


def resolve_quantity(quantity: int, available: int) -> int:
    """Clamp a quantity selector to what is ``available``."""

    validate_quantity(quantity)
    available = max(0, available)
    if quantity == -1:
        return available
    return min(quantity, available)
