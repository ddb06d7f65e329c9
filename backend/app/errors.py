# Overview: Error taxonomy shared by the permission, location and lot services.

"""
Inventory error taxonomy.

Denials and stock shortfalls are reported explicitly to the caller, never
coerced into an "allow" or "success". None of these are transient, so the
services that raise them never retry.
"""

from __future__ import annotations


class InventoryError(Exception):
    """Base class for every error raised by the inventory core."""


class PermissionDenied(InventoryError):
    """
    Raised at a mutation point when the evaluator returned False.

    Carries the missing capability so the caller can show an actionable
    message ("cannot add sales at location 3").
    """

    def __init__(self, module: str, action: str, location_id: int | None = None, reason: str | None = None):
        self.module = module
        self.action = action
        self.location_id = location_id
        self.reason = reason
        message = f"Permission denied: {module}.{action}"
        if location_id is not None:
            message += f" at location {location_id}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": str(self),
            "module": self.module,
            "action": self.action,
            "location_id": self.location_id,
        }


class InsufficientStockError(InventoryError):
    """Raised when a lot decrement would take its quantity below zero."""

    def __init__(self, lot_id: int, requested: int, available: int):
        self.lot_id = lot_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock in lot {lot_id}. "
            f"Available: {available}, requested: {requested}"
        )


class ConfigurationError(InventoryError):
    """
    Unknown role, module, action, or a location that cannot be classified.

    Treated as a defect: logged by the route layer and surfaced generically.
    """


class NotFoundError(InventoryError):
    """Referenced product, lot, location or user does not exist."""
