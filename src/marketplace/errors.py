"""Error taxonomy for the order lifecycle.

Guard failures are Protean ``ValidationError`` subclasses so they carry a
``{field: [message]}`` payload and map to HTTP 400 like every other domain
rule violation. ``PersistenceUnavailable`` is raised only by backend
adapters; the core catches it and falls back to local-only mode.
"""

from protean.exceptions import ValidationError


class InvalidTransition(ValidationError):
    """The order's current status has no edge to the requested status."""


class AlreadyReviewed(ValidationError):
    """A review already exists for this order item and buyer."""


class ReturnWindowClosed(ValidationError):
    """The order is past its return window or has no date to measure from."""


class InsufficientStock(ValidationError):
    """Requested quantity exceeds the ledger-tracked available stock."""


class PersistenceUnavailable(Exception):
    """The backing store could not be reached."""

    def __init__(self, operation: str, reason: str = "") -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"{operation} failed: {reason}" if reason else f"{operation} failed")
