"""Errors shared across the pickup packages.

``NonRetryableError`` marks failures that no amount of retrying can fix
(bad input, missing reference data). The host's activity retry policy gives
up on them immediately instead of burning its retry budget.
"""


class PickupError(Exception):
    """Base class for all pickup errors."""


class NonRetryableError(PickupError):
    """A failure that must not be retried."""


class NotFoundError(NonRetryableError):
    """Reference data (user, point, catalog item) does not exist."""

    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} {identifier} not found")


class InvalidOrderError(NonRetryableError):
    """Initial order data cannot produce a payable order."""


class InvalidTransitionError(PickupError):
    """An order status change that the transition graph does not allow."""
