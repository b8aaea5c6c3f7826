from __future__ import annotations

from typing import Optional


class OrderCoreError(Exception):
    """Base class for errors raised by the pricing and order operations."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class OrderValidationError(OrderCoreError):
    status_code = 422

    def __init__(self, message: str, missing: Optional[list[str]] = None):
        super().__init__(message)
        self.missing = missing or []


class ProductNotFoundError(OrderCoreError):
    status_code = 404


class OrderNotFoundError(OrderCoreError):
    status_code = 404


class NoVendorAvailableError(OrderCoreError):
    status_code = 409


class NotOrderOwnerError(OrderCoreError):
    status_code = 403


class NoTransitionError(OrderCoreError):
    """The order is in a terminal status; there is nothing to advance to."""

    status_code = 409


class StaleStatusError(OrderCoreError):
    """The stored status changed between read and write."""

    status_code = 409
