"""Checkout engine exception taxonomy.

These never leave the engine as uncaught faults: the order submission
orchestrator catches them at each transition and maps them to a state with a
human-readable message.
"""

from typing import Any


class CheckoutError(Exception):
    """Base exception for checkout engine errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class CheckoutValidationError(CheckoutError):
    """Local field-level or aggregate-completeness failure.

    Never leaves the client; blocks the transition it guards.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class CouponNotFoundError(CheckoutError):
    """No coupon exists for the requested code."""

    def __init__(self, code: str) -> None:
        super().__init__("Invalid or expired coupon.")
        self.code = code


class BackendRejectionError(CheckoutError):
    """The commerce backend or the payment-intent endpoint returned non-success."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class PaymentProcessorError(CheckoutError):
    """Payment confirmation failed at the processor."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


class IntegrationInconsistencyError(CheckoutError):
    """Payment succeeded but the order could not be moved to a paid state."""

    def __init__(self, order_id: int) -> None:
        super().__init__(f"Payment successful, but we could not update order #{order_id}. Please contact support.")
        self.order_id = order_id


class InvalidTransitionError(CheckoutError):
    """An orchestrator action was invoked from a state that does not allow it."""
