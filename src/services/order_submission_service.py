"""Order submission and payment orchestration.

Drives one checkout through order creation, payment intent creation and
payment confirmation:

    idle -> order_creating -> order_created -> confirming -> succeeded
                                                         -> awaiting_action -> confirming
                                                         -> failed -> confirming (retry)
    failed | awaiting_action | order_created -> cancelling -> cancelled

Every backend or processor failure is caught at the transition that issued
the call and mapped to ``failed`` with a customer-facing message. Only
calling an action from a state that does not allow it raises.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, Field

from src.core.config import Settings, get_settings
from src.core.exceptions import CheckoutError, IntegrationInconsistencyError, InvalidTransitionError
from src.core.money import to_minor_units
from src.schemas.checkout import OrderSummary
from src.services.cart_service import CartService
from src.services.checkout_service import CheckoutService
from src.services.commerce_backend import CommerceBackend
from src.services.payment_service import PaymentConfirmation, PaymentConfirmer

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SubmissionState(str, Enum):
    """Order submission states."""

    IDLE = "idle"
    ORDER_CREATING = "order_creating"
    ORDER_CREATED = "order_created"
    CONFIRMING = "confirming"
    AWAITING_ACTION = "awaiting_action"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLING = "cancelling"
    CANCELLED = "cancelled"


class FailureKind(str, Enum):
    """Why a submission is in the failed state."""

    ORDER_REJECTED = "order_rejected"
    PAYMENT_INTENT = "payment_intent"
    PAYMENT = "payment"
    TIMEOUT = "timeout"
    INTEGRATION_INCONSISTENCY = "integration_inconsistency"


class SubmissionStatus(BaseModel):
    """Snapshot of the orchestrator, as shown to the customer."""

    state: SubmissionState = Field(default=SubmissionState.IDLE)
    order_id: int | None = Field(default=None, description="Backend order, once created")
    message: str | None = Field(default=None, description="Status or error message")
    retryable: bool = Field(default=False, description="Whether retry() is offered")
    failure_kind: FailureKind | None = Field(default=None)
    next_action_url: str | None = Field(default=None, description="Processor authentication redirect")

    @property
    def can_cancel(self) -> bool:
        """Whether cancel() is offered."""
        if self.order_id is None:
            return False
        if self.state == SubmissionState.FAILED:
            # The card was charged; only the status update may be retried.
            return self.failure_kind != FailureKind.INTEGRATION_INCONSISTENCY
        return self.state in (SubmissionState.AWAITING_ACTION, SubmissionState.ORDER_CREATED)


class _StepFailed(Exception):
    """A backend or processor call failed; carries the customer-facing message."""

    def __init__(self, message: str, timed_out: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self.timed_out = timed_out


StatusListener = Callable[[SubmissionStatus], None]


class OrderSubmissionService:
    """State machine placing an order and collecting its payment."""

    def __init__(
        self,
        checkout: CheckoutService,
        cart: CartService,
        backend: CommerceBackend,
        confirmer: PaymentConfirmer,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            checkout: The checkout aggregate to submit.
            cart: Cart ledger, cleared on success or cancellation.
            backend: Commerce backend for orders and payment intents.
            confirmer: Client-side payment confirmation.
            settings: Application settings; defaults to the cached settings.
        """
        self.checkout = checkout
        self.cart = cart
        self.backend = backend
        self.confirmer = confirmer
        self.settings = settings or get_settings()
        self._status = SubmissionStatus()
        self._lock = asyncio.Lock()
        self._listeners: list[StatusListener] = []
        self._amount: int | None = None
        self._payment_method_id: str | None = None
        self._client_secret: str | None = None
        self._client_secret_order_id: int | None = None

    @property
    def status(self) -> SubmissionStatus:
        return self._status.model_copy()

    @property
    def state(self) -> SubmissionState:
        return self._status.state

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Register a callback invoked after every transition."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _transition(self, state: SubmissionState, **fields: Any) -> SubmissionStatus:
        previous = self._status.state
        self._status = SubmissionStatus(state=state, order_id=fields.pop("order_id", self._status.order_id), **fields)
        logger.info(
            "Order submission %s -> %s (order %s)",
            previous.value,
            state.value,
            self._status.order_id,
        )
        return self._publish()

    def _publish(self) -> SubmissionStatus:
        snapshot = self.status
        for listener in self._listeners:
            listener(snapshot)
        return snapshot

    def _fail(self, kind: FailureKind, message: str, retryable: bool) -> SubmissionStatus:
        if kind == FailureKind.INTEGRATION_INCONSISTENCY:
            logger.error(
                "Payment succeeded but order %s was not updated: %s",
                self._status.order_id,
                message,
            )
        else:
            logger.warning("Order submission failed (%s): %s", kind.value, message)
        return self._transition(
            SubmissionState.FAILED,
            failure_kind=kind,
            message=message,
            retryable=retryable,
        )

    async def _call(self, call: Awaitable[T], timeout: float, action: str) -> T:
        """Await a backend/processor call, mapping every failure to `_StepFailed`."""
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError as e:
            raise _StepFailed(f"{action} timed out. Please try again.", timed_out=True) from e
        except CheckoutError as e:
            raise _StepFailed(e.message) from e
        except Exception as e:
            logger.exception("Unexpected error during %s", action.lower())
            raise _StepFailed(f"{action} failed. Please try again.") from e

    # --- Actions ---

    async def submit(self, payment_method_id: str) -> SubmissionStatus:
        """Place the order and pay for it.

        Local validation failures leave the state unchanged with the reason
        in the status message; no backend call is made.

        Args:
            payment_method_id: Payment method collected by the payment form.

        Returns:
            SubmissionStatus: Status after the attempt settles.

        Raises:
            InvalidTransitionError: If an order is already in progress.
        """
        async with self._lock:
            allowed = (SubmissionState.IDLE, SubmissionState.CANCELLED, SubmissionState.SUCCEEDED)
            resubmittable = (
                self._status.state == SubmissionState.FAILED
                and self._status.failure_kind == FailureKind.ORDER_REJECTED
            )
            if self._status.state not in allowed and not resubmittable:
                raise InvalidTransitionError(f"Cannot submit from state {self._status.state.value}")

            problem = self._precondition_problem(payment_method_id)
            if problem is not None:
                logger.info("Order submission blocked: %s", problem)
                self._status = self._status.model_copy(update={"message": problem})
                return self._publish()

            with self.checkout.locked_for_submission():
                return await self._create_and_confirm(payment_method_id)

    def _precondition_problem(self, payment_method_id: str) -> str | None:
        if not self.confirmer.ready:
            return "Payment is still loading. Please wait a moment."
        if not payment_method_id or not payment_method_id.strip():
            return "Please complete your payment details."
        if not CheckoutService.is_order_valid(self.checkout.data):
            return "Please complete your contact and shipping details."
        return None

    async def _create_and_confirm(self, payment_method_id: str) -> SubmissionStatus:
        snapshot = self.checkout.calculate_totals()
        self._payment_method_id = payment_method_id
        self._client_secret = None
        self._client_secret_order_id = None
        self._transition(SubmissionState.ORDER_CREATING, order_id=None)

        try:
            order = await self._call(
                self.backend.create_order(snapshot),
                self.settings.request_timeout_seconds,
                "Order submission",
            )
        except _StepFailed as e:
            return self._fail(FailureKind.ORDER_REJECTED, e.message, retryable=False)

        summary = OrderSummary.from_order(order)
        self.checkout.store_order_summary(summary)
        self._amount = to_minor_units(snapshot.total)
        self._transition(SubmissionState.ORDER_CREATED, order_id=summary.id, message="Processing Payment...")
        return await self._confirm()

    async def _payment_client_secret(self, order_id: int) -> str:
        """Client secret for the order's payment intent, created at most once per order."""
        if self._client_secret is not None and self._client_secret_order_id == order_id:
            return self._client_secret
        secret = await self._call(
            self.backend.create_payment_intent(self._amount, self.settings.currency, order_id),
            self.settings.request_timeout_seconds,
            "Payment setup",
        )
        self._client_secret = secret
        self._client_secret_order_id = order_id
        self.checkout.set_payment_intent_client_secret(secret)
        return secret

    async def _confirm(self) -> SubmissionStatus:
        order_id = self._status.order_id
        self._transition(SubmissionState.CONFIRMING, message="Processing Payment...")
        try:
            secret = await self._payment_client_secret(order_id)
        except _StepFailed as e:
            kind = FailureKind.TIMEOUT if e.timed_out else FailureKind.PAYMENT_INTENT
            return self._fail(kind, e.message, retryable=True)

        try:
            confirmation = await self._call(
                self.confirmer.confirm(secret, self.settings.return_url, self._payment_method_id),
                self.settings.payment_confirmation_timeout_seconds,
                "Payment confirmation",
            )
        except _StepFailed as e:
            kind = FailureKind.TIMEOUT if e.timed_out else FailureKind.PAYMENT
            return self._fail(kind, e.message, retryable=True)
        return await self._handle_confirmation(confirmation)

    async def _handle_confirmation(self, confirmation: PaymentConfirmation) -> SubmissionStatus:
        if confirmation.status == "succeeded":
            return await self._complete()
        if confirmation.status == "requires_action":
            return self._transition(
                SubmissionState.AWAITING_ACTION,
                message="Payment requires additional action...",
                next_action_url=confirmation.next_action_url,
            )
        return self._fail(
            FailureKind.PAYMENT,
            confirmation.error_message or "Payment Failed",
            retryable=True,
        )

    async def _complete(self) -> SubmissionStatus:
        order_id = self._status.order_id
        try:
            await self._call(
                self.backend.update_order_status(order_id, "processing"),
                self.settings.request_timeout_seconds,
                "Order update",
            )
        except _StepFailed:
            error = IntegrationInconsistencyError(order_id)
            return self._fail(FailureKind.INTEGRATION_INCONSISTENCY, error.message, retryable=True)

        self.cart.clear()
        self.checkout.reset()
        self._client_secret = None
        self._client_secret_order_id = None
        return self._transition(SubmissionState.SUCCEEDED, message="Payment successful.")

    async def retry(self, payment_method_id: str | None = None) -> SubmissionStatus:
        """Retry after a retryable failure, reusing the existing order.

        After an integration inconsistency only the order status update is
        retried; the payment is never confirmed twice.

        Args:
            payment_method_id: Replacement payment method, if the customer changed it.

        Raises:
            InvalidTransitionError: If the current state offers no retry.
        """
        async with self._lock:
            if self._status.state != SubmissionState.FAILED or not self._status.retryable:
                raise InvalidTransitionError(f"Cannot retry from state {self._status.state.value}")
            with self.checkout.locked_for_submission():
                if self._status.failure_kind == FailureKind.INTEGRATION_INCONSISTENCY:
                    return await self._complete()
                if payment_method_id:
                    self._payment_method_id = payment_method_id
                return await self._confirm()

    async def resume(self) -> SubmissionStatus:
        """Re-enter confirmation after the customer returns from additional authentication.

        Raises:
            InvalidTransitionError: If no action is awaited.
        """
        async with self._lock:
            if self._status.state != SubmissionState.AWAITING_ACTION:
                raise InvalidTransitionError(f"Cannot resume from state {self._status.state.value}")
            with self.checkout.locked_for_submission():
                self._transition(SubmissionState.CONFIRMING, message="Processing Payment...")
                try:
                    confirmation = await self._call(
                        self.confirmer.retrieve(self._client_secret),
                        self.settings.payment_confirmation_timeout_seconds,
                        "Payment confirmation",
                    )
                except _StepFailed as e:
                    kind = FailureKind.TIMEOUT if e.timed_out else FailureKind.PAYMENT
                    return self._fail(kind, e.message, retryable=True)
                return await self._handle_confirmation(confirmation)

    async def cancel(self) -> SubmissionStatus:
        """Cancel the order on the backend, then clear the cart and coupon.

        Waits for any in-flight call to settle first. A failed cancellation
        restores the previous status with the error as its message, so it
        can be retried.

        Raises:
            InvalidTransitionError: If the current state offers no cancel.
        """
        async with self._lock:
            if not self._status.can_cancel:
                raise InvalidTransitionError(f"Cannot cancel from state {self._status.state.value}")
            previous = self._status
            order_id = previous.order_id
            with self.checkout.locked_for_submission():
                self._transition(SubmissionState.CANCELLING, message="Cancelling order...")
                try:
                    await self._call(
                        self.backend.update_order_status(order_id, "cancelled"),
                        self.settings.request_timeout_seconds,
                        "Order cancellation",
                    )
                except _StepFailed as e:
                    logger.warning("Failed to cancel order %s: %s", order_id, e.message)
                    self._status = previous.model_copy(update={"message": e.message})
                    return self._publish()

                self.cart.clear()
                self.checkout.remove_coupon()
                self.checkout.set_payment_intent_client_secret(None)
                self._client_secret = None
                self._client_secret_order_id = None
                return self._transition(SubmissionState.CANCELLED, message="Order cancelled.")
