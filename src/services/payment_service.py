"""Payment processor integration.

`PaymentService` runs server-side with the secret key and creates payment
intents. `StripePaymentConfirmer` runs on the checkout engine's side with
only the publishable key and a client secret, the way the payment form
confirms a payment.
"""

import asyncio
import logging
from typing import Literal, Protocol

import stripe
from pydantic import BaseModel, Field

from src.core.config import get_settings
from src.core.exceptions import PaymentProcessorError
from src.core.stripe import get_stripe, intent_id_from_client_secret

logger = logging.getLogger(__name__)

GENERIC_PAYMENT_ERROR = "Your payment could not be processed. Please try again."


class PaymentConfirmation(BaseModel):
    """Outcome of a client-side payment confirmation."""

    status: Literal["succeeded", "requires_action", "error"]
    error_message: str | None = Field(default=None, description="Processor message when status is error")
    next_action_url: str | None = Field(default=None, description="Redirect for additional authentication")


class PaymentConfirmer(Protocol):
    """Client-side payment confirmation."""

    @property
    def ready(self) -> bool: ...

    async def confirm(
        self,
        client_secret: str,
        return_url: str,
        payment_method_id: str,
    ) -> PaymentConfirmation: ...

    async def retrieve(self, client_secret: str) -> PaymentConfirmation: ...


class PaymentService:
    """Server-side payment intent creation."""

    def __init__(self) -> None:
        """Initialize payment service with the configured Stripe module."""
        self.stripe = get_stripe()
        self.settings = get_settings()

    async def create_payment_intent(self, amount: int, currency: str, order_id: int) -> str:
        """Create a payment intent tied to an order.

        Args:
            amount: Amount in minor currency units.
            currency: ISO currency code.
            order_id: Commerce backend order ID, stored in intent metadata.

        Returns:
            str: The intent's client secret.

        Raises:
            ValueError: If Stripe is not configured.
            PaymentProcessorError: If Stripe rejects the request.
        """
        if not self.settings.stripe_secret_key:
            raise ValueError("Stripe is not configured. Please set STRIPE_SECRET_KEY environment variable.")

        try:
            intent = self.stripe.PaymentIntent.create(
                amount=amount,
                currency=currency,
                payment_method_types=self.settings.payment_method_types_list,
                metadata={"orderId": str(order_id)},
            )
        except stripe.StripeError as e:
            logger.error("Stripe error creating payment intent for order %s: %s", order_id, str(e))
            raise PaymentProcessorError(
                e.user_message or GENERIC_PAYMENT_ERROR,
                code=e.code,
            ) from e

        logger.info("Created payment intent %s for order %s", intent.id, order_id)
        return intent.client_secret


def confirmation_from_intent(intent: stripe.PaymentIntent) -> PaymentConfirmation:
    """Map a PaymentIntent's status to a confirmation outcome.

    Anything other than succeeded or requires_action is an error.
    """
    if intent.status == "succeeded":
        return PaymentConfirmation(status="succeeded")
    if intent.status == "requires_action":
        next_action = getattr(intent, "next_action", None)
        redirect = getattr(next_action, "redirect_to_url", None)
        return PaymentConfirmation(status="requires_action", next_action_url=getattr(redirect, "url", None))

    last_error = getattr(intent, "last_payment_error", None)
    return PaymentConfirmation(
        status="error",
        error_message=getattr(last_error, "message", None) or GENERIC_PAYMENT_ERROR,
    )


class StripePaymentConfirmer:
    """Confirm PaymentIntents with the publishable key and a client secret."""

    def __init__(self, publishable_key: str | None = None) -> None:
        self.publishable_key = publishable_key or get_settings().stripe_publishable_key
        self.stripe = get_stripe()

    @property
    def ready(self) -> bool:
        """Whether a publishable key is available to confirm with."""
        return bool(self.publishable_key)

    async def confirm(
        self,
        client_secret: str,
        return_url: str,
        payment_method_id: str,
    ) -> PaymentConfirmation:
        """Confirm a payment.

        Processor failures are reported in the result, never raised.

        Args:
            client_secret: Secret from payment intent creation.
            return_url: Where the processor returns after additional authentication.
            payment_method_id: Payment method collected by the payment form.

        Returns:
            PaymentConfirmation: The processor's verdict.
        """
        try:
            intent = await asyncio.to_thread(
                self.stripe.PaymentIntent.confirm,
                intent_id_from_client_secret(client_secret),
                api_key=self.publishable_key,
                client_secret=client_secret,
                payment_method=payment_method_id,
                return_url=return_url,
            )
            return confirmation_from_intent(intent)
        except stripe.StripeError as e:
            logger.warning("Payment confirmation failed: %s", str(e))
            return PaymentConfirmation(status="error", error_message=e.user_message or GENERIC_PAYMENT_ERROR)

    async def retrieve(self, client_secret: str) -> PaymentConfirmation:
        """Fetch the current outcome, e.g. after returning from authentication."""
        try:
            intent = await asyncio.to_thread(
                self.stripe.PaymentIntent.retrieve,
                intent_id_from_client_secret(client_secret),
                api_key=self.publishable_key,
                client_secret=client_secret,
            )
            return confirmation_from_intent(intent)
        except stripe.StripeError as e:
            logger.warning("Payment status lookup failed: %s", str(e))
            return PaymentConfirmation(status="error", error_message=e.user_message or GENERIC_PAYMENT_ERROR)
