"""Unit tests for payment intent creation and confirmation."""

from unittest.mock import MagicMock, patch

import pytest
import stripe

from src.core.exceptions import PaymentProcessorError
from src.services.payment_service import (
    GENERIC_PAYMENT_ERROR,
    PaymentService,
    StripePaymentConfirmer,
    confirmation_from_intent,
)

CLIENT_SECRET = "pi_123_secret_abc"


def intent(**values) -> stripe.PaymentIntent:
    """Build a PaymentIntent object without an API call."""
    return stripe.PaymentIntent.construct_from({"id": "pi_123", "object": "payment_intent", **values}, "sk_test")


class TestCreatePaymentIntent:
    """Tests for PaymentService.create_payment_intent."""

    @pytest.mark.asyncio
    @patch("src.services.payment_service.get_stripe")
    async def test_creates_intent_with_order_metadata(self, mock_stripe: MagicMock) -> None:
        """Test the amount, currency, method types and order metadata sent to Stripe."""
        mock_stripe.return_value.PaymentIntent.create.return_value = MagicMock(
            id="pi_123", client_secret=CLIENT_SECRET
        )

        secret = await PaymentService().create_payment_intent(6000, "usd", 123)

        assert secret == CLIENT_SECRET
        mock_stripe.return_value.PaymentIntent.create.assert_called_once_with(
            amount=6000,
            currency="usd",
            payment_method_types=["card", "klarna"],
            metadata={"orderId": "123"},
        )

    @pytest.mark.asyncio
    @patch("src.services.payment_service.get_stripe")
    async def test_stripe_error_maps_to_processor_error(self, mock_stripe: MagicMock) -> None:
        """Test that Stripe failures carry the user-facing message."""
        mock_stripe.return_value.PaymentIntent.create.side_effect = stripe.InvalidRequestError(
            "Amount must be at least $0.50 usd", param="amount", code="amount_too_small"
        )

        with pytest.raises(PaymentProcessorError) as exc_info:
            await PaymentService().create_payment_intent(10, "usd", 123)

        assert exc_info.value.message == "Amount must be at least $0.50 usd"
        assert exc_info.value.code == "amount_too_small"

    @pytest.mark.asyncio
    @patch("src.services.payment_service.get_settings")
    @patch("src.services.payment_service.get_stripe")
    async def test_missing_secret_key(self, mock_stripe: MagicMock, mock_settings: MagicMock) -> None:
        """Test that an unconfigured processor is reported before any call."""
        mock_settings.return_value.stripe_secret_key = ""

        with pytest.raises(ValueError):
            await PaymentService().create_payment_intent(6000, "usd", 123)

        mock_stripe.return_value.PaymentIntent.create.assert_not_called()


class TestConfirmationFromIntent:
    """Tests for confirmation_from_intent function."""

    def test_succeeded(self) -> None:
        """Test a settled payment."""
        assert confirmation_from_intent(intent(status="succeeded")).status == "succeeded"

    def test_requires_action(self) -> None:
        """Test that the authentication redirect is surfaced."""
        result = confirmation_from_intent(
            intent(
                status="requires_action",
                next_action={"type": "redirect_to_url", "redirect_to_url": {"url": "https://hooks.stripe.com/3ds"}},
            )
        )

        assert result.status == "requires_action"
        assert result.next_action_url == "https://hooks.stripe.com/3ds"

    def test_other_status_is_error(self) -> None:
        """Test that any other status is an error with the last payment error message."""
        result = confirmation_from_intent(
            intent(status="requires_payment_method", last_payment_error={"message": "Your card was declined."})
        )

        assert result.status == "error"
        assert result.error_message == "Your card was declined."

    def test_error_without_message(self) -> None:
        """Test the generic message when Stripe gives none."""
        result = confirmation_from_intent(intent(status="canceled"))

        assert result.error_message == GENERIC_PAYMENT_ERROR


class TestStripePaymentConfirmer:
    """Tests for StripePaymentConfirmer."""

    def test_ready_requires_publishable_key(self) -> None:
        """Test readiness follows the publishable key."""
        assert StripePaymentConfirmer(publishable_key="pk_test_abc").ready
        with patch("src.services.payment_service.get_settings") as mock_settings:
            mock_settings.return_value.stripe_publishable_key = ""
            assert not StripePaymentConfirmer().ready

    @pytest.mark.asyncio
    @patch("src.services.payment_service.get_stripe")
    async def test_confirm_uses_publishable_key_and_secret(self, mock_stripe: MagicMock) -> None:
        """Test that confirmation is made for the intent behind the client secret."""
        mock_stripe.return_value.PaymentIntent.confirm.return_value = intent(status="succeeded")

        result = await StripePaymentConfirmer(publishable_key="pk_test_abc").confirm(
            CLIENT_SECRET, "https://shop.test/thankyou", "pm_card_visa"
        )

        assert result.status == "succeeded"
        mock_stripe.return_value.PaymentIntent.confirm.assert_called_once_with(
            "pi_123",
            api_key="pk_test_abc",
            client_secret=CLIENT_SECRET,
            payment_method="pm_card_visa",
            return_url="https://shop.test/thankyou",
        )

    @pytest.mark.asyncio
    @patch("src.services.payment_service.get_stripe")
    async def test_confirm_reports_card_error(self, mock_stripe: MagicMock) -> None:
        """Test that a declined card is returned as an error result, not raised."""
        mock_stripe.return_value.PaymentIntent.confirm.side_effect = stripe.CardError(
            "Your card has insufficient funds.", param=None, code="card_declined"
        )

        result = await StripePaymentConfirmer(publishable_key="pk_test_abc").confirm(
            CLIENT_SECRET, "https://shop.test/thankyou", "pm_card_visa"
        )

        assert result.status == "error"
        assert result.error_message == "Your card has insufficient funds."

    @pytest.mark.asyncio
    @patch("src.services.payment_service.get_stripe")
    async def test_retrieve(self, mock_stripe: MagicMock) -> None:
        """Test fetching the outcome after authentication."""
        mock_stripe.return_value.PaymentIntent.retrieve.return_value = intent(status="succeeded")

        result = await StripePaymentConfirmer(publishable_key="pk_test_abc").retrieve(CLIENT_SECRET)

        assert result.status == "succeeded"
        mock_stripe.return_value.PaymentIntent.retrieve.assert_called_once_with(
            "pi_123", api_key="pk_test_abc", client_secret=CLIENT_SECRET
        )

    @pytest.mark.asyncio
    @patch("src.services.payment_service.get_stripe")
    async def test_confirm_surfaces_authentication_redirect(self, mock_stripe: MagicMock) -> None:
        """Test that a confirmed intent needing 3-D Secure yields its redirect."""
        mock_stripe.return_value.PaymentIntent.confirm.return_value = intent(
            status="requires_action",
            next_action={"type": "redirect_to_url", "redirect_to_url": {"url": "https://hooks.stripe.com/3ds"}},
        )

        result = await StripePaymentConfirmer(publishable_key="pk_test_abc").confirm(
            CLIENT_SECRET, "https://shop.test/thankyou", "pm_card_visa"
        )

        assert result.status == "requires_action"
        assert result.next_action_url == "https://hooks.stripe.com/3ds"

    @pytest.mark.asyncio
    @patch("src.services.payment_service.get_stripe")
    async def test_retrieve_reports_decline_message(self, mock_stripe: MagicMock) -> None:
        """Test that the processor's decline message survives a status lookup."""
        mock_stripe.return_value.PaymentIntent.retrieve.return_value = intent(
            status="requires_payment_method", last_payment_error={"message": "Your card was declined."}
        )

        result = await StripePaymentConfirmer(publishable_key="pk_test_abc").retrieve(CLIENT_SECRET)

        assert result.status == "error"
        assert result.error_message == "Your card was declined."
