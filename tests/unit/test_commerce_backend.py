"""Unit tests for the storefront API client."""

import json
from decimal import Decimal

import httpx
import pytest

from src.core.exceptions import BackendRejectionError
from src.schemas.checkout import CheckoutData
from src.services.commerce_backend import (
    GENERIC_REJECTION_MESSAGE,
    UNREACHABLE_MESSAGE,
    StorefrontApiClient,
)


def api_client(handler) -> StorefrontApiClient:
    """Build a storefront client answering every request with the handler."""
    return StorefrontApiClient(
        client=httpx.AsyncClient(base_url="https://api.test/api/v1", transport=httpx.MockTransport(handler))
    )


class TestStorefrontApiClient:
    """Tests for StorefrontApiClient."""

    @pytest.mark.asyncio
    async def test_get_coupon_by_code(self) -> None:
        """Test that a found coupon is parsed."""

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v1/coupons/SAVE10"
            return httpx.Response(
                200, json={"code": "SAVE10", "discount_type": "percent", "discount_value": "10.00"}
            )

        async with api_client(handler) as client:
            coupon = await client.get_coupon_by_code("SAVE10")

        assert coupon.code == "SAVE10"
        assert coupon.discount_value == Decimal("10.00")

    @pytest.mark.asyncio
    async def test_coupon_code_is_escaped_in_path(self) -> None:
        """Test that reserved characters in a code stay part of the code."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(404, json={"message": "Coupon not found"})

        async with api_client(handler) as client:
            await client.get_coupon_by_code("SAVE?10/A#B")

        assert requests[0].url.raw_path == b"/api/v1/coupons/SAVE%3F10%2FA%23B"
        assert requests[0].url.query == b""

    @pytest.mark.asyncio
    async def test_unknown_coupon_is_none(self) -> None:
        """Test that a 404 lookup is not an error."""
        async with api_client(lambda request: httpx.Response(404, json={"message": "Coupon not found"})) as client:
            assert await client.get_coupon_by_code("NOPE") is None

    @pytest.mark.asyncio
    async def test_create_order_sends_aggregate(self, sample_order: dict, make_item) -> None:
        """Test that the aggregate is posted as JSON."""
        sent: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            sent.append(json.loads(request.content))
            return httpx.Response(201, json=sample_order)

        checkout = CheckoutData(cart_items=[make_item(1, "25.00", 2)], subtotal=Decimal("50.00"))
        async with api_client(handler) as client:
            order = await client.create_order(checkout)

        assert order["id"] == 123
        assert sent[0]["cart_items"][0]["id"] == 1
        assert sent[0]["subtotal"] == "50.00"

    @pytest.mark.asyncio
    async def test_rejection_message_from_body(self) -> None:
        """Test that the backend's own message is surfaced."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                400,
                json={
                    "error": "backend_rejection",
                    "message": "Invalid billing email.",
                    "details": [{"msg": "Invalid billing email.", "type": "invalid_email"}],
                },
            )

        async with api_client(handler) as client:
            with pytest.raises(BackendRejectionError) as exc_info:
                await client.create_order(CheckoutData())

        assert exc_info.value.message == "Invalid billing email."
        assert exc_info.value.status_code == 400
        assert exc_info.value.details[0]["type"] == "invalid_email"

    @pytest.mark.asyncio
    async def test_rejection_without_body_uses_generic_message(self) -> None:
        """Test the fallback message for an empty error response."""
        async with api_client(lambda request: httpx.Response(502)) as client:
            with pytest.raises(BackendRejectionError) as exc_info:
                await client.update_order_status(123, "processing")

        assert exc_info.value.message == GENERIC_REJECTION_MESSAGE

    @pytest.mark.asyncio
    async def test_unreachable_backend(self) -> None:
        """Test that a transport failure becomes a rejection."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with api_client(handler) as client:
            with pytest.raises(BackendRejectionError) as exc_info:
                await client.get_shipping_options()

        assert exc_info.value.message == UNREACHABLE_MESSAGE

    @pytest.mark.asyncio
    async def test_create_payment_intent(self) -> None:
        """Test that the client secret is returned."""

        def handler(request: httpx.Request) -> httpx.Response:
            assert json.loads(request.content) == {"amount": 6000, "currency": "usd", "order_id": 123}
            return httpx.Response(201, json={"client_secret": "pi_123_secret_abc"})

        async with api_client(handler) as client:
            assert await client.create_payment_intent(6000, "usd", 123) == "pi_123_secret_abc"

    @pytest.mark.asyncio
    async def test_update_order_status(self) -> None:
        """Test the status endpoint path and body."""

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "POST"
            assert request.url.path == "/api/v1/orders/123/status"
            assert json.loads(request.content) == {"status": "cancelled"}
            return httpx.Response(200, json={"id": 123, "status": "cancelled"})

        async with api_client(handler) as client:
            await client.update_order_status(123, "cancelled")
