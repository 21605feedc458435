"""Commerce backend contract consumed by the checkout engine.

`StorefrontApiClient` talks to the storefront API routes over HTTP; any
other object with the same async methods can stand in for it.
"""

import logging
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from src.core.config import get_settings
from src.core.exceptions import BackendRejectionError
from src.models.order import WooOrder
from src.schemas.checkout import CheckoutData, OrderStatusUpdateValue
from src.schemas.coupon import Coupon
from src.schemas.shipping import ShippingOptions

logger = logging.getLogger(__name__)

GENERIC_REJECTION_MESSAGE = "Something went wrong. Please try again."
UNREACHABLE_MESSAGE = "Unable to reach the store. Please check your connection and try again."


class CommerceBackend(Protocol):
    """Backend operations the checkout engine depends on."""

    async def get_shipping_options(self) -> ShippingOptions: ...

    async def get_coupon_by_code(self, code: str) -> Coupon | None: ...

    async def create_order(self, checkout: CheckoutData) -> WooOrder: ...

    async def update_order_status(self, order_id: int, status: OrderStatusUpdateValue) -> None: ...

    async def create_payment_intent(self, amount: int, currency: str, order_id: int) -> str: ...


class StorefrontApiClient:
    """Async HTTP client for the storefront API."""

    def __init__(
        self,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Storefront API base URL; defaults to settings.
            client: Pre-built HTTP client, e.g. one with a mock transport.
        """
        settings = get_settings()
        self.client = client or httpx.AsyncClient(
            base_url=(base_url or settings.storefront_api_url).rstrip("/"),
            timeout=settings.request_timeout_seconds,
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "StorefrontApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            logger.warning("Storefront API %s %s unreachable: %s", method, path, str(e))
            raise BackendRejectionError(UNREACHABLE_MESSAGE) from e
        return response

    @staticmethod
    def _rejection(response: httpx.Response) -> BackendRejectionError:
        """Map a non-success response to a rejection carrying the backend's message."""
        message = GENERIC_REJECTION_MESSAGE
        details = None
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("message") or message
            details = body.get("details")
        return BackendRejectionError(message, status_code=response.status_code, details=details)

    def _check(self, response: httpx.Response) -> httpx.Response:
        if response.is_success:
            return response
        error = self._rejection(response)
        logger.warning(
            "Storefront API rejected %s %s (%d): %s",
            response.request.method,
            response.request.url.path,
            response.status_code,
            error.message,
        )
        raise error

    async def get_shipping_options(self) -> ShippingOptions:
        """Fetch the shipping options table."""
        response = self._check(await self._request("GET", "/shipping/options"))
        return ShippingOptions.model_validate(response.json())

    async def get_coupon_by_code(self, code: str) -> Coupon | None:
        """Look up a coupon by code.

        Returns:
            Coupon | None: The coupon, or None when the code is unknown.
        """
        response = await self._request("GET", f"/coupons/{quote(code, safe='')}")
        if response.status_code == 404:
            return None
        return Coupon.model_validate(self._check(response).json())

    async def create_order(self, checkout: CheckoutData) -> WooOrder:
        """Create an order from the checkout aggregate.

        Raises:
            BackendRejectionError: If the order is rejected.
        """
        response = await self._request("POST", "/orders", json=checkout.model_dump(mode="json"))
        return self._check(response).json()

    async def update_order_status(self, order_id: int, status: OrderStatusUpdateValue) -> None:
        """Move an order to `processing` or `cancelled`."""
        response = await self._request("POST", f"/orders/{order_id}/status", json={"status": status})
        self._check(response)

    async def create_payment_intent(self, amount: int, currency: str, order_id: int) -> str:
        """Create a payment intent for an order.

        Args:
            amount: Amount in minor currency units.
            currency: ISO currency code.
            order_id: Backend order the payment belongs to.

        Returns:
            str: The client secret.
        """
        response = await self._request(
            "POST",
            "/payments/intents",
            json={"amount": amount, "currency": currency, "order_id": order_id},
        )
        return self._check(response).json()["client_secret"]
