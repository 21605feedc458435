"""Commerce backend (WooCommerce REST) access for the storefront API."""

import logging
from typing import Any

import httpx

from src.core.config import get_settings
from src.core.exceptions import BackendRejectionError, CouponNotFoundError
from src.core.money import format_money
from src.core.woocommerce import create_woocommerce_client
from src.models.order import (
    WooCouponLine,
    WooLineItemPayload,
    WooOrder,
    WooOrderPayload,
    WooShippingLine,
)
from src.models.shipping import ShippingOptionsRecord
from src.schemas.checkout import CheckoutData, OrderStatusUpdateValue
from src.schemas.coupon import Coupon
from src.schemas.shipping import SHIPPING_METHOD_TITLES, ShippingOptions

logger = logging.getLogger(__name__)

PAYMENT_METHOD_TITLE = "Online Payment"


def build_order_payload(checkout: CheckoutData) -> WooOrderPayload:
    """Map the checkout aggregate to a create-order request body.

    Args:
        checkout: The checkout aggregate to place.

    Returns:
        WooOrderPayload: Body for the commerce backend's order endpoint.
    """
    line_items: list[WooLineItemPayload] = [
        {
            "product_id": item.id,
            "quantity": item.quantity,
            "variation_id": item.variation_id or 0,
            "meta_data": [
                {"key": "variations", "value": [v.model_dump(mode="json") for v in item.variations]},
                {"key": "customFields", "value": [f.model_dump(mode="json") for f in item.custom_fields]},
                {"key": "metadata", "value": item.metadata},
            ],
        }
        for item in checkout.cart_items
    ]

    shipping_lines: list[WooShippingLine] = []
    if checkout.shipping_method:
        shipping_lines.append(
            {
                "method_id": checkout.shipping_method,
                "method_title": SHIPPING_METHOD_TITLES[checkout.shipping_method],
                "total": format_money(checkout.shipping_cost),
            }
        )

    coupon_lines: list[WooCouponLine] = []
    if checkout.coupon is not None:
        coupon_lines.append({"code": checkout.coupon.code, "used_by": checkout.billing.email})

    return {
        "payment_method": checkout.payment_method,
        "payment_method_title": PAYMENT_METHOD_TITLE,
        "billing": checkout.billing.model_dump(),
        "shipping": checkout.shipping.model_dump(),
        "line_items": line_items,
        "shipping_lines": shipping_lines,
        "coupon_lines": coupon_lines,
    }


class CommerceService:
    """Service for commerce backend operations."""

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        """Initialize commerce service.

        Args:
            client: Pre-built HTTP client; a WooCommerce client is created per call otherwise.
        """
        self._client = client
        self.settings = get_settings()

    async def _send(self, method: str, path: str, **kwargs: Any) -> Any:
        if self._client is not None:
            response = await self._client.request(method, path, **kwargs)
        else:
            async with create_woocommerce_client() as client:
                response = await client.request(method, path, **kwargs)

        if response.is_error:
            message = "The store could not process this request."
            details = None
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                message = body.get("message") or message
                if body.get("code"):
                    details = [{"msg": message, "type": body["code"]}]
            logger.warning(
                "Commerce backend rejected %s %s (%d): %s",
                method,
                path,
                response.status_code,
                message,
            )
            raise BackendRejectionError(message, status_code=response.status_code, details=details)
        return response.json()

    async def get_shipping_options(self) -> ShippingOptions:
        """Fetch the shipping options table."""
        data: ShippingOptionsRecord = await self._send("GET", self.settings.shipping_options_path)
        return ShippingOptions.model_validate(data)

    async def get_coupon_by_code(self, code: str) -> Coupon:
        """Look up a coupon by its code.

        Raises:
            CouponNotFoundError: If no coupon has this code.
        """
        results = await self._send("GET", "/coupons", params={"code": code})
        # The backend filter ignores case; codes match exactly here.
        record = next((r for r in results if r.get("code") == code), None)
        if record is None:
            raise CouponNotFoundError(code)
        return Coupon.from_woocommerce(record)

    async def place_order(self, checkout: CheckoutData) -> WooOrder:
        """Create an order from the checkout aggregate.

        Raises:
            BackendRejectionError: If the commerce backend rejects the order.
        """
        order: WooOrder = await self._send("POST", "/orders", json=build_order_payload(checkout))
        logger.info("Created order %s (total %s)", order.get("id"), order.get("total"))
        return order

    async def update_order_status(self, order_id: int, status: OrderStatusUpdateValue) -> WooOrder:
        """Move an order to a new status."""
        order: WooOrder = await self._send("PUT", f"/orders/{order_id}", json={"status": status})
        logger.info("Order %s marked as %s", order_id, status)
        return order
