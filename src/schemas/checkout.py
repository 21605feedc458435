"""Checkout and order Pydantic schemas."""

from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from src.core.money import ZERO, format_money
from src.models.order import WooOrder
from src.schemas.cart import CartItem
from src.schemas.coupon import AppliedCoupon
from src.schemas.shipping import ShippingMethodId

# Fixed for the whole store: single currency, one country
DEFAULT_COUNTRY = "US"
PAYMENT_METHOD = "stripe"

# Status values the storefront may move an order to
OrderStatusUpdateValue = Literal["processing", "cancelled"]


class Address(BaseModel):
    """Billing or shipping address with shared contact fields."""

    model_config = ConfigDict(from_attributes=True)

    first_name: str = Field(default="", description="First name")
    last_name: str = Field(default="", description="Last name")
    address_1: str = Field(default="", description="Address line 1")
    address_2: str = Field(default="", description="Address line 2")
    city: str = Field(default="", description="City")
    state: str = Field(default="", description="State/province code")
    postcode: str = Field(default="", description="Postal code")
    country: str = Field(default=DEFAULT_COUNTRY, description="Country code")
    email: str = Field(default="", description="Contact email")
    phone: str = Field(default="", description="Contact phone")


class CheckoutData(BaseModel):
    """The checkout aggregate.

    Totals are derived; they are recomputed by the checkout service after
    every price-affecting change and never set by hand.
    """

    model_config = ConfigDict(from_attributes=True)

    billing: Address = Field(default_factory=Address, description="Billing address")
    shipping: Address = Field(default_factory=Address, description="Shipping address")
    payment_method: str = Field(default=PAYMENT_METHOD, description="Payment method tag")
    shipping_method: ShippingMethodId | None = Field(default=None, description="Chosen shipping method")
    shipping_cost: Decimal = Field(default=ZERO, ge=0, description="Cost of the chosen shipping method")
    cart_items: list[CartItem] = Field(default_factory=list, description="Snapshot of the cart")
    coupon: AppliedCoupon | None = Field(default=None, description="Applied coupon effect")
    subtotal: Decimal = Field(default=ZERO, description="Sum of line prices")
    discount_total: Decimal = Field(default=ZERO, description="Coupon discount")
    tax_total: Decimal = Field(default=ZERO, description="Always zero")
    total: Decimal = Field(default=ZERO, description="subtotal + shipping_cost - discount_total")


class CheckoutState(BaseModel):
    """Everything persisted under the checkout storage key."""

    model_config = ConfigDict(from_attributes=True)

    checkout_data: CheckoutData = Field(default_factory=CheckoutData)
    billing_same_as_shipping: bool = Field(default=True)
    order_validated: bool = Field(default=False)
    payment_intent_client_secret: str | None = Field(default=None)
    email_saved: bool = Field(default=False)


class OrderSummaryLineItem(BaseModel):
    """Line item as shown on the post-payment summary."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    quantity: int
    price: str
    image: str | None = None


class OrderSummary(BaseModel):
    """Immutable snapshot of an order taken when it is created."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int = Field(description="Backend order ID")
    status: str = Field(description="Order status at creation")
    total: str = Field(description="Order total, formatted")
    shipping_cost: str = Field(description="Shipping total, formatted")
    discount_total: str = Field(description="Discount total, formatted")
    billing: dict[str, Any] = Field(default_factory=dict)
    shipping: dict[str, Any] = Field(default_factory=dict)
    line_items: list[OrderSummaryLineItem] = Field(default_factory=list)
    coupon_lines: list[dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def from_order(cls, order: WooOrder) -> "OrderSummary":
        """Snapshot a commerce backend order response.

        Args:
            order: The created order.

        Returns:
            OrderSummary: The summary to persist for the thank-you view.
        """
        shipping_lines = order.get("shipping_lines") or []
        shipping_cost = shipping_lines[0].get("total") if shipping_lines else order.get("shipping_total")
        return cls(
            id=order["id"],
            status=order.get("status", "pending"),
            total=str(order.get("total", format_money(ZERO))),
            shipping_cost=str(shipping_cost or format_money(ZERO)),
            discount_total=str(order.get("discount_total", format_money(ZERO))),
            billing=dict(order.get("billing") or {}),
            shipping=dict(order.get("shipping") or {}),
            line_items=[
                OrderSummaryLineItem(
                    id=item.get("id", 0),
                    name=item.get("name", ""),
                    quantity=item.get("quantity", 0),
                    price=str(item.get("total", "")),
                    image=(item.get("image") or {}).get("src"),
                )
                for item in order.get("line_items") or []
            ],
            coupon_lines=[dict(line) for line in order.get("coupon_lines") or []],
        )


class OrderStatusUpdate(BaseModel):
    """Schema for POST /orders/{order_id}/status."""

    status: OrderStatusUpdateValue = Field(description="New order status")


class PaymentIntentCreate(BaseModel):
    """Schema for POST /payments/intents."""

    amount: int = Field(gt=0, description="Amount in minor currency units")
    currency: str = Field(default="usd", min_length=3, max_length=3, description="ISO currency code")
    order_id: int = Field(description="Backend order the payment belongs to")


class PaymentIntentResponse(BaseModel):
    """Schema for payment intent creation response."""

    client_secret: str = Field(description="Client secret authorizing one confirmation")
