"""Order payload type definitions for the commerce backend."""

from typing import Any, Literal, TypedDict


# Order status values understood by the commerce backend
OrderStatus = Literal["pending", "processing", "on-hold", "completed", "cancelled", "refunded", "failed"]


class WooMetaData(TypedDict):
    """A single key/value metadata entry attached to a line item."""

    key: str
    value: Any


class WooLineItemPayload(TypedDict):
    """Line item as sent when creating an order."""

    product_id: int
    quantity: int
    variation_id: int
    meta_data: list[WooMetaData]


class WooShippingLine(TypedDict):
    """Shipping line as sent when creating an order."""

    method_id: str
    method_title: str
    total: str


class WooCouponLine(TypedDict, total=False):
    """Coupon line on an order.

    `used_by` is only sent on create; responses carry `discount`.
    """

    code: str
    used_by: str
    discount: str


class WooOrderPayload(TypedDict):
    """Body of a create-order request."""

    payment_method: str
    payment_method_title: str
    billing: dict[str, str]
    shipping: dict[str, str]
    line_items: list[WooLineItemPayload]
    shipping_lines: list[WooShippingLine]
    coupon_lines: list[WooCouponLine]


class WooLineItemImage(TypedDict, total=False):
    """Image reference on a returned line item."""

    id: int
    src: str


class WooLineItem(TypedDict, total=False):
    """Line item as returned by the commerce backend."""

    id: int
    name: str
    product_id: int
    variation_id: int
    quantity: int
    total: str
    image: WooLineItemImage


class WooOrder(TypedDict, total=False):
    """Order as returned by the commerce backend.

    Only the fields the storefront reads are declared.
    """

    id: int
    status: OrderStatus
    total: str
    discount_total: str
    shipping_total: str
    billing: dict[str, str]
    shipping: dict[str, str]
    line_items: list[WooLineItem]
    shipping_lines: list[dict[str, Any]]
    coupon_lines: list[WooCouponLine]
