"""Commerce backend payload type definitions."""

from src.models.coupon import WooCoupon
from src.models.order import (
    OrderStatus,
    WooCouponLine,
    WooLineItem,
    WooLineItemPayload,
    WooOrder,
    WooOrderPayload,
    WooShippingLine,
)
from src.models.shipping import ShippingOptionsRecord

__all__ = [
    "OrderStatus",
    "ShippingOptionsRecord",
    "WooCoupon",
    "WooCouponLine",
    "WooLineItem",
    "WooLineItemPayload",
    "WooOrder",
    "WooOrderPayload",
    "WooShippingLine",
]
