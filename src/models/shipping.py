"""Shipping options payload type definitions."""

from typing import TypedDict


class FlatRateRecord(TypedDict):
    """One threshold-tiered flat rate."""

    subtotal_threshold: float
    shipping_cost: float


class ShippingOptionsRecord(TypedDict):
    """Shipping options table as served by the site options endpoint."""

    flat_rates: list[FlatRateRecord]
    local_pickup_zipcodes: list[str]
    is_free_shipping_for_local_pickup: bool
