"""Coupon payload type definitions for the commerce backend."""

from typing import TypedDict


class WooCoupon(TypedDict, total=False):
    """Coupon as returned by the commerce backend's coupon lookup.

    Amounts are decimal strings; unset limits are null.
    """

    id: int
    code: str
    amount: str
    discount_type: str
    description: str
    date_expires: str | None
    date_expires_gmt: str | None
    usage_count: int
    usage_limit: int | None
    usage_limit_per_user: int | None
    used_by: list[str]
    free_shipping: bool
    minimum_amount: str
    maximum_amount: str
    product_ids: list[int]
    excluded_product_ids: list[int]
    product_categories: list[int]
    excluded_product_categories: list[int]
