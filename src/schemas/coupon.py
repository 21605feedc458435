"""Coupon Pydantic schemas."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.core.money import to_money
from src.models.coupon import WooCoupon

DiscountType = Literal["fixed_cart", "percent", "fixed_product"]


class Coupon(BaseModel):
    """Full coupon definition as needed to validate and apply it."""

    model_config = ConfigDict(from_attributes=True)

    code: str = Field(description="Coupon code (case-sensitive match key)")
    description: str = Field(default="", description="Customer-facing description")
    discount_type: DiscountType = Field(description="How the discount value is applied")
    discount_value: Decimal = Field(ge=0, description="Discount amount or percentage")
    free_shipping: bool = Field(default=False, description="Whether the coupon zeroes shipping")
    expires_on: datetime | None = Field(default=None, description="Expiry timestamp; None never expires")
    min_spend: Decimal = Field(default=Decimal("0"), ge=0, description="Minimum subtotal; 0 disables")
    max_spend: Decimal = Field(default=Decimal("0"), ge=0, description="Maximum subtotal; 0 disables")
    products_included: list[int] = Field(default_factory=list, description="Allow-listed product IDs")
    products_excluded: list[int] = Field(default_factory=list, description="Excluded product IDs")
    categories_included: list[int] = Field(default_factory=list, description="Allow-listed category IDs")
    categories_excluded: list[int] = Field(default_factory=list, description="Excluded category IDs")
    usage_count: int = Field(default=0, ge=0, description="Times used across all customers")
    usage_limit: int | None = Field(default=None, description="Global usage limit; None/0 is unlimited")
    usage_limit_per_user: int | None = Field(default=None, description="Per-customer limit; None/0 is unlimited")
    used_by: list[str] = Field(default_factory=list, description="Emails of customers who used the coupon")

    @field_validator("expires_on")
    @classmethod
    def assume_utc(cls, value: datetime | None) -> datetime | None:
        """Treat naive expiry timestamps as UTC."""
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @classmethod
    def from_woocommerce(cls, data: WooCoupon) -> "Coupon":
        """Build a coupon from a commerce backend coupon record.

        Args:
            data: Raw coupon as returned by the coupon lookup.

        Returns:
            Coupon: Normalized coupon definition.
        """
        expires = data.get("date_expires_gmt") or data.get("date_expires")
        return cls(
            code=data["code"],
            description=data.get("description") or "",
            discount_type=data.get("discount_type", "fixed_cart"),
            discount_value=to_money(data.get("amount")),
            free_shipping=bool(data.get("free_shipping", False)),
            expires_on=expires,
            min_spend=to_money(data.get("minimum_amount")),
            max_spend=to_money(data.get("maximum_amount")),
            products_included=data.get("product_ids") or [],
            products_excluded=data.get("excluded_product_ids") or [],
            categories_included=data.get("product_categories") or [],
            categories_excluded=data.get("excluded_product_categories") or [],
            usage_count=data.get("usage_count") or 0,
            usage_limit=data.get("usage_limit"),
            usage_limit_per_user=data.get("usage_limit_per_user"),
            used_by=data.get("used_by") or [],
        )


class CouponValidation(BaseModel):
    """Outcome of validating a coupon against a checkout snapshot."""

    is_valid: bool = Field(description="Whether the coupon can be applied")
    message: str = Field(default="", description="Customer-facing reason when invalid")


class AppliedCoupon(BaseModel):
    """Evaluated effect of a coupon on the checkout.

    Only this reduced form is persisted, never the full definition.
    """

    model_config = ConfigDict(from_attributes=True)

    code: str = Field(description="Coupon code")
    description: str = Field(default="", description="Customer-facing description")
    discount: Decimal = Field(ge=0, description="Computed discount amount")
    free_shipping: bool = Field(default=False, description="Whether shipping is zeroed")
