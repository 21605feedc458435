"""Coupon validation and discount calculation.

Pure functions of a coupon definition and a checkout snapshot; nothing here
performs I/O. Every operation returns a new checkout rather than mutating
its input.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal

from src.core.money import ZERO, to_money
from src.schemas.checkout import CheckoutData
from src.schemas.coupon import AppliedCoupon, Coupon, CouponValidation
from src.schemas.shipping import ShippingOptions
from src.services.shipping_service import ShippingService

logger = logging.getLogger(__name__)


def cart_subtotal(checkout: CheckoutData) -> Decimal:
    """Subtotal computed from the cart lines themselves, never from the cached field."""
    return to_money(sum((item.price for item in checkout.cart_items), ZERO))


class CouponService:
    """Service for validating, applying and removing coupons."""

    def __init__(self, shipping_service: ShippingService | None = None) -> None:
        """Initialize coupon service.

        Args:
            shipping_service: Resolver used to restore shipping cost on removal.
        """
        self.shipping_service = shipping_service or ShippingService()

    def validate(
        self,
        coupon: Coupon,
        checkout: CheckoutData,
        now: datetime | None = None,
    ) -> CouponValidation:
        """Check whether a coupon can be applied to a checkout.

        Rules are evaluated in a fixed order and the first failure wins.

        Args:
            coupon: The coupon definition.
            checkout: Current checkout snapshot.
            now: Evaluation time; defaults to the current UTC time.

        Returns:
            CouponValidation: Validity and, when invalid, the customer-facing reason.
        """
        now = now or datetime.now(timezone.utc)
        if coupon.expires_on is not None and now > coupon.expires_on:
            logger.info("Coupon expired: %s", coupon.code)
            return CouponValidation(is_valid=False, message="This coupon has expired.")

        subtotal = cart_subtotal(checkout)
        if coupon.min_spend > 0 and subtotal < coupon.min_spend:
            logger.info("Minimum spend not met for coupon: %s", coupon.code)
            return CouponValidation(
                is_valid=False,
                message=f"Your order must be at least ${coupon.min_spend:.2f} to use this coupon.",
            )
        if coupon.max_spend > 0 and subtotal > coupon.max_spend:
            logger.info("Maximum spend exceeded for coupon: %s", coupon.code)
            return CouponValidation(
                is_valid=False,
                message=f"This coupon can only be used on orders up to ${coupon.max_spend:.2f}.",
            )

        product_ids = {item.id for item in checkout.cart_items}
        category_ids = {category.id for item in checkout.cart_items for category in item.categories}

        if coupon.products_included and not product_ids & set(coupon.products_included):
            return CouponValidation(
                is_valid=False,
                message="This coupon is not valid for any items in your cart.",
            )
        if product_ids & set(coupon.products_excluded):
            return CouponValidation(
                is_valid=False,
                message="This coupon cannot be used with some items in your cart.",
            )
        if coupon.categories_included and not category_ids & set(coupon.categories_included):
            return CouponValidation(
                is_valid=False,
                message="This coupon is not valid for your selected product categories.",
            )
        if category_ids & set(coupon.categories_excluded):
            return CouponValidation(
                is_valid=False,
                message="This coupon cannot be used with some categories in your cart.",
            )

        if coupon.usage_limit and coupon.usage_count >= coupon.usage_limit:
            logger.info("Coupon has reached its usage limit: %s", coupon.code)
            return CouponValidation(
                is_valid=False,
                message="This coupon has reached its maximum usage limit.",
            )

        email = checkout.billing.email.strip().lower()
        user_usage = sum(1 for used in coupon.used_by if used.strip().lower() == email)
        if coupon.usage_limit_per_user and user_usage >= coupon.usage_limit_per_user:
            return CouponValidation(
                is_valid=False,
                message=(
                    "You have already used this coupon the maximum number of times "
                    f"({coupon.usage_limit_per_user})."
                ),
            )

        return CouponValidation(is_valid=True)

    def calculate_discount(self, coupon: Coupon, checkout: CheckoutData) -> Decimal:
        """Compute the discount a coupon grants, clamped to the subtotal.

        `fixed_product` applies its value as a percentage of each included
        line's price, the same as `percent` restricted to included products.
        Storefront coupons are configured against that behaviour.

        Args:
            coupon: The coupon definition.
            checkout: Current checkout snapshot.

        Returns:
            Decimal: Discount amount, 0 <= discount <= subtotal.
        """
        value = coupon.discount_value
        if coupon.discount_type == "fixed_cart":
            discount = value
        elif coupon.discount_type == "percent":
            discount = sum((item.price * value / 100 for item in checkout.cart_items), ZERO)
        else:
            included = set(coupon.products_included)
            discount = sum(
                (item.price * value / 100 for item in checkout.cart_items if item.id in included),
                ZERO,
            )
        return to_money(min(discount, cart_subtotal(checkout)))

    def apply(self, coupon: Coupon, checkout: CheckoutData) -> CheckoutData:
        """Apply a (validated) coupon and recompute totals.

        Args:
            coupon: The coupon definition.
            checkout: Current checkout snapshot.

        Returns:
            CheckoutData: Updated checkout carrying the coupon's evaluated effect.
        """
        subtotal = cart_subtotal(checkout)
        discount = self.calculate_discount(coupon, checkout)
        shipping_cost = ZERO if coupon.free_shipping else checkout.shipping_cost
        return checkout.model_copy(
            update={
                "subtotal": subtotal,
                "discount_total": discount,
                "shipping_cost": shipping_cost,
                "total": to_money(subtotal + shipping_cost - discount),
                "coupon": AppliedCoupon(
                    code=coupon.code,
                    description=coupon.description,
                    discount=discount,
                    free_shipping=coupon.free_shipping,
                ),
            },
            deep=True,
        )

    def remove(self, checkout: CheckoutData, options: ShippingOptions | None) -> CheckoutData:
        """Remove the applied coupon and restore shipping cost.

        Shipping cost is re-derived through the shipping resolver for the
        current postal code, subtotal and selected method. Without a shipping
        options table, or when no method is eligible, the current cost is kept.

        Args:
            checkout: Current checkout snapshot.
            options: Shipping options table, if loaded.

        Returns:
            CheckoutData: Updated checkout without a coupon.
        """
        subtotal = cart_subtotal(checkout)
        shipping_cost = checkout.shipping_cost
        shipping_method = checkout.shipping_method
        if options is not None and checkout.coupon is not None and checkout.coupon.free_shipping:
            quote = self.shipping_service.resolve(checkout.shipping.postcode, subtotal, options)
            selected = self.shipping_service.select(quote, checkout.shipping_method)
            if selected is not None:
                shipping_method, shipping_cost = selected.id, selected.cost
        return checkout.model_copy(
            update={
                "subtotal": subtotal,
                "discount_total": ZERO,
                "shipping_method": shipping_method,
                "shipping_cost": shipping_cost,
                "total": to_money(subtotal + shipping_cost),
                "coupon": None,
            },
            deep=True,
        )
