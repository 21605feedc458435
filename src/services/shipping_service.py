"""Shipping rate resolution.

Maps a postal code and subtotal to the eligible shipping methods and picks
the default among them.
"""

import logging
import re
from decimal import Decimal

from src.core.money import ZERO, format_money, to_money
from src.schemas.shipping import (
    SHIPPING_METHOD_TITLES,
    FlatRateTier,
    ShippingOption,
    ShippingOptions,
    ShippingQuote,
)

logger = logging.getLogger(__name__)

POSTCODE_PATTERN = re.compile(r"^\d{5}$")

# Default selection preference, best first
METHOD_PREFERENCE = ("free_shipping", "local_pickup", "flat_rate")


def is_valid_postcode(postcode: str) -> bool:
    """Check a postal code against the 5-digit pattern."""
    return bool(POSTCODE_PATTERN.match(postcode or ""))


class ShippingService:
    """Stateless shipping rate resolver over a shipping options table."""

    def flat_rate_tier(self, subtotal: Decimal, options: ShippingOptions) -> FlatRateTier | None:
        """Pick the flat-rate tier for a subtotal.

        The best qualifying tier is the one with the highest threshold not
        above the subtotal. When no tier qualifies the lowest-threshold tier
        applies.

        Args:
            subtotal: Current cart subtotal.
            options: Shipping options table.

        Returns:
            FlatRateTier | None: The applicable tier, or None if the table has no tiers.
        """
        if not options.flat_rates:
            return None
        qualifying = [tier for tier in options.flat_rates if tier.subtotal_threshold <= subtotal]
        if qualifying:
            return max(qualifying, key=lambda tier: tier.subtotal_threshold)
        return min(options.flat_rates, key=lambda tier: tier.subtotal_threshold)

    def resolve(self, postcode: str, subtotal: Decimal, options: ShippingOptions) -> ShippingQuote:
        """Compute the eligible shipping methods.

        Args:
            postcode: Destination postal code.
            subtotal: Current cart subtotal.
            options: Shipping options table.

        Returns:
            ShippingQuote: Eligible methods; empty for an invalid postal code.
        """
        quote = ShippingQuote(postcode=postcode, subtotal=to_money(subtotal))
        if not is_valid_postcode(postcode):
            return quote

        if postcode in options.local_pickup_zipcodes:
            if options.is_free_shipping_for_local_pickup:
                quote.options.append(self._option("free_shipping", ZERO))
            quote.options.append(self._option("local_pickup", ZERO))
            return quote

        tier = self.flat_rate_tier(subtotal, options)
        if tier is None:
            logger.warning("Shipping options define no flat rates; no quote for %s", postcode)
            return quote
        quote.options.append(self._option("flat_rate", tier.shipping_cost))
        return quote

    def _option(self, method_id: str, cost: Decimal) -> ShippingOption:
        cost = to_money(cost)
        return ShippingOption(
            id=method_id,
            label=f"{SHIPPING_METHOD_TITLES[method_id]} - ${format_money(cost)}",
            cost=cost,
        )

    def default_option(self, quote: ShippingQuote) -> ShippingOption | None:
        """Preferred option: free shipping, then local pickup, then flat rate."""
        for method_id in METHOD_PREFERENCE:
            option = quote.get(method_id)
            if option is not None:
                return option
        return None

    def select(self, quote: ShippingQuote, current_method: str | None) -> ShippingOption | None:
        """Reconcile a selection with a fresh quote.

        A manual selection is kept while it stays eligible (its cost is
        refreshed from the quote); otherwise the default applies.

        Args:
            quote: Freshly resolved quote.
            current_method: The currently selected method, if any.

        Returns:
            ShippingOption | None: The option to select, or None when nothing is eligible.
        """
        current = quote.get(current_method)
        if current is not None:
            return current
        return self.default_option(quote)
