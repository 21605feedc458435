"""Shipping Pydantic schemas."""

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ShippingMethodId = Literal["flat_rate", "free_shipping", "local_pickup"]

SHIPPING_METHOD_TITLES: dict[str, str] = {
    "flat_rate": "Flat Rate",
    "free_shipping": "Free Shipping",
    "local_pickup": "Local Pickup",
}


class FlatRateTier(BaseModel):
    """A flat shipping rate that applies from a subtotal threshold upward."""

    model_config = ConfigDict(from_attributes=True)

    subtotal_threshold: Decimal = Field(ge=0, description="Subtotal at which this tier starts")
    shipping_cost: Decimal = Field(ge=0, description="Shipping cost for this tier")


class ShippingOptions(BaseModel):
    """Shipping options table served by the commerce backend."""

    model_config = ConfigDict(from_attributes=True)

    flat_rates: list[FlatRateTier] = Field(default_factory=list, description="Threshold-tiered flat rates")
    local_pickup_zipcodes: list[str] = Field(default_factory=list, description="Pickup-eligible postal codes")
    is_free_shipping_for_local_pickup: bool = Field(
        default=False, description="Whether pickup-zone customers also get free shipping"
    )


class ShippingOption(BaseModel):
    """One shipping method eligible for the current address and subtotal."""

    model_config = ConfigDict(from_attributes=True)

    id: ShippingMethodId = Field(description="Shipping method tag")
    label: str = Field(description="Display label including cost")
    cost: Decimal = Field(ge=0, description="Shipping cost")


class ShippingQuote(BaseModel):
    """Eligible shipping methods for a postal code and subtotal."""

    model_config = ConfigDict(from_attributes=True)

    postcode: str = Field(description="Postal code the quote was computed for")
    subtotal: Decimal = Field(description="Subtotal the quote was computed for")
    options: list[ShippingOption] = Field(default_factory=list, description="Eligible methods")

    def get(self, method_id: str | None) -> ShippingOption | None:
        """Get an eligible option by tag."""
        for option in self.options:
            if option.id == method_id:
                return option
        return None


class ShippingQuoteRequest(BaseModel):
    """Schema for POST /shipping/quote."""

    postcode: str = Field(description="Destination postal code")
    subtotal: Decimal = Field(ge=0, description="Current cart subtotal")
