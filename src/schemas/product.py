"""Product pricing Pydantic schemas.

A product's pricing strategy is a tagged variant chosen once when the
product is loaded; each variant has one evaluation function in
`src.services.pricing_service`.
"""

from decimal import Decimal
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class VariationAttribute(BaseModel):
    """One attribute/option pair defining a variation."""

    model_config = ConfigDict(from_attributes=True)

    name: str
    option: str


class ProductVariation(BaseModel):
    """A specific priced configuration (SKU) of a product."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(description="Variation ID")
    price: Decimal | None = Field(default=None, description="Variation price; None if unpriced")
    attributes: list[VariationAttribute] = Field(default_factory=list)

    def option_for(self, name: str) -> str | None:
        """Get this variation's option for an attribute, matching names case-insensitively."""
        for attr in self.attributes:
            if attr.name.lower() == name.lower():
                return attr.option
        return None


class SimplePricing(BaseModel):
    """Fixed price, no variations."""

    type: Literal["simple"] = "simple"
    price: Decimal = Field(ge=0)


class SingleVariationPricing(BaseModel):
    """One attribute ("Option") selects the variation."""

    type: Literal["single-variation"] = "single-variation"
    variations: list[ProductVariation] = Field(default_factory=list)


class ComplexVariationPricing(BaseModel):
    """Every attribute of a variation must match the selection."""

    type: Literal["complex-variation"] = "complex-variation"
    variations: list[ProductVariation] = Field(default_factory=list)


class BloxxPricing(BaseModel):
    """Interdependent shape/size/version pricing.

    Shape and size always have to match; version only where the variation
    defines one.
    """

    type: Literal["bloxx"] = "bloxx"
    variations: list[ProductVariation] = Field(default_factory=list)


PricingModel = Annotated[
    Union[SimplePricing, SingleVariationPricing, ComplexVariationPricing, BloxxPricing],
    Field(discriminator="type"),
]


class PricedSelection(BaseModel):
    """Result of evaluating a pricing model against a selection."""

    variation_id: int | None = Field(default=None, description="Matched variation, None for simple products")
    price: Decimal = Field(ge=0, description="Unit price of the selection")
