"""Cart Pydantic schemas."""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field

from src.core.money import to_money


class VariationSelection(BaseModel):
    """A resolved variation attribute, e.g. {"name": "Pole Size", "value": "20ft"}."""

    model_config = ConfigDict(from_attributes=True)

    name: str = Field(description="Attribute name")
    value: str | None = Field(default=None, description="Selected option")


class CustomField(BaseModel):
    """Free-text customer input attached to a line (e.g. a custom size)."""

    model_config = ConfigDict(from_attributes=True)

    name: str = Field(description="Field name")
    value: str = Field(description="Customer-entered value")


class CategoryRef(BaseModel):
    """Product category tag carried on a cart line."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(description="Category ID")
    name: str = Field(default="", description="Category name")


class CartItem(BaseModel):
    """One cart line.

    The line price is always derived from base price and quantity.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(description="Product ID")
    name: str = Field(description="Display name")
    base_price: Decimal = Field(ge=0, description="Unit price")
    quantity: int = Field(default=1, ge=1, description="Units on this line")
    variations: list[VariationSelection] = Field(default_factory=list, description="Resolved selections, in order")
    variation_id: int | None = Field(default=None, description="Priced variation (SKU) ID")
    custom_fields: list[CustomField] = Field(default_factory=list, description="Free-text customer inputs")
    categories: list[CategoryRef] = Field(default_factory=list, description="Category tags")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Miscellaneous line metadata")
    image: str | None = Field(default=None, description="Thumbnail URL")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def price(self) -> Decimal:
        """Line price: base price times quantity."""
        return to_money(self.base_price * self.quantity)

    @property
    def identity(self) -> tuple[int, int]:
        """Merge key: the same product and variation are one line."""
        return (self.id, self.variation_id or 0)

    def variation_value(self, name: str) -> str | None:
        """Get the selected value for a variation attribute, if any."""
        for selection in self.variations:
            if selection.name == name:
                return selection.value
        return None
