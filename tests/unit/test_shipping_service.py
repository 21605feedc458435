"""Unit tests for ShippingService."""

from decimal import Decimal

import pytest

from src.schemas.shipping import FlatRateTier, ShippingOptions
from src.services.shipping_service import ShippingService, is_valid_postcode


@pytest.fixture
def service() -> ShippingService:
    """Create a shipping resolver."""
    return ShippingService()


class TestPostcode:
    """Tests for postal code validation."""

    @pytest.mark.parametrize("postcode", ["62704", "00000"])
    def test_valid(self, postcode: str) -> None:
        """Test that 5-digit codes are valid."""
        assert is_valid_postcode(postcode)

    @pytest.mark.parametrize("postcode", ["", "1234", "123456", "6270A", "62704-1234", " 62704"])
    def test_invalid(self, postcode: str) -> None:
        """Test that anything else is invalid."""
        assert not is_valid_postcode(postcode)


class TestResolve:
    """Tests for resolve method."""

    @pytest.mark.parametrize("subtotal", ["0", "50", "100", "1000"])
    def test_invalid_postcode_has_no_methods(
        self, service: ShippingService, shipping_options: ShippingOptions, subtotal: str
    ) -> None:
        """Test that an invalid postal code yields nothing regardless of subtotal."""
        quote = service.resolve("ABCDE", Decimal(subtotal), shipping_options)

        assert quote.options == []

    def test_pickup_zone_with_free_shipping(
        self, service: ShippingService, shipping_options: ShippingOptions
    ) -> None:
        """Test that pickup-zone customers get free shipping and pickup, free shipping by default."""
        quote = service.resolve("90210", Decimal("50"), shipping_options)

        assert {option.id for option in quote.options} == {"free_shipping", "local_pickup"}
        default = service.default_option(quote)
        assert default.id == "free_shipping"
        assert default.cost == Decimal("0.00")

    def test_pickup_zone_without_free_shipping(
        self, service: ShippingService, shipping_options: ShippingOptions
    ) -> None:
        """Test that only local pickup is offered when the flag is off."""
        options = shipping_options.model_copy(update={"is_free_shipping_for_local_pickup": False})

        quote = service.resolve("90210", Decimal("50"), options)

        assert [option.id for option in quote.options] == ["local_pickup"]

    def test_below_every_threshold_uses_lowest_tier(
        self, service: ShippingService, shipping_options: ShippingOptions
    ) -> None:
        """Test the fallback to the lowest-threshold tier."""
        quote = service.resolve("62704", Decimal("50"), shipping_options)

        assert len(quote.options) == 1
        assert quote.options[0].id == "flat_rate"
        assert quote.options[0].cost == Decimal("10.00")
        assert quote.options[0].label == "Flat Rate - $10.00"

    def test_highest_qualifying_tier_wins(
        self, service: ShippingService, shipping_options: ShippingOptions
    ) -> None:
        """Test that the best qualifying tier applies."""
        assert service.resolve("62704", Decimal("100"), shipping_options).options[0].cost == Decimal("10.00")
        assert service.resolve("62704", Decimal("300"), shipping_options).options[0].cost == Decimal("5.00")

    def test_no_tiers_yields_no_methods(self, service: ShippingService) -> None:
        """Test that an empty table gives no flat rate."""
        quote = service.resolve("62704", Decimal("50"), ShippingOptions())

        assert quote.options == []


class TestSelect:
    """Tests for select method."""

    def test_keeps_eligible_manual_selection(
        self, service: ShippingService, shipping_options: ShippingOptions
    ) -> None:
        """Test that a manual choice survives a re-resolve while eligible."""
        quote = service.resolve("90210", Decimal("50"), shipping_options)

        assert service.select(quote, "local_pickup").id == "local_pickup"

    def test_replaces_ineligible_selection_with_default(
        self, service: ShippingService, shipping_options: ShippingOptions
    ) -> None:
        """Test that a no-longer-eligible choice falls back to the default."""
        quote = service.resolve("62704", Decimal("50"), shipping_options)

        assert service.select(quote, "local_pickup").id == "flat_rate"

    def test_nothing_eligible(self, service: ShippingService, shipping_options: ShippingOptions) -> None:
        """Test that no selection is made for an empty quote."""
        quote = service.resolve("bad", Decimal("50"), shipping_options)

        assert service.select(quote, "flat_rate") is None

    def test_flat_rate_tier_selection(self, service: ShippingService) -> None:
        """Test tier picking with unsorted tiers."""
        options = ShippingOptions(
            flat_rates=[
                FlatRateTier(subtotal_threshold=Decimal("200"), shipping_cost=Decimal("0")),
                FlatRateTier(subtotal_threshold=Decimal("0"), shipping_cost=Decimal("15")),
                FlatRateTier(subtotal_threshold=Decimal("75"), shipping_cost=Decimal("8")),
            ]
        )

        assert service.flat_rate_tier(Decimal("80"), options).shipping_cost == Decimal("8")
        assert service.flat_rate_tier(Decimal("10"), options).shipping_cost == Decimal("15")
        assert service.flat_rate_tier(Decimal("500"), options).shipping_cost == Decimal("0")
