"""Pytest configuration and fixtures."""

import os
from collections.abc import Generator
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("WOOCOMMERCE_REST_API_URL", "https://shop.test/wp-json/wc/v3")
os.environ.setdefault("WOOCOMMERCE_CONSUMER_KEY", "ck_test_consumer_key")
os.environ.setdefault("WOOCOMMERCE_CONSUMER_SECRET", "cs_test_consumer_secret")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_stripe_secret_key")
os.environ.setdefault("STRIPE_PUBLISHABLE_KEY", "pk_test_stripe_publishable_key")
os.environ.setdefault("SITE_URL", "https://shop.test")


@pytest.fixture(scope="session")
def test_settings() -> Generator[Any, None, None]:
    """Provide test settings with cleared cache.

    Yields:
        Settings: Test configuration settings.
    """
    from src.core.config import get_settings

    get_settings.cache_clear()
    settings = get_settings()
    yield settings
    get_settings.cache_clear()


@pytest.fixture
def memory_storage() -> Any:
    """Provide an empty in-memory state store."""
    from src.core.storage import MemoryStorage

    return MemoryStorage()


@pytest.fixture
def shipping_options() -> Any:
    """Provide a shipping options table with two flat-rate tiers and one pickup zone."""
    from src.schemas.shipping import FlatRateTier, ShippingOptions

    return ShippingOptions(
        flat_rates=[
            FlatRateTier(subtotal_threshold=Decimal("100"), shipping_cost=Decimal("10.00")),
            FlatRateTier(subtotal_threshold=Decimal("250"), shipping_cost=Decimal("5.00")),
        ],
        local_pickup_zipcodes=["90210"],
        is_free_shipping_for_local_pickup=True,
    )


@pytest.fixture
def make_item() -> Any:
    """Factory for cart lines."""
    from src.schemas.cart import CartItem

    def _make(
        product_id: int = 1,
        price: str = "25.00",
        quantity: int = 1,
        **kwargs: Any,
    ) -> CartItem:
        return CartItem(
            id=product_id,
            name=kwargs.pop("name", f"Product {product_id}"),
            base_price=Decimal(price),
            quantity=quantity,
            **kwargs,
        )

    return _make


@pytest.fixture
def shipping_address() -> Any:
    """Provide a complete shipping address in the flat-rate zone."""
    from src.schemas.checkout import Address

    return Address(
        first_name="Jane",
        last_name="Doe",
        address_1="1 Main St",
        city="Springfield",
        state="IL",
        postcode="62704",
        country="US",
        email="jane@example.com",
    )


@pytest.fixture
def sample_order() -> dict:
    """Provide a commerce backend order response."""
    return {
        "id": 123,
        "status": "pending",
        "total": "60.00",
        "discount_total": "0.00",
        "shipping_total": "10.00",
        "billing": {"first_name": "Jane", "email": "jane@example.com"},
        "shipping": {"first_name": "Jane", "postcode": "62704"},
        "line_items": [
            {
                "id": 9001,
                "name": "Product 1",
                "product_id": 1,
                "quantity": 2,
                "total": "50.00",
                "image": {"id": 5, "src": "https://shop.test/p1.jpg"},
            }
        ],
        "shipping_lines": [{"method_id": "flat_rate", "method_title": "Flat Rate", "total": "10.00"}],
        "coupon_lines": [],
    }


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Provide a test client with the commerce backend health check stubbed.

    Yields:
        TestClient: FastAPI test client.
    """
    from src.main import app

    with patch(
        "src.api.routes.health.check_woocommerce_connection",
        new=AsyncMock(return_value={"healthy": True}),
    ):
        with TestClient(app) as test_client:
            yield test_client
