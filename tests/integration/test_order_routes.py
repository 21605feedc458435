"""Integration tests for order API endpoints."""

from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from src.core.exceptions import BackendRejectionError
from src.schemas.checkout import CheckoutData


@pytest.fixture
def checkout_payload(make_item, shipping_address) -> dict[str, Any]:
    """A complete checkout aggregate as JSON."""
    data = CheckoutData(
        billing=shipping_address,
        shipping=shipping_address,
        shipping_method="flat_rate",
        shipping_cost=Decimal("10.00"),
        cart_items=[make_item(1, "25.00", 2)],
        subtotal=Decimal("50.00"),
        total=Decimal("60.00"),
    )
    return data.model_dump(mode="json")


class TestPlaceOrder:
    """Tests for POST /api/v1/orders endpoint."""

    @patch("src.api.routes.orders.CommerceService")
    def test_creates_order(
        self, mock_service: MagicMock, client: TestClient, checkout_payload: dict, sample_order: dict
    ) -> None:
        """Test that a complete checkout creates a pending order."""
        mock_service.return_value.place_order = AsyncMock(return_value=sample_order)

        response = client.post("/api/v1/orders", json=checkout_payload)

        assert response.status_code == 201
        assert response.json()["id"] == 123
        sent = mock_service.return_value.place_order.await_args.args[0]
        assert sent.total == Decimal("60.00")
        assert sent.cart_items[0].quantity == 2

    @patch("src.api.routes.orders.CommerceService")
    def test_incomplete_checkout_rejected(
        self, mock_service: MagicMock, client: TestClient, checkout_payload: dict
    ) -> None:
        """Test that an order without a shipping city is never sent."""
        checkout_payload["shipping"]["city"] = ""

        response = client.post("/api/v1/orders", json=checkout_payload)

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"
        mock_service.return_value.place_order.assert_not_called()

    @patch("src.api.routes.orders.CommerceService")
    def test_backend_rejection_relayed(
        self, mock_service: MagicMock, client: TestClient, checkout_payload: dict
    ) -> None:
        """Test that a backend 4xx is relayed as 400 with the backend's message."""
        mock_service.return_value.place_order = AsyncMock(
            side_effect=BackendRejectionError(
                "Invalid billing email.",
                status_code=400,
                details=[{"msg": "Invalid billing email.", "type": "woocommerce_rest_invalid_email"}],
            )
        )

        response = client.post("/api/v1/orders", json=checkout_payload)

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "backend_rejection"
        assert data["message"] == "Invalid billing email."
        assert data["details"][0]["type"] == "woocommerce_rest_invalid_email"


class TestUpdateOrderStatus:
    """Tests for POST /api/v1/orders/{order_id}/status endpoint."""

    @patch("src.api.routes.orders.CommerceService")
    def test_marks_processing(self, mock_service: MagicMock, client: TestClient, sample_order: dict) -> None:
        """Test moving a paid order to processing."""
        mock_service.return_value.update_order_status = AsyncMock(
            return_value={**sample_order, "status": "processing"}
        )

        response = client.post("/api/v1/orders/123/status", json={"status": "processing"})

        assert response.status_code == 200
        assert response.json()["status"] == "processing"
        mock_service.return_value.update_order_status.assert_awaited_once_with(123, "processing")

    def test_rejects_other_statuses(self, client: TestClient) -> None:
        """Test that only processing and cancelled are accepted."""
        response = client.post("/api/v1/orders/123/status", json={"status": "completed"})

        assert response.status_code == 422
