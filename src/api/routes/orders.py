"""Order API routes."""

from typing import Any

from fastapi import APIRouter, status

from src.api.middleware.error_handler import ValidationError
from src.schemas.checkout import CheckoutData, OrderStatusUpdate
from src.services.checkout_service import CheckoutService
from src.services.commerce_service import CommerceService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Place an order",
    description="Creates a pending order on the commerce backend from the checkout aggregate.",
)
async def place_order(data: CheckoutData) -> dict[str, Any]:
    """Create an order from a complete checkout.

    Args:
        data: The checkout aggregate.

    Returns:
        dict: The order as returned by the commerce backend.

    Raises:
        ValidationError: 422 if contact, shipping or cart details are missing.
    """
    if not CheckoutService.is_order_valid(data):
        raise ValidationError("Please complete your contact and shipping details.")
    service = CommerceService()
    return dict(await service.place_order(data))


@router.post(
    "/{order_id}/status",
    summary="Update order status",
    description="Moves an order to processing after payment, or cancels it.",
)
async def update_order_status(order_id: int, data: OrderStatusUpdate) -> dict[str, Any]:
    """Update an order's status.

    Args:
        order_id: Commerce backend order ID.
        data: The new status.

    Returns:
        dict: The updated order.
    """
    service = CommerceService()
    return dict(await service.update_order_status(order_id, data.status))
