"""Payment API routes."""

from fastapi import APIRouter, status

from src.api.middleware.error_handler import APIError
from src.schemas.checkout import PaymentIntentCreate, PaymentIntentResponse
from src.services.payment_service import PaymentService

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post(
    "/intents",
    response_model=PaymentIntentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a payment intent",
    description="Creates a payment intent for an existing order and returns its client secret.",
)
async def create_payment_intent(data: PaymentIntentCreate) -> PaymentIntentResponse:
    """Create a payment intent tied to an order.

    Args:
        data: Amount in minor units, currency and order ID.

    Returns:
        PaymentIntentResponse: The client secret for confirmation.

    Raises:
        APIError: 503 if payments are not configured.
    """
    service = PaymentService()
    try:
        client_secret = await service.create_payment_intent(data.amount, data.currency, data.order_id)
    except ValueError as e:
        raise APIError(
            str(e),
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_type="service_unavailable",
        ) from e
    return PaymentIntentResponse(client_secret=client_secret)
