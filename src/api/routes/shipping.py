"""Shipping API routes."""

from fastapi import APIRouter

from src.schemas.shipping import ShippingOptions, ShippingQuote, ShippingQuoteRequest
from src.services.commerce_service import CommerceService
from src.services.shipping_service import ShippingService

router = APIRouter(prefix="/shipping", tags=["shipping"])


@router.get(
    "/options",
    response_model=ShippingOptions,
    summary="Get shipping options",
    description="Returns the flat-rate tiers, pickup-zone postal codes and the pickup free-shipping flag.",
)
async def get_shipping_options() -> ShippingOptions:
    """Fetch the shipping options table from the commerce backend.

    Returns:
        ShippingOptions: The store's shipping options.
    """
    service = CommerceService()
    return await service.get_shipping_options()


@router.post(
    "/quote",
    response_model=ShippingQuote,
    summary="Quote shipping",
    description="Resolves the eligible shipping methods for a postal code and subtotal.",
)
async def quote_shipping(data: ShippingQuoteRequest) -> ShippingQuote:
    """Resolve eligible shipping methods against the current options table.

    Args:
        data: Postal code and subtotal.

    Returns:
        ShippingQuote: Eligible methods; empty for an invalid postal code.
    """
    options = await CommerceService().get_shipping_options()
    return ShippingService().resolve(data.postcode, data.subtotal, options)
