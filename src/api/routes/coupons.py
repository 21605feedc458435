"""Coupon API routes."""

from fastapi import APIRouter

from src.schemas.coupon import Coupon
from src.services.commerce_service import CommerceService

router = APIRouter(prefix="/coupons", tags=["coupons"])


@router.get(
    "/{code:path}",
    response_model=Coupon,
    responses={404: {"description": "No coupon with this code"}},
    summary="Look up a coupon",
    description="Returns the full coupon definition for a code.",
)
async def get_coupon(code: str) -> Coupon:
    """Look up a coupon by code.

    Args:
        code: The coupon code.

    Returns:
        Coupon: The coupon definition.

    Raises:
        CouponNotFoundError: Rendered as 404 when the code is unknown.
    """
    service = CommerceService()
    return await service.get_coupon_by_code(code)
