"""Error rendering for the storefront API.

Engine exceptions, API errors and unexpected failures all reach the client as
an `ErrorResponse` body.
"""

import logging
import traceback
from typing import Any, Callable

from fastapi import HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from src.core.exceptions import (
    BackendRejectionError,
    CheckoutError,
    CheckoutValidationError,
    CouponNotFoundError,
    PaymentProcessorError,
)
from src.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base exception for API errors.

    Raised by routes and services for failures that should reach the
    client with a specific status code and message.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_type: str = "api_error",
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        """Create the error.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code to return.
            error_type: Machine-readable category, e.g. "not_found".
            details: Optional additional error details.
        """
        self.message = message
        self.status_code = status_code
        self.error_type = error_type
        self.details = details
        super().__init__(message)


class NotFoundError(APIError):
    """Resource not found error."""

    def __init__(self, message: str = "Resource not found", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_type="not_found",
            details=details,
        )


class ValidationError(APIError):
    """Request validation error."""

    def __init__(self, message: str = "Validation error", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_type="validation_error",
            details=details,
        )


class UpstreamError(APIError):
    """The commerce backend or payment processor failed or rejected a request."""

    def __init__(
        self,
        message: str = "Upstream service error",
        status_code: int = status.HTTP_502_BAD_GATEWAY,
        error_type: str = "upstream_error",
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=status_code,
            error_type=error_type,
            details=details,
        )


def api_error_from_checkout_error(error: CheckoutError) -> APIError:
    """Map a checkout engine exception to the HTTP error it surfaces as.

    Backend rejections keep the backend's message; client-side rejections
    (4xx) stay 4xx, everything else becomes a 502.
    """
    if isinstance(error, CouponNotFoundError):
        return NotFoundError(error.message)
    if isinstance(error, CheckoutValidationError):
        details = [{"loc": [error.field], "msg": error.message, "type": "value_error"}] if error.field else None
        return ValidationError(error.message, details=details)
    if isinstance(error, BackendRejectionError):
        details = error.details if isinstance(error.details, list) else None
        if error.status_code is not None and 400 <= error.status_code < 500:
            return UpstreamError(
                error.message,
                status_code=status.HTTP_400_BAD_REQUEST,
                error_type="backend_rejection",
                details=details,
            )
        return UpstreamError(error.message, error_type="backend_rejection", details=details)
    if isinstance(error, PaymentProcessorError):
        return UpstreamError(error.message, error_type="payment_error")
    return APIError(error.message)


def create_error_response(
    error_type: str,
    message: str,
    status_code: int,
    details: list[dict[str, Any]] | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    """Build the JSON body shared by every error status.

    Args:
        error_type: Error category for client handling.
        message: Human-readable error description.
        status_code: HTTP status code.
        details: Optional error details.
        request_id: Optional request ID for tracing.

    Returns:
        JSONResponse: Formatted error response.
    """
    error_response = ErrorResponse.from_exception(
        error_type=error_type,
        message=message,
        details=details,
        request_id=request_id,
    )
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json", exclude_none=True),
    )


async def error_handler_middleware(request: Request, call_next: Callable[[Request], Any]) -> Response:
    """Render any exception raised below this middleware as an ErrorResponse.

    Logs full stack traces for unexpected errors while returning safe
    messages to clients.

    Args:
        request: The incoming request.
        call_next: Next middleware or route handler.

    Returns:
        Response: Either the successful response or formatted error response.
    """
    request_id = request.headers.get("X-Request-ID")

    try:
        return await call_next(request)

    except CheckoutError as e:
        error = api_error_from_checkout_error(e)
        logger.warning(
            "Checkout error: %s - %s",
            error.error_type,
            error.message,
            extra={"request_id": request_id, "status_code": error.status_code},
        )
        return create_error_response(
            error_type=error.error_type,
            message=error.message,
            status_code=error.status_code,
            details=error.details,
            request_id=request_id,
        )

    except APIError as e:
        logger.warning(
            "API error: %s - %s",
            e.error_type,
            e.message,
            extra={"request_id": request_id, "status_code": e.status_code},
        )
        return create_error_response(
            error_type=e.error_type,
            message=e.message,
            status_code=e.status_code,
            details=e.details,
            request_id=request_id,
        )

    except HTTPException as e:
        logger.warning(
            "HTTP exception: %s - %s",
            e.status_code,
            e.detail,
            extra={"request_id": request_id},
        )
        return create_error_response(
            error_type="http_error",
            message=str(e.detail),
            status_code=e.status_code,
            request_id=request_id,
        )

    except Exception as e:
        logger.error(
            "Unhandled exception: %s\n%s",
            str(e),
            traceback.format_exc(),
            extra={"request_id": request_id},
        )
        return create_error_response(
            error_type="internal_error",
            message="An unexpected error occurred",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_id=request_id,
        )
