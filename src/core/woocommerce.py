"""WooCommerce REST API client factory."""

from typing import Any

import httpx

from src.core.config import get_settings


def create_woocommerce_client() -> httpx.AsyncClient:
    """Create an async HTTP client for the WooCommerce REST API.

    Authentication uses consumer key/secret query parameters, which
    WooCommerce accepts over HTTPS. Callers own the client and should use
    it as an async context manager.

    Returns:
        httpx.AsyncClient: Client bound to the REST base URL.
    """
    settings = get_settings()
    return httpx.AsyncClient(
        base_url=settings.woocommerce_rest_api_url.rstrip("/"),
        params={
            "consumer_key": settings.woocommerce_consumer_key,
            "consumer_secret": settings.woocommerce_consumer_secret,
        },
        headers={"Content-Type": "application/json"},
        timeout=settings.request_timeout_seconds,
    )


async def check_woocommerce_connection() -> dict[str, Any]:
    """Check if the commerce backend is reachable.

    Returns:
        dict: Connection status with 'healthy' boolean and optional 'error' message.
    """
    try:
        async with create_woocommerce_client() as client:
            response = await client.get("/products", params={"per_page": 1})
            response.raise_for_status()
        return {"healthy": True}
    except Exception as e:
        return {"healthy": False, "error": str(e)}
