"""Stripe client configuration and singleton."""

import logging

import stripe

from src.core.config import get_settings

logger = logging.getLogger(__name__)


def configure_stripe() -> None:
    """Configure Stripe SDK with API key from settings.

    This should be called once at application startup.
    If Stripe keys are not configured, Stripe operations will fail with clear errors.
    """
    settings = get_settings()
    if settings.stripe_secret_key:
        stripe.api_key = settings.stripe_secret_key
    else:
        logger.warning("Stripe secret key not configured. Payment intents cannot be created.")


def get_stripe() -> stripe:
    """Get the configured Stripe module.

    Returns:
        stripe: The Stripe module with API key configured.

    Note:
        Stripe SDK uses module-level configuration, so this returns
        the stripe module itself. Ensure configure_stripe() has been
        called before using Stripe API calls.
    """
    return stripe


def intent_id_from_client_secret(client_secret: str) -> str:
    """Extract the PaymentIntent ID from its client secret.

    Client secrets have the form ``pi_<id>_secret_<token>``.

    Args:
        client_secret: The PaymentIntent client secret.

    Returns:
        str: The PaymentIntent ID.

    Raises:
        ValueError: If the secret is not a PaymentIntent client secret.
    """
    intent_id, sep, _ = client_secret.partition("_secret_")
    if not sep or not intent_id.startswith("pi_"):
        raise ValueError("Malformed payment client secret")
    return intent_id
