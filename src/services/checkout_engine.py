"""Wiring for the checkout engine's application-scoped containers."""

import logging
from dataclasses import dataclass

from src.core.config import Settings, get_settings
from src.core.storage import JsonFileStorage, StateStorage
from src.services.cart_service import CartService
from src.services.checkout_service import CheckoutService, ShippingUpdateDebouncer
from src.services.commerce_backend import CommerceBackend, StorefrontApiClient
from src.services.order_submission_service import OrderSubmissionService
from src.services.payment_service import PaymentConfirmer, StripePaymentConfirmer

logger = logging.getLogger(__name__)


@dataclass
class CheckoutEngine:
    """The cart, checkout and submission containers sharing one storage."""

    storage: StateStorage
    backend: CommerceBackend
    cart: CartService
    checkout: CheckoutService
    submission: OrderSubmissionService
    shipping_updates: ShippingUpdateDebouncer

    async def load_shipping_options(self) -> None:
        """Fetch the shipping options table and resolve the current quote."""
        options = await self.backend.get_shipping_options()
        self.checkout.set_shipping_options(options)

    def close(self) -> None:
        """Tear down: drop any pending debounced shipping update."""
        self.shipping_updates.cancel()


def create_checkout_engine(
    storage: StateStorage | None = None,
    backend: CommerceBackend | None = None,
    confirmer: PaymentConfirmer | None = None,
    settings: Settings | None = None,
) -> CheckoutEngine:
    """Build the engine, hydrating cart and checkout from storage.

    Args:
        storage: Persistence boundary; a JSON file store under `state_dir` by default.
        backend: Commerce backend; the storefront API client by default.
        confirmer: Payment confirmation; Stripe by default.
        settings: Application settings.

    Returns:
        CheckoutEngine: Ready-to-use containers.
    """
    settings = settings or get_settings()
    storage = storage or JsonFileStorage(settings.state_dir)
    backend = backend or StorefrontApiClient(settings.storefront_api_url)
    confirmer = confirmer or StripePaymentConfirmer(settings.stripe_publishable_key)

    cart = CartService(storage)
    checkout = CheckoutService(storage)
    checkout.bind_cart(cart)
    submission = OrderSubmissionService(checkout, cart, backend, confirmer, settings=settings)
    logger.info("Checkout engine ready with %d cart line(s)", len(cart.items))
    return CheckoutEngine(
        storage=storage,
        backend=backend,
        cart=cart,
        checkout=checkout,
        submission=submission,
        shipping_updates=ShippingUpdateDebouncer(checkout, settings.shipping_debounce_seconds),
    )
