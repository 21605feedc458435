"""Checkout aggregate service.

Owns the persisted checkout record (addresses, shipping method, coupon,
cart snapshot and derived totals). Every mutator recomputes totals itself
and returns the fully updated aggregate, so callers never read a stale
discount after a change.
"""

import asyncio
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from decimal import Decimal

from pydantic import ValidationError

from src.core.exceptions import CheckoutValidationError, CouponNotFoundError
from src.core.money import ZERO, to_money
from src.core.storage import CHECKOUT_STORAGE_KEY, LATEST_ORDER_KEY, StateStorage
from src.schemas.cart import CartItem
from src.schemas.checkout import Address, CheckoutData, CheckoutState, OrderSummary
from src.schemas.coupon import Coupon, CouponValidation
from src.schemas.shipping import ShippingMethodId, ShippingOptions, ShippingQuote
from src.services.cart_service import CartService
from src.services.commerce_backend import CommerceBackend
from src.services.coupon_service import CouponService
from src.services.shipping_service import ShippingService

logger = logging.getLogger(__name__)

# Shipping fields that must be filled before payment is offered
REQUIRED_SHIPPING_FIELDS = ("first_name", "last_name", "address_1", "city", "postcode", "country")


class CheckoutService:
    """Service owning the checkout aggregate."""

    def __init__(
        self,
        storage: StateStorage,
        coupon_service: CouponService | None = None,
        shipping_service: ShippingService | None = None,
    ) -> None:
        """Initialize the aggregate and hydrate it from storage.

        Args:
            storage: Persistence boundary for checkout state.
            coupon_service: Coupon evaluator.
            shipping_service: Shipping rate resolver.
        """
        self.storage = storage
        self.shipping_service = shipping_service or ShippingService()
        self.coupon_service = coupon_service or CouponService(self.shipping_service)
        self.shipping_options: ShippingOptions | None = None
        self.shipping_quote: ShippingQuote | None = None
        # Full definition of the applied coupon; only its effect is persisted
        self._coupon_definition: Coupon | None = None
        self._locked = False
        self._pending_cart: list[CartItem] | None = None
        self._state = self._load()

    # --- Persistence ---

    def _load(self) -> CheckoutState:
        raw = self.storage.get(CHECKOUT_STORAGE_KEY)
        if not raw:
            return CheckoutState()
        try:
            return CheckoutState.model_validate(raw)
        except ValidationError as e:
            logger.warning("Discarding unreadable checkout state: %s", str(e))
            return CheckoutState()

    def _commit(self, data: CheckoutData) -> CheckoutData:
        self._state.checkout_data = data
        self._state.order_validated = self.is_order_valid(data)
        self.storage.set(CHECKOUT_STORAGE_KEY, self._state.model_dump(mode="json"))
        return self.data

    def _save_flags(self) -> None:
        self.storage.set(CHECKOUT_STORAGE_KEY, self._state.model_dump(mode="json"))

    @property
    def data(self) -> CheckoutData:
        """A copy of the current aggregate."""
        return self._state.checkout_data.model_copy(deep=True)

    @property
    def state(self) -> CheckoutState:
        """A copy of everything persisted for checkout."""
        return self._state.model_copy(deep=True)

    # --- Totals & Validation ---

    @staticmethod
    def compute_totals(data: CheckoutData) -> CheckoutData:
        """Derive subtotal and total from the lines, shipping cost and discount.

        Tax is fixed at zero.
        """
        subtotal = to_money(sum((item.price for item in data.cart_items), ZERO))
        return data.model_copy(
            update={
                "subtotal": subtotal,
                "tax_total": ZERO,
                "total": to_money(subtotal + data.shipping_cost - data.discount_total),
            }
        )

    def calculate_totals(self) -> CheckoutData:
        """Recompute and persist the derived totals."""
        return self._commit(self.compute_totals(self._state.checkout_data))

    @staticmethod
    def is_order_valid(data: CheckoutData) -> bool:
        """Whether the aggregate is complete enough to offer payment."""
        if not data.billing.email.strip() or not data.cart_items:
            return False
        return all(getattr(data.shipping, name).strip() for name in REQUIRED_SHIPPING_FIELDS)

    @property
    def order_validated(self) -> bool:
        """Validation flag, re-evaluated on every aggregate change."""
        return self._state.order_validated

    # --- Submission Lock ---

    @contextmanager
    def locked_for_submission(self) -> Iterator[None]:
        """Hold price-affecting fields still while an order is being submitted.

        Cart syncs arriving meanwhile are deferred and applied once on release.
        """
        self._locked = True
        try:
            yield
        finally:
            self._locked = False
            if self._pending_cart is not None:
                pending, self._pending_cart = self._pending_cart, None
                self.set_cart_items(pending)

    def _ensure_unlocked(self) -> None:
        if self._locked:
            raise CheckoutValidationError("Checkout is being submitted; please wait.")

    # --- Mutators ---

    def set_billing(self, billing: Address) -> CheckoutData:
        """Replace the billing address."""
        data = self._state.checkout_data.model_copy(update={"billing": billing.model_copy()})
        return self._commit(data)

    def set_shipping(self, shipping: Address) -> CheckoutData:
        """Replace the shipping address.

        The billing email is copied into the shipping contact when shipping
        has none, and billing mirrors shipping while billing-same-as-shipping
        is set.
        """
        current = self._state.checkout_data
        if not shipping.email and current.billing.email:
            shipping = shipping.model_copy(update={"email": current.billing.email})
        update: dict = {"shipping": shipping.model_copy()}
        if self._state.billing_same_as_shipping:
            update["billing"] = shipping.model_copy(
                update={"email": current.billing.email or shipping.email}
            )
        return self._commit(current.model_copy(update=update))

    def set_billing_same_as_shipping(self, value: bool) -> CheckoutData:
        """Toggle billing mirroring; turning it on copies shipping into billing immediately."""
        self._state.billing_same_as_shipping = value
        if value:
            return self.set_shipping(self._state.checkout_data.shipping)
        self._save_flags()
        return self.data

    def set_email(self, email: str) -> CheckoutData:
        """Set the contact email on billing and shipping."""
        current = self._state.checkout_data
        data = current.model_copy(
            update={
                "billing": current.billing.model_copy(update={"email": email}),
                "shipping": current.shipping.model_copy(update={"email": email}),
            }
        )
        self._state.email_saved = bool(email.strip())
        return self._commit(data)

    def set_payment_method(self, payment_method: str) -> CheckoutData:
        """Set the payment method tag."""
        data = self._state.checkout_data.model_copy(update={"payment_method": payment_method})
        return self._commit(data)

    def set_shipping_method(self, method: ShippingMethodId | None, cost: Decimal) -> CheckoutData:
        """Set the shipping method and its cost, then recompute totals.

        A free-shipping coupon keeps the cost at zero.
        """
        self._ensure_unlocked()
        current = self._state.checkout_data
        if current.coupon is not None and current.coupon.free_shipping:
            cost = ZERO
        data = current.model_copy(update={"shipping_method": method, "shipping_cost": to_money(cost)})
        return self._commit(self.compute_totals(data))

    def set_cart_items(self, items: list[CartItem]) -> CheckoutData:
        """Replace the cart snapshot and recompute totals.

        An applied coupon is re-evaluated against the new cart: re-applied
        while still valid, removed otherwise. After a reload only its
        evaluated effect is known, so the discount is clamped to the new
        subtotal instead.
        """
        if self._locked:
            self._pending_cart = [item.model_copy(deep=True) for item in items]
            logger.debug("Deferred cart sync until submission settles")
            return self.data

        current = self._state.checkout_data
        data = self.compute_totals(
            current.model_copy(update={"cart_items": [item.model_copy(deep=True) for item in items]})
        )
        if data.coupon is not None:
            if self._coupon_definition is not None:
                validation = self.coupon_service.validate(self._coupon_definition, data)
                if validation.is_valid:
                    data = self.coupon_service.apply(self._coupon_definition, data)
                else:
                    logger.info(
                        "Removing coupon %s after cart change: %s",
                        data.coupon.code,
                        validation.message,
                    )
                    self._coupon_definition = None
                    data = self.coupon_service.remove(data, self.shipping_options)
            else:
                discount = min(data.discount_total, data.subtotal)
                data = self.compute_totals(
                    data.model_copy(
                        update={
                            "discount_total": discount,
                            "coupon": data.coupon.model_copy(update={"discount": discount}),
                        }
                    )
                )
        self._commit(data)
        if self.shipping_options is not None:
            self.refresh_shipping_quote()
        return self.data

    def bind_cart(self, cart: CartService) -> CheckoutData:
        """Seed the cart snapshot from the ledger and follow its changes."""
        cart.subscribe(self.set_cart_items)
        return self.set_cart_items(cart.items)

    # --- Coupons ---

    def apply_coupon(self, coupon: Coupon) -> CheckoutData:
        """Validate and apply a coupon.

        Args:
            coupon: The full coupon definition.

        Returns:
            CheckoutData: The updated aggregate.

        Raises:
            CheckoutValidationError: If the coupon does not apply to this checkout.
        """
        self._ensure_unlocked()
        current = self.compute_totals(self._state.checkout_data)
        validation = self.coupon_service.validate(coupon, current)
        if not validation.is_valid:
            raise CheckoutValidationError(validation.message, field="coupon")
        self._coupon_definition = coupon
        logger.info("Applied coupon %s", coupon.code)
        return self._commit(self.coupon_service.apply(coupon, current))

    async def redeem_coupon(self, code: str, backend: CommerceBackend) -> CouponValidation:
        """Look up a coupon by code and apply it.

        Lookup misses and ineligible coupons are reported, not raised.

        Args:
            code: Code entered by the customer.
            backend: Source of coupon definitions.

        Returns:
            CouponValidation: Outcome with the customer-facing message.
        """
        code = code.strip()
        if not code:
            return CouponValidation(is_valid=False, message="Please enter a coupon code.")
        coupon = await backend.get_coupon_by_code(code)
        if coupon is None:
            return CouponValidation(is_valid=False, message=CouponNotFoundError(code).message)
        try:
            self.apply_coupon(coupon)
        except CheckoutValidationError as e:
            return CouponValidation(is_valid=False, message=e.message)
        return CouponValidation(is_valid=True)

    def remove_coupon(self) -> CheckoutData:
        """Remove the applied coupon and restore shipping cost."""
        self._coupon_definition = None
        data = self.coupon_service.remove(self._state.checkout_data, self.shipping_options)
        return self._commit(self.compute_totals(data))

    # --- Shipping ---

    def set_shipping_options(self, options: ShippingOptions) -> ShippingQuote:
        """Install the shipping options table and resolve a quote."""
        self.shipping_options = options
        return self.refresh_shipping_quote()

    def refresh_shipping_quote(self) -> ShippingQuote:
        """Re-resolve eligible methods for the current postal code and subtotal.

        The current selection is kept while eligible; otherwise the default
        is selected. With nothing eligible the selection is cleared.
        """
        if self.shipping_options is None:
            raise CheckoutValidationError("Shipping options have not been loaded.")
        current = self._state.checkout_data
        quote = self.shipping_service.resolve(
            current.shipping.postcode,
            self.compute_totals(current).subtotal,
            self.shipping_options,
        )
        self.shipping_quote = quote
        selected = self.shipping_service.select(quote, current.shipping_method)
        if self._locked:
            return quote
        if selected is None:
            self.set_shipping_method(None, ZERO)
        elif selected.id != current.shipping_method or selected.cost != current.shipping_cost:
            self.set_shipping_method(selected.id, selected.cost)
        return quote

    def select_shipping_method(self, method: ShippingMethodId) -> CheckoutData:
        """Apply a customer's choice among the currently eligible methods.

        Raises:
            CheckoutValidationError: If the method is not eligible.
        """
        option = self.shipping_quote.get(method) if self.shipping_quote else None
        if option is None:
            raise CheckoutValidationError("That delivery method is not available.", field="shipping_method")
        return self.set_shipping_method(option.id, option.cost)

    # --- Payment & Completion ---

    def set_payment_intent_client_secret(self, client_secret: str | None) -> None:
        """Persist the client secret of the current payment intent."""
        self._state.payment_intent_client_secret = client_secret
        self._save_flags()

    def store_order_summary(self, summary: OrderSummary) -> None:
        """Persist the latest order summary, replacing any previous one."""
        self.storage.set(LATEST_ORDER_KEY, summary.model_dump(mode="json"))

    def latest_order_summary(self) -> OrderSummary | None:
        """The last stored order summary, if any."""
        raw = self.storage.get(LATEST_ORDER_KEY)
        if not raw:
            return None
        try:
            return OrderSummary.model_validate(raw)
        except ValidationError as e:
            logger.warning("Discarding unreadable order summary: %s", str(e))
            return None

    def reset(self) -> CheckoutData:
        """Reset the aggregate to empty after a completed order."""
        self._coupon_definition = None
        self._pending_cart = None
        self.shipping_quote = None
        self._state = CheckoutState()
        return self._commit(CheckoutData())


class ShippingUpdateDebouncer:
    """Debounce shipping address edits into the checkout aggregate.

    Only the last address pushed within the delay is applied, followed by
    a shipping quote refresh. `cancel()` must be called on teardown.
    """

    def __init__(self, checkout: CheckoutService, delay_seconds: float = 0.3) -> None:
        self.checkout = checkout
        self.delay_seconds = delay_seconds
        self._handle: asyncio.TimerHandle | None = None
        self._pending: Address | None = None

    def push(self, shipping: Address) -> None:
        """Schedule an address update, replacing any pending one."""
        if self._handle is not None:
            self._handle.cancel()
        self._pending = shipping
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay_seconds, self._fire)

    def _fire(self) -> None:
        self._handle = None
        shipping, self._pending = self._pending, None
        if shipping is None:
            return
        self.checkout.set_shipping(shipping)
        if self.checkout.shipping_options is not None:
            self.checkout.refresh_shipping_quote()

    @property
    def pending(self) -> bool:
        """Whether an update is waiting to be applied."""
        return self._handle is not None

    def cancel(self) -> None:
        """Drop any pending update."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._pending = None
