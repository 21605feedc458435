"""Cart ledger service.

The authoritative list of cart lines. Every mutation is synchronous,
persists the ledger, then notifies subscribers in registration order.
"""

import logging
from collections.abc import Callable
from decimal import Decimal

from pydantic import ValidationError

from src.core.exceptions import CheckoutValidationError
from src.core.money import ZERO, to_money
from src.core.storage import CART_STORAGE_KEY, StateStorage
from src.schemas.cart import CartItem

logger = logging.getLogger(__name__)

CartListener = Callable[[list[CartItem]], None]

CUSTOM_SIZE_ATTRIBUTE = "Pole Size"
CUSTOM_SIZE_OPTION = "Other"


class CartService:
    """Service owning the persisted cart ledger."""

    def __init__(self, storage: StateStorage) -> None:
        """Initialize the ledger and hydrate it from storage.

        Args:
            storage: Persistence boundary for the cart.
        """
        self.storage = storage
        self._listeners: list[CartListener] = []
        self._items: list[CartItem] = self._load()

    def _load(self) -> list[CartItem]:
        raw = self.storage.get(CART_STORAGE_KEY)
        if not raw:
            return []
        try:
            return [CartItem.model_validate(item) for item in raw.get("cart_items", [])]
        except (ValidationError, AttributeError) as e:
            logger.warning("Discarding unreadable cart state: %s", str(e))
            return []

    def _commit(self, items: list[CartItem]) -> list[CartItem]:
        self._items = items
        self.storage.set(
            CART_STORAGE_KEY,
            {"cart_items": [item.model_dump(mode="json") for item in items]},
        )
        snapshot = self.items
        for listener in self._listeners:
            listener(snapshot)
        return snapshot

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        """Register a callback invoked with the new items after each change.

        Args:
            listener: Callback receiving a copy of the cart lines.

        Returns:
            Callable: Function that removes the subscription.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def items(self) -> list[CartItem]:
        """Copies of the cart lines; mutating them does not affect the ledger."""
        return [item.model_copy(deep=True) for item in self._items]

    @property
    def is_empty(self) -> bool:
        """Whether the cart has no lines."""
        return not self._items

    def add_item(self, item: CartItem) -> list[CartItem]:
        """Add a line or merge it into the existing line for the same product and variation.

        On merge the quantity is increased and the variation/custom-field
        selections are overwritten with the new values.

        Args:
            item: The line to add.

        Returns:
            list[CartItem]: The updated cart.

        Raises:
            CheckoutValidationError: If a custom size was chosen but not entered.
        """
        if item.variation_value(CUSTOM_SIZE_ATTRIBUTE) == CUSTOM_SIZE_OPTION and not item.custom_fields:
            raise CheckoutValidationError(
                "Please enter a custom pole size before adding to cart!",
                field="custom_fields",
            )

        items = self.items
        for index, existing in enumerate(items):
            if existing.identity == item.identity:
                items[index] = existing.model_copy(
                    update={
                        "quantity": existing.quantity + item.quantity,
                        "variations": [v.model_copy() for v in item.variations],
                        "custom_fields": [f.model_copy() for f in item.custom_fields],
                    }
                )
                logger.debug("Merged product %s into existing cart line", item.id)
                break
        else:
            items.append(item.model_copy(deep=True))
        return self._commit(items)

    def _matches(self, item: CartItem, product_id: int, variation_id: int | None) -> bool:
        if item.id != product_id:
            return False
        return variation_id is None or (item.variation_id or 0) == variation_id

    def remove_item(self, product_id: int, variation_id: int | None = None) -> list[CartItem]:
        """Remove a line entirely regardless of quantity.

        Args:
            product_id: Product to remove.
            variation_id: Restrict removal to this variation; all lines of the product otherwise.

        Returns:
            list[CartItem]: The updated cart.
        """
        items = [item for item in self.items if not self._matches(item, product_id, variation_id)]
        return self._commit(items)

    def increase_quantity(self, product_id: int, variation_id: int | None = None) -> list[CartItem]:
        """Add one unit to the first matching line."""
        items = self.items
        for index, item in enumerate(items):
            if self._matches(item, product_id, variation_id):
                items[index] = item.model_copy(update={"quantity": item.quantity + 1})
                break
        return self._commit(items)

    def decrease_quantity(self, product_id: int, variation_id: int | None = None) -> list[CartItem]:
        """Remove one unit from the first matching line; a line at quantity 1 is removed."""
        items = self.items
        for index, item in enumerate(items):
            if self._matches(item, product_id, variation_id):
                if item.quantity <= 1:
                    del items[index]
                else:
                    items[index] = item.model_copy(update={"quantity": item.quantity - 1})
                break
        return self._commit(items)

    def set_items(self, items: list[CartItem]) -> list[CartItem]:
        """Replace the whole cart."""
        return self._commit([item.model_copy(deep=True) for item in items])

    def clear(self) -> list[CartItem]:
        """Empty the cart."""
        return self._commit([])

    def subtotal(self) -> Decimal:
        """Sum of unit price times quantity, rounded to 2 decimals."""
        return to_money(sum((item.base_price * item.quantity for item in self._items), ZERO))

    def item_quantity(self, product_id: int) -> int:
        """Units of a product across all its lines."""
        return sum(item.quantity for item in self._items if item.id == product_id)

    def count(self) -> int:
        """Total units in the cart."""
        return sum(item.quantity for item in self._items)
