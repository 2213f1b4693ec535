"""
cart_store.py — Server-mirrored Shopping Cart

The CartStore is the single writer of the shopper's cart. It never computes a
post-mutation state itself: every mutation is one request followed by a full
reload of the authoritative cart ("resync").

Ordering guarantees:
    • Mutation + reload pairs run one at a time, in the order they were issued
      (an asyncio.Lock, which wakes waiters first-in first-out).
    • Every load() takes a new generation number. A response that arrives after
      a newer load() was started (e.g. logout/login in between) is discarded.
"""

import asyncio
import logging

import pydantic

from .errors import (
    AuthorizationError,
    CartResyncError,
    NotFoundError,
    StorefrontError,
    TransientServerError,
    ValidationError,
)
from .models import CartItem, compute_totals

log = logging.getLogger(__name__)


class CartStore:
    """
    Owns the live cart for the current identity.

    Consumers read `items`, `subtotal`, `item_count` or `totals()` and mutate only
    through `add`, `update_quantity`, `remove` and `clear`. Subscribers are plain
    callables receiving the store; they are called after every applied reload.
    """

    def __init__(self, client, identity):
        """
        Args:
            client (CartClient): REST client for the /cart endpoints.
            identity (IdentitySession): Supplies the authentication state.
        """
        self.client = client
        self.identity = identity
        self.loading = False
        self.last_error = None
        self._items = []
        self._generation = 0
        self._pipeline = asyncio.Lock()
        self._listeners = []

    # --- Read access ---

    @property
    def items(self) -> tuple:
        return tuple(self._items)

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_empty(self) -> bool:
        return not self._items

    @property
    def subtotal(self) -> float:
        return sum(item.unitPrice * item.quantity for item in self._items)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self._items)

    def totals(self):
        return compute_totals(self._items)

    def get(self, cart_item_id) -> CartItem:
        for item in self._items:
            if item.cartItemId == str(cart_item_id):
                return item
        raise NotFoundError(f"Cart item {cart_item_id} is not in the cart.")

    # --- Subscriptions ---

    def subscribe(self, listener):
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def bind(self, identity=None):
        """Reloads the cart on every transition of the identity session."""
        if identity is not None:
            self.identity = identity
        return self.identity.subscribe(self._on_identity_change)

    async def _on_identity_change(self, identity):
        try:
            await self.load()
        except StorefrontError as e:
            # A failed fetch after login/logout is not shown to the shopper;
            # the cart simply stays as last synced.
            self.last_error = e
            log.warning(f"[Cart] Laden nach Identitätswechsel fehlgeschlagen: {e}")

    # --- Resync ---

    async def load(self) -> tuple:
        """
        Replaces the local cart wholesale with the server's cart.

        Unauthenticated sessions get an empty cart without a request. A 404 from
        the backend is its empty-cart answer and is treated as an empty cart.

        Returns:
            tuple: The cart items after the load (unchanged if the response was stale).

        Raises:
            StorefrontError: If the fetch failed; the local cart is left untouched.
        """
        self._generation += 1
        generation = self._generation

        if not self.identity.is_authenticated:
            self._apply([], generation)
            return self.items

        self.loading = True
        try:
            try:
                raw_items = await self.client.fetch_cart()
            except NotFoundError:
                raw_items = []
            items = [CartItem.model_validate(raw) for raw in raw_items]
        except pydantic.ValidationError as e:
            log.error(f"[Cart] Ungültige Warenkorb-Antwort vom Backend: {e}")
            raise TransientServerError("Received a malformed cart from the server.") from e
        finally:
            if generation == self._generation:
                self.loading = False

        if generation != self._generation:
            log.info(f"[Cart] Veraltete Antwort verworfen (Generation {generation}, aktuell {self._generation}).")
            return self.items

        self._apply(items, generation)
        return self.items

    def _apply(self, items, generation):
        self._items = list(items)
        self.loading = False
        self.last_error = None
        log.info(f"[Cart] Synchronisiert (Generation {generation}): {len(self._items)} Positionen, {self.item_count} Artikel.")
        for listener in list(self._listeners):
            listener(self)

    # --- Mutations ---

    async def add(self, product_id, quantity: int = 1):
        if not self.identity.is_authenticated:
            log.warning("[Cart] Hinzufügen ohne Anmeldung abgelehnt.")
            raise AuthorizationError("Please log in to add items to your cart.")
        if quantity < 1:
            log.warning(f"[Cart] Ungültige Menge {quantity} für Produkt {product_id} abgelehnt.")
            raise ValidationError("Quantity must be at least 1.", fields=["quantity"])
        await self._mutate(
            f"Füge Produkt {product_id} (Menge {quantity}) hinzu.",
            lambda: self.client.add_item(product_id, quantity),
        )

    async def update_quantity(self, cart_item_id, quantity: int):
        """
        Sets the quantity of one cart line.

        Quantities below 1 or above the line's stock are rejected locally:
        no request is sent and the cart is unchanged.

        Raises:
            NotFoundError: If the line is not in the cart.
            ValidationError: If `quantity` is outside [1, stockQuantity].
        """
        item = self.get(cart_item_id)
        if quantity < 1:
            log.warning(f"[Cart] Menge {quantity} für Position {cart_item_id} unter 1, ignoriert.")
            raise ValidationError("Quantity must be at least 1.", fields=["quantity"])
        if quantity > item.stockQuantity:
            log.warning(
                f"[Cart] Menge {quantity} für Position {cart_item_id} über Lagerbestand ({item.stockQuantity}), ignoriert."
            )
            raise ValidationError(f"Only {item.stockQuantity} in stock.", fields=["quantity"])
        await self._mutate(
            f"Setze Menge von Position {cart_item_id} auf {quantity}.",
            lambda: self.client.update_item(item.cartItemId, quantity),
        )

    async def remove(self, cart_item_id):
        await self._mutate(
            f"Entferne Position {cart_item_id}.",
            lambda: self.client.remove_item(str(cart_item_id)),
        )

    async def clear(self):
        await self._mutate("Leere Warenkorb.", self.client.clear)

    def request_remove(self, prompt, cart_item_id):
        """Asks for confirmation before removing a line."""
        item = self.get(cart_item_id)
        prompt.request(f"Remove {item.name or 'this item'} from your cart?", lambda: self.remove(item.cartItemId))

    def request_clear(self, prompt):
        """Asks for confirmation before clearing the cart."""
        prompt.request("Are you sure you want to clear your entire cart?", self.clear)

    async def _mutate(self, description: str, send):
        """
        Sends one mutation, then resyncs. One pair at a time; later callers queue behind.

        A failed request leaves the cart untouched and raises the classified error.
        If the request succeeded but the reload failed, the change is already on the
        server: CartResyncError is raised instead, so callers do not report the
        change as lost. An authorization failure on the reload is raised as is.
        """
        async with self._pipeline:
            if not self.identity.is_authenticated:
                raise AuthorizationError("Please log in to change your cart.")
            log.info(f"[Cart] {description}")
            await send()
            try:
                await self.load()
            except AuthorizationError:
                raise
            except StorefrontError as e:
                log.error(f"[Cart] Änderung übernommen, Neuladen fehlgeschlagen: {e}")
                raise CartResyncError() from e
