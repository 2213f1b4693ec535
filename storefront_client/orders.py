"""
orders.py — Order placement and lookup

OrderSubmitter performs the single order-placement call and the later lookups.
Placement is never retried automatically (duplicate-order risk). There is no
fetch-by-id endpoint: an order is resolved by scanning "list my orders", and
since the backend does not promise read-after-write visibility, a miss is
retried a few times with exponential backoff before it counts as not found.
"""

import asyncio
import logging
import os

import pydantic

from .errors import NotFoundError, TransientServerError
from .models import Order, order_payload

ORDER_LOOKUP_ATTEMPTS = int(os.environ.get("ORDER_LOOKUP_ATTEMPTS", "3"))
ORDER_LOOKUP_BACKOFF = float(os.environ.get("ORDER_LOOKUP_BACKOFF", "0.5"))

log = logging.getLogger(__name__)


class OrderSubmitter:
    def __init__(self, client):
        """
        Args:
            client (OrdersClient): REST client for /orders.
        """
        self.client = client

    async def place(self, items, total_amount: float, address) -> str:
        """
        Places an order with one POST /orders.

        Args:
            items (Sequence[CartItem]): Snapshot of the cart lines.
            total_amount (float): Subtotal plus shipping, computed at placement time.
            address (ShippingAddress): The resolved shipping address.

        Returns:
            str: The opaque order id assigned by the backend.

        Raises:
            StorefrontError: If the request fails. The caller decides whether the
                shopper may try again; nothing here retries.
        """
        payload = order_payload(items, total_amount, address)
        log.info(f"[Order] Sende Bestellung: {len(payload['items'])} Positionen, Gesamt {total_amount}.")
        response = await self.client.place_order(payload) or {}

        order_id = response.get("orderId", response.get("order_id"))
        if order_id is None:
            # The order may exist on the server even though we cannot link to it.
            log.critical(f"[Order] Bestellung ohne orderId bestätigt: {response}. BENÖTIGT MANUELLE PRÜFUNG!")
            raise TransientServerError("The order was submitted but no order id was returned.")

        log.info(f"[Order: {order_id}] Bestellung angelegt.")
        return str(order_id)

    async def get_my_orders(self) -> list:
        raw = await self.client.my_orders()
        try:
            return [Order.model_validate(entry) for entry in raw]
        except pydantic.ValidationError as e:
            log.error(f"[Order] Ungültige Bestellliste vom Backend: {e}")
            raise TransientServerError("Received malformed orders from the server.") from e

    async def find_order(self, order_id, attempts: int = ORDER_LOOKUP_ATTEMPTS, backoff: float = ORDER_LOOKUP_BACKOFF) -> Order:
        """
        Resolves one order by linear scan over the shopper's orders.

        Args:
            order_id: The id returned by `place`.
            attempts (int): How many times the collection is fetched before giving up.
            backoff (float): Delay before the second attempt in seconds; doubles each time.

        Raises:
            NotFoundError: If the order never shows up.
        """
        delay = backoff
        for attempt in range(1, max(attempts, 1) + 1):
            for order in await self.get_my_orders():
                if order.orderId == str(order_id):
                    return order
            if attempt < attempts:
                log.info(f"[Order: {order_id}] Noch nicht sichtbar (Versuch {attempt}/{attempts}), warte {delay}s.")
                await asyncio.sleep(delay)
                delay *= 2

        log.warning(f"[Order: {order_id}] Bestellung nicht gefunden.")
        raise NotFoundError(f"Order {order_id} not found.")
