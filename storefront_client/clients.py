"""
This module provides the REST clients for the storefront backend used by the cart
and checkout components:
- Cart endpoints (/cart)
- Address book endpoints (/users/addresses)
- Order endpoints (/orders)
All three share one StorefrontApi, which owns the HTTP connection, attaches the
bearer credential and turns HTTP failures into the storefront error taxonomy.
"""

import logging
import os

import httpx

from .errors import classify_http_error

# Service address (normally from env vars)
STOREFRONT_API_URL = os.environ.get("STOREFRONT_API_URL", "http://localhost:5000/api")

log = logging.getLogger(__name__)


# --- Shared transport ---
class StorefrontApi:
    """
    Async HTTP access to the storefront backend.
    Every request carries the bearer credential of the identity session, if any.
    Requests are never retried here; a retry always needs a new user action.
    """
    def __init__(self, identity, base_url: str = STOREFRONT_API_URL, transport: httpx.AsyncBaseTransport | None = None):
        """
        Initializes the HTTP client with proper timeout configuration.
        Args:
            identity (IdentitySession): Source of the bearer credential.
            base_url (str): Backend base URL, e.g. 'http://localhost:5000/api'.
            transport (httpx.AsyncBaseTransport): Optional transport override (mock or ASGI app).
        """
        self.identity = identity
        timeout_config = httpx.Timeout(5.0, read=8.0)
        self.client = httpx.AsyncClient(base_url=base_url, timeout=timeout_config, transport=transport)

    async def aclose(self):
        """Closes the HTTP client session."""
        await self.client.aclose()

    async def request(self, method: str, path: str, log_prefix: str, failure_message: str, json=None):
        """
        Sends one request and returns the decoded JSON body.
        Args:
            method (str): HTTP verb.
            path (str): Path relative to the base URL.
            log_prefix (str): Prefix for log lines, e.g. '[Cart]'.
            failure_message (str): Message used if the server does not provide one.
            json: Optional request body.
        Returns:
            The decoded JSON response (None for an empty body).
        Raises:
            StorefrontError: The classified failure (authorization, not found, transient, rejected).
        """
        try:
            response = await self.client.request(method, path, json=json, headers=self.identity.auth_headers())
            response.raise_for_status()  # Löst HTTPStatusError bei 4xx/5xx aus
        except httpx.HTTPStatusError as e:
            error = classify_http_error(e, failure_message)
            if e.response.status_code >= 500:
                log.error(f"{log_prefix} HTTP-Fehler bei {method} {path}: {e.response.status_code} - {error}")
            else:
                log.warning(f"{log_prefix} {method} {path} abgelehnt: {e.response.status_code} - {error}")
            raise error from e
        except httpx.TransportError as e:
            log.error(f"{log_prefix} Backend nicht erreichbar bei {method} {path}: {e!r}")
            raise classify_http_error(e, failure_message) from e

        if not response.content:
            return None
        return response.json()


# --- Cart Client ---
class CartClient:
    """
    Client for the cart endpoints.
    Mutations return the server's `{message}` payload; the cart itself is only
    ever read through `fetch_cart`.
    """
    def __init__(self, api: StorefrontApi):
        self.api = api

    async def fetch_cart(self) -> list:
        return await self.api.request("GET", "/cart", "[Cart]", "Failed to fetch cart items.") or []

    async def add_item(self, product_id: str, quantity: int) -> dict:
        payload = {"productId": product_id, "quantity": quantity}
        return await self.api.request("POST", "/cart", "[Cart]", "Failed to add product to cart.", json=payload)

    async def update_item(self, cart_item_id: str, quantity: int) -> dict:
        return await self.api.request(
            "PUT", f"/cart/{cart_item_id}", "[Cart]", "Failed to update cart item quantity.",
            json={"quantity": quantity},
        )

    async def remove_item(self, cart_item_id: str) -> dict:
        return await self.api.request("DELETE", f"/cart/{cart_item_id}", "[Cart]", "Failed to remove product from cart.")

    async def clear(self) -> dict:
        return await self.api.request("DELETE", "/cart/clear", "[Cart]", "Failed to clear cart.")


# --- Address Client ---
class AddressClient:
    """Client for the shopper's saved shipping addresses."""
    def __init__(self, api: StorefrontApi):
        self.api = api

    async def list_addresses(self) -> list:
        return await self.api.request("GET", "/users/addresses", "[Address]", "Could not load saved addresses.") or []

    async def add_address(self, fields: dict) -> dict:
        return await self.api.request("POST", "/users/addresses", "[Address]", "Failed to add address.", json=fields)

    async def delete_address(self, address_id: str) -> dict:
        return await self.api.request(
            "DELETE", f"/users/addresses/{address_id}", "[Address]", "Failed to delete address."
        )


# --- Orders Client ---
class OrdersClient:
    """
    Client for order placement and lookup.
    `place_order` is sent exactly once per call: a duplicate request could create
    a duplicate order, so there is no retry at any layer.
    """
    def __init__(self, api: StorefrontApi):
        self.api = api

    async def place_order(self, payload: dict) -> dict:
        return await self.api.request("POST", "/orders", "[Order]", "Failed to place order.", json=payload)

    async def my_orders(self) -> list:
        return await self.api.request("GET", "/orders/my", "[Order]", "Failed to fetch your orders.") or []
