"""
main.py — Composition Root for the Storefront Client

This module wires the cart and checkout components together by explicit
injection. Nothing is looked up implicitly: the view layer receives a Storefront
and passes its parts to whatever needs them.

Responsibilities:
    • Create the shared HTTP transport and the REST clients
    • Bind the CartStore to identity transitions (login, logout, initial restore)
    • Start checkout flows against the live cart
"""

from .address_book import AddressBook
from .cart_store import CartStore
from .clients import STOREFRONT_API_URL, AddressClient, CartClient, OrdersClient, StorefrontApi
from .identity import CredentialStore, IdentitySession
from .logging_config import get_logger, setup_logging
from .orders import OrderSubmitter
from .workflow import CheckoutFlow

log = get_logger(__name__)


class Storefront:
    """
    The client-side cart and checkout subsystem of one shopper.

    Attributes:
        identity (IdentitySession): Login state and bearer credential.
        api (StorefrontApi): Shared HTTP transport.
        cart (CartStore): The server-mirrored cart, reloaded on every identity transition.
        addresses (AddressBook): Saved shipping addresses.
        orders (OrderSubmitter): Order placement and lookup.
    """

    def __init__(self, identity: IdentitySession, base_url: str = STOREFRONT_API_URL, transport=None):
        self.identity = identity
        self.api = StorefrontApi(identity, base_url=base_url, transport=transport)
        self.cart = CartStore(CartClient(self.api), identity)
        self.addresses = AddressBook(AddressClient(self.api))
        self.orders = OrderSubmitter(OrdersClient(self.api))
        self._unbind = self.cart.bind()

    async def start_checkout(self) -> CheckoutFlow:
        return await CheckoutFlow.enter(self.cart, self.addresses, self.orders)

    async def aclose(self):
        self._unbind()
        await self.api.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()


async def open_storefront(base_url: str = STOREFRONT_API_URL, session_file: str | None = None, transport=None, configure_logging: bool = True) -> Storefront:
    """
    Builds a Storefront and restores the persisted session.

    The restore is the initial identity transition, so the cart is loaded once
    before this returns.
    """
    if configure_logging:
        setup_logging()
    storage = CredentialStore(session_file) if session_file else CredentialStore()
    storefront = Storefront(IdentitySession(storage), base_url=base_url, transport=transport)
    await storefront.identity.restore()
    log.info(f"Storefront-Client gestartet ({base_url}).")
    return storefront
