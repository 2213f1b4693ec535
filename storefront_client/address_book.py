"""
address_book.py — The shopper's saved shipping addresses

Fetches, creates and deletes addresses through the address endpoints and keeps
the last known collection in backend order. Checkout reads from here; a new
address typed during checkout is only usable once it has been created here.
"""

import logging

import pydantic

from .errors import NotFoundError, TransientServerError, ValidationError
from .models import AddressDraft, ShippingAddress

log = logging.getLogger(__name__)


class AddressBook:
    def __init__(self, client):
        """
        Args:
            client (AddressClient): REST client for /users/addresses.
        """
        self.client = client
        self.addresses = []

    async def list(self) -> list:
        raw = await self.client.list_addresses()
        try:
            parsed = [ShippingAddress.model_validate(entry) for entry in raw]
        except pydantic.ValidationError as e:
            log.error(f"[Address] Ungültige Adressliste vom Backend: {e}")
            raise TransientServerError("Received malformed addresses from the server.") from e
        self.addresses = parsed
        return list(self.addresses)

    def get(self, address_id) -> ShippingAddress:
        for address in self.addresses:
            if address.id == str(address_id):
                return address
        raise NotFoundError(f"Address {address_id} not found.")

    def contains(self, address_id) -> bool:
        return any(address.id == str(address_id) for address in self.addresses)

    async def create(self, draft: AddressDraft) -> ShippingAddress:
        """
        Persists a new address.

        Raises:
            ValidationError: If any of the six fields is empty (no request is sent).
            StorefrontError: If the backend refuses or fails the request.
        """
        missing = draft.missing_fields()
        if missing:
            log.warning(f"[Address] Unvollständige Adresse abgelehnt, fehlend: {', '.join(missing)}")
            raise ValidationError("Please fill in all address fields.", fields=missing)

        fields = draft.model_dump()
        response = await self.client.add_address(fields) or {}
        if response.get("addressId") is None:
            log.error(f"[Address] Backend lieferte keine addressId: {response}")
            raise TransientServerError("Failed to add address.")
        address = ShippingAddress(id=response["addressId"], **fields)
        self.addresses.append(address)
        log.info(f"[Address] Neue Adresse {address.id} gespeichert.")
        return address

    async def delete(self, address_id):
        await self.client.delete_address(str(address_id))
        self.addresses = [address for address in self.addresses if address.id != str(address_id)]
        log.info(f"[Address] Adresse {address_id} gelöscht.")
