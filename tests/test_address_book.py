import pytest

from conftest import ALICE
from storefront_client.errors import AuthorizationError, NotFoundError, TransientServerError, ValidationError
from storefront_client.models import AddressDraft

HOME = AddressDraft(fullName="Alice Example", addressLine1="12 Market Road", city="Pune",
                    state="MH", pincode="411001", phone="9876543210")


def test_create_list_delete(storefront, run):
    async def scenario():
        await storefront.identity.login(ALICE, "token-alice")
        book = storefront.addresses
        created = await book.create(HOME)
        listed = await book.list()
        await book.delete(created.id)
        return created, listed, await book.list()

    created, listed, after_delete = run(scenario())
    assert [a.id for a in listed] == [created.id]
    assert listed[0].phone == "9876543210"
    assert after_delete == []


def test_incomplete_draft_is_not_sent(storefront, transport, run):
    async def scenario():
        await storefront.identity.login(ALICE, "token-alice")
        with pytest.raises(ValidationError) as excinfo:
            await storefront.addresses.create(HOME.model_copy(update={"pincode": ""}))
        return excinfo.value

    error = run(scenario())
    assert error.fields == ["pincode"]
    assert transport.sent("POST", "/api/users/addresses") == []


def test_get_unknown_address(storefront):
    with pytest.raises(NotFoundError):
        storefront.addresses.get(99)


def test_deleting_a_missing_address(storefront, run):
    async def scenario():
        await storefront.identity.login(ALICE, "token-alice")
        with pytest.raises(NotFoundError):
            await storefront.addresses.delete(12345)

    run(scenario())


def test_listing_requires_credential(storefront, run):
    async def scenario():
        await storefront.identity.restore()
        with pytest.raises(AuthorizationError) as excinfo:
            await storefront.addresses.list()
        return excinfo.value

    assert run(scenario()).status_code == 401


def test_malformed_address_list_is_transient(storefront, transport, run):
    async def scenario():
        await storefront.identity.login(ALICE, "token-alice")
        await storefront.addresses.create(HOME)
        transport.answer_next("GET", "/api/users/addresses", [{"fullName": "No Id"}])
        with pytest.raises(TransientServerError):
            await storefront.addresses.list()

    run(scenario())
    assert [a.fullName for a in storefront.addresses.addresses] == ["Alice Example"]
