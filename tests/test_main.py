from conftest import BASE_URL
from storefront_client.identity import CredentialStore
from storefront_client.main import open_storefront
from storefront_client.workflow import CheckoutFlow


def test_open_storefront_restores_session_and_loads_cart(tmp_path, transport, run):
    session_file = str(tmp_path / "session.json")
    CredentialStore(session_file).save({"id": "alice"}, "token-alice")

    async def scenario():
        storefront = await open_storefront(BASE_URL, session_file=session_file,
                                           transport=transport, configure_logging=False)
        async with storefront:
            await storefront.cart.add("p2", 1)
            flow = await storefront.start_checkout()
            return storefront, flow

    storefront, flow = run(scenario())
    assert storefront.identity.is_authenticated
    assert transport.sent()[0] == ("GET", "/api/cart")
    assert isinstance(flow, CheckoutFlow)
    assert flow.totals().totalAmount == 350
