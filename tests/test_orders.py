"""Tests for OrderSubmitter against scripted backend answers."""

import json

import httpx
import pytest

from storefront_client.clients import OrdersClient, StorefrontApi
from storefront_client.errors import NotFoundError, TransientServerError
from storefront_client.identity import IdentitySession
from storefront_client.models import CartItem, ShippingAddress
from storefront_client.orders import OrderSubmitter

ITEMS = [CartItem(cartItemId="ci-1", productId="p1", name="Desk Lamp", unitPrice=100, quantity=2, stockQuantity=5)]
ADDRESS = ShippingAddress(id=3, fullName="Alice Example", addressLine1="12 Market Road", city="Pune",
                          state="MH", pincode="411001", phone="9876543210")


def _submitter(handler):
    identity = IdentitySession()
    identity.user, identity.token = {"id": "alice"}, "token-alice"
    api = StorefrontApi(identity, base_url="http://storefront.test/api", transport=httpx.MockTransport(handler))
    return OrderSubmitter(OrdersClient(api))


def _order(order_id):
    return {"order_id": order_id, "items": [], "totalAmount": 250, "status": "Pending"}


def test_place_sends_one_request(run):
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(201, json={"orderId": 17, "message": "Order placed successfully!"})

    order_id = run(_submitter(handler).place(ITEMS, 250, ADDRESS))

    assert order_id == "17"
    assert len(requests) == 1
    body = json.loads(requests[0].content)
    assert body["totalAmount"] == 250
    assert body["shippingAddress"]["id"] == "3"
    assert body["items"][0]["cartItemId"] == "ci-1"
    assert requests[0].headers["Authorization"] == "Bearer token-alice"


def test_place_is_not_retried_on_failure(run):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500, json={"message": "boom"})

    with pytest.raises(TransientServerError):
        run(_submitter(handler).place(ITEMS, 250, ADDRESS))
    assert len(calls) == 1


def test_place_without_order_id(run):
    with pytest.raises(TransientServerError):
        run(_submitter(lambda request: httpx.Response(201, json={"message": "ok"})).place(ITEMS, 250, ADDRESS))


def test_find_order_waits_for_visibility(run):
    answers = [[], [_order(9)], [_order(8), _order(9)]]
    calls = []

    def handler(request):
        calls.append(request.url.path)
        return httpx.Response(200, json=answers[len(calls) - 1])

    order = run(_submitter(handler).find_order(8, attempts=3, backoff=0))

    assert order.orderId == "8"
    assert calls == ["/api/orders/my"] * 3


def test_find_order_gives_up(run):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=[_order(1)])

    with pytest.raises(NotFoundError):
        run(_submitter(handler).find_order("2", attempts=2, backoff=0))
    assert len(calls) == 2


def test_malformed_orders(run):
    submitter = _submitter(lambda request: httpx.Response(200, json=[{"status": "Pending"}]))
    with pytest.raises(TransientServerError):
        run(submitter.get_my_orders())
