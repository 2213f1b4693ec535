import httpx
import pytest

from storefront_client.errors import (
    AuthorizationError,
    NotFoundError,
    RequestRejectedError,
    TransientServerError,
    classify_http_error,
    login_redirect,
)


def _status_error(status_code, body=None):
    request = httpx.Request("GET", "http://storefront.test/api/cart")
    response = httpx.Response(status_code, json=body, request=request)
    return httpx.HTTPStatusError("failed", request=request, response=response)


@pytest.mark.parametrize("status_code, error_type", [
    (401, AuthorizationError),
    (403, AuthorizationError),
    (404, NotFoundError),
    (400, RequestRejectedError),
    (409, RequestRejectedError),
    (500, TransientServerError),
    (503, TransientServerError),
])
def test_status_codes_are_classified(status_code, error_type):
    assert isinstance(classify_http_error(_status_error(status_code)), error_type)


def test_server_message_is_kept():
    error = classify_http_error(_status_error(400, {"message": "Not enough stock."}))
    assert str(error) == "Not enough stock."
    assert error.status_code == 400


def test_fastapi_detail_is_unwrapped():
    error = classify_http_error(_status_error(400, {"detail": {"message": "Invalid address."}}))
    assert str(error) == "Invalid address."


def test_default_message_without_body():
    error = classify_http_error(_status_error(502), "Failed to clear cart.")
    assert str(error) == "Failed to clear cart."


def test_transport_errors_are_transient():
    error = classify_http_error(httpx.ReadTimeout("timed out"), "Failed to place order.")
    assert isinstance(error, TransientServerError)
    assert "ReadTimeout" in str(error)


def test_login_redirect_preserves_destination():
    assert login_redirect("/checkout") == "/login?next=%2Fcheckout"
    assert AuthorizationError().login_redirect("/cart?x=1") == "/login?next=%2Fcart%3Fx%3D1"
