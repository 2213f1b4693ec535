"""
errors.py — Error Taxonomy for the Storefront Client

Every component classifies its own failures into one of these types and
raises it to the caller. Presentation (notifications, redirects) is left to
whoever drives the components.

Taxonomy:
    • ValidationError — detected client-side, never reaches the network
    • AuthorizationError — 401/403 from any call
    • TransientServerError — 5xx, timeouts and network failures (treated alike)
    • CartResyncError — a cart change went through but the reload after it failed
    • NotFoundError — a requested cart item, address or order is absent
    • RequestRejectedError — any other 4xx the server answers with a message
"""

from urllib.parse import quote

import httpx


class StorefrontError(Exception):
    """Base exception for all storefront client errors."""

    pass


class ValidationError(StorefrontError):
    """Raised when input is rejected locally before any request is sent."""

    def __init__(self, message: str, fields: list | None = None):
        self.fields = list(fields or [])
        super().__init__(message)


class AuthorizationError(StorefrontError):
    """Raised for missing or expired credentials (HTTP 401/403)."""

    def __init__(self, message: str = "Please log in to continue.", status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)

    def login_redirect(self, destination: str) -> str:
        """Login route that returns the shopper to `destination` afterwards."""
        return login_redirect(destination)


class TransientServerError(StorefrontError):
    """Raised for server errors and transport failures. Never retried automatically."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class CartResyncError(TransientServerError):
    """
    Raised when the server accepted a cart change but the reload afterwards failed.
    The change is applied server-side; only the local copy is stale.
    """

    def __init__(self, message: str = "Your cart was updated, but it could not be refreshed."):
        super().__init__(message)


class NotFoundError(StorefrontError):
    """Raised when a specific cart item, address or order does not exist."""

    pass


class RequestRejectedError(StorefrontError):
    """Raised when the server refuses a request (4xx) with its own message."""

    def __init__(self, message: str, status_code: int):
        self.status_code = status_code
        super().__init__(message)


class CartEmptyError(StorefrontError):
    """Raised when checkout is entered with an empty cart."""

    def __init__(self):
        super().__init__("Your cart is empty!")


class CheckoutStateError(StorefrontError):
    """Raised when a checkout transition is requested from the wrong step."""

    pass


def login_redirect(destination: str) -> str:
    return f"/login?next={quote(destination, safe='')}"


def _server_message(response: httpx.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return default
    if not isinstance(body, dict):
        return default
    detail = body.get("detail")
    if isinstance(detail, dict):
        body = detail
    elif isinstance(detail, str):
        return detail
    return body.get("message") or default


def classify_http_error(exc: Exception, default: str = "Request failed.") -> StorefrontError:
    """
    Maps an httpx exception onto the storefront error taxonomy.

    Args:
        exc (Exception): An `httpx.HTTPStatusError` or `httpx.TransportError`.
        default (str): Message used when the server supplies none.

    Returns:
        StorefrontError: The classified error. The caller raises it `from exc`.
    """
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        message = _server_message(exc.response, default)
        if status in (401, 403):
            return AuthorizationError(message, status_code=status)
        if status == 404:
            return NotFoundError(message)
        if status >= 500:
            return TransientServerError(message, status_code=status)
        return RequestRejectedError(message, status_code=status)
    if isinstance(exc, httpx.TransportError):
        # Timeouts, refused connections and protocol errors are all treated alike.
        return TransientServerError(f"{default} ({exc.__class__.__name__})")
    return TransientServerError(default)
