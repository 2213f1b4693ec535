"""Pytest fixtures for the storefront client tests.

The client talks to the FastAPI mock backend in-process through
httpx.ASGITransport. RecordingTransport sits in between so tests can see which
requests were sent, hold a request until the test releases it, or answer a
request with an injected failure instead of forwarding it.
"""

import asyncio

import httpx
import pytest

from mock_services.mock_storefront_api import create_app
from storefront_client.identity import IdentitySession
from storefront_client.main import Storefront

BASE_URL = "http://storefront.test/api"

ALICE = {"id": "alice", "email": "alice@example.com"}
BOB = {"id": "bob", "email": "bob@example.com"}


class Gate:
    """Holds the first matching request until `release` is set."""

    def __init__(self, method, path):
        self.method = method
        self.path = path
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    def matches(self, request):
        return request.method == self.method and request.url.path == self.path


class RecordingTransport(httpx.AsyncBaseTransport):
    def __init__(self, inner):
        self.inner = inner
        self.requests = []
        self._gates = []
        self._scripted = []

    def hold(self, method, path):
        gate = Gate(method, path)
        self._gates.append(gate)
        return gate

    def fail_next(self, method, path, status_code=None, message="Injected failure.", error=None):
        """Answers the next matching request with `status_code`, or raises `error`."""
        self._scripted.append((method, path, status_code, {"message": message}, error))

    def answer_next(self, method, path, body, status_code=200):
        """Answers the next matching request with `body` instead of forwarding it."""
        self._scripted.append((method, path, status_code, body, None))

    def sent(self, method=None, path=None):
        return [
            (m, p) for m, p, _ in self.requests
            if (method is None or m == method) and (path is None or p == path)
        ]

    async def handle_async_request(self, request):
        self.requests.append((request.method, request.url.path, request.content))

        for gate in list(self._gates):
            if gate.matches(request):
                self._gates.remove(gate)
                gate.entered.set()
                await gate.release.wait()
                break

        for scripted in list(self._scripted):
            method, path, status_code, body, error = scripted
            if request.method == method and request.url.path == path:
                self._scripted.remove(scripted)
                if error is not None:
                    raise error
                return httpx.Response(status_code, json=body, request=request)

        return await self.inner.handle_async_request(request)


@pytest.fixture
def backend():
    return create_app()


@pytest.fixture
def transport(backend):
    return RecordingTransport(httpx.ASGITransport(app=backend))


@pytest.fixture
def storefront(transport):
    return Storefront(IdentitySession(), base_url=BASE_URL, transport=transport)


@pytest.fixture
def run():
    """Runs a coroutine to completion on a fresh event loop."""
    return asyncio.run
