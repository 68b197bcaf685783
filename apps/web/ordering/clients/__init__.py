"""Backend clients - implementations of the remote ordering services."""

from typing import Any

from apps.web.ordering.clients.base import (
    AccountService,
    CartService,
    OrderingBackend,
    OrderService,
    RestaurantService,
)
from apps.web.ordering.clients.http import HttpBackend
from apps.web.ordering.clients.mock import MockBackend

BACKEND_HTTP = "http"
BACKEND_MOCK = "mock"


def get_backend(kind: str, **kwargs: Any) -> OrderingBackend:
    """
    Get an ordering backend client of the given kind.

    Args:
        kind: "http" for the real REST API, "mock" for the in-memory backend.
        **kwargs: Passed to the backend constructor.
            For HttpBackend: base_url (required), timeout, http_client.

    Returns:
        A client implementing the OrderingBackend protocol.

    Raises:
        ValueError: If the kind is not supported.

    Example:
        backend = get_backend("http", base_url="https://api.example.com")
        cart = await backend.fetch_cart(token)
    """
    if kind == BACKEND_HTTP:
        return HttpBackend(**kwargs)
    elif kind == BACKEND_MOCK:
        return MockBackend(**kwargs)
    else:
        raise ValueError(
            f"Unsupported ordering backend: {kind}. "
            f"Supported: {BACKEND_HTTP}, {BACKEND_MOCK}"
        )


__all__ = [
    "BACKEND_HTTP",
    "BACKEND_MOCK",
    "AccountService",
    "CartService",
    "HttpBackend",
    "MockBackend",
    "OrderService",
    "OrderingBackend",
    "RestaurantService",
    "get_backend",
]
