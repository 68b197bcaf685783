"""
Pytest configuration for Django app tests.
"""

import pytest

from apps.web.ordering.clients import MockBackend
from apps.web.ordering.session import (
    AUTH_TOKEN_KEY,
    Authenticated,
    InMemorySessionStore,
)


@pytest.fixture
def backend() -> MockBackend:
    """In-memory ordering backend with the default catalog."""
    return MockBackend()


@pytest.fixture
def token(backend: MockBackend) -> str:
    """A signed-in customer's token on the mock backend."""
    return backend.create_session()


@pytest.fixture
def context(token: str) -> Authenticated:
    """Authenticated session context for the test customer."""
    return Authenticated(token=token)


@pytest.fixture
def store(token: str) -> InMemorySessionStore:
    """Session store holding the test customer's identity."""
    return InMemorySessionStore({AUTH_TOKEN_KEY: token})
