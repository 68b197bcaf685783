"""
Session-scoped storage and identity.

The checkout flow hands records between screens through a small key/value
store scoped to the user's browser session. Identity (token + user) lives in
the same store, but services never read it ad hoc: a `SessionContext` is built
once per request and passed to them explicitly.
"""

import copy
import logging
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar, runtime_checkable

from django.contrib.sessions.backends.base import SessionBase

from platter_schemas import UserProfile, WireModel
from pydantic import ValidationError

from apps.web.ordering.exceptions import AuthenticationRequiredError

logger = logging.getLogger(__name__)

AUTH_TOKEN_KEY = "auth-token"
CURRENT_USER_KEY = "current-user"
CHECKOUT_STAGING_KEY = "checkout-staging"
RECEIPT_KEY = "receipt"

RecordT = TypeVar("RecordT", bound=WireModel)


# =============================================================================
# Stores
# =============================================================================


@runtime_checkable
class SessionStore(Protocol):
    """Durable key/value storage scoped to one browser session."""

    def get(self, key: str) -> Any | None:
        """Return the stored JSON-compatible value, or None if absent."""
        ...

    def set(self, key: str, value: Any) -> None:
        """Store a JSON-compatible value, replacing any previous one."""
        ...

    def delete(self, key: str) -> None:
        """Remove a key. Missing keys are ignored."""
        ...


class DjangoSessionStore:
    """SessionStore backed by `request.session`."""

    def __init__(self, session: SessionBase) -> None:
        self._session = session

    def get(self, key: str) -> Any | None:
        return self._session.get(key)

    def set(self, key: str, value: Any) -> None:
        self._session[key] = value

    def delete(self, key: str) -> None:
        self._session.pop(key, None)


class InMemorySessionStore:
    """SessionStore kept in a dict (tests, scripts)."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial or {})

    def get(self, key: str) -> Any | None:
        # Copies keep callers from mutating stored state in place
        return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


# =============================================================================
# Records
# =============================================================================


@dataclass(frozen=True)
class NotFound:
    """No record is stored under `key`."""

    key: str


def read_record(
    store: SessionStore, key: str, model: type[RecordT]
) -> RecordT | NotFound:
    """
    Read and validate a record from the store.

    A stored value that no longer validates (e.g. written by an older
    release) is discarded and reported as NotFound.
    """
    raw = store.get(key)
    if raw is None:
        return NotFound(key=key)

    try:
        return model.model_validate(raw)
    except ValidationError as e:
        logger.warning("Discarding unreadable session record %s: %s", key, e)
        store.delete(key)
        return NotFound(key=key)


def write_record(store: SessionStore, key: str, record: WireModel) -> None:
    """Serialize a record into the store under `key`."""
    store.set(key, record.to_wire())


# =============================================================================
# Identity
# =============================================================================


@dataclass(frozen=True)
class Anonymous:
    """No signed-in user. No cart or order calls are made."""

    is_authenticated = False


@dataclass(frozen=True)
class Authenticated:
    """Signed-in user with a backend bearer token."""

    token: str
    user: UserProfile | None = None

    is_authenticated = True


SessionContext = Authenticated | Anonymous

ANONYMOUS = Anonymous()


def context_from_store(store: SessionStore) -> SessionContext:
    """Build the explicit session context from stored identity keys."""
    token = store.get(AUTH_TOKEN_KEY)
    if not token:
        return ANONYMOUS

    user = None
    raw_user = store.get(CURRENT_USER_KEY)
    if raw_user:
        try:
            user = UserProfile.model_validate(raw_user)
        except ValidationError:
            logger.warning("Stored user profile is unreadable, keeping token only")

    return Authenticated(token=token, user=user)


def require_token(context: SessionContext) -> str:
    """Return the bearer token or raise if the session is anonymous."""
    if isinstance(context, Authenticated):
        return context.token
    raise AuthenticationRequiredError("Sign in to continue")
