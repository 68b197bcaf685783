"""
Account service - sign-in, sign-up, sign-out and the profile.

Identity is written to the session store here and nowhere else; the rest of
the app reads it once per request through `context_from_store`.
"""

import logging

from platter_schemas import (
    AuthResult,
    LoginRequest,
    RegisterRequest,
    UpdateProfileRequest,
    UserProfile,
)

from apps.web.ordering.clients.base import AccountService
from apps.web.ordering.session import (
    ANONYMOUS,
    AUTH_TOKEN_KEY,
    CHECKOUT_STAGING_KEY,
    CURRENT_USER_KEY,
    Authenticated,
    SessionContext,
    SessionStore,
    require_token,
)

logger = logging.getLogger(__name__)


def _remember(store: SessionStore, result: AuthResult) -> Authenticated:
    store.set(AUTH_TOKEN_KEY, result.token)
    store.set(CURRENT_USER_KEY, result.user.to_wire())
    return Authenticated(token=result.token, user=result.user)


async def sign_in(
    service: AccountService, store: SessionStore, email: str, password: str
) -> Authenticated:
    """
    Sign in with email and password.

    Raises:
        pydantic.ValidationError: If the email or password is malformed.
        AuthenticationError: If the credentials are rejected.
        PlatterAPIError: If the backend call fails.
    """
    result = await service.login(LoginRequest(email=email, password=password))
    logger.info("User %s signed in", result.user.id)
    return _remember(store, result)


async def sign_up(
    service: AccountService,
    store: SessionStore,
    name: str,
    email: str,
    phone: str,
    password: str,
) -> Authenticated:
    """
    Create an account and sign in as it.

    Raises:
        pydantic.ValidationError: If a field is malformed.
        ValidationFailedError: If the backend rejects the account (e.g. email taken).
        PlatterAPIError: If the backend call fails.
    """
    request = RegisterRequest(name=name, email=email, phone=phone, password=password)
    result = await service.register(request)
    logger.info("User %s registered", result.user.id)
    return _remember(store, result)


def sign_out(store: SessionStore) -> SessionContext:
    """Forget the identity and any checkout in progress."""
    for key in (AUTH_TOKEN_KEY, CURRENT_USER_KEY, CHECKOUT_STAGING_KEY):
        store.delete(key)
    return ANONYMOUS


async def fetch_profile(service: AccountService, context: SessionContext) -> UserProfile:
    """
    Fetch the signed-in user's profile.

    Raises:
        AuthenticationRequiredError: If the session is anonymous.
        AuthenticationError: If the token is no longer valid.
    """
    return await service.fetch_profile(require_token(context))


async def update_profile(
    service: AccountService,
    store: SessionStore,
    context: SessionContext,
    request: UpdateProfileRequest,
) -> UserProfile:
    """
    Change the signed-in user's profile and refresh the stored copy.

    Raises:
        AuthenticationRequiredError: If the session is anonymous.
        ValueError: If the request changes nothing.
        ValidationFailedError: If the backend rejects a field (e.g. email taken).
    """
    token = require_token(context)
    if request.is_empty:
        raise ValueError("Nothing to update")

    user = await service.update_profile(token, request)
    store.set(CURRENT_USER_KEY, user.to_wire())
    logger.info("User %s updated their profile", user.id)
    return user
