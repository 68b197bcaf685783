"""Tests for the account service."""

import pytest
from platter_schemas import UpdateProfileRequest
from pydantic import ValidationError

from apps.web.ordering.exceptions import (
    AuthenticationError,
    AuthenticationRequiredError,
    ValidationFailedError,
)
from apps.web.ordering.services.accounts import (
    fetch_profile,
    sign_in,
    sign_out,
    sign_up,
    update_profile,
)
from apps.web.ordering.session import (
    ANONYMOUS,
    AUTH_TOKEN_KEY,
    CHECKOUT_STAGING_KEY,
    CURRENT_USER_KEY,
    RECEIPT_KEY,
    Authenticated,
    InMemorySessionStore,
    context_from_store,
)


class TestSignIn:
    """Tests for signing in."""

    @pytest.mark.asyncio
    async def test_sign_in_stores_identity(self, backend):
        """Test a successful sign-in writes token and user to the session."""
        backend.create_session(email="ani@example.com", name="Ani", password="hunter22")
        store = InMemorySessionStore()

        context = await sign_in(backend, store, "ani@example.com", "hunter22")

        assert isinstance(context, Authenticated)
        assert store.get(AUTH_TOKEN_KEY) == context.token
        assert store.get(CURRENT_USER_KEY)["email"] == "ani@example.com"
        assert context_from_store(store) == context

    @pytest.mark.asyncio
    async def test_wrong_password(self, backend):
        """Test rejected credentials leave the session anonymous."""
        backend.create_session(email="ani@example.com", password="hunter22")
        store = InMemorySessionStore()

        with pytest.raises(AuthenticationError):
            await sign_in(backend, store, "ani@example.com", "wrong")

        assert context_from_store(store) == ANONYMOUS

    @pytest.mark.asyncio
    async def test_malformed_email(self, backend):
        """Test a malformed email fails validation before any request."""
        with pytest.raises(ValidationError):
            await sign_in(backend, InMemorySessionStore(), "not-an-email", "x")

        assert backend.calls == []


class TestSignUp:
    """Tests for account creation."""

    @pytest.mark.asyncio
    async def test_sign_up_signs_in(self, backend):
        """Test a new account is signed in straight away."""
        store = InMemorySessionStore()

        context = await sign_up(
            backend, store, "Budi", "budi@example.com", "0813-2222-3333", "secret12"
        )

        assert context.user.name == "Budi"
        assert context.user.phone == "0813-2222-3333"
        assert store.get(AUTH_TOKEN_KEY) == context.token

    @pytest.mark.asyncio
    async def test_duplicate_email(self, backend):
        """Test registering a taken email reports the field error."""
        backend.create_session(email="budi@example.com")

        with pytest.raises(ValidationFailedError) as exc_info:
            await sign_up(
                backend,
                InMemorySessionStore(),
                "Budi",
                "budi@example.com",
                "0813",
                "secret12",
            )

        assert "email" in exc_info.value.errors

    @pytest.mark.asyncio
    async def test_short_password(self, backend):
        """Test passwords under 6 characters are rejected locally."""
        with pytest.raises(ValidationError):
            await sign_up(
                backend, InMemorySessionStore(), "Budi", "b@example.com", "0813", "123"
            )


class TestSignOut:
    """Tests for signing out."""

    def test_sign_out_forgets_identity_and_checkout(self, store):
        """Test sign-out removes identity and any staged checkout."""
        store.set(CURRENT_USER_KEY, {"id": 1, "name": "Ani", "email": "a@example.com"})
        store.set(CHECKOUT_STAGING_KEY, {"restaurant": {"id": 1, "name": "X"}})
        store.set(RECEIPT_KEY, {"kept": True})

        context = sign_out(store)

        assert context == ANONYMOUS
        assert store.keys() == [RECEIPT_KEY]


class TestFetchProfile:
    """Tests for the profile."""

    @pytest.mark.asyncio
    async def test_fetch_profile(self, backend, context):
        """Test the signed-in user's profile is returned."""
        profile = await fetch_profile(backend, context)

        assert profile.email == "customer@example.com"

    @pytest.mark.asyncio
    async def test_fetch_profile_anonymous(self, backend):
        """Test an anonymous session has no profile."""
        with pytest.raises(AuthenticationRequiredError):
            await fetch_profile(backend, ANONYMOUS)


class TestUpdateProfile:
    """Tests for changing the profile."""

    @pytest.mark.asyncio
    async def test_update_stores_user(self, backend, store, context):
        """Test the updated profile replaces the remembered user."""
        request = UpdateProfileRequest(name="Renamed", latitude=-6.2, longitude=106.8)

        profile = await update_profile(backend, store, context, request)

        assert profile.name == "Renamed"
        assert profile.latitude == -6.2
        assert store.get(CURRENT_USER_KEY)["name"] == "Renamed"
        changes = {"name": "Renamed", "latitude": -6.2, "longitude": 106.8}
        assert ("update_profile", changes) in backend.calls

    @pytest.mark.asyncio
    async def test_empty_update(self, backend, store, context):
        """Test an update with no fields is refused before any request."""
        with pytest.raises(ValueError, match="Nothing to update"):
            await update_profile(backend, store, context, UpdateProfileRequest())

        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_update_anonymous(self, backend, store):
        with pytest.raises(AuthenticationRequiredError):
            await update_profile(
                backend, store, ANONYMOUS, UpdateProfileRequest(name="X")
            )

    @pytest.mark.asyncio
    async def test_email_taken(self, backend, store, context):
        """Test the backend's rejection of a taken email propagates."""
        backend.create_session(email="taken@example.com")

        with pytest.raises(ValidationFailedError):
            await update_profile(
                backend, store, context, UpdateProfileRequest(email="taken@example.com")
            )
