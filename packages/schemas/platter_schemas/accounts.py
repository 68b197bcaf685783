"""Account schemas - sign-in, sign-up and profile."""

from datetime import datetime

from pydantic import EmailStr, Field

from platter_schemas.base import WireModel


class UserProfile(WireModel):
    """The signed-in user as returned by the auth endpoints."""

    id: int
    name: str
    email: str
    phone: str = ""
    avatar: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    created_at: datetime | None = None


class LoginRequest(WireModel):
    """Body of POST /api/auth/login."""

    email: EmailStr
    password: str = Field(min_length=1)


class RegisterRequest(WireModel):
    """Body of POST /api/auth/register."""

    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    phone: str = Field(min_length=1, max_length=20)
    password: str = Field(min_length=6)


class AuthResult(WireModel):
    """Token and user returned by login/register."""

    token: str
    user: UserProfile


class UpdateProfileRequest(WireModel):
    """Body of PUT /api/auth/profile. Only the fields being changed are sent."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, min_length=1, max_length=20)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)

    @property
    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)
