"""
Pydantic schemas for the ordering views.

Request bodies accept the same camelCase names the backend uses.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

from platter_schemas import PaymentMethod, WireModel

# =============================================================================
# Cart
# =============================================================================


class CartItemBody(WireModel):
    """Body of cart/increment and cart/decrement."""

    restaurant_id: int
    menu_id: int


class StageBody(WireModel):
    """Body of cart/checkout - which restaurant to check out."""

    restaurant_id: int


# =============================================================================
# Checkout
# =============================================================================


class AdjustBody(WireModel):
    """Body of checkout/adjust. A quantity of 0 removes the line."""

    line_id: int
    quantity: int = Field(ge=0)


class SubmitBody(WireModel):
    """Body of checkout/submit."""

    address: str = Field(min_length=1, max_length=500)
    phone: str = Field(min_length=1, max_length=20)
    payment_method: PaymentMethod
    notes: str | None = Field(default=None, max_length=500)


# =============================================================================
# Orders
# =============================================================================


class ReviewBody(WireModel):
    """Body of orders/review."""

    transaction_id: str
    star: int
    comment: str = Field(default="", max_length=1000)


# =============================================================================
# Accounts
# =============================================================================


class SignInBody(WireModel):
    email: str
    password: str


class SignUpBody(WireModel):
    name: str
    email: str
    phone: str
    password: str


# =============================================================================
# Responses
# =============================================================================


class Envelope(BaseModel):
    """Every view answers with the same envelope the backend uses."""

    success: bool
    message: str = ""
    data: Any = None


class ValidationErrorDetail(BaseModel):
    """A single validation error."""

    field: str
    message: str


class ValidationErrorResponse(BaseModel):
    """Response for validation errors."""

    success: Literal[False] = False
    message: str = "validation_error"
    details: list[ValidationErrorDetail]
