"""Order schemas - checkout requests, created transactions, history, reviews."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import Field

from platter_schemas.base import WireModel
from platter_schemas.cart import MenuRef, RestaurantRef

# =============================================================================
# Enums
# =============================================================================


class OrderStatus(str, Enum):
    """Order lifecycle status as reported by the backend."""

    PREPARING = "preparing"
    ON_THE_WAY = "on_the_way"
    DELIVERED = "delivered"
    DONE = "done"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    """Bank transfer methods offered at checkout."""

    BNI = "bni"
    BRI = "bri"
    BCA = "bca"
    MANDIRI = "mandiri"

    @property
    def display_name(self) -> str:
        return {
            PaymentMethod.BNI: "Bank Negara Indonesia",
            PaymentMethod.BRI: "Bank Rakyat Indonesia",
            PaymentMethod.BCA: "Bank Central Asia",
            PaymentMethod.MANDIRI: "Mandiri",
        }[self]


# =============================================================================
# Checkout
# =============================================================================


class CheckoutItem(WireModel):
    """A menu item and quantity inside a checkout request."""

    menu_id: int
    quantity: int = Field(ge=1)


class CheckoutRestaurant(WireModel):
    """One restaurant group inside a checkout request."""

    restaurant_id: int
    items: list[CheckoutItem]


class CheckoutRequest(WireModel):
    """Body of POST /api/order/checkout."""

    restaurants: list[CheckoutRestaurant] = Field(min_length=1)
    delivery_address: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    payment_method: PaymentMethod
    notes: str | None = None


class Transaction(WireModel):
    """Created order with its pricing breakdown."""

    transaction_id: str
    user_id: int | None = None
    payment_method: str
    price: Decimal
    service_fee: Decimal = Decimal("0")
    delivery_fee: Decimal = Decimal("0")
    total_price: Decimal
    status: str
    created_at: datetime | None = None


# =============================================================================
# History
# =============================================================================


class OrderLine(WireModel):
    """Line item of a placed order."""

    id: int
    menu_id: int
    quantity: int
    price: Decimal
    menu: MenuRef | None = None


class Order(WireModel):
    """A placed order with nested restaurant, lines and pricing."""

    transaction_id: str
    user_id: int | None = None
    payment_method: str
    price: Decimal
    service_fee: Decimal = Decimal("0")
    delivery_fee: Decimal = Decimal("0")
    total_price: Decimal
    status: OrderStatus
    created_at: datetime | None = None
    restaurant: RestaurantRef
    items: list[OrderLine] = Field(default_factory=list)

    @property
    def is_reviewable(self) -> bool:
        return self.status == OrderStatus.DONE


class Pagination(WireModel):
    """Page metadata for order history."""

    current_page: int = 1
    total_pages: int = 1
    total_orders: int = 0
    orders_per_page: int = 10


class OrderPage(WireModel):
    """One page of order history."""

    orders: list[Order] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


# =============================================================================
# Reviews
# =============================================================================


class ReviewRequest(WireModel):
    """Body of POST /api/review."""

    transaction_id: str
    star: int = Field(ge=1, le=5)
    comment: str = ""


class Review(WireModel):
    """A review as stored by the backend."""

    id: int
    user_id: int | None = None
    restaurant_id: int | None = None
    transaction_id: str
    star: int
    comment: str = ""
    created_at: datetime | None = None
