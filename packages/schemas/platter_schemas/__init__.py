"""Platter Schemas - Pydantic models for data contracts."""

from platter_schemas.accounts import (
    AuthResult,
    LoginRequest,
    RegisterRequest,
    UpdateProfileRequest,
    UserProfile,
)
from platter_schemas.base import WireModel
from platter_schemas.cart import (
    AddToCartRequest,
    Cart,
    CartLine,
    CartSummary,
    MenuRef,
    RestaurantCartPartition,
    RestaurantRef,
    UpdateCartRequest,
)
from platter_schemas.checkout import (
    CheckoutStagingRecord,
    DeliveryInfo,
    ReceiptRecord,
)
from platter_schemas.orders import (
    CheckoutItem,
    CheckoutRequest,
    CheckoutRestaurant,
    Order,
    OrderLine,
    OrderPage,
    OrderStatus,
    Pagination,
    PaymentMethod,
    Review,
    ReviewRequest,
    Transaction,
)
from platter_schemas.restaurants import (
    Restaurant,
    RestaurantDetail,
    RestaurantFilters,
    RestaurantReview,
    ReviewAuthor,
    restaurant_list,
)

__all__ = [
    "WireModel",
    # Accounts
    "AuthResult",
    "LoginRequest",
    "RegisterRequest",
    "UpdateProfileRequest",
    "UserProfile",
    # Cart
    "AddToCartRequest",
    "Cart",
    "CartLine",
    "CartSummary",
    "MenuRef",
    "RestaurantCartPartition",
    "RestaurantRef",
    "UpdateCartRequest",
    # Checkout
    "CheckoutStagingRecord",
    "DeliveryInfo",
    "ReceiptRecord",
    # Orders
    "CheckoutItem",
    "CheckoutRequest",
    "CheckoutRestaurant",
    "Order",
    "OrderLine",
    "OrderPage",
    "OrderStatus",
    "Pagination",
    "PaymentMethod",
    "Review",
    "ReviewRequest",
    "Transaction",
    # Restaurants
    "Restaurant",
    "RestaurantDetail",
    "RestaurantFilters",
    "RestaurantReview",
    "ReviewAuthor",
    "restaurant_list",
]
