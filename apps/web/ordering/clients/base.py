"""Backend client protocols - interface for the remote ordering services."""

from typing import Protocol, runtime_checkable

from platter_schemas import (
    AuthResult,
    Cart,
    CheckoutRequest,
    LoginRequest,
    OrderPage,
    OrderStatus,
    RegisterRequest,
    Restaurant,
    RestaurantDetail,
    RestaurantFilters,
    Review,
    ReviewRequest,
    Transaction,
    UpdateProfileRequest,
    UserProfile,
)


@runtime_checkable
class CartService(Protocol):
    """
    Remote cart service.

    Every mutation returns the updated authoritative cart. Methods are async
    so cart calls never block the event loop.
    """

    async def fetch_cart(self, token: str) -> Cart:
        """
        Fetch the full multi-restaurant cart.

        Raises:
            PlatterAPIError: If the request fails.
            AuthenticationError: If the token is rejected.
        """
        ...

    async def add_item(
        self, token: str, restaurant_id: int, menu_item_id: int, quantity: int = 1
    ) -> Cart:
        """
        Add `quantity` of a menu item to the restaurant's partition.

        Raises:
            PlatterAPIError: If the request fails.
        """
        ...

    async def update_line(self, token: str, line_id: int, quantity: int) -> Cart:
        """
        Set a cart line's quantity (must be >= 1).

        Raises:
            PlatterAPIError: If the request fails or the line is unknown.
        """
        ...

    async def delete_line(self, token: str, line_id: int) -> Cart:
        """
        Remove a cart line.

        Raises:
            PlatterAPIError: If the request fails or the line is unknown.
        """
        ...

    async def clear_cart(self, token: str) -> Cart:
        """
        Remove every line from every restaurant.

        Raises:
            PlatterAPIError: If the request fails.
        """
        ...


@runtime_checkable
class OrderService(Protocol):
    """Remote order service - checkout, history and reviews."""

    async def checkout(self, token: str, request: CheckoutRequest) -> Transaction:
        """
        Place an order.

        Returns:
            The created transaction with its pricing breakdown.

        Raises:
            ValidationFailedError: If the backend rejects the request.
            PlatterAPIError: If the request fails.
        """
        ...

    async def list_orders(
        self, token: str, status: OrderStatus | None = None, page: int = 1
    ) -> OrderPage:
        """
        Fetch one page of the user's orders, optionally filtered by status.

        Raises:
            PlatterAPIError: If the request fails.
        """
        ...

    async def create_review(self, token: str, request: ReviewRequest) -> Review:
        """
        Review a completed order.

        Raises:
            ValidationFailedError: If the backend rejects the review.
            PlatterAPIError: If the request fails.
        """
        ...


@runtime_checkable
class AccountService(Protocol):
    """Remote auth service."""

    async def login(self, request: LoginRequest) -> AuthResult:
        """
        Exchange credentials for a token.

        Raises:
            AuthenticationError: If the credentials are rejected.
        """
        ...

    async def register(self, request: RegisterRequest) -> AuthResult:
        """
        Create an account and sign it in.

        Raises:
            ValidationFailedError: If the backend rejects the request.
        """
        ...

    async def fetch_profile(self, token: str) -> UserProfile:
        """
        Fetch the signed-in user's profile.

        Raises:
            AuthenticationError: If the token is rejected.
        """
        ...

    async def update_profile(
        self, token: str, request: UpdateProfileRequest
    ) -> UserProfile:
        """
        Change the signed-in user's profile; only fields set on `request` change.

        Raises:
            ValidationFailedError: If the backend rejects a field.
            AuthenticationError: If the token is rejected.
        """
        ...


@runtime_checkable
class RestaurantService(Protocol):
    """
    Remote restaurant catalog.

    Browse calls work without a token; when one is given the backend may
    personalise the result (recommendations, distance).
    """

    async def list_restaurants(
        self, filters: RestaurantFilters | None = None, token: str | None = None
    ) -> list[Restaurant]:
        """
        List restaurants, optionally filtered by price range and rating.

        Raises:
            PlatterAPIError: If the request fails.
        """
        ...

    async def search_restaurants(
        self, filters: RestaurantFilters, token: str | None = None
    ) -> list[Restaurant]:
        """
        Restaurants whose name or menu matches `filters.search`.

        Raises:
            PlatterAPIError: If the request fails.
        """
        ...

    async def recommended_restaurants(self, token: str | None = None) -> list[Restaurant]:
        ...

    async def nearby_restaurants(self, token: str) -> list[Restaurant]:
        """
        Restaurants closest to the user's saved location.

        Raises:
            AuthenticationError: If the token is rejected.
        """
        ...

    async def best_seller_restaurants(self, limit: int | None = None) -> list[Restaurant]:
        ...

    async def get_restaurant(self, restaurant_id: int) -> RestaurantDetail:
        """
        One restaurant with its full menu and reviews.

        Raises:
            PlatterAPIError: If the request fails (404 for an unknown ID).
        """
        ...


@runtime_checkable
class OrderingBackend(
    CartService, OrderService, AccountService, RestaurantService, Protocol
):
    """Everything the ordering front-end needs from the backend."""

    async def close(self) -> None:
        """Release network resources."""
        ...
