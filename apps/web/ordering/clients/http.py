"""HTTP backend client - the ordering REST API over httpx."""

import asyncio
import logging
from typing import Any, TypeVar

import httpx
from platter_schemas import (
    AddToCartRequest,
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
    UpdateCartRequest,
    UpdateProfileRequest,
    UserProfile,
    WireModel,
    restaurant_list,
)
from pydantic import ValidationError

from apps.web.ordering.exceptions import (
    AuthenticationError,
    PlatterAPIError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=WireModel)


class HttpBackend:
    """
    Ordering backend client implementing the OrderingBackend protocol.

    Talks to the REST API that owns restaurants, carts, orders and accounts.
    Every response is an envelope `{"success", "message", "data"}`; callers
    only ever see the parsed `data`.

    Mutations are sent exactly once. Reads (GET) are retried on transport
    errors and 5xx responses since repeating them is harmless.
    """

    DEFAULT_TIMEOUT = 30.0

    # Retry configuration (reads only)
    MAX_READ_ATTEMPTS = 3
    RETRY_BACKOFF_BASE = 0.5

    def __init__(
        self,
        base_url: str,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """
        Initialize the backend client.

        Args:
            base_url: Backend root URL, e.g. https://api.example.com
            http_client: Optional HTTP client for dependency injection (testing).
            timeout: Transport timeout in seconds when we create the client.
        """
        self._base_url = base_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpBackend":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # =========================================================================
    # Cart
    # =========================================================================

    async def fetch_cart(self, token: str) -> Cart:
        data = await self._request("GET", "/api/cart", token=token)
        return self._parse(Cart, data)

    async def add_item(
        self, token: str, restaurant_id: int, menu_item_id: int, quantity: int = 1
    ) -> Cart:
        body = AddToCartRequest(
            restaurant_id=restaurant_id, menu_id=menu_item_id, quantity=quantity
        )
        data = await self._request("POST", "/api/cart", token=token, json=body.to_wire())
        return self._parse(Cart, data)

    async def update_line(self, token: str, line_id: int, quantity: int) -> Cart:
        body = UpdateCartRequest(quantity=quantity)
        data = await self._request(
            "PUT", f"/api/cart/{line_id}", token=token, json=body.to_wire()
        )
        return self._parse(Cart, data)

    async def delete_line(self, token: str, line_id: int) -> Cart:
        data = await self._request("DELETE", f"/api/cart/{line_id}", token=token)
        return self._parse(Cart, data)

    async def clear_cart(self, token: str) -> Cart:
        data = await self._request("DELETE", "/api/cart", token=token)
        # Some backend builds answer a clear with no data at all
        if not data:
            return Cart.empty()
        return self._parse(Cart, data)

    # =========================================================================
    # Orders
    # =========================================================================

    async def checkout(self, token: str, request: CheckoutRequest) -> Transaction:
        data = await self._request(
            "POST", "/api/order/checkout", token=token, json=request.to_wire()
        )
        return self._parse(Transaction, data)

    async def list_orders(
        self, token: str, status: OrderStatus | None = None, page: int = 1
    ) -> OrderPage:
        params: dict[str, Any] = {"page": page}
        if status is not None:
            params["status"] = status.value
        data = await self._request(
            "GET", "/api/order/my-order", token=token, params=params
        )
        return self._parse(OrderPage, data)

    async def create_review(self, token: str, request: ReviewRequest) -> Review:
        data = await self._request(
            "POST", "/api/review", token=token, json=request.to_wire()
        )
        return self._parse(Review, data)

    # =========================================================================
    # Accounts
    # =========================================================================

    async def login(self, request: LoginRequest) -> AuthResult:
        data = await self._request("POST", "/api/auth/login", json=request.to_wire())
        return self._parse(AuthResult, data)

    async def register(self, request: RegisterRequest) -> AuthResult:
        data = await self._request(
            "POST", "/api/auth/register", json=request.to_wire()
        )
        return self._parse(AuthResult, data)

    async def fetch_profile(self, token: str) -> UserProfile:
        data = await self._request("GET", "/api/auth/profile", token=token)
        return self._parse(UserProfile, data)

    async def update_profile(
        self, token: str, request: UpdateProfileRequest
    ) -> UserProfile:
        data = await self._request(
            "PUT", "/api/auth/profile", token=token, json=request.to_wire()
        )
        return self._parse(UserProfile, data)

    # =========================================================================
    # Restaurants
    # =========================================================================

    async def list_restaurants(
        self, filters: RestaurantFilters | None = None, token: str | None = None
    ) -> list[Restaurant]:
        params = filters.to_params() if filters else {}
        data = await self._request("GET", "/api/resto", token=token, params=params)
        return self._parse_restaurants(data)

    async def search_restaurants(
        self, filters: RestaurantFilters, token: str | None = None
    ) -> list[Restaurant]:
        data = await self._request(
            "GET", "/api/resto/search", token=token, params=filters.to_params()
        )
        return self._parse_restaurants(data)

    async def recommended_restaurants(self, token: str | None = None) -> list[Restaurant]:
        data = await self._request("GET", "/api/resto/recommended", token=token)
        return self._parse_restaurants(data)

    async def nearby_restaurants(self, token: str) -> list[Restaurant]:
        data = await self._request("GET", "/api/resto/nearby", token=token)
        return self._parse_restaurants(data)

    async def best_seller_restaurants(self, limit: int | None = None) -> list[Restaurant]:
        params = {"limit": limit} if limit is not None else {}
        data = await self._request("GET", "/api/resto/best-seller", params=params)
        return self._parse_restaurants(data)

    async def get_restaurant(self, restaurant_id: int) -> RestaurantDetail:
        data = await self._request("GET", f"/api/resto/{restaurant_id}")
        return self._parse(RestaurantDetail, data)

    # =========================================================================
    # HTTP Helpers
    # =========================================================================

    async def _request(
        self,
        method: str,
        path: str,
        token: str | None = None,
        **kwargs: Any,
    ) -> Any:
        """
        Send a request and unwrap the response envelope.

        Args:
            method: HTTP method (GET, POST, etc.)
            path: Path below the base URL
            token: Bearer token, None for anonymous endpoints
            **kwargs: Additional arguments passed to httpx

        Returns:
            The envelope's `data` member.

        Raises:
            AuthenticationError: On HTTP 401.
            ValidationFailedError: On HTTP 400/422.
            PlatterAPIError: On any other failure.
        """
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        url = f"{self._base_url}{path}"
        attempts = self.MAX_READ_ATTEMPTS if method == "GET" else 1
        last_error: Exception | None = None

        for attempt in range(attempts):
            try:
                response = await self._client.request(
                    method, url, headers=headers, **kwargs
                )
            except httpx.RequestError as e:
                last_error = e
            else:
                if response.status_code < 500:
                    return self._unwrap(response)
                last_error = PlatterAPIError(
                    f"Backend error {response.status_code} on {method} {path}",
                    status_code=response.status_code,
                    response_body=response.text,
                )

            if attempt < attempts - 1:
                backoff = self.RETRY_BACKOFF_BASE * 2**attempt
                logger.warning(
                    "Backend %s %s failed (attempt %d/%d), retry in %.1fs: %s",
                    method,
                    path,
                    attempt + 1,
                    attempts,
                    backoff,
                    last_error,
                )
                await asyncio.sleep(backoff)

        if isinstance(last_error, PlatterAPIError):
            raise last_error
        raise PlatterAPIError(f"Backend request {method} {path} failed: {last_error}")

    @staticmethod
    def _unwrap(response: httpx.Response) -> Any:
        """Map a non-5xx response to its data or a typed error."""
        try:
            payload = response.json()
        except ValueError:
            payload = None

        message = ""
        if isinstance(payload, dict):
            message = str(payload.get("message") or "")

        if response.status_code == 401:
            raise AuthenticationError(
                message or "Session expired or invalid",
                status_code=401,
                response_body=response.text,
            )

        if response.status_code in (400, 422):
            errors = payload.get("errors") if isinstance(payload, dict) else None
            raise ValidationFailedError(
                message or "Request was rejected",
                status_code=response.status_code,
                response_body=response.text,
                errors=errors if isinstance(errors, dict) else None,
            )

        if response.is_error:
            raise PlatterAPIError(
                message or f"Backend returned {response.status_code}",
                status_code=response.status_code,
                response_body=response.text,
            )

        if not isinstance(payload, dict):
            raise PlatterAPIError(
                "Backend returned a non-JSON response",
                status_code=response.status_code,
                response_body=response.text,
            )

        if payload.get("success") is False:
            raise PlatterAPIError(
                message or "Backend reported failure",
                status_code=response.status_code,
                response_body=response.text,
            )

        return payload.get("data")

    @staticmethod
    def _parse_restaurants(data: Any) -> list[Restaurant]:
        try:
            return restaurant_list(data)
        except (ValidationError, TypeError) as e:
            raise PlatterAPIError(f"Unexpected restaurant list from backend: {e}") from e

    @staticmethod
    def _parse(model: type[ModelT], data: Any) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise PlatterAPIError(
                f"Unexpected {model.__name__} payload from backend: {e}"
            ) from e
