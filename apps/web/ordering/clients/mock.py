"""Mock ordering backend for development and testing."""

import asyncio
import itertools
import math
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal

from platter_schemas import (
    AuthResult,
    Cart,
    CartLine,
    CartSummary,
    CheckoutRequest,
    LoginRequest,
    MenuRef,
    Order,
    OrderLine,
    OrderPage,
    OrderStatus,
    Pagination,
    RegisterRequest,
    Restaurant,
    RestaurantCartPartition,
    RestaurantDetail,
    RestaurantFilters,
    RestaurantRef,
    RestaurantReview,
    Review,
    ReviewAuthor,
    ReviewRequest,
    Transaction,
    UpdateProfileRequest,
    UserProfile,
)

from apps.web.ordering.exceptions import (
    AuthenticationError,
    PlatterAPIError,
    ValidationFailedError,
)

DELIVERY_FEE = Decimal("10000")
SERVICE_FEE = Decimal("1000")
ORDERS_PER_PAGE = 10
SAMPLE_MENUS = 3


def _default_catalog() -> dict[int, tuple[RestaurantRef, list[MenuRef]]]:
    """Generate default test restaurants and menus."""
    return {
        1: (
            RestaurantRef(id=1, name="Burger Bang", logo="/logos/burger-bang.png"),
            [
                MenuRef(id=101, food_name="Burger", price=Decimal("50000"), type="food"),
                MenuRef(id=102, food_name="Fries", price=Decimal("25000"), type="food"),
                MenuRef(id=103, food_name="Iced Tea", price=Decimal("10000"), type="drink"),
            ],
        ),
        2: (
            RestaurantRef(id=2, name="Sushi Go", logo="/logos/sushi-go.png"),
            [
                MenuRef(id=201, food_name="Salmon Roll", price=Decimal("45000"), type="food"),
                MenuRef(id=202, food_name="Miso Soup", price=Decimal("20000"), type="food"),
            ],
        ),
    }


def _default_listing() -> dict[int, dict]:
    """Browse metadata for the default restaurants."""
    return {
        1: {
            "star": 4.6,
            "place": "Jakarta Selatan",
            "lat": -6.2615,
            "long": 106.8106,
            "category": "burger",
        },
        2: {
            "star": 4.2,
            "place": "Jakarta Pusat",
            "lat": -6.1862,
            "long": 106.8341,
            "category": "japanese",
        },
    }


@dataclass
class _Account:
    profile: UserProfile
    password: str
    # restaurant_id -> lines, both in insertion order
    cart: dict[int, list[CartLine]] = field(default_factory=dict)
    orders: list[Order] = field(default_factory=list)


class MockBackend:
    """
    Mock ordering backend implementing the OrderingBackend protocol.

    Keeps the restaurant catalog, accounts, carts, orders and reviews in
    memory and computes fees the way the real backend does. Useful for:
    - Local development without the real API (PLATTER_BACKEND=mock)
    - Testing reconciliation and checkout flows
    - Simulating slow or failing backends

    Configuration options allow simulating various scenarios:
    - Per-call latency, globally or queued per call (out-of-order responses)
    - Mutation and checkout failures
    """

    def __init__(
        self,
        catalog: dict[int, tuple[RestaurantRef, list[MenuRef]]] | None = None,
        listing: dict[int, dict] | None = None,
        api_delay_ms: int = 0,
        fail_mutations: bool = False,
        fail_checkout: bool = False,
    ) -> None:
        """
        Initialize the mock backend.

        Args:
            catalog: Restaurants and their menus. Uses defaults if not provided.
            listing: Browse metadata per restaurant (star, place, lat, long,
                category). Uses defaults if neither it nor catalog is provided.
            api_delay_ms: Simulated latency for every call.
            fail_mutations: If True, cart mutations fail with a 500 error.
            fail_checkout: If True, checkout fails with a 500 error.
        """
        self._catalog = catalog or _default_catalog()
        if listing is None:
            listing = {} if catalog else _default_listing()
        self._listing = listing
        self._reviews: dict[int, list[RestaurantReview]] = {}  # restaurant_id -> reviews
        self._api_delay_ms = api_delay_ms
        self.fail_mutations = fail_mutations
        self.fail_checkout = fail_checkout

        self._accounts: dict[str, _Account] = {}  # email -> account
        self._tokens: dict[str, str] = {}  # token -> email
        self._line_ids = itertools.count(1)
        self._user_ids = itertools.count(1)
        self._review_ids = itertools.count(1)
        self._queued_delays: deque[int] = deque()

        # Call log for assertions, e.g. ("update_line", 7, 2)
        self.calls: list[tuple] = []

    async def close(self) -> None:
        """Nothing to release."""

    # =========================================================================
    # Configuration methods (for test setup)
    # =========================================================================

    def create_session(
        self,
        email: str = "customer@example.com",
        name: str = "Test Customer",
        password: str = "secret123",
    ) -> str:
        """Create an account (if needed) and return a fresh token for it."""
        if email not in self._accounts:
            self._accounts[email] = _Account(
                profile=UserProfile(
                    id=next(self._user_ids),
                    name=name,
                    email=email,
                    phone="0812-3456-7890",
                    created_at=datetime.now(UTC),
                ),
                password=password,
            )
        token = f"mock-token-{uuid.uuid4().hex[:12]}"
        self._tokens[token] = email
        return token

    def queue_delays(self, *delays_ms: int) -> None:
        """Set latency for the next calls, one value per call, in call order."""
        self._queued_delays.extend(delays_ms)

    def set_order_status(self, token: str, transaction_id: str, status: OrderStatus) -> None:
        """Move a placed order to a new status."""
        account = self._account(token)
        for i, order in enumerate(account.orders):
            if order.transaction_id == transaction_id:
                account.orders[i] = order.model_copy(update={"status": status})
                return
        raise KeyError(transaction_id)

    def line_ids(self, token: str) -> dict[int, list[int]]:
        """Line IDs per restaurant, for assertions."""
        return {
            rid: [line.id for line in lines]
            for rid, lines in self._account(token).cart.items()
        }

    # =========================================================================
    # Cart
    # =========================================================================

    async def fetch_cart(self, token: str) -> Cart:
        await self._simulate_latency()
        self.calls.append(("fetch_cart",))
        return self._cart_for(self._account(token))

    async def add_item(
        self, token: str, restaurant_id: int, menu_item_id: int, quantity: int = 1
    ) -> Cart:
        await self._simulate_latency()
        self.calls.append(("add_item", restaurant_id, menu_item_id, quantity))
        account = self._account(token)
        self._check_mutations()

        menu = self._menu_item(restaurant_id, menu_item_id)
        lines = account.cart.setdefault(restaurant_id, [])
        for i, line in enumerate(lines):
            if line.menu_item_id == menu_item_id:
                lines[i] = line.with_quantity(line.quantity + quantity)
                break
        else:
            lines.append(
                CartLine(
                    id=next(self._line_ids),
                    menu=menu,
                    quantity=quantity,
                    item_total=menu.price * quantity,
                )
            )
        return self._cart_for(account)

    async def update_line(self, token: str, line_id: int, quantity: int) -> Cart:
        await self._simulate_latency()
        self.calls.append(("update_line", line_id, quantity))
        account = self._account(token)
        self._check_mutations()

        if quantity < 1:
            raise ValidationFailedError(
                "Quantity must be at least 1",
                status_code=400,
                errors={"quantity": ["Quantity must be at least 1"]},
            )
        lines, index = self._find_line(account, line_id)
        lines[index] = lines[index].with_quantity(quantity)
        return self._cart_for(account)

    async def delete_line(self, token: str, line_id: int) -> Cart:
        await self._simulate_latency()
        self.calls.append(("delete_line", line_id))
        account = self._account(token)
        self._check_mutations()

        lines, index = self._find_line(account, line_id)
        del lines[index]
        self._drop_empty_partitions(account)
        return self._cart_for(account)

    async def clear_cart(self, token: str) -> Cart:
        await self._simulate_latency()
        self.calls.append(("clear_cart",))
        account = self._account(token)
        self._check_mutations()

        account.cart.clear()
        return self._cart_for(account)

    # =========================================================================
    # Orders
    # =========================================================================

    async def checkout(self, token: str, request: CheckoutRequest) -> Transaction:
        await self._simulate_latency()
        self.calls.append(("checkout", request.model_dump(mode="json")))
        account = self._account(token)

        if self.fail_checkout:
            raise PlatterAPIError("Mock checkout failure", status_code=500)

        price = Decimal("0")
        placed: list[Order] = []
        transaction_id = f"TRX-{uuid.uuid4().hex[:10].upper()}"
        created_at = datetime.now(UTC)

        for group in request.restaurants:
            restaurant, _ = self._restaurant(group.restaurant_id)
            order_lines: list[OrderLine] = []
            group_price = Decimal("0")
            for item in group.items:
                menu = self._menu_item(group.restaurant_id, item.menu_id)
                order_lines.append(
                    OrderLine(
                        id=next(self._line_ids),
                        menu_id=menu.id,
                        quantity=item.quantity,
                        price=menu.price,
                        menu=menu,
                    )
                )
                group_price += menu.price * item.quantity
            price += group_price
            placed.append(
                Order(
                    transaction_id=transaction_id,
                    user_id=account.profile.id,
                    payment_method=request.payment_method.value,
                    price=group_price,
                    service_fee=SERVICE_FEE,
                    delivery_fee=DELIVERY_FEE,
                    total_price=group_price + SERVICE_FEE + DELIVERY_FEE,
                    status=OrderStatus.PREPARING,
                    created_at=created_at,
                    restaurant=restaurant,
                    items=order_lines,
                )
            )

        # Ordered menu items leave the cart; other restaurants are untouched
        for group in request.restaurants:
            ordered = {item.menu_id for item in group.items}
            lines = account.cart.get(group.restaurant_id, [])
            account.cart[group.restaurant_id] = [
                line for line in lines if line.menu_item_id not in ordered
            ]
        self._drop_empty_partitions(account)
        account.orders.extend(placed)

        delivery_fee = DELIVERY_FEE * len(request.restaurants)
        return Transaction(
            transaction_id=transaction_id,
            user_id=account.profile.id,
            payment_method=request.payment_method.value,
            price=price,
            service_fee=SERVICE_FEE,
            delivery_fee=delivery_fee,
            total_price=price + SERVICE_FEE + delivery_fee,
            status=OrderStatus.PREPARING.value,
            created_at=created_at,
        )

    async def list_orders(
        self, token: str, status: OrderStatus | None = None, page: int = 1
    ) -> OrderPage:
        await self._simulate_latency()
        self.calls.append(("list_orders", status, page))
        account = self._account(token)

        orders = [o for o in reversed(account.orders) if status is None or o.status == status]
        total_pages = max(1, -(-len(orders) // ORDERS_PER_PAGE))
        start = (page - 1) * ORDERS_PER_PAGE
        return OrderPage(
            orders=orders[start : start + ORDERS_PER_PAGE],
            pagination=Pagination(
                current_page=page,
                total_pages=total_pages,
                total_orders=len(orders),
                orders_per_page=ORDERS_PER_PAGE,
            ),
        )

    async def create_review(self, token: str, request: ReviewRequest) -> Review:
        await self._simulate_latency()
        self.calls.append(("create_review", request.transaction_id, request.star))
        account = self._account(token)

        order = next(
            (o for o in account.orders if o.transaction_id == request.transaction_id),
            None,
        )
        if order is None:
            raise PlatterAPIError(
                f"Order not found: {request.transaction_id}", status_code=404
            )
        if order.status != OrderStatus.DONE:
            raise ValidationFailedError(
                "Only completed orders can be reviewed", status_code=400
            )

        review = Review(
            id=next(self._review_ids),
            user_id=account.profile.id,
            restaurant_id=order.restaurant.id,
            transaction_id=request.transaction_id,
            star=request.star,
            comment=request.comment,
            created_at=datetime.now(UTC),
        )
        self._reviews.setdefault(order.restaurant.id, []).append(
            RestaurantReview(
                id=review.id,
                star=review.star,
                comment=review.comment,
                created_at=review.created_at,
                user=ReviewAuthor(
                    id=account.profile.id,
                    name=account.profile.name,
                    avatar=account.profile.avatar,
                ),
            )
        )
        return review

    # =========================================================================
    # Accounts
    # =========================================================================

    async def login(self, request: LoginRequest) -> AuthResult:
        await self._simulate_latency()
        self.calls.append(("login", request.email))

        account = self._accounts.get(request.email)
        if account is None or account.password != request.password:
            raise AuthenticationError("Invalid email or password", status_code=401)

        token = self.create_session(email=request.email)
        return AuthResult(token=token, user=account.profile)

    async def register(self, request: RegisterRequest) -> AuthResult:
        await self._simulate_latency()
        self.calls.append(("register", request.email))

        if request.email in self._accounts:
            raise ValidationFailedError(
                "Email is already registered",
                status_code=400,
                errors={"email": ["Email is already registered"]},
            )

        token = self.create_session(
            email=request.email, name=request.name, password=request.password
        )
        account = self._accounts[request.email]
        account.profile = account.profile.model_copy(update={"phone": request.phone})
        return AuthResult(token=token, user=account.profile)

    async def fetch_profile(self, token: str) -> UserProfile:
        await self._simulate_latency()
        self.calls.append(("fetch_profile",))
        return self._account(token).profile

    async def update_profile(
        self, token: str, request: UpdateProfileRequest
    ) -> UserProfile:
        await self._simulate_latency()
        changes = request.model_dump(exclude_none=True)
        self.calls.append(("update_profile", changes))
        account = self._account(token)

        new_email = changes.get("email")
        if new_email and new_email != account.profile.email:
            if new_email in self._accounts:
                raise ValidationFailedError(
                    "Email is already registered",
                    status_code=400,
                    errors={"email": ["Email is already registered"]},
                )
            del self._accounts[account.profile.email]
            self._accounts[new_email] = account
            for session_token, email in self._tokens.items():
                if email == account.profile.email:
                    self._tokens[session_token] = new_email

        account.profile = account.profile.model_copy(update=changes)
        return account.profile

    # =========================================================================
    # Restaurants
    # =========================================================================

    async def list_restaurants(
        self, filters: RestaurantFilters | None = None, token: str | None = None
    ) -> list[Restaurant]:
        await self._simulate_latency()
        self.calls.append(("list_restaurants", filters))
        return self._filtered(self._all_restaurants(), filters)

    async def search_restaurants(
        self, filters: RestaurantFilters, token: str | None = None
    ) -> list[Restaurant]:
        await self._simulate_latency()
        self.calls.append(("search_restaurants", filters.search))
        term = (filters.search or "").strip().lower()
        matches = [
            restaurant
            for restaurant in self._all_restaurants()
            if term in restaurant.name.lower()
            or any(term in menu.food_name.lower() for menu in self._menus_of(restaurant.id))
        ]
        return self._filtered(matches, filters)

    async def recommended_restaurants(self, token: str | None = None) -> list[Restaurant]:
        await self._simulate_latency()
        self.calls.append(("recommended_restaurants",))
        ordered_from: set[int] = set()
        if token is not None:
            ordered_from = {o.restaurant.id for o in self._account(token).orders}

        restaurants = sorted(self._all_restaurants(), key=lambda r: -r.star)
        return [
            r.model_copy(update={"is_frequently_ordered": r.id in ordered_from})
            for r in restaurants
        ]

    async def nearby_restaurants(self, token: str) -> list[Restaurant]:
        await self._simulate_latency()
        self.calls.append(("nearby_restaurants",))
        profile = self._account(token).profile
        restaurants = self._all_restaurants()
        if profile.latitude is None or profile.longitude is None:
            return restaurants

        def distance(restaurant: Restaurant) -> float:
            if restaurant.lat is None or restaurant.long is None:
                return math.inf
            return math.hypot(
                restaurant.lat - profile.latitude, restaurant.long - profile.longitude
            )

        return sorted(restaurants, key=distance)

    async def best_seller_restaurants(self, limit: int | None = None) -> list[Restaurant]:
        await self._simulate_latency()
        self.calls.append(("best_seller_restaurants", limit))
        sold: dict[int, int] = {}
        for account in self._accounts.values():
            for order in account.orders:
                quantity = sum(line.quantity for line in order.items)
                sold[order.restaurant.id] = sold.get(order.restaurant.id, 0) + quantity

        restaurants = sorted(self._all_restaurants(), key=lambda r: -sold.get(r.id, 0))
        return restaurants[:limit] if limit else restaurants

    async def get_restaurant(self, restaurant_id: int) -> RestaurantDetail:
        await self._simulate_latency()
        self.calls.append(("get_restaurant", restaurant_id))
        self._restaurant(restaurant_id)
        restaurant = self._listing_for(restaurant_id)
        return RestaurantDetail(
            **restaurant.model_dump(),
            menus=self._menus_of(restaurant_id),
            reviews=list(self._reviews.get(restaurant_id, [])),
        )

    # =========================================================================
    # Internals
    # =========================================================================

    async def _simulate_latency(self) -> None:
        delay_ms = (
            self._queued_delays.popleft() if self._queued_delays else self._api_delay_ms
        )
        if delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000)

    def _check_mutations(self) -> None:
        if self.fail_mutations:
            raise PlatterAPIError("Mock cart mutation failure", status_code=500)

    def _account(self, token: str) -> _Account:
        email = self._tokens.get(token)
        if email is None:
            raise AuthenticationError("Session expired or invalid", status_code=401)
        return self._accounts[email]

    def _restaurant(self, restaurant_id: int) -> tuple[RestaurantRef, list[MenuRef]]:
        try:
            return self._catalog[restaurant_id]
        except KeyError:
            raise PlatterAPIError(
                f"Restaurant not found: {restaurant_id}", status_code=404
            ) from None

    def _menu_item(self, restaurant_id: int, menu_item_id: int) -> MenuRef:
        _, menu = self._restaurant(restaurant_id)
        for item in menu:
            if item.id == menu_item_id:
                return item
        raise PlatterAPIError(f"Menu item not found: {menu_item_id}", status_code=404)

    def _menus_of(self, restaurant_id: int) -> list[MenuRef]:
        _, menu = self._restaurant(restaurant_id)
        return list(menu)

    def _listing_for(self, restaurant_id: int) -> Restaurant:
        ref, menu = self._restaurant(restaurant_id)
        reviews = self._reviews.get(restaurant_id, [])
        return Restaurant(
            id=ref.id,
            name=ref.name,
            logo=ref.logo,
            review_count=len(reviews),
            sample_menus=menu[:SAMPLE_MENUS],
            **self._listing.get(restaurant_id, {}),
        )

    def _all_restaurants(self) -> list[Restaurant]:
        return [self._listing_for(restaurant_id) for restaurant_id in self._catalog]

    def _filtered(
        self, restaurants: list[Restaurant], filters: RestaurantFilters | None
    ) -> list[Restaurant]:
        """A restaurant matches a price range if any of its menu items does."""
        if filters is None:
            return restaurants

        matches = []
        for restaurant in restaurants:
            if filters.min_rating is not None and restaurant.star < filters.min_rating:
                continue
            prices = [menu.price for menu in self._menus_of(restaurant.id)]
            priced = filters.min_price is not None or filters.max_price is not None
            if priced and not any(
                (filters.min_price is None or price >= filters.min_price)
                and (filters.max_price is None or price <= filters.max_price)
                for price in prices
            ):
                continue
            matches.append(restaurant)
        return matches[: filters.limit] if filters.limit else matches

    @staticmethod
    def _find_line(account: _Account, line_id: int) -> tuple[list[CartLine], int]:
        for lines in account.cart.values():
            for index, line in enumerate(lines):
                if line.id == line_id:
                    return lines, index
        raise PlatterAPIError(f"Cart item not found: {line_id}", status_code=404)

    @staticmethod
    def _drop_empty_partitions(account: _Account) -> None:
        for restaurant_id in [rid for rid, lines in account.cart.items() if not lines]:
            del account.cart[restaurant_id]

    def _cart_for(self, account: _Account) -> Cart:
        partitions = []
        for restaurant_id, lines in account.cart.items():
            if not lines:
                continue
            restaurant, _ = self._catalog[restaurant_id]
            partitions.append(
                RestaurantCartPartition(
                    restaurant=restaurant,
                    items=[line.model_copy() for line in lines],
                    subtotal=sum((line.line_total for line in lines), Decimal("0")),
                )
            )
        return Cart(
            cart=partitions,
            summary=CartSummary(
                total_items=sum(p.item_count for p in partitions),
                total_price=sum((p.subtotal for p in partitions), Decimal("0")),
                restaurant_count=len(partitions),
            ),
        )
