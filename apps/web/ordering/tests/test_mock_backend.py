"""Tests for MockBackend."""

import asyncio
from decimal import Decimal

import pytest
from platter_schemas import (
    CheckoutItem,
    CheckoutRequest,
    CheckoutRestaurant,
    LoginRequest,
    OrderStatus,
    PaymentMethod,
    RestaurantFilters,
    ReviewRequest,
    UpdateProfileRequest,
)

from apps.web.ordering.clients import MockBackend, get_backend
from apps.web.ordering.clients.base import OrderingBackend
from apps.web.ordering.exceptions import (
    AuthenticationError,
    PlatterAPIError,
    ValidationFailedError,
)


def _checkout(*groups: tuple[int, list[tuple[int, int]]]) -> CheckoutRequest:
    return CheckoutRequest(
        restaurants=[
            CheckoutRestaurant(
                restaurant_id=rid,
                items=[CheckoutItem(menu_id=mid, quantity=q) for mid, q in items],
            )
            for rid, items in groups
        ],
        delivery_address="Jl. Merdeka 1",
        phone="0812",
        payment_method=PaymentMethod.BNI,
    )


class TestMockBackendCart:
    """Tests for cart behavior."""

    @pytest.mark.asyncio
    async def test_add_same_item_merges_line(self, backend, token):
        """Test adding an item twice grows one line."""
        await backend.add_item(token, 1, 101)
        cart = await backend.add_item(token, 1, 101, 2)

        partition = cart.partition_for(1)
        assert len(partition.items) == 1
        assert partition.items[0].quantity == 3
        assert partition.subtotal == Decimal("150000")
        assert cart.summary.total_items == 3

    @pytest.mark.asyncio
    async def test_update_below_one_rejected(self, backend, token):
        """Test the backend refuses zero-quantity lines."""
        cart = await backend.add_item(token, 1, 101)

        with pytest.raises(ValidationFailedError):
            await backend.update_line(token, cart.cart[0].items[0].id, 0)

    @pytest.mark.asyncio
    async def test_unknown_menu_item(self, backend, token):
        """Test adding an item from another restaurant's menu fails."""
        with pytest.raises(PlatterAPIError) as exc_info:
            await backend.add_item(token, 1, 201)

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_token(self, backend):
        """Test an unknown token is a 401."""
        with pytest.raises(AuthenticationError):
            await backend.fetch_cart("nope")

    @pytest.mark.asyncio
    async def test_queued_delays_reorder_responses(self, backend, token):
        """Test a slower call finishes after a faster one issued later."""
        backend.queue_delays(30, 0)
        finished = []

        async def add(menu_item_id):
            await backend.add_item(token, 1, menu_item_id)
            finished.append(menu_item_id)

        await asyncio.gather(add(101), add(102))

        assert finished == [102, 101]


class TestMockBackendCheckout:
    """Tests for order placement."""

    @pytest.mark.asyncio
    async def test_fees_per_restaurant(self, backend, token):
        """Test each restaurant group adds a delivery fee."""
        transaction = await backend.checkout(
            token, _checkout((1, [(101, 1)]), (2, [(202, 2)]))
        )

        assert transaction.price == Decimal("90000")
        assert transaction.delivery_fee == Decimal("20000")
        assert transaction.service_fee == Decimal("1000")
        assert transaction.total_price == Decimal("111000")

    @pytest.mark.asyncio
    async def test_checkout_removes_only_ordered_items(self, backend, token):
        """Test ordered items leave the cart and others stay."""
        await backend.add_item(token, 1, 101)
        await backend.add_item(token, 1, 102)
        await backend.add_item(token, 2, 201)

        await backend.checkout(token, _checkout((1, [(101, 1)])))

        cart = await backend.fetch_cart(token)
        assert [line.menu_item_id for line in cart.partition_for(1).items] == [102]
        assert cart.partition_for(2) is not None

    @pytest.mark.asyncio
    async def test_checkout_failure(self):
        """Test checkout failure when configured."""
        backend = MockBackend(fail_checkout=True)
        token = backend.create_session()

        with pytest.raises(PlatterAPIError):
            await backend.checkout(token, _checkout((1, [(101, 1)])))


class TestMockBackendAccounts:
    """Tests for accounts."""

    @pytest.mark.asyncio
    async def test_login_issues_new_token(self, backend, token):
        """Test logging in returns a working token."""
        result = await backend.login(
            LoginRequest(email="customer@example.com", password="secret123")
        )

        assert result.token != token
        assert (await backend.fetch_profile(result.token)).id == result.user.id

    @pytest.mark.asyncio
    async def test_update_profile_changes_only_sent_fields(self, backend, token):
        """Test a partial update keeps the other profile fields."""
        before = await backend.fetch_profile(token)

        updated = await backend.update_profile(
            token, UpdateProfileRequest(phone="0899", latitude=-6.2, longitude=106.8)
        )

        assert updated.phone == "0899"
        assert updated.name == before.name
        assert (await backend.fetch_profile(token)).latitude == -6.2

    @pytest.mark.asyncio
    async def test_update_profile_email_keeps_session(self, backend, token):
        """Test changing the email keeps the token working and frees the old one."""
        await backend.update_profile(
            token, UpdateProfileRequest(email="new@example.com")
        )

        assert (await backend.fetch_profile(token)).email == "new@example.com"
        result = await backend.login(
            LoginRequest(email="new@example.com", password="secret123")
        )
        assert result.user.email == "new@example.com"

    @pytest.mark.asyncio
    async def test_update_profile_email_taken(self, backend, token):
        """Test moving to another account's email is rejected."""
        backend.create_session(email="other@example.com")

        with pytest.raises(ValidationFailedError):
            await backend.update_profile(
                token, UpdateProfileRequest(email="other@example.com")
            )


class TestMockBackendRestaurants:
    """Tests for the restaurant catalog."""

    @pytest.mark.asyncio
    async def test_list_all(self, backend):
        """Test every catalog restaurant is listed with sample menus."""
        restaurants = await backend.list_restaurants()

        assert [r.name for r in restaurants] == ["Burger Bang", "Sushi Go"]
        assert [m.id for m in restaurants[0].sample_menus] == [101, 102, 103]
        assert restaurants[0].place == "Jakarta Selatan"

    @pytest.mark.asyncio
    async def test_price_and_rating_filters(self, backend):
        """Test a restaurant matches a price range if any menu item fits it."""
        cheap = await backend.list_restaurants(
            RestaurantFilters(max_price=Decimal("15000"))
        )
        rated = await backend.list_restaurants(RestaurantFilters(min_rating=4.5))

        assert [r.id for r in cheap] == [1]
        assert [r.id for r in rated] == [1]

    @pytest.mark.asyncio
    async def test_search_matches_menu_names(self, backend):
        """Test search looks at restaurant and menu names, case-insensitively."""
        by_menu = await backend.search_restaurants(RestaurantFilters(search="miso"))
        by_name = await backend.search_restaurants(RestaurantFilters(search="BURGER"))

        assert [r.id for r in by_menu] == [2]
        assert [r.id for r in by_name] == [1]

    @pytest.mark.asyncio
    async def test_nearby_sorted_by_distance(self, backend, token):
        """Test nearby puts the closest restaurant first."""
        await backend.update_profile(
            token, UpdateProfileRequest(latitude=-6.19, longitude=106.83)
        )

        restaurants = await backend.nearby_restaurants(token)

        assert [r.id for r in restaurants] == [2, 1]

    @pytest.mark.asyncio
    async def test_recommended_flags_past_orders(self, backend, token):
        """Test recommendations mark restaurants the user ordered from."""
        await backend.checkout(token, _checkout((2, [(201, 1)])))

        restaurants = await backend.recommended_restaurants(token)

        flags = {r.id: r.is_frequently_ordered for r in restaurants}
        assert flags == {1: False, 2: True}
        assert restaurants[0].star >= restaurants[1].star

    @pytest.mark.asyncio
    async def test_best_sellers_by_items_sold(self, backend, token):
        """Test best sellers rank by quantity ordered and honour the limit."""
        await backend.checkout(token, _checkout((2, [(201, 3)])))

        restaurants = await backend.best_seller_restaurants(limit=1)

        assert [r.id for r in restaurants] == [2]

    @pytest.mark.asyncio
    async def test_detail_includes_reviews(self, backend, token):
        """Test a review left on an order shows up on the restaurant page."""
        transaction = await backend.checkout(token, _checkout((1, [(101, 1)])))
        backend.set_order_status(token, transaction.transaction_id, OrderStatus.DONE)
        await backend.create_review(
            token,
            ReviewRequest(
                transaction_id=transaction.transaction_id, star=4, comment="Good"
            ),
        )

        restaurant = await backend.get_restaurant(1)

        assert len(restaurant.menus) == 3
        assert restaurant.review_count == 1
        assert restaurant.reviews[0].user.name == "Test Customer"

    @pytest.mark.asyncio
    async def test_unknown_restaurant(self, backend):
        """Test an unknown restaurant is a 404."""
        with pytest.raises(PlatterAPIError) as exc_info:
            await backend.get_restaurant(99)

        assert exc_info.value.status_code == 404


class TestGetBackend:
    """Tests for the backend factory."""

    def test_mock(self):
        """Test the mock kind builds a MockBackend."""
        backend = get_backend("mock", api_delay_ms=5)

        assert isinstance(backend, MockBackend)
        assert isinstance(backend, OrderingBackend)

    def test_unknown_kind(self):
        """Test an unsupported kind raises ValueError."""
        with pytest.raises(ValueError, match="Unsupported ordering backend"):
            get_backend("grpc")
