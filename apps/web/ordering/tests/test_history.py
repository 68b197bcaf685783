"""Tests for order history and reviews."""

import pytest
from platter_schemas import DeliveryInfo, OrderStatus, PaymentMethod

from apps.web.ordering.exceptions import (
    AuthenticationRequiredError,
    PlatterAPIError,
    ValidationFailedError,
)
from apps.web.ordering.services.history import (
    list_orders,
    parse_status_filter,
    submit_review,
)
from apps.web.ordering.services.reconciliation import CartReconciler
from apps.web.ordering.services.staging import CheckoutStager
from apps.web.ordering.session import ANONYMOUS


async def _place_order(backend, store, token, context, restaurant_id=1, menu_item_id=101):
    """Run one order through cart, staging and checkout; return its transaction ID."""
    await backend.add_item(token, restaurant_id, menu_item_id, 1)
    reconciler = CartReconciler(backend, context)
    await reconciler.refresh()
    stager = CheckoutStager(store, backend, backend, context)
    staged = stager.stage(reconciler.partition_for(restaurant_id))
    outcome = await stager.finalize(
        staged,
        DeliveryInfo(address="Jl. Thamrin 10", phone="0812-0000-1111"),
        PaymentMethod.BCA,
    )
    return outcome.receipt.transaction.transaction_id


class TestParseStatusFilter:
    """Tests for the status filter."""

    @pytest.mark.parametrize("value", [None, "", "all"])
    def test_no_filter(self, value):
        """Test "all" and empty values mean every status."""
        assert parse_status_filter(value) is None

    def test_known_status(self):
        """Test a status value maps to its enum member."""
        assert parse_status_filter("on_the_way") == OrderStatus.ON_THE_WAY

    def test_unknown_status(self):
        """Test an unknown status is rejected."""
        with pytest.raises(ValueError):
            parse_status_filter("lost")


class TestListOrders:
    """Tests for listing orders."""

    @pytest.mark.asyncio
    async def test_lists_placed_orders(self, backend, store, token, context):
        """Test placed orders appear newest first."""
        first = await _place_order(backend, store, token, context)
        second = await _place_order(backend, store, token, context, 2, 201)

        page = await list_orders(backend, context)

        assert [o.transaction_id for o in page.orders] == [second, first]
        assert page.pagination.total_orders == 2

    @pytest.mark.asyncio
    async def test_filter_by_status(self, backend, store, token, context):
        """Test the status filter is passed through."""
        done = await _place_order(backend, store, token, context)
        await _place_order(backend, store, token, context)
        backend.set_order_status(token, done, OrderStatus.DONE)

        page = await list_orders(backend, context, status="done")

        assert [o.transaction_id for o in page.orders] == [done]
        assert ("list_orders", OrderStatus.DONE, 1) in backend.calls

    @pytest.mark.asyncio
    async def test_page_must_be_positive(self, backend, context):
        """Test page 0 is rejected before any request."""
        with pytest.raises(ValueError):
            await list_orders(backend, context, page=0)

        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_anonymous(self, backend):
        """Test history needs a signed-in session."""
        with pytest.raises(AuthenticationRequiredError):
            await list_orders(backend, ANONYMOUS)


class TestSubmitReview:
    """Tests for rating orders."""

    @pytest.mark.asyncio
    async def test_review_done_order(self, backend, store, token, context):
        """Test a completed order can be reviewed."""
        transaction_id = await _place_order(backend, store, token, context)
        backend.set_order_status(token, transaction_id, OrderStatus.DONE)

        review = await submit_review(
            backend, context, transaction_id, 5, "  Great burger  "
        )

        assert review.star == 5
        assert review.comment == "Great burger"
        assert review.restaurant_id == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("star", [0, 6])
    async def test_star_out_of_range(self, backend, context, star):
        """Test ratings outside 1..5 never reach the backend."""
        with pytest.raises(ValueError):
            await submit_review(backend, context, "TRX-1", star, "")

        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_order_not_done(self, backend, store, token, context):
        """Test the backend rejects reviews of orders still in progress."""
        transaction_id = await _place_order(backend, store, token, context)

        with pytest.raises(ValidationFailedError):
            await submit_review(backend, context, transaction_id, 4, "")

    @pytest.mark.asyncio
    async def test_unknown_order(self, backend, context):
        """Test reviewing an unknown order fails."""
        with pytest.raises(PlatterAPIError) as exc_info:
            await submit_review(backend, context, "TRX-NOPE", 4, "")

        assert exc_info.value.status_code == 404
