"""
Cart reconciliation - one answer to "how many of item X are in the cart".

The authoritative cart lives in the backend. While a quantity change is in
flight the item is `Pending` and its displayed quantity wins; once the
mutation settles the item falls back to `Confirmed` from the latest cart.

Responses may arrive out of order. Every request that returns a cart is
numbered when it is issued, and a cart is only applied if nothing issued
later has been applied already. Each settled mutation also triggers a fresh
fetch, so once all calls settle the cached cart equals the backend's.

The cached cart and the in-flight changes live in a `CartProjection`. The
`CartRegistry` keeps one projection per signed-in session, so every request
of that session (cart screen, badge, restaurant page) reads and mutates the
same state even though each request builds its own reconciler.
"""

import functools
import logging
import threading
from collections.abc import Awaitable
from dataclasses import dataclass, field
from decimal import Decimal

from platter_schemas import Cart, CartLine, CartSummary, RestaurantCartPartition

from apps.web.ordering.clients.base import CartService
from apps.web.ordering.exceptions import (
    AuthenticationError,
    LineNotResolvableError,
    PlatterAPIError,
)
from apps.web.ordering.session import Authenticated, SessionContext, require_token

logger = logging.getLogger(__name__)

LineKey = tuple[int, int]  # (restaurant_id, menu_item_id)


# =============================================================================
# Line state
# =============================================================================


@dataclass(frozen=True)
class Confirmed:
    """Quantity as last confirmed by the backend (0 if no line)."""

    quantity: int

    @property
    def displayed_quantity(self) -> int:
        return self.quantity


@dataclass(frozen=True)
class Pending:
    """A quantity change the backend has not answered yet."""

    displayed_quantity: int
    intended_delta: int


LineState = Confirmed | Pending


@dataclass(frozen=True)
class MutationResult:
    """Outcome of a cart mutation, ready for inline display."""

    ok: bool
    restaurant_id: int | None = None
    menu_item_id: int | None = None
    error: str | None = None
    status_code: int | None = None
    skipped: bool = False


# =============================================================================
# Shared state
# =============================================================================


@dataclass
class CartProjection:
    """
    The cached cart of one signed-in session plus its in-flight changes.

    Requests of the same session may run on different threads, so sequence
    numbers and pending entries are only touched under `lock`.
    """

    token: str | None = None
    cart: Cart = field(default_factory=Cart.empty)
    pending: dict[LineKey, Pending] = field(default_factory=dict)
    issued_seq: int = 0
    applied_seq: int = 0
    last_error: str | None = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def is_loaded(self) -> bool:
        """True once any backend cart has been applied."""
        return self.applied_seq > 0


class CartRegistry:
    """Cart projections by session key, one per signed-in session."""

    def __init__(self) -> None:
        self._projections: dict[str, CartProjection] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._projections)

    def projection_for(
        self, session_key: str | None, context: SessionContext
    ) -> CartProjection:
        """
        The session's shared projection, created on first use.

        A token change (sign-in as someone else) starts a fresh projection.
        Anonymous or unsaved sessions get a throwaway one.
        """
        if session_key is None or not isinstance(context, Authenticated):
            return CartProjection()

        with self._lock:
            projection = self._projections.get(session_key)
            if projection is None or projection.token != context.token:
                projection = CartProjection(token=context.token)
                self._projections[session_key] = projection
            return projection

    def discard(self, session_key: str | None) -> None:
        if session_key is None:
            return
        with self._lock:
            self._projections.pop(session_key, None)


@functools.cache
def get_cart_registry() -> CartRegistry:
    """The process-wide registry."""
    return CartRegistry()


# =============================================================================
# Reconciler
# =============================================================================


class CartReconciler:
    """
    Blends the authoritative cart with in-flight quantity changes.

    Reads and writes go through a `CartProjection`. Pass the session's shared
    projection so concurrent requests see each other's pending quantities;
    without one the reconciler keeps private state.
    """

    def __init__(
        self,
        cart_service: CartService,
        context: SessionContext,
        cart: Cart | None = None,
        projection: CartProjection | None = None,
    ) -> None:
        self._service = cart_service
        self._context = context
        if projection is None:
            projection = CartProjection(
                token=context.token if isinstance(context, Authenticated) else None
            )
        self._state = projection
        if cart is not None:
            self._state.cart = cart

    @property
    def cart(self) -> Cart:
        return self._state.cart

    @property
    def has_pending(self) -> bool:
        return bool(self._state.pending)

    @property
    def is_loaded(self) -> bool:
        return self._state.is_loaded

    @property
    def last_error(self) -> str | None:
        return self._state.last_error

    # =========================================================================
    # Reads
    # =========================================================================

    async def refresh(self) -> Cart:
        """
        Fetch the authoritative cart.

        Anonymous sessions get an empty cart without any request.

        Raises:
            PlatterAPIError: If the fetch fails.
        """
        if not isinstance(self._context, Authenticated):
            self._state.cart = Cart.empty()
            return self._state.cart

        seq = self._next_seq()
        cart = await self._service.fetch_cart(self._context.token)
        self._apply(cart, seq)
        return self._state.cart

    async def ensure_loaded(self) -> Cart:
        """Fetch the cart only if this session has none cached yet."""
        if self._state.is_loaded:
            return self._state.cart
        return await self.refresh()

    def line_state(self, restaurant_id: int, menu_item_id: int) -> LineState:
        pending = self._state.pending.get((restaurant_id, menu_item_id))
        if pending is not None:
            return pending
        line = self._confirmed_line(restaurant_id, menu_item_id)
        return Confirmed(quantity=line.quantity if line else 0)

    def quantity_of(self, restaurant_id: int, menu_item_id: int) -> int:
        """Displayed quantity: pending value, else confirmed, else 0."""
        return self.line_state(restaurant_id, menu_item_id).displayed_quantity

    def list_partitions(self) -> list[RestaurantCartPartition]:
        """The cached cart grouped by restaurant, subtotals recomputed. No fetch."""
        return [
            partition.model_copy(update={"subtotal": partition.computed_subtotal})
            for partition in self._state.cart.cart
        ]

    def partition_for(self, restaurant_id: int) -> RestaurantCartPartition | None:
        for partition in self.list_partitions():
            if partition.restaurant.id == restaurant_id:
                return partition
        return None

    def summary(self) -> CartSummary:
        partitions = self.list_partitions()
        return CartSummary(
            total_items=sum(p.item_count for p in partitions),
            total_price=sum((p.subtotal for p in partitions), Decimal("0")),
            restaurant_count=len(partitions),
        )

    # =========================================================================
    # Mutations
    # =========================================================================

    async def increment(self, restaurant_id: int, menu_item_id: int) -> MutationResult:
        """
        Add one of a menu item.

        The displayed quantity jumps to current + 1 right away. Repeated
        clicks overwrite the pending value rather than stacking on it.

        Raises:
            AuthenticationRequiredError: If the session is anonymous.
        """
        token = require_token(self._context)
        key = (restaurant_id, menu_item_id)
        with self._state.lock:
            pending = Pending(
                displayed_quantity=self.quantity_of(*key) + 1, intended_delta=1
            )
            self._state.pending[key] = pending
        return await self._settle(
            key, pending, self._service.add_item(token, restaurant_id, menu_item_id, 1)
        )

    async def decrement(self, restaurant_id: int, menu_item_id: int) -> MutationResult:
        """
        Remove one of a menu item; the line is deleted when it reaches 0.

        Starts from the displayed quantity, so a second click while the first
        is in flight goes one lower again.

        Raises:
            AuthenticationRequiredError: If the session is anonymous.
            LineNotResolvableError: If the line has no server ID yet.
        """
        token = require_token(self._context)
        key = (restaurant_id, menu_item_id)
        with self._state.lock:
            current = self.quantity_of(*key)
            if current == 0:
                return MutationResult(
                    ok=True,
                    restaurant_id=restaurant_id,
                    menu_item_id=menu_item_id,
                    skipped=True,
                )

            line = self._confirmed_line(restaurant_id, menu_item_id)
            if line is None or line.id is None:
                raise LineNotResolvableError(
                    "This item is still being added to your cart, try again in a moment",
                    menu_item_id=menu_item_id,
                )

            new_quantity = current - 1
            pending = Pending(displayed_quantity=new_quantity, intended_delta=-1)
            self._state.pending[key] = pending

        if new_quantity == 0:
            call = self._service.delete_line(token, line.id)
        else:
            call = self._service.update_line(token, line.id, new_quantity)
        return await self._settle(key, pending, call)

    async def clear(self) -> MutationResult:
        """
        Empty the whole cart.

        Raises:
            AuthenticationRequiredError: If the session is anonymous.
        """
        token = require_token(self._context)
        return await self._settle(None, None, self._service.clear_cart(token))

    # =========================================================================
    # Internals
    # =========================================================================

    def _confirmed_line(self, restaurant_id: int, menu_item_id: int) -> CartLine | None:
        partition = self._state.cart.partition_for(restaurant_id)
        if partition is None:
            return None
        return partition.line_for_menu_item(menu_item_id)

    def _next_seq(self) -> int:
        with self._state.lock:
            self._state.issued_seq += 1
            return self._state.issued_seq

    def _apply(self, cart: Cart, seq: int) -> None:
        with self._state.lock:
            if seq <= self._state.applied_seq:
                logger.debug(
                    "Ignoring stale cart #%d (have #%d)", seq, self._state.applied_seq
                )
                return
            self._state.applied_seq = seq
            self._state.cart = cart

    def _release(self, key: LineKey, pending: Pending) -> None:
        # A later click may have replaced our entry; that one stays
        with self._state.lock:
            if self._state.pending.get(key) is pending:
                del self._state.pending[key]

    async def _settle(
        self,
        key: LineKey | None,
        pending: Pending | None,
        call: Awaitable[Cart],
    ) -> MutationResult:
        """Await a mutation, drop its pending state, then refetch."""
        seq = self._next_seq()
        restaurant_id, menu_item_id = key if key else (None, None)

        try:
            cart = await call
        except AuthenticationError:
            raise
        except PlatterAPIError as e:
            logger.warning(
                "Cart mutation failed for restaurant=%s item=%s: %s",
                restaurant_id,
                menu_item_id,
                e,
            )
            self._state.last_error = e.message
            result = MutationResult(
                ok=False,
                restaurant_id=restaurant_id,
                menu_item_id=menu_item_id,
                error=e.message,
                status_code=e.status_code,
            )
        else:
            self._apply(cart, seq)
            self._state.last_error = None
            result = MutationResult(
                ok=True, restaurant_id=restaurant_id, menu_item_id=menu_item_id
            )
        finally:
            if key is not None and pending is not None:
                self._release(key, pending)

        try:
            await self.refresh()
        except AuthenticationError:
            raise
        except PlatterAPIError as e:
            logger.warning("Cart refetch after mutation failed: %s", e)
            self._state.last_error = e.message

        return result
