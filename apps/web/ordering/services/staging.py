"""
Checkout staging service - hands one restaurant's cart to the checkout screen.

Handles:
1. Snapshotting a cart partition into the session store
2. Quantity tweaks made on the checkout screen (server-confirmed, no overlay)
3. Building and submitting the single-restaurant checkout request
4. Swapping the staging record for a receipt once the order is placed

Checkout lifecycle:
    EMPTY -> STAGED -> (ADJUSTING)* -> SUBMITTING -> COMPLETED
                                                  -> FAILED -> STAGED
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from platter_schemas import (
    CheckoutItem,
    CheckoutRequest,
    CheckoutRestaurant,
    CheckoutStagingRecord,
    DeliveryInfo,
    PaymentMethod,
    ReceiptRecord,
    RestaurantCartPartition,
)

from apps.web.ordering.clients.base import CartService, OrderService
from apps.web.ordering.exceptions import (
    AuthenticationError,
    CheckoutStateError,
    PlatterAPIError,
    StagedLineNotFoundError,
    ValidationFailedError,
)
from apps.web.ordering.services.receipts import write_receipt
from apps.web.ordering.session import (
    CHECKOUT_STAGING_KEY,
    NotFound,
    SessionContext,
    SessionStore,
    read_record,
    require_token,
    write_record,
)

logger = logging.getLogger(__name__)


class CheckoutPhase(str, Enum):
    """Where the checkout flow currently is."""

    EMPTY = "empty"
    STAGED = "staged"
    ADJUSTING = "adjusting"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    FAILED = "failed"


_TRANSITIONS: dict[CheckoutPhase, set[CheckoutPhase]] = {
    CheckoutPhase.EMPTY: {CheckoutPhase.STAGED},
    CheckoutPhase.STAGED: {
        CheckoutPhase.STAGED,
        CheckoutPhase.ADJUSTING,
        CheckoutPhase.SUBMITTING,
        CheckoutPhase.EMPTY,
    },
    CheckoutPhase.ADJUSTING: {CheckoutPhase.STAGED, CheckoutPhase.EMPTY},
    CheckoutPhase.SUBMITTING: {CheckoutPhase.COMPLETED, CheckoutPhase.FAILED},
    CheckoutPhase.FAILED: {CheckoutPhase.STAGED},
    CheckoutPhase.COMPLETED: {CheckoutPhase.STAGED, CheckoutPhase.EMPTY},
}


@dataclass(frozen=True)
class CheckoutOutcome:
    """Result of submitting a checkout."""

    completed: bool
    receipt: ReceiptRecord | None = None
    error: str | None = None
    field_errors: dict[str, list[str]] = field(default_factory=dict)


def build_checkout_request(
    staged: CheckoutStagingRecord,
    delivery: DeliveryInfo,
    payment_method: PaymentMethod,
    notes: str | None = None,
) -> CheckoutRequest:
    """
    Convert a staged cart into the backend's checkout request.

    Lines are reduced to menu item ID + quantity; the backend prices them.
    """
    return CheckoutRequest(
        restaurants=[
            CheckoutRestaurant(
                restaurant_id=staged.restaurant.id,
                items=[
                    CheckoutItem(menu_id=line.menu_item_id, quantity=line.quantity)
                    for line in staged.items
                ],
            )
        ],
        delivery_address=delivery.address,
        phone=delivery.phone,
        payment_method=payment_method,
        notes=(notes or "").strip() or None,
    )


class CheckoutStager:
    """
    Owns the checkout staging record for one session.

    The live cart is never touched by staging or by abandoning checkout;
    only quantity adjustments made on the checkout screen and the final
    order placement reach the backend.
    """

    def __init__(
        self,
        store: SessionStore,
        cart_service: CartService,
        order_service: OrderService,
        context: SessionContext,
    ) -> None:
        self._store = store
        self._cart_service = cart_service
        self._order_service = order_service
        self._context = context

        staged = read_record(store, CHECKOUT_STAGING_KEY, CheckoutStagingRecord)
        self._phase = (
            CheckoutPhase.EMPTY if isinstance(staged, NotFound) else CheckoutPhase.STAGED
        )

    @property
    def phase(self) -> CheckoutPhase:
        return self._phase

    # =========================================================================
    # Staging
    # =========================================================================

    def stage(self, partition: RestaurantCartPartition) -> CheckoutStagingRecord:
        """
        Snapshot a restaurant's cart for checkout, replacing any earlier one.

        Raises:
            ValueError: If the partition has no lines.
        """
        if not partition.items:
            raise ValueError("Cannot check out an empty cart")

        record = CheckoutStagingRecord.from_partition(partition)
        write_record(self._store, CHECKOUT_STAGING_KEY, record)
        self._phase = CheckoutPhase.STAGED

        logger.info(
            "Staged checkout for restaurant %s: %d items, subtotal %s",
            record.restaurant.id,
            record.item_count,
            record.subtotal,
        )
        return record

    def load_staged(self) -> CheckoutStagingRecord | NotFound:
        """Read the staged record; NotFound means checkout must send the user back to the cart."""
        return read_record(self._store, CHECKOUT_STAGING_KEY, CheckoutStagingRecord)

    def discard(self) -> None:
        """Abandon checkout. The live cart is left as it is."""
        self._store.delete(CHECKOUT_STAGING_KEY)
        if self._phase != CheckoutPhase.EMPTY:
            self._transition(CheckoutPhase.EMPTY)

    # =========================================================================
    # Adjusting
    # =========================================================================

    async def adjust_staged_quantity(
        self, line_id: int, new_quantity: int
    ) -> CheckoutStagingRecord:
        """
        Change a staged line's quantity, waiting for the backend first.

        A quantity of 0 deletes the line. If that empties the checkout the
        staging record is removed and an empty record is returned.

        Raises:
            AuthenticationRequiredError: If the session is anonymous.
            StagedLineNotFoundError: If no staged line has this ID.
            PlatterAPIError: If the backend call fails (record unchanged).
        """
        token = require_token(self._context)
        if new_quantity < 0:
            raise ValueError("Quantity cannot be negative")

        staged = self.load_staged()
        if isinstance(staged, NotFound):
            raise StagedLineNotFoundError("No checkout in progress", line_id=line_id)
        if staged.line_by_id(line_id) is None:
            raise StagedLineNotFoundError(
                f"Line {line_id} is not part of this checkout", line_id=line_id
            )

        self._transition(CheckoutPhase.ADJUSTING)
        try:
            if new_quantity == 0:
                await self._cart_service.delete_line(token, line_id)
            else:
                await self._cart_service.update_line(token, line_id, new_quantity)
        except PlatterAPIError:
            self._transition(CheckoutPhase.STAGED)
            raise

        items = [
            line.with_quantity(new_quantity) if line.id == line_id else line
            for line in staged.items
            if not (line.id == line_id and new_quantity == 0)
        ]
        updated = staged.model_copy(
            update={
                "items": items,
                "subtotal": sum((line.line_total for line in items), Decimal("0")),
            }
        )

        if not items:
            self._store.delete(CHECKOUT_STAGING_KEY)
            self._transition(CheckoutPhase.EMPTY)
            logger.info("Checkout emptied for restaurant %s", staged.restaurant.id)
            return updated

        write_record(self._store, CHECKOUT_STAGING_KEY, updated)
        self._transition(CheckoutPhase.STAGED)
        return updated

    # =========================================================================
    # Submitting
    # =========================================================================

    async def finalize(
        self,
        staged: CheckoutStagingRecord,
        delivery: DeliveryInfo,
        payment_method: PaymentMethod,
        notes: str | None = None,
    ) -> CheckoutOutcome:
        """
        Place the order for the staged restaurant.

        On success the staging record is deleted and a receipt is written.
        On failure the staging record is kept so the user can retry.

        Raises:
            AuthenticationRequiredError: If the session is anonymous.
            AuthenticationError: If the backend rejects the session.
            CheckoutStateError: If there is no checkout in progress.
        """
        token = require_token(self._context)
        if self._phase not in (CheckoutPhase.STAGED, CheckoutPhase.FAILED):
            raise CheckoutStateError(
                "No checkout in progress", phase=self._phase.value
            )
        if not staged.items:
            return CheckoutOutcome(completed=False, error="Your checkout is empty")

        request = build_checkout_request(staged, delivery, payment_method, notes)
        self._transition(CheckoutPhase.SUBMITTING)

        try:
            transaction = await self._order_service.checkout(token, request)
        except AuthenticationError:
            self._fail()
            raise
        except ValidationFailedError as e:
            self._fail()
            logger.warning(
                "Checkout rejected for restaurant %s: %s", staged.restaurant.id, e
            )
            return CheckoutOutcome(
                completed=False, error=e.message, field_errors=e.errors
            )
        except PlatterAPIError as e:
            self._fail()
            logger.error(
                "Checkout failed for restaurant %s: %s", staged.restaurant.id, e
            )
            return CheckoutOutcome(completed=False, error=e.message)

        receipt = ReceiptRecord(
            transaction=transaction,
            restaurant=staged.restaurant,
            items=staged.items,
        )
        self._store.delete(CHECKOUT_STAGING_KEY)
        write_receipt(self._store, receipt)
        self._transition(CheckoutPhase.COMPLETED)

        logger.info(
            "Order %s placed for restaurant %s: total %s",
            transaction.transaction_id,
            staged.restaurant.id,
            transaction.total_price,
        )
        return CheckoutOutcome(completed=True, receipt=receipt)

    # =========================================================================
    # Internals
    # =========================================================================

    def _fail(self) -> None:
        self._transition(CheckoutPhase.FAILED)
        # Failed is retryable: the staging record is still in the store
        self._transition(CheckoutPhase.STAGED)

    def _transition(self, target: CheckoutPhase) -> None:
        if target not in _TRANSITIONS[self._phase]:
            raise CheckoutStateError(
                f"Cannot move checkout from {self._phase.value} to {target.value}",
                phase=self._phase.value,
            )
        self._phase = target
