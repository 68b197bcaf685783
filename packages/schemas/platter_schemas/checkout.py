"""Checkout schemas - session-scoped records handed between screens."""

from datetime import UTC, datetime
from decimal import Decimal

from pydantic import Field

from platter_schemas.base import WireModel
from platter_schemas.cart import CartLine, RestaurantCartPartition, RestaurantRef
from platter_schemas.orders import Transaction


class DeliveryInfo(WireModel):
    """Where and how to reach the customer."""

    address: str = Field(min_length=1, max_length=500)
    phone: str = Field(min_length=1, max_length=20)


class CheckoutStagingRecord(WireModel):
    """Snapshot of one restaurant's cart taken when the user proceeds to checkout."""

    restaurant: RestaurantRef
    items: list[CartLine] = Field(default_factory=list)
    subtotal: Decimal = Decimal("0")
    staged_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_partition(cls, partition: RestaurantCartPartition) -> "CheckoutStagingRecord":
        # model_copy(deep=True) so later changes to the live cart never leak in
        snapshot = partition.model_copy(deep=True)
        return cls(
            restaurant=snapshot.restaurant,
            items=snapshot.items,
            subtotal=snapshot.computed_subtotal,
        )

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.items)

    def line_by_id(self, line_id: int) -> CartLine | None:
        for line in self.items:
            if line.id == line_id:
                return line
        return None


class ReceiptRecord(WireModel):
    """Snapshot of a just-placed order for the receipt screen."""

    transaction: Transaction
    restaurant: RestaurantRef
    items: list[CartLine] = Field(default_factory=list)

    @property
    def subtotal(self) -> Decimal:
        return self.transaction.price

    @property
    def total(self) -> Decimal:
        return self.transaction.total_price
