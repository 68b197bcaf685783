"""Cart schemas - restaurant-partitioned cart as served by the backend."""

from decimal import Decimal

from pydantic import Field

from platter_schemas.base import WireModel

# =============================================================================
# References
# =============================================================================


class RestaurantRef(WireModel):
    """Restaurant identity and display metadata."""

    id: int
    name: str
    logo: str | None = None


class MenuRef(WireModel):
    """The menu item a cart line points at."""

    id: int
    food_name: str
    price: Decimal
    type: str = ""
    image: str | None = None


# =============================================================================
# Cart
# =============================================================================


class CartLine(WireModel):
    """One orderable item inside a restaurant's cart partition."""

    id: int | None = Field(
        default=None, description="Server line ID, None for a local-only intent"
    )
    menu: MenuRef
    quantity: int = Field(ge=1)
    item_total: Decimal = Decimal("0")

    @property
    def menu_item_id(self) -> int:
        return self.menu.id

    @property
    def unit_price(self) -> Decimal:
        return self.menu.price

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def with_quantity(self, quantity: int) -> "CartLine":
        """Copy of this line at a new quantity with its total recomputed."""
        return self.model_copy(
            update={"quantity": quantity, "item_total": self.unit_price * quantity}
        )


class RestaurantCartPartition(WireModel):
    """The lines of one restaurant within the user's cart."""

    restaurant: RestaurantRef
    items: list[CartLine] = Field(default_factory=list)
    subtotal: Decimal = Decimal("0")

    @property
    def computed_subtotal(self) -> Decimal:
        return sum((line.line_total for line in self.items), Decimal("0"))

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.items)

    def line_for_menu_item(self, menu_item_id: int) -> CartLine | None:
        for line in self.items:
            if line.menu_item_id == menu_item_id:
                return line
        return None

    def line_by_id(self, line_id: int) -> CartLine | None:
        for line in self.items:
            if line.id == line_id:
                return line
        return None


class CartSummary(WireModel):
    """Whole-cart totals (navbar badge)."""

    total_items: int = 0
    total_price: Decimal = Decimal("0")
    restaurant_count: int = 0


class Cart(WireModel):
    """The authoritative cart: every restaurant partition plus a summary."""

    cart: list[RestaurantCartPartition] = Field(default_factory=list)
    summary: CartSummary = Field(default_factory=CartSummary)

    @classmethod
    def empty(cls) -> "Cart":
        return cls()

    @property
    def partitions(self) -> list[RestaurantCartPartition]:
        return self.cart

    def partition_for(self, restaurant_id: int) -> RestaurantCartPartition | None:
        for partition in self.cart:
            if partition.restaurant.id == restaurant_id:
                return partition
        return None


# =============================================================================
# Requests
# =============================================================================


class AddToCartRequest(WireModel):
    """Body of POST /api/cart."""

    restaurant_id: int
    menu_id: int
    quantity: int = Field(default=1, ge=1)


class UpdateCartRequest(WireModel):
    """Body of PUT /api/cart/{id}."""

    quantity: int = Field(ge=1)
