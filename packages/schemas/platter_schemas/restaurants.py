"""Restaurant schemas - listings, detail pages and browse filters."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import Field, model_validator

from platter_schemas.base import WireModel
from platter_schemas.cart import MenuRef, RestaurantRef

# =============================================================================
# Listings
# =============================================================================


class Restaurant(WireModel):
    """A restaurant as it appears in browse lists."""

    id: int
    name: str
    star: float = 0.0
    place: str = ""
    lat: float | None = None
    long: float | None = None
    logo: str | None = None
    images: list[str] = Field(default_factory=list)
    category: str | None = None
    review_count: int | None = None
    sample_menus: list[MenuRef] = Field(default_factory=list)
    is_frequently_ordered: bool | None = None

    def as_ref(self) -> RestaurantRef:
        return RestaurantRef(id=self.id, name=self.name, logo=self.logo)


class ReviewAuthor(WireModel):
    id: int | None = None
    name: str
    avatar: str | None = None


class RestaurantReview(WireModel):
    """A customer review shown on the restaurant page."""

    id: int
    star: int = Field(ge=1, le=5)
    comment: str = ""
    created_at: datetime | None = None
    user: ReviewAuthor


class RestaurantDetail(Restaurant):
    """The restaurant page: full menu and reviews."""

    menus: list[MenuRef] = Field(default_factory=list)
    reviews: list[RestaurantReview] = Field(default_factory=list)

    def menus_of_type(self, menu_type: str | None) -> list[MenuRef]:
        """Menu tab filter; None or "all" keeps everything."""
        if not menu_type or menu_type.lower() == "all":
            return list(self.menus)
        return [menu for menu in self.menus if menu.type.lower() == menu_type.lower()]


def restaurant_list(data: Any) -> list[Restaurant]:
    """
    Parse a listing payload.

    The backend answers with a bare list on some endpoints and with
    `{"restaurants": [...]}` or `{"recommendations": [...]}` on others.
    """
    if isinstance(data, dict):
        data = data.get("restaurants") or data.get("recommendations") or []
    return [Restaurant.model_validate(item) for item in data or []]


# =============================================================================
# Filters
# =============================================================================


class RestaurantFilters(WireModel):
    """Query parameters of GET /api/resto and /api/resto/search."""

    search: str | None = Field(default=None, max_length=100)
    min_price: Decimal | None = Field(default=None, ge=0)
    max_price: Decimal | None = Field(default=None, ge=0)
    min_rating: float | None = Field(default=None, ge=0, le=5)
    limit: int | None = Field(default=None, ge=1, le=100)

    @model_validator(mode="after")
    def check_price_range(self) -> "RestaurantFilters":
        if (
            self.min_price is not None
            and self.max_price is not None
            and self.min_price > self.max_price
        ):
            raise ValueError("minPrice must not be greater than maxPrice")
        return self

    def to_params(self) -> dict[str, Any]:
        return self.to_wire()
