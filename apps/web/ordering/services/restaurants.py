"""
Restaurant browsing - listings, search and the restaurant page.

The restaurant page pairs each menu item with the quantity the cart
reconciler displays for it, pending changes included, so the add/remove
controls agree with the cart screen and the badge.
"""

import logging
from dataclasses import dataclass

from platter_schemas import MenuRef, Restaurant, RestaurantDetail, RestaurantFilters

from apps.web.ordering.clients.base import RestaurantService
from apps.web.ordering.services.reconciliation import CartReconciler, Pending
from apps.web.ordering.session import Authenticated, SessionContext, require_token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MenuEntry:
    """A menu item on the restaurant page with its cart quantity."""

    menu: MenuRef
    quantity: int
    pending: bool


@dataclass(frozen=True)
class RestaurantPage:
    restaurant: RestaurantDetail
    entries: list[MenuEntry]


def _token_of(context: SessionContext) -> str | None:
    return context.token if isinstance(context, Authenticated) else None


async def browse_restaurants(
    service: RestaurantService,
    context: SessionContext,
    filters: RestaurantFilters | None = None,
) -> list[Restaurant]:
    """
    List restaurants; a search term switches to the search endpoint.

    Raises:
        PlatterAPIError: If the backend call fails.
    """
    token = _token_of(context)
    if filters is not None and filters.search and filters.search.strip():
        return await service.search_restaurants(filters, token=token)
    return await service.list_restaurants(filters, token=token)


async def recommended_restaurants(
    service: RestaurantService, context: SessionContext
) -> list[Restaurant]:
    return await service.recommended_restaurants(token=_token_of(context))


async def nearby_restaurants(
    service: RestaurantService, context: SessionContext
) -> list[Restaurant]:
    """
    Restaurants near the user's saved location.

    Raises:
        AuthenticationRequiredError: If the session is anonymous.
    """
    return await service.nearby_restaurants(require_token(context))


async def best_seller_restaurants(
    service: RestaurantService, limit: int | None = None
) -> list[Restaurant]:
    if limit is not None and limit < 1:
        raise ValueError("Limit must be at least 1")
    return await service.best_seller_restaurants(limit)


async def restaurant_page(
    service: RestaurantService,
    reconciler: CartReconciler,
    restaurant_id: int,
    menu_type: str | None = None,
) -> RestaurantPage:
    """
    Load a restaurant and annotate its menu with cart quantities.

    The cart is only fetched if the session has none cached yet.

    Raises:
        PlatterAPIError: If the backend call fails (404 for an unknown ID).
    """
    restaurant = await service.get_restaurant(restaurant_id)
    await reconciler.ensure_loaded()

    entries = []
    for menu in restaurant.menus_of_type(menu_type):
        state = reconciler.line_state(restaurant_id, menu.id)
        entries.append(
            MenuEntry(
                menu=menu,
                quantity=state.displayed_quantity,
                pending=isinstance(state, Pending),
            )
        )
    logger.debug("Restaurant %s page with %d menu items", restaurant_id, len(entries))
    return RestaurantPage(restaurant=restaurant, entries=entries)
