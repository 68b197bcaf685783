"""Ordering services - cart, checkout, receipts, history, accounts and restaurants."""

from apps.web.ordering.services.accounts import (
    fetch_profile,
    sign_in,
    sign_out,
    sign_up,
    update_profile,
)
from apps.web.ordering.services.history import list_orders, submit_review
from apps.web.ordering.services.receipts import load_receipt, write_receipt
from apps.web.ordering.services.reconciliation import (
    CartProjection,
    CartReconciler,
    CartRegistry,
    Confirmed,
    LineState,
    MutationResult,
    Pending,
    get_cart_registry,
)
from apps.web.ordering.services.restaurants import (
    MenuEntry,
    RestaurantPage,
    best_seller_restaurants,
    browse_restaurants,
    nearby_restaurants,
    recommended_restaurants,
    restaurant_page,
)
from apps.web.ordering.services.staging import (
    CheckoutOutcome,
    CheckoutPhase,
    CheckoutStager,
    build_checkout_request,
)

__all__ = [
    "CartProjection",
    "CartReconciler",
    "CartRegistry",
    "CheckoutOutcome",
    "CheckoutPhase",
    "CheckoutStager",
    "Confirmed",
    "LineState",
    "MenuEntry",
    "MutationResult",
    "Pending",
    "RestaurantPage",
    "best_seller_restaurants",
    "browse_restaurants",
    "build_checkout_request",
    "fetch_profile",
    "get_cart_registry",
    "list_orders",
    "load_receipt",
    "nearby_restaurants",
    "recommended_restaurants",
    "restaurant_page",
    "sign_in",
    "sign_out",
    "sign_up",
    "submit_review",
    "update_profile",
    "write_receipt",
]
