"""
URL routing for the ordering views.

Restaurant browsing and cart reads work for anonymous sessions; everything
else needs a signed-in session and redirects to sign-in otherwise.
"""

from django.urls import path

from apps.web.ordering import views

app_name = "ordering"

urlpatterns = [
    # Restaurants
    path("restaurants/", views.restaurant_list, name="restaurant_list"),
    path(
        "restaurants/recommended",
        views.restaurant_recommended,
        name="restaurant_recommended",
    ),
    path("restaurants/nearby", views.restaurant_nearby, name="restaurant_nearby"),
    path(
        "restaurants/best-sellers",
        views.restaurant_best_sellers,
        name="restaurant_best_sellers",
    ),
    path(
        "restaurants/<int:restaurant_id>/",
        views.restaurant_detail,
        name="restaurant_detail",
    ),
    # Cart
    path("cart/", views.cart_detail, name="cart"),
    path("cart/quantity", views.cart_quantity, name="cart_quantity"),
    path("cart/increment", views.cart_increment, name="cart_increment"),
    path("cart/decrement", views.cart_decrement, name="cart_decrement"),
    path("cart/clear", views.cart_clear, name="cart_clear"),
    path("cart/checkout", views.cart_checkout, name="cart_checkout"),
    # Checkout
    path("checkout/", views.checkout_detail, name="checkout"),
    path("checkout/adjust", views.checkout_adjust, name="checkout_adjust"),
    path("checkout/submit", views.checkout_submit, name="checkout_submit"),
    # Receipt and history
    path("receipt/", views.receipt_detail, name="receipt"),
    path("orders/", views.order_list, name="order_list"),
    path("orders/review", views.order_review, name="order_review"),
    # Accounts
    path("auth/sign-in", views.sign_in_view, name="sign_in"),
    path("auth/sign-up", views.sign_up_view, name="sign_up"),
    path("auth/sign-out", views.sign_out_view, name="sign_out"),
    path("auth/profile", views.profile, name="profile"),
]
