"""
Ordering views - the JSON surface over restaurants, cart, checkout,
receipts and accounts.

Each view drives one coroutine with `asyncio.run`. The backend client is
created and closed inside that coroutine. Cart state is not: every request
of a signed-in session reads and mutates the projection held for it in the
cart registry, so overlapping clicks build on each other's pending values.

Missing session records become redirects (no staged checkout -> cart, no
receipt -> order history) and a rejected token becomes a redirect to
sign-in (see `with_session_context`).
"""

import asyncio
import functools
import json
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from django.conf import settings
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.shortcuts import redirect
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from platter_schemas import (
    DeliveryInfo,
    PaymentMethod,
    RestaurantFilters,
    UpdateProfileRequest,
)
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from apps.web.core.decorators import (
    client_error_status,
    session_required,
    with_session_context,
)
from apps.web.ordering.clients import BACKEND_HTTP, BACKEND_MOCK, OrderingBackend, get_backend
from apps.web.ordering.exceptions import (
    AuthenticationError,
    LineNotResolvableError,
    StagedLineNotFoundError,
)
from apps.web.ordering.serializers import (
    AdjustBody,
    CartItemBody,
    Envelope,
    ReviewBody,
    SignInBody,
    SignUpBody,
    StageBody,
    SubmitBody,
    ValidationErrorDetail,
    ValidationErrorResponse,
)
from apps.web.ordering.services import (
    CartProjection,
    CartReconciler,
    CheckoutStager,
    Pending,
    best_seller_restaurants,
    browse_restaurants,
    fetch_profile,
    get_cart_registry,
    list_orders,
    load_receipt,
    nearby_restaurants,
    recommended_restaurants,
    restaurant_page,
    sign_in,
    sign_out,
    sign_up,
    submit_review,
    update_profile,
)
from apps.web.ordering.session import CURRENT_USER_KEY, NotFound

T = TypeVar("T")
BodyT = TypeVar("BodyT", bound=BaseModel)


# =============================================================================
# Helpers
# =============================================================================


@functools.cache
def _shared_mock_backend() -> OrderingBackend:
    # One in-memory backend per process so state survives between requests
    return get_backend(BACKEND_MOCK)


def get_ordering_backend() -> OrderingBackend:
    """Backend client selected by PLATTER_BACKEND."""
    if settings.PLATTER_BACKEND == BACKEND_MOCK:
        return _shared_mock_backend()
    return get_backend(
        BACKEND_HTTP,
        base_url=settings.PLATTER_API_BASE_URL,
        timeout=settings.PLATTER_API_TIMEOUT,
    )


def _run(operation: Callable[[OrderingBackend], Awaitable[T]]) -> T:
    """Run one backend operation to completion from sync view code."""

    async def runner() -> T:
        backend = get_ordering_backend()
        try:
            return await operation(backend)
        finally:
            await backend.close()

    return asyncio.run(runner())


def _ok(data: Any = None, message: str = "", status: int = 200) -> JsonResponse:
    envelope = Envelope(success=True, message=message, data=data)
    return JsonResponse(envelope.model_dump(mode="json"), status=status)


def _error(message: str, status: int, data: Any = None) -> JsonResponse:
    envelope = Envelope(success=False, message=message, data=data)
    return JsonResponse(envelope.model_dump(mode="json"), status=status)


def _parse_body(request: HttpRequest, model: type[BodyT]) -> BodyT | JsonResponse:
    """Validate a JSON request body, or build the 400 response explaining why not."""
    # ValueError covers malformed JSON and bodies that are not UTF-8
    try:
        payload = json.loads(request.body or b"{}")
    except ValueError:
        return _error("Invalid JSON in request body", status=400)

    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        return _validation_error(e)


def _parse_query(request: HttpRequest, model: type[BodyT]) -> BodyT | JsonResponse:
    params = {key: value for key, value in request.GET.items() if value != ""}
    try:
        return model.model_validate(params)
    except PydanticValidationError as e:
        return _validation_error(e)


def _validation_error(error: PydanticValidationError) -> JsonResponse:
    details = [
        ValidationErrorDetail(
            field=".".join(str(loc) for loc in err["loc"]),
            message=err["msg"],
        )
        for err in error.errors()
    ]
    response = ValidationErrorResponse(details=details)
    return JsonResponse(response.model_dump(), status=400)


def _projection(request: HttpRequest) -> CartProjection:
    """The signed-in session's shared cart state."""
    session = request.session
    if request.session_context.is_authenticated and session.session_key is None:
        session.save()
    return get_cart_registry().projection_for(
        session.session_key, request.session_context
    )


def _reconciler(
    request: HttpRequest, backend: OrderingBackend, projection: CartProjection
) -> CartReconciler:
    return CartReconciler(backend, request.session_context, projection=projection)


def _invalidate_cart(request: HttpRequest) -> None:
    """Forget the cached cart after a change made outside the reconciler."""
    get_cart_registry().discard(request.session.session_key)


def _cart_payload(reconciler: CartReconciler) -> dict[str, Any]:
    return {
        "cart": [partition.to_wire() for partition in reconciler.list_partitions()],
        "summary": reconciler.summary().to_wire(),
    }


# =============================================================================
# Cart
# =============================================================================


@require_GET
@with_session_context
def cart_detail(request: HttpRequest) -> JsonResponse:
    """
    GET /cart/

    The cart grouped by restaurant plus the badge summary. Anonymous
    sessions get an empty cart.
    """
    projection = _projection(request)

    async def load(backend: OrderingBackend) -> CartReconciler:
        reconciler = _reconciler(request, backend, projection)
        await reconciler.refresh()
        return reconciler

    return _ok(_cart_payload(_run(load)))


@require_GET
@with_session_context
def cart_quantity(request: HttpRequest) -> JsonResponse:
    """
    GET /cart/quantity?restaurantId=&menuId=

    The quantity shown for one menu item, in-flight changes included.
    Reads the session's cached cart; fetches only if nothing is cached.
    """
    query = _parse_query(request, CartItemBody)
    if isinstance(query, JsonResponse):
        return query
    projection = _projection(request)

    async def load(backend: OrderingBackend) -> CartReconciler:
        reconciler = _reconciler(request, backend, projection)
        await reconciler.ensure_loaded()
        return reconciler

    reconciler = _run(load)
    state = reconciler.line_state(query.restaurant_id, query.menu_id)
    return _ok(
        {
            "restaurantId": query.restaurant_id,
            "menuId": query.menu_id,
            "quantity": state.displayed_quantity,
            "pending": isinstance(state, Pending),
            "summary": reconciler.summary().to_wire(),
        }
    )


def _mutate_cart(
    request: HttpRequest,
    mutation: Callable[[CartReconciler], Awaitable[Any]],
    restaurant_id: int | None = None,
    menu_item_id: int | None = None,
) -> JsonResponse:
    projection = _projection(request)

    async def apply(backend: OrderingBackend) -> tuple[CartReconciler, Any]:
        reconciler = _reconciler(request, backend, projection)
        await reconciler.ensure_loaded()
        result = await mutation(reconciler)
        return reconciler, result

    try:
        reconciler, result = _run(apply)
    except LineNotResolvableError as e:
        return _error(e.message, status=409)

    payload = _cart_payload(reconciler)
    if menu_item_id is not None:
        payload["quantity"] = reconciler.quantity_of(restaurant_id, menu_item_id)
    if not result.ok:
        status = client_error_status(result.status_code) or 502
        return _error(
            result.error or "Could not update your cart", status=status, data=payload
        )
    return _ok(payload)


@csrf_exempt
@require_POST
@session_required
def cart_increment(request: HttpRequest) -> JsonResponse:
    """
    POST /cart/increment

    Add one of a menu item. Body: {restaurantId, menuId}
    """
    body = _parse_body(request, CartItemBody)
    if isinstance(body, JsonResponse):
        return body

    return _mutate_cart(
        request,
        lambda reconciler: reconciler.increment(body.restaurant_id, body.menu_id),
        body.restaurant_id,
        body.menu_id,
    )


@csrf_exempt
@require_POST
@session_required
def cart_decrement(request: HttpRequest) -> JsonResponse:
    """
    POST /cart/decrement

    Remove one of a menu item; the line is deleted at zero.
    Body: {restaurantId, menuId}
    """
    body = _parse_body(request, CartItemBody)
    if isinstance(body, JsonResponse):
        return body

    return _mutate_cart(
        request,
        lambda reconciler: reconciler.decrement(body.restaurant_id, body.menu_id),
        body.restaurant_id,
        body.menu_id,
    )


@csrf_exempt
@require_POST
@session_required
def cart_clear(request: HttpRequest) -> JsonResponse:
    """POST /cart/clear"""
    return _mutate_cart(request, lambda reconciler: reconciler.clear())


@csrf_exempt
@require_POST
@session_required
def cart_checkout(request: HttpRequest) -> HttpResponse:
    """
    POST /cart/checkout

    Stage one restaurant's cart and go to checkout. Body: {restaurantId}
    """
    body = _parse_body(request, StageBody)
    if isinstance(body, JsonResponse):
        return body
    projection = _projection(request)

    async def stage(backend: OrderingBackend) -> Any:
        reconciler = _reconciler(request, backend, projection)
        await reconciler.refresh()
        partition = reconciler.partition_for(body.restaurant_id)
        if partition is None or not partition.items:
            return None
        stager = CheckoutStager(
            request.session_store, backend, backend, request.session_context
        )
        return stager.stage(partition)

    if _run(stage) is None:
        return _error("Nothing in your cart for this restaurant", status=400)
    return redirect("ordering:checkout")


# =============================================================================
# Checkout
# =============================================================================


@require_GET
@session_required
def checkout_detail(request: HttpRequest) -> HttpResponse:
    """
    GET /checkout/

    The staged restaurant cart and the payment methods on offer.
    Redirects to the cart if nothing is staged.
    """

    async def load(backend: OrderingBackend) -> Any:
        stager = CheckoutStager(
            request.session_store, backend, backend, request.session_context
        )
        return stager.load_staged()

    staged = _run(load)
    if isinstance(staged, NotFound):
        return redirect("ordering:cart")

    return _ok(
        {
            "staged": staged.to_wire(),
            "paymentMethods": [
                {"value": method.value, "name": method.display_name}
                for method in PaymentMethod
            ],
        }
    )


@csrf_exempt
@require_POST
@session_required
def checkout_adjust(request: HttpRequest) -> HttpResponse:
    """
    POST /checkout/adjust

    Change a staged line's quantity once the backend confirms it.
    Body: {lineId, quantity}. Redirects to the cart if the checkout empties.
    """
    body = _parse_body(request, AdjustBody)
    if isinstance(body, JsonResponse):
        return body

    async def adjust(backend: OrderingBackend) -> Any:
        stager = CheckoutStager(
            request.session_store, backend, backend, request.session_context
        )
        return await stager.adjust_staged_quantity(body.line_id, body.quantity)

    try:
        updated = _run(adjust)
    except StagedLineNotFoundError as e:
        return _error(e.message, status=404)
    _invalidate_cart(request)

    if not updated.items:
        return redirect("ordering:cart")
    return _ok({"staged": updated.to_wire()})


@csrf_exempt
@require_POST
@session_required
def checkout_submit(request: HttpRequest) -> HttpResponse:
    """
    POST /checkout/submit

    Place the staged order. Body: {address, phone, paymentMethod, notes?}
    Redirects to the receipt on success; on failure the checkout stays
    staged so the user can retry.
    """
    body = _parse_body(request, SubmitBody)
    if isinstance(body, JsonResponse):
        return body

    async def submit(backend: OrderingBackend) -> Any:
        stager = CheckoutStager(
            request.session_store, backend, backend, request.session_context
        )
        staged = stager.load_staged()
        if isinstance(staged, NotFound):
            return staged
        return await stager.finalize(
            staged,
            DeliveryInfo(address=body.address, phone=body.phone),
            body.payment_method,
            body.notes,
        )

    outcome = _run(submit)
    if isinstance(outcome, NotFound):
        return redirect("ordering:cart")
    if outcome.completed:
        # The ordered lines left the backend cart
        _invalidate_cart(request)
        return redirect("ordering:receipt")

    status = 400 if outcome.field_errors else 502
    return _error(
        outcome.error or "Could not place your order",
        status=status,
        data={"errors": outcome.field_errors},
    )


# =============================================================================
# Receipt and history
# =============================================================================


@require_GET
@session_required
def receipt_detail(request: HttpRequest) -> HttpResponse:
    """
    GET /receipt/

    The last placed order. Redirects to order history if there is none.
    """
    receipt = load_receipt(request.session_store)
    if isinstance(receipt, NotFound):
        return redirect("ordering:order_list")

    payload = receipt.to_wire()
    payload["subtotal"] = str(receipt.subtotal)
    payload["total"] = str(receipt.total)
    return _ok(payload)


@require_GET
@session_required
def order_list(request: HttpRequest) -> JsonResponse:
    """
    GET /orders/?status=&page=

    One page of the user's orders. `status` may be "all".
    """
    try:
        page = int(request.GET.get("page", "1"))
    except ValueError:
        return _error("Page must be a number", status=400)

    async def load(backend: OrderingBackend) -> Any:
        return await list_orders(
            backend, request.session_context, request.GET.get("status"), page
        )

    try:
        order_page = _run(load)
    except ValueError as e:
        return _error(str(e), status=400)
    return _ok(order_page.to_wire())


@csrf_exempt
@require_POST
@session_required
def order_review(request: HttpRequest) -> JsonResponse:
    """
    POST /orders/review

    Rate a completed order. Body: {transactionId, star, comment}
    """
    body = _parse_body(request, ReviewBody)
    if isinstance(body, JsonResponse):
        return body

    async def review(backend: OrderingBackend) -> Any:
        return await submit_review(
            backend,
            request.session_context,
            body.transaction_id,
            body.star,
            body.comment,
        )

    try:
        created = _run(review)
    except ValueError as e:
        return _error(str(e), status=400)
    return _ok(created.to_wire(), message="Thanks for your review", status=201)


# =============================================================================
# Accounts
# =============================================================================


@csrf_exempt
@require_http_methods(["GET", "POST"])
@with_session_context
def sign_in_view(request: HttpRequest) -> JsonResponse:
    """
    GET|POST /auth/sign-in

    GET tells whether the session is signed in (the target of auth
    redirects). POST signs in. Body: {email, password}
    """
    if request.method == "GET":
        context = request.session_context
        user = getattr(context, "user", None)
        return _ok(
            {
                "authenticated": context.is_authenticated,
                "user": user.to_wire() if user else None,
            },
            message="" if context.is_authenticated else "Sign in to continue",
        )

    body = _parse_body(request, SignInBody)
    if isinstance(body, JsonResponse):
        return body

    async def authenticate(backend: OrderingBackend) -> Any:
        return await sign_in(backend, request.session_store, body.email, body.password)

    try:
        context = _run(authenticate)
    except PydanticValidationError as e:
        return _validation_error(e)
    except AuthenticationError as e:
        # Wrong credentials, not an expired session
        return _error(e.message, status=401)

    return _ok({"user": context.user.to_wire()}, message="Signed in")


@csrf_exempt
@require_POST
@with_session_context
def sign_up_view(request: HttpRequest) -> JsonResponse:
    """
    POST /auth/sign-up

    Body: {name, email, phone, password}
    """
    body = _parse_body(request, SignUpBody)
    if isinstance(body, JsonResponse):
        return body

    async def register(backend: OrderingBackend) -> Any:
        return await sign_up(
            backend,
            request.session_store,
            body.name,
            body.email,
            body.phone,
            body.password,
        )

    try:
        context = _run(register)
    except PydanticValidationError as e:
        return _validation_error(e)

    return _ok({"user": context.user.to_wire()}, message="Account created", status=201)


@csrf_exempt
@require_POST
@with_session_context
def sign_out_view(request: HttpRequest) -> HttpResponse:
    """POST /auth/sign-out"""
    _invalidate_cart(request)
    sign_out(request.session_store)
    return redirect("ordering:sign_in")


@csrf_exempt
@require_http_methods(["GET", "PUT"])
@session_required
def profile(request: HttpRequest) -> JsonResponse:
    """
    GET|PUT /auth/profile

    PUT changes only the fields sent. Body: {name?, email?, phone?,
    latitude?, longitude?}
    """
    if request.method == "GET":

        async def load(backend: OrderingBackend) -> Any:
            return await fetch_profile(backend, request.session_context)

        user = _run(load)
        request.session_store.set(CURRENT_USER_KEY, user.to_wire())
        return _ok({"user": user.to_wire()})

    body = _parse_body(request, UpdateProfileRequest)
    if isinstance(body, JsonResponse):
        return body

    async def save(backend: OrderingBackend) -> Any:
        return await update_profile(
            backend, request.session_store, request.session_context, body
        )

    try:
        user = _run(save)
    except ValueError as e:
        return _error(str(e), status=400)
    return _ok({"user": user.to_wire()}, message="Profile updated")


# =============================================================================
# Restaurants
# =============================================================================


def _restaurants_payload(restaurants: list) -> dict[str, Any]:
    return {"restaurants": [restaurant.to_wire() for restaurant in restaurants]}


@require_GET
@with_session_context
def restaurant_list(request: HttpRequest) -> JsonResponse:
    """
    GET /restaurants/?search=&minPrice=&maxPrice=&minRating=&limit=

    Browse restaurants. A search term searches names and menus.
    """
    filters = _parse_query(request, RestaurantFilters)
    if isinstance(filters, JsonResponse):
        return filters

    async def load(backend: OrderingBackend) -> Any:
        return await browse_restaurants(backend, request.session_context, filters)

    return _ok(_restaurants_payload(_run(load)))


@require_GET
@with_session_context
def restaurant_recommended(request: HttpRequest) -> JsonResponse:
    """GET /restaurants/recommended"""

    async def load(backend: OrderingBackend) -> Any:
        return await recommended_restaurants(backend, request.session_context)

    return _ok(_restaurants_payload(_run(load)))


@require_GET
@session_required
def restaurant_nearby(request: HttpRequest) -> JsonResponse:
    """GET /restaurants/nearby - closest to the location saved on the profile."""

    async def load(backend: OrderingBackend) -> Any:
        return await nearby_restaurants(backend, request.session_context)

    return _ok(_restaurants_payload(_run(load)))


@require_GET
@with_session_context
def restaurant_best_sellers(request: HttpRequest) -> JsonResponse:
    """GET /restaurants/best-sellers?limit="""
    try:
        limit = int(request.GET["limit"]) if request.GET.get("limit") else None
    except ValueError:
        return _error("Limit must be a number", status=400)

    async def load(backend: OrderingBackend) -> Any:
        return await best_seller_restaurants(backend, limit)

    try:
        restaurants = _run(load)
    except ValueError as e:
        return _error(str(e), status=400)
    return _ok(_restaurants_payload(restaurants))


@require_GET
@with_session_context
def restaurant_detail(request: HttpRequest, restaurant_id: int) -> JsonResponse:
    """
    GET /restaurants/<id>/?type=

    The restaurant page. Each menu item carries the quantity the cart shows
    for it, so the add/remove controls match the cart. `type` picks a menu
    tab (food, drink); "all" or nothing shows every item.
    """
    projection = _projection(request)

    async def load(backend: OrderingBackend) -> Any:
        reconciler = _reconciler(request, backend, projection)
        return await restaurant_page(
            backend, reconciler, restaurant_id, request.GET.get("type")
        )

    page = _run(load)
    payload = page.restaurant.to_wire()
    payload["menus"] = [
        entry.menu.to_wire() | {"quantity": entry.quantity, "pending": entry.pending}
        for entry in page.entries
    ]
    return _ok(payload)
