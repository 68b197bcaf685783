"""
Decorators for request handling and session identity.
"""

import logging
from collections.abc import Callable
from functools import wraps
from typing import Any

from django.http import HttpRequest, JsonResponse
from django.shortcuts import redirect

from apps.web.ordering.exceptions import (
    AuthenticationError,
    AuthenticationRequiredError,
    PlatterAPIError,
    ValidationFailedError,
)
from apps.web.ordering.services.accounts import sign_out
from apps.web.ordering.services.reconciliation import get_cart_registry
from apps.web.ordering.session import DjangoSessionStore, context_from_store

logger = logging.getLogger(__name__)

SIGN_IN_URL_NAME = "ordering:sign_in"


def client_error_status(status_code: int | None) -> int | None:
    """The backend status if it blames the request (4xx), else None."""
    if status_code is not None and 400 <= status_code < 500:
        return status_code
    return None


def with_session_context(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Decorator that attaches the session store and context to the request.

    Sets `request.session_store` and `request.session_context`. If the view
    raises AuthenticationError (the backend rejected the token) the stored
    identity is discarded and the user is sent to sign-in. An anonymous
    session hitting an operation that needs identity is sent there too.
    Other backend failures become JSON errors: a 4xx from the backend keeps
    its status (400 for rejected input, 404 for an unknown ID), anything
    else is a 502.

    Usage:
        @with_session_context
        def cart_detail(request):
            reconciler = CartReconciler(backend, request.session_context)
    """

    @wraps(view_func)
    def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> Any:
        store = DjangoSessionStore(request.session)
        request.session_store = store
        request.session_context = context_from_store(store)

        try:
            return view_func(request, *args, **kwargs)
        except AuthenticationError as e:
            logger.warning("Backend rejected session token: %s", e)
            get_cart_registry().discard(request.session.session_key)
            sign_out(store)
            return redirect(SIGN_IN_URL_NAME)
        except AuthenticationRequiredError:
            return redirect(SIGN_IN_URL_NAME)
        except ValidationFailedError as e:
            return JsonResponse(
                {"success": False, "message": e.message, "data": {"errors": e.errors}},
                status=400,
            )
        except PlatterAPIError as e:
            status = client_error_status(e.status_code) or 502
            if status == 502:
                logger.warning("Backend call failed in %s: %s", view_func.__name__, e)
            return JsonResponse(
                {"success": False, "message": e.message, "data": None},
                status=status,
            )

    return wrapper


def session_required(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Decorator that sends anonymous sessions to sign-in before the view runs.

    Implies `with_session_context`.

    Usage:
        @session_required
        def order_list(request):
            ...
    """

    @wraps(view_func)
    def guarded(request: HttpRequest, *args: Any, **kwargs: Any) -> Any:
        if not request.session_context.is_authenticated:
            return redirect(SIGN_IN_URL_NAME)
        return view_func(request, *args, **kwargs)

    return with_session_context(guarded)
