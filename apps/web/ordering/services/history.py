"""Order history and reviews."""

import logging

from platter_schemas import OrderPage, OrderStatus, Review, ReviewRequest

from apps.web.ordering.clients.base import OrderService
from apps.web.ordering.session import SessionContext, require_token

logger = logging.getLogger(__name__)

ALL_STATUSES = "all"


def parse_status_filter(status: str | OrderStatus | None) -> OrderStatus | None:
    """
    Turn a status filter into an OrderStatus, or None for no filter.

    Raises:
        ValueError: If the status is not a known order status.
    """
    if status is None or status == ALL_STATUSES or status == "":
        return None
    if isinstance(status, OrderStatus):
        return status
    try:
        return OrderStatus(status)
    except ValueError:
        raise ValueError(f"Unknown order status: {status}") from None


async def list_orders(
    service: OrderService,
    context: SessionContext,
    status: str | OrderStatus | None = None,
    page: int = 1,
) -> OrderPage:
    """
    Fetch one page of the signed-in user's orders, newest first.

    Args:
        service: Order service to query.
        context: Current session; must be authenticated.
        status: An order status value, or "all"/None for every order.
        page: Page number, starting at 1.

    Raises:
        AuthenticationRequiredError: If the session is anonymous.
        ValueError: If the status or page is invalid.
        PlatterAPIError: If the backend call fails.
    """
    token = require_token(context)
    if page < 1:
        raise ValueError("Page numbers start at 1")

    return await service.list_orders(token, parse_status_filter(status), page)


async def submit_review(
    service: OrderService,
    context: SessionContext,
    transaction_id: str,
    star: int,
    comment: str = "",
) -> Review:
    """
    Rate a completed order.

    Raises:
        AuthenticationRequiredError: If the session is anonymous.
        ValueError: If the star rating is outside 1..5.
        PlatterAPIError: If the backend rejects the review.
    """
    token = require_token(context)
    if not 1 <= star <= 5:
        raise ValueError("Rating must be between 1 and 5 stars")

    request = ReviewRequest(
        transaction_id=transaction_id, star=star, comment=comment.strip()
    )
    review = await service.create_review(token, request)
    logger.info("Review %s submitted for order %s", review.id, transaction_id)
    return review
