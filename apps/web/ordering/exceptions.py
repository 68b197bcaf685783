"""Ordering exceptions - backend failures and local guard violations."""


class PlatterError(Exception):
    """Base exception for ordering errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class PlatterAPIError(PlatterError):
    """Request to the ordering backend failed."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class AuthenticationError(PlatterAPIError):
    """Backend rejected the session token (HTTP 401)."""


class ValidationFailedError(PlatterAPIError):
    """Backend rejected the request body (HTTP 400/422)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> None:
        super().__init__(message, status_code, response_body)
        self.errors = errors or {}


class AuthenticationRequiredError(PlatterError):
    """Operation needs a signed-in session but the session is anonymous."""


class LineNotResolvableError(PlatterError):
    """Cart line has no server ID yet (its add is still in flight)."""

    def __init__(self, message: str, menu_item_id: int | None = None) -> None:
        super().__init__(message)
        self.menu_item_id = menu_item_id


class StagedLineNotFoundError(PlatterError):
    """Checkout adjustment targets a line that is not in the staged record."""

    def __init__(self, message: str, line_id: int | None = None) -> None:
        super().__init__(message)
        self.line_id = line_id


class CheckoutStateError(PlatterError):
    """Checkout step is not valid in the current checkout phase."""

    def __init__(self, message: str, phase: str | None = None) -> None:
        super().__init__(message)
        self.phase = phase
