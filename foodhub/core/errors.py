"""Error taxonomy for the order and payment workflow.

Services raise these; routers translate them with :func:`to_http_exception`
at the request boundary. Nothing here is retried automatically.
"""
from __future__ import annotations

from fastapi import HTTPException, status


class FoodHubError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.__class__.__doc__ or self.__class__.__name__)
        self.message = str(self.args[0])


class ValidationError(FoodHubError):
    """Invalid input."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidTableError(ValidationError):
    """Table not found for this restaurant."""


class InvalidQuantityError(ValidationError):
    """Quantity must be at least 1."""


class InvalidDiscountError(ValidationError):
    """Invalid discount."""


class InvalidMenuItemError(ValidationError):
    """Menu item not available for this restaurant."""


class InvalidPaymentMethodError(ValidationError):
    """Unsupported payment method."""


class OrderNotFoundError(FoodHubError):
    """Order not found."""

    status_code = status.HTTP_404_NOT_FOUND


class OrderStateError(FoodHubError):
    """Order is not in the expected state."""

    status_code = status.HTTP_409_CONFLICT


class OrderAlreadyClosedError(OrderStateError):
    """Order is already closed."""


class OrderAlreadyPaidError(OrderStateError):
    """Order is already paid."""


class UnauthenticatedError(FoodHubError):
    """Authentication required."""

    status_code = status.HTTP_401_UNAUTHORIZED


class AlreadyExistsError(FoodHubError):
    """Resource already exists."""

    status_code = status.HTTP_409_CONFLICT


class PersistenceError(FoodHubError):
    """Datastore operation failed."""


def to_http_exception(exc: FoodHubError) -> HTTPException:
    headers = None
    if isinstance(exc, UnauthenticatedError):
        headers = {"WWW-Authenticate": "Bearer"}
    return HTTPException(status_code=exc.status_code, detail=exc.message, headers=headers)
