# marketplace/domain/errors.py
from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    INSUFFICIENT_STOCK = "insufficient_stock"
    INVALID_TRANSITION = "invalid_transition"
    PAYMENT_GATEWAY = "payment_gateway"
    INTERNAL = "internal"


HTTP_STATUS = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.VALIDATION: 400,
    ErrorKind.CONFLICT: 400,
    ErrorKind.INSUFFICIENT_STOCK: 400,
    ErrorKind.INVALID_TRANSITION: 400,
    ErrorKind.PAYMENT_GATEWAY: 502,
    ErrorKind.INTERNAL: 500,
}


class MarketplaceError(Exception):
    """Base of every error a service raises on purpose.

    The kind decides the HTTP status in one place (api.responses); the
    message goes to the client as is.
    """

    kind = ErrorKind.INTERNAL

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.kind]


class NotFoundError(MarketplaceError):
    kind = ErrorKind.NOT_FOUND


class UnauthorizedError(MarketplaceError):
    kind = ErrorKind.UNAUTHORIZED


class ForbiddenError(MarketplaceError):
    kind = ErrorKind.FORBIDDEN


class ValidationError(MarketplaceError):
    kind = ErrorKind.VALIDATION


class ConflictError(MarketplaceError):
    kind = ErrorKind.CONFLICT


class InsufficientStockError(MarketplaceError):
    kind = ErrorKind.INSUFFICIENT_STOCK

    def __init__(self, product_name: str):
        super().__init__(f"Insufficient stock for product {product_name}")
        self.product_name = product_name


class InvalidTransitionError(MarketplaceError):
    kind = ErrorKind.INVALID_TRANSITION

    def __init__(self, current: str, target: str):
        super().__init__(f"Invalid status transition from {current} to {target}")
        self.current = current
        self.target = target


class PaymentGatewayError(MarketplaceError):
    kind = ErrorKind.PAYMENT_GATEWAY
