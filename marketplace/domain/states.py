# marketplace/domain/states.py
from marketplace.domain.errors import InvalidTransitionError, ValidationError

# Order lifecycle
PENDING = "pending"
CONFIRMED = "confirmed"
PREPARING = "preparing"
READY = "ready"
DELIVERED = "delivered"
CANCELLED = "cancelled"

ORDER_TRANSITIONS = {
    PENDING: {CONFIRMED, CANCELLED},
    CONFIRMED: {PREPARING, CANCELLED},
    PREPARING: {READY, CANCELLED},
    READY: {DELIVERED, CANCELLED},
    DELIVERED: set(),
    CANCELLED: set(),
}

# customers may only cancel before the retailer starts preparing
CUSTOMER_CANCELLABLE = {PENDING, CONFIRMED}

# Payment status: no transition table, only an allow-list
PAYMENT_PENDING = "pending"
PAYMENT_PROCESSING = "processing"
PAYMENT_COMPLETED = "completed"
PAYMENT_FAILED = "failed"
PAYMENT_REFUNDED = "refunded"

PAYMENT_STATUSES = (
    PAYMENT_PENDING,
    PAYMENT_PROCESSING,
    PAYMENT_COMPLETED,
    PAYMENT_FAILED,
    PAYMENT_REFUNDED,
)

# Support tickets
TICKET_OPEN = "open"
TICKET_IN_PROGRESS = "in_progress"
TICKET_RESOLVED = "resolved"
TICKET_CLOSED = "closed"

TICKET_TRANSITIONS = {
    TICKET_OPEN: {TICKET_IN_PROGRESS, TICKET_CLOSED},
    TICKET_IN_PROGRESS: {TICKET_RESOLVED, TICKET_CLOSED},
    TICKET_RESOLVED: {TICKET_CLOSED},
    TICKET_CLOSED: set(),
}


def check_order_transition(current: str, target: str) -> None:
    if target not in ORDER_TRANSITIONS:
        raise ValidationError(f"Unknown order status {target}")
    if target not in ORDER_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(current, target)


def check_ticket_transition(current: str, target: str) -> None:
    if target not in TICKET_TRANSITIONS:
        raise ValidationError(f"Unknown ticket status {target}")
    if target not in TICKET_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(current, target)


def check_payment_status(status: str) -> None:
    if status not in PAYMENT_STATUSES:
        raise ValidationError("Invalid payment status")
