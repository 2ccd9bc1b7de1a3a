# marketplace/services/support_service.py
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from marketplace.data.models.support_ticket import SupportTicketModel
from marketplace.data.models.ticket_message import TicketMessageModel
from marketplace.data.models.user import UserModel
from marketplace.domain import states
from marketplace.domain.errors import ForbiddenError, NotFoundError, ValidationError
from marketplace.domain.schemas import TicketCreate
from marketplace.repos.ticket_repo import TicketRepo
from marketplace.repos.order_repo import OrderRepo
from marketplace.repos.retailer_repo import RetailerRepo
from marketplace.repos.user_repo import UserRepo
from marketplace.services.notification_service import NotificationService
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

SENDER_TYPES = {"customer": "customer", "retailer": "retailer", "admin": "support"}


class SupportService:
    """
    Support tickets.
    - the ticket's customer, the ticket's retailer, its assignee and admins
      can read it and post messages
    - only admins and the assignee move the status
    - only the customer rates a resolved ticket
    """

    def __init__(self, db: Session, notifier: NotificationService | None = None):
        self.repo = TicketRepo(db)
        self.orders = OrderRepo(db)
        self.retailers = RetailerRepo(db)
        self.users = UserRepo(db)
        self.notifier = notifier or NotificationService()

    def _ticket(self, ticket_id: int) -> SupportTicketModel:
        ticket = self.repo.get_ticket(ticket_id)
        if not ticket:
            raise NotFoundError("Ticket not found")
        return ticket

    @staticmethod
    def _can_access(user: UserModel, ticket: SupportTicketModel) -> bool:
        if user.role == "admin" or user.id == ticket.assigned_to:
            return True
        if user.role == "customer":
            return user.id == ticket.customer_id
        if user.role == "retailer":
            return user.id == ticket.retailer_id
        return False

    @staticmethod
    def _participants(ticket: SupportTicketModel) -> set:
        return {ticket.customer_id, ticket.retailer_id, ticket.assigned_to}

    def create_ticket(self, customer_id: int, payload: TicketCreate) -> SupportTicketModel:
        retailer_id = payload.retailer_id

        if payload.order_id is not None:
            order = self.orders.get_order(payload.order_id)
            if not order:
                raise NotFoundError("Order not found")
            if order.customer_id != customer_id:
                raise ForbiddenError("Access denied")
            if retailer_id is not None and retailer_id != order.retailer_id:
                raise ValidationError("Order belongs to another retailer")
            retailer_id = order.retailer_id

        if retailer_id is not None and not self.retailers.get_retailer(retailer_id):
            raise NotFoundError("Retailer not found")

        ticket = SupportTicketModel(
            customer_id=customer_id,
            retailer_id=retailer_id,
            order_id=payload.order_id,
            subject=payload.subject,
            category=payload.category,
            priority=payload.priority,
            status=states.TICKET_OPEN,
        )
        ticket.messages.append(
            TicketMessageModel(sender_id=customer_id, sender_type="customer", message=payload.message, attachments=[])
        )
        self.repo.add(ticket)
        self.repo.commit()

        logger.info(f"Ticket {ticket.id} opened by customer {customer_id} ({ticket.category}/{ticket.priority})")
        self.notifier.ticket_message(ticket, self._participants(ticket), sender_id=customer_id)
        return ticket

    def list_tickets(self, user: UserModel, status: str | None = None, page: int = 1, limit: int = 10) -> dict:
        if status is not None and status not in states.TICKET_TRANSITIONS:
            raise ValidationError(f"Unknown ticket status {status}")

        scope = {}
        if user.role == "customer":
            scope["customer_id"] = user.id
        elif user.role == "retailer":
            scope["retailer_id"] = user.id

        rows, total = self.repo.list_tickets(status=status, page=page, limit=limit, **scope)
        return {
            "items": rows,
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": (total + limit - 1) // limit,
        }

    def get_ticket(self, user: UserModel, ticket_id: int) -> SupportTicketModel:
        ticket = self._ticket(ticket_id)
        if not self._can_access(user, ticket):
            raise ForbiddenError("Access denied")
        return ticket

    def add_message(self, user: UserModel, ticket_id: int, message: str, attachments: list[str] | None = None):
        ticket = self.get_ticket(user, ticket_id)
        if ticket.status == states.TICKET_CLOSED:
            raise ValidationError("Ticket is closed")

        ticket.messages.append(
            TicketMessageModel(
                sender_id=user.id,
                sender_type=SENDER_TYPES.get(user.role, "support"),
                message=message,
                attachments=list(attachments or []),
            )
        )
        ticket.updated_at = datetime.now(timezone.utc)
        self.repo.commit()

        logger.info(f"Ticket {ticket.id}: message from {user.role} {user.id}")
        self.notifier.ticket_message(ticket, self._participants(ticket), sender_id=user.id)
        return ticket

    def update_status(self, user: UserModel, ticket_id: int, status: str, resolution: str | None = None):
        ticket = self._ticket(ticket_id)
        if user.role != "admin" and user.id != ticket.assigned_to:
            raise ForbiddenError("Only support staff can change the ticket status")

        states.check_ticket_transition(ticket.status, status)

        now = datetime.now(timezone.utc)
        previous = ticket.status
        ticket.status = status
        if status == states.TICKET_RESOLVED:
            ticket.resolution = resolution
            ticket.resolved_at = now
        elif status == states.TICKET_CLOSED:
            ticket.closed_at = now
            if resolution:
                ticket.resolution = resolution
        ticket.updated_at = now
        self.repo.commit()

        logger.info(f"Ticket {ticket.id}: {previous} -> {status}")
        customer = self.users.get_user(ticket.customer_id)
        self.notifier.ticket_status(ticket, customer.email if customer else None)
        return ticket

    def assign(self, ticket_id: int, assignee_id: int) -> SupportTicketModel:
        ticket = self._ticket(ticket_id)
        if ticket.status == states.TICKET_CLOSED:
            raise ValidationError("Ticket is closed")

        assignee = self.users.get_user(assignee_id)
        if not assignee or assignee.role != "admin" or not assignee.is_active:
            raise ValidationError("Tickets can only be assigned to support staff")

        ticket.assigned_to = assignee.id
        ticket.updated_at = datetime.now(timezone.utc)
        self.repo.commit()
        logger.info(f"Ticket {ticket.id} assigned to {assignee.id}")
        return ticket

    def submit_feedback(self, customer_id: int, ticket_id: int, rating: int, feedback: str | None = None):
        ticket = self._ticket(ticket_id)
        if ticket.customer_id != customer_id:
            raise ForbiddenError("Access denied")
        if ticket.status != states.TICKET_RESOLVED:
            raise ValidationError("Feedback can only be submitted for resolved tickets")
        if not 1 <= rating <= 5:
            raise ValidationError("Rating must be between 1 and 5")

        ticket.satisfaction_rating = rating
        ticket.satisfaction_feedback = feedback
        self.repo.commit()
        logger.info(f"Ticket {ticket.id} rated {rating}")
        return ticket
