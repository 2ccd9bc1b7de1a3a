# marketplace/api/routers/support.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.api.deps import current_admin, current_customer, get_current_user, get_notifier
from marketplace.api.responses import ok
from marketplace.data.database import get_db
from marketplace.data.models.user import UserModel
from marketplace.domain.schemas import (
    Envelope,
    FeedbackIn,
    Page,
    TicketAssignIn,
    TicketCreate,
    TicketMessageIn,
    TicketOut,
    TicketStatusIn,
)
from marketplace.services.support_service import SupportService

router = APIRouter(prefix="/support", tags=["support"])


def get_service(db: Session, notifier=None):
    return SupportService(db, notifier)


@router.post("", response_model=Envelope[TicketOut], status_code=201)
def create_ticket(
    payload: TicketCreate,
    user: UserModel = Depends(current_customer),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
):
    return ok(get_service(db, notifier).create_ticket(user.id, payload), "Ticket created")


@router.get("", response_model=Envelope[Page[TicketOut]])
def list_tickets(
    status: str | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ok(get_service(db).list_tickets(user, status, page, limit))


@router.get("/{ticket_id}", response_model=Envelope[TicketOut])
def get_ticket(ticket_id: int, user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    return ok(get_service(db).get_ticket(user, ticket_id))


@router.post("/{ticket_id}/messages", response_model=Envelope[TicketOut])
def add_message(
    ticket_id: int,
    payload: TicketMessageIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
):
    ticket = get_service(db, notifier).add_message(user, ticket_id, payload.message, payload.attachments)
    return ok(ticket, "Message added")


@router.put("/{ticket_id}/status", response_model=Envelope[TicketOut])
def update_status(
    ticket_id: int,
    payload: TicketStatusIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
):
    ticket = get_service(db, notifier).update_status(user, ticket_id, payload.status, payload.resolution)
    return ok(ticket, "Ticket status updated")


@router.put("/{ticket_id}/assign", response_model=Envelope[TicketOut])
def assign(
    ticket_id: int,
    payload: TicketAssignIn,
    user: UserModel = Depends(current_admin),
    db: Session = Depends(get_db),
):
    return ok(get_service(db).assign(ticket_id, payload.assigned_to), "Ticket assigned")


@router.post("/{ticket_id}/feedback", response_model=Envelope[TicketOut])
def feedback(
    ticket_id: int,
    payload: FeedbackIn,
    user: UserModel = Depends(current_customer),
    db: Session = Depends(get_db),
):
    return ok(get_service(db).submit_feedback(user.id, ticket_id, payload.rating, payload.feedback), "Feedback submitted")
