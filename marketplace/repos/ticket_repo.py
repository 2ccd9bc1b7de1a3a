# marketplace/repos/ticket_repo.py
from marketplace.data.models.support_ticket import SupportTicketModel
from marketplace.repos.base import SessionRepo, paginate


class TicketRepo(SessionRepo):
    def get_ticket(self, ticket_id: int) -> SupportTicketModel | None:
        return self.db.get(SupportTicketModel, ticket_id)

    def list_tickets(
        self,
        *,
        customer_id: int | None = None,
        retailer_id: int | None = None,
        status: str | None = None,
        page: int = 1,
        limit: int = 10,
    ):
        q = self.db.query(SupportTicketModel)
        if customer_id is not None:
            q = q.filter(SupportTicketModel.customer_id == customer_id)
        if retailer_id is not None:
            q = q.filter(SupportTicketModel.retailer_id == retailer_id)
        if status:
            q = q.filter(SupportTicketModel.status == status)

        q = q.order_by(SupportTicketModel.created_at.desc(), SupportTicketModel.id.desc())
        return paginate(q, page, limit)
