# marketplace/services/customer_service.py
from sqlalchemy.orm import Session

from marketplace.data.models.customer import CustomerModel
from marketplace.domain.errors import NotFoundError
from marketplace.domain.schemas import CustomerUpdate
from marketplace.repos.customer_repo import CustomerRepo
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class CustomerService:
    def __init__(self, db: Session):
        self.repo = CustomerRepo(db)

    def get_profile(self, customer_id: int) -> CustomerModel:
        customer = self.repo.get_customer(customer_id)
        if not customer:
            raise NotFoundError("Customer not found")
        return customer

    def update_profile(self, customer_id: int, payload: CustomerUpdate) -> CustomerModel:
        customer = self.get_profile(customer_id)

        for field, value in payload.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(customer, field, value)

        self.repo.commit()
        logger.info(f"Customer {customer_id} profile updated")
        return customer
