# marketplace/repos/user_repo.py
from sqlalchemy import select

from marketplace.data.models.user import UserModel
from marketplace.data.models.customer import CustomerModel
from marketplace.repos.base import SessionRepo


class UserRepo(SessionRepo):
    def get_user(self, user_id: int) -> UserModel | None:
        return self.db.get(UserModel, user_id)

    def get_by_email(self, email: str) -> UserModel | None:
        return self.db.execute(
            select(UserModel).where(UserModel.email == email.lower())
        ).scalar_one_or_none()

    def get_customer(self, user_id: int) -> CustomerModel | None:
        return self.db.get(CustomerModel, user_id)
