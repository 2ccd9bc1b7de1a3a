# marketplace/services/auth_service.py
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.data.models.user import UserModel
from marketplace.data.models.customer import CustomerModel
from marketplace.data.models.retailer import RetailerModel
from marketplace.domain.errors import ConflictError, ForbiddenError, UnauthorizedError
from marketplace.domain.schemas import CustomerRegisterIn, RetailerRegisterIn
from marketplace.repos.user_repo import UserRepo
from marketplace.repos.retailer_repo import RetailerRepo
from marketplace.services.notification_service import NotificationService
from marketplace.utils.security import hash_password, verify_password, create_token
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class AuthService:
    """Registration, login and password changes for every role."""

    def __init__(self, db: Session, notifier: NotificationService | None = None):
        self.repo = UserRepo(db)
        self.retailers = RetailerRepo(db)
        self.notifier = notifier or NotificationService()

    def _new_user(self, email: str, password: str, role: str) -> UserModel:
        email = email.lower()
        if self.repo.get_by_email(email):
            raise ConflictError("Email already registered")

        try:
            return self.repo.add(UserModel(email=email, password_hash=hash_password(password), role=role))
        except IntegrityError as e:
            # a concurrent sign-up took the address between the check and the insert
            self.repo.rollback()
            raise ConflictError("Email already registered") from e

    def register_customer(self, payload: CustomerRegisterIn) -> dict:
        user = self._new_user(payload.email, payload.password, "customer")
        customer = self.repo.add(
            CustomerModel(
                user_id=user.id,
                first_name=payload.first_name,
                last_name=payload.last_name,
                phone=payload.phone,
                total_orders=0,
                total_spent=0,
            )
        )
        self.repo.commit()
        logger.info(f"Customer {user.id} registered")

        self.notifier.send_email(
            user.email,
            "Welcome to the marketplace",
            f"Hi {customer.first_name}, your account is ready.",
        )
        return {"token": create_token(user.id, user.role), "user": user, "customer": customer}

    def register_retailer(self, payload: RetailerRegisterIn) -> dict:
        user = self._new_user(payload.email, payload.password, "retailer")
        retailer = self.retailers.add(
            RetailerModel(
                user_id=user.id,
                business_name=payload.business_name,
                description=payload.description,
                phone=payload.phone,
                business_type=payload.business_type,
                tax_id=payload.tax_id,
                delivery_radius_km=payload.delivery_radius_km,
                min_order_amount=payload.min_order_amount,
                delivery_areas=[a.model_dump(mode="json") for a in payload.delivery_areas],
                is_verified=False,
                average_rating=0,
                total_ratings=0,
                total_orders=0,
                total_revenue=0,
            )
        )
        self.repo.commit()
        logger.info(f"Retailer {user.id} registered ({retailer.business_name})")

        self.notifier.send_email(
            user.email,
            "Your store is registered",
            f"{retailer.business_name} can now list products.",
        )
        return {"token": create_token(user.id, user.role), "user": user, "retailer": retailer}

    def login(self, email: str, password: str, role: str | None = None) -> dict:
        user = self.repo.get_by_email(email)
        # same message for unknown email and wrong password
        if not user or not verify_password(password, user.password_hash):
            raise UnauthorizedError("Invalid credentials")
        if role is not None and user.role != role:
            raise UnauthorizedError("Invalid credentials")
        if not user.is_active:
            raise ForbiddenError("Account is deactivated")

        user.last_login_at = datetime.now(timezone.utc)
        self.repo.commit()
        logger.info(f"User {user.id} logged in as {user.role}")

        result = {"token": create_token(user.id, user.role), "user": user}
        if user.role == "customer":
            result["customer"] = self.repo.get_customer(user.id)
        elif user.role == "retailer":
            result["retailer"] = self.retailers.get_retailer(user.id)
        return result

    def change_password(self, user: UserModel, current_password: str, new_password: str) -> None:
        if not verify_password(current_password, user.password_hash):
            raise UnauthorizedError("Current password is incorrect")

        user.password_hash = hash_password(new_password)
        self.repo.add(user)
        self.repo.commit()
        logger.info(f"User {user.id} changed password")

    def ensure_admin(self, email: str | None, password: str | None) -> UserModel | None:
        if not email or not password:
            return None

        existing = self.repo.get_by_email(email)
        if existing:
            return existing

        admin = self.repo.add(UserModel(email=email.lower(), password_hash=hash_password(password), role="admin"))
        self.repo.commit()
        logger.info(f"Admin account {admin.email} created")
        return admin
