import hashlib
import hmac
import json
import time
import unittest

from fastapi.testclient import TestClient

from marketplace.api import create_app
from marketplace.api.deps import get_geocoder, get_lock_service, get_notifier, get_payment_gateway
from marketplace.data.database import Base, SessionLocal, engine
from marketplace.data.models import ProductModel, UserModel
from marketplace.domain.errors import ValidationError
from marketplace.services.notification_service import NotificationService
from marketplace.services.payment_gateway import PaymentGateway
from marketplace.utils.security import create_token, hash_password

WEBHOOK_SECRET = "whsec_test"


def sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload.decode()}".encode()
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


class FakeLockService:
    def __init__(self):
        self.held = {}

    def acquire_checkout_lock(self, customer_id, token, ttl=30):
        if customer_id in self.held:
            return False
        self.held[customer_id] = token
        return True

    def release_checkout_lock(self, customer_id, token):
        if self.held.get(customer_id) == token:
            del self.held[customer_id]
            return True
        return False


class FakeGeocoder:
    def __init__(self, latitude=52.2297, longitude=21.0122):
        self.calls = []
        self.latitude = latitude
        self.longitude = longitude

    def geocode(self, address):
        self.calls.append(address)
        return {"latitude": self.latitude, "longitude": self.longitude, "formatted_address": address}


class FakeGateway(PaymentGateway):
    """Stripe stand-in; webhook verification is the real one."""

    def __init__(self):
        super().__init__(api_key="sk_test", webhook_secret=WEBHOOK_SECRET)
        self.intents = {}
        self.refunds = []

    def create_intent(self, amount, currency, metadata):
        payment_id = f"pi_{len(self.intents) + 1}"
        self.intents[payment_id] = {
            "id": payment_id,
            "status": "requires_payment_method",
            "client_secret": f"{payment_id}_secret",
            "amount": amount,
            "currency": currency,
            "metadata": dict(metadata),
            "last_payment_error": None,
        }
        return dict(self.intents[payment_id])

    def retrieve_intent(self, payment_id):
        if payment_id not in self.intents:
            raise ValidationError("Unknown payment")
        return dict(self.intents[payment_id])

    def refund(self, payment_id):
        self.refunds.append(payment_id)
        return {"id": f"re_{len(self.refunds)}", "status": "succeeded"}


class RecordingRelay:
    """Takes the place of ConnectionManager; keeps what would have been pushed."""

    def __init__(self):
        self.events = []

    def publish(self, room, event, data):
        self.events.append((room, event, data))

    def named(self, event):
        return [(room, data) for room, e, data in self.events if e == event]


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        Base.metadata.create_all(bind=engine)

        self.app = create_app()
        self.lock = FakeLockService()
        self.geocoder = FakeGeocoder()
        self.gateway = FakeGateway()
        self.relay = RecordingRelay()

        self.app.dependency_overrides[get_lock_service] = lambda: self.lock
        self.app.dependency_overrides[get_geocoder] = lambda: self.geocoder
        self.app.dependency_overrides[get_payment_gateway] = lambda: self.gateway
        self.app.dependency_overrides[get_notifier] = lambda: NotificationService(self.relay)

        self.client = TestClient(self.app)

    def tearDown(self):
        self.client.close()
        Base.metadata.drop_all(bind=engine)

    # helpers
    @staticmethod
    def auth(token):
        return {"Authorization": f"Bearer {token}"}

    def register_customer(self, email="alice@example.com", password="password123"):
        resp = self.client.post(
            "/customers/register",
            json={
                "email": email,
                "password": password,
                "first_name": "Alice",
                "last_name": "Smith",
                "phone": "555-0100",
            },
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        data = resp.json()["data"]
        return data["token"], data["user"]["id"]

    def register_retailer(self, email="shop@example.com", business_name="Corner Shop", business_type="grocery"):
        resp = self.client.post(
            "/retailers/register",
            json={
                "email": email,
                "password": "password123",
                "business_name": business_name,
                "phone": "555-0200",
                "business_type": business_type,
                "tax_id": "TAX-1",
            },
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        data = resp.json()["data"]
        return data["token"], data["user"]["id"]

    def create_admin(self, email="admin@example.com"):
        with SessionLocal() as db:
            admin = UserModel(email=email, password_hash=hash_password("adminpass123"), role="admin")
            db.add(admin)
            db.commit()
            return create_token(admin.id, "admin"), admin.id

    def create_product(self, token, name="Apples", price=2.5, stock=10, category="fruit", **extra):
        resp = self.client.post(
            "/products",
            json={"name": name, "price": price, "stock": stock, "category": category, **extra},
            headers=self.auth(token),
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()["data"]

    def place_order(self, token, items, payment_method="card"):
        return self.client.post(
            "/orders",
            json={
                "items": [{"product_id": pid, "quantity": qty} for pid, qty in items],
                "shipping_address": {"street": "1 Main St", "city": "Springfield"},
                "payment_method": payment_method,
            },
            headers=self.auth(token),
        )

    def stock(self, product_id):
        with SessionLocal() as db:
            return db.get(ProductModel, product_id).stock

    def webhook(self, event: dict, signature=None):
        payload = json.dumps(event).encode()
        return self.client.post(
            "/payments/webhook",
            content=payload,
            headers={"Stripe-Signature": signature or sign(payload), "Content-Type": "application/json"},
        )
