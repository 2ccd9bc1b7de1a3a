import unittest
from unittest import mock

from marketplace.data.database import SessionLocal
from marketplace.data.models import UserModel
from marketplace.repos.user_repo import UserRepo
from marketplace.services.notification_service import NotificationService
from marketplace.utils.security import create_token, decode_token, hash_password, verify_password
from tests.base import ApiTestCase


class SecurityTests(unittest.TestCase):
    def test_password_hashing(self):
        hashed = hash_password("password123")
        self.assertNotEqual(hashed, "password123")
        self.assertTrue(verify_password("password123", hashed))
        self.assertFalse(verify_password("password124", hashed))

    def test_token_round_trip(self):
        claims = decode_token(create_token(7, "retailer"))
        self.assertEqual(claims["sub"], "7")
        self.assertEqual(claims["role"], "retailer")

    def test_expired_or_tampered_token(self):
        with self.assertRaises(ValueError):
            decode_token(create_token(7, "customer", expires_minutes=-1))
        with self.assertRaises(ValueError):
            decode_token(create_token(7, "customer") + "x")


class RegistrationTests(ApiTestCase):
    def test_customer_registration_returns_token_and_profile(self):
        resp = self.client.post(
            "/customers/register",
            json={"email": "Alice@Example.com", "password": "password123", "first_name": "Alice", "last_name": "Smith"},
        )

        self.assertEqual(resp.status_code, 201, resp.text)
        body = resp.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["message"], "Registration successful")
        self.assertEqual(body["data"]["user"]["email"], "alice@example.com")
        self.assertEqual(body["data"]["user"]["role"], "customer")
        self.assertEqual(body["data"]["customer"]["total_orders"], 0)
        self.assertEqual(decode_token(body["data"]["token"])["sub"], str(body["data"]["user"]["id"]))

    def test_retailer_registration(self):
        token, retailer_id = self.register_retailer()

        profile = self.client.get("/retailers/profile", headers=self.auth(token)).json()["data"]

        self.assertEqual(profile["user_id"], retailer_id)
        self.assertEqual(profile["business_name"], "Corner Shop")
        self.assertFalse(profile["is_verified"])

    def test_duplicate_email(self):
        self.register_customer()
        resp = self.client.post(
            "/retailers/register",
            json={
                "email": "alice@example.com",
                "password": "password123",
                "business_name": "Dup",
                "phone": "555",
                "business_type": "grocery",
                "tax_id": "T",
            },
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"success": False, "error": "Email already registered", "code": "conflict"})

    def test_concurrent_sign_up_with_the_same_email_is_a_conflict(self):
        self.register_customer()

        # the other request already passed its lookup when this one inserted
        with mock.patch.object(UserRepo, "get_by_email", return_value=None):
            resp = self.client.post(
                "/customers/register",
                json={"email": "alice@example.com", "password": "password123", "first_name": "A", "last_name": "S"},
            )

        self.assertEqual(resp.status_code, 400, resp.text)
        self.assertEqual(resp.json(), {"success": False, "error": "Email already registered", "code": "conflict"})
        with SessionLocal() as db:
            self.assertEqual(db.query(UserModel).filter_by(email="alice@example.com").count(), 1)

    def test_schema_errors_use_the_envelope(self):
        resp = self.client.post("/customers/register", json={"email": "not-an-email", "password": "short"})

        self.assertEqual(resp.status_code, 422)
        body = resp.json()
        self.assertFalse(body["success"])
        self.assertEqual(body["error"], "Validation failed")
        fields = {tuple(d["loc"])[-1] for d in body["details"]}
        self.assertTrue({"email", "password", "first_name", "last_name"} <= fields)

    def test_unknown_business_type(self):
        resp = self.client.post(
            "/retailers/register",
            json={
                "email": "shop@example.com",
                "password": "password123",
                "business_name": "Shop",
                "phone": "555",
                "business_type": "casino",
                "tax_id": "T",
            },
        )
        self.assertEqual(resp.status_code, 422)

    def test_registration_sends_a_welcome_email(self):
        with mock.patch.object(NotificationService, "send_email") as send_email:
            self.register_customer()

        send_email.assert_called_once()
        self.assertEqual(send_email.call_args.args[0], "alice@example.com")


class LoginTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.token, self.user_id = self.register_customer()
        self.register_retailer()

    def login(self, path, email="alice@example.com", password="password123"):
        return self.client.post(path, json={"email": email, "password": password})

    def test_login(self):
        resp = self.login("/customers/login")

        self.assertEqual(resp.status_code, 200, resp.text)
        data = resp.json()["data"]
        self.assertEqual(data["user"]["id"], self.user_id)
        self.assertEqual(data["customer"]["first_name"], "Alice")
        self.assertIsNone(data["retailer"])

    def test_wrong_password_and_unknown_email_look_the_same(self):
        wrong = self.login("/customers/login", password="nope")
        unknown = self.login("/customers/login", email="ghost@example.com")

        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(wrong.json(), unknown.json())

    def test_role_endpoints_reject_other_roles(self):
        self.assertEqual(self.login("/retailers/login").status_code, 401)
        self.assertEqual(self.login("/customers/login", email="shop@example.com").status_code, 401)
        self.assertEqual(self.login("/auth/login", email="shop@example.com").status_code, 200)

    def test_deactivated_account(self):
        with SessionLocal() as db:
            db.get(UserModel, self.user_id).is_active = False
            db.commit()

        self.assertEqual(self.login("/customers/login").status_code, 403)
        self.assertEqual(self.client.get("/auth/me", headers=self.auth(self.token)).status_code, 401)

    def test_me(self):
        resp = self.client.get("/auth/me", headers=self.auth(self.token))
        self.assertEqual(resp.json()["data"]["email"], "alice@example.com")

    def test_missing_or_bad_token(self):
        self.assertEqual(self.client.get("/auth/me").status_code, 401)
        resp = self.client.get("/auth/me", headers=self.auth("garbage"))
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["code"], "unauthorized")

    def test_change_password(self):
        resp = self.client.put(
            "/customers/change-password",
            json={"current_password": "password123", "new_password": "newpassword456"},
            headers=self.auth(self.token),
        )
        self.assertEqual(resp.status_code, 200, resp.text)

        self.assertEqual(self.login("/customers/login").status_code, 401)
        self.assertEqual(self.login("/customers/login", password="newpassword456").status_code, 200)

    def test_change_password_needs_current_password(self):
        resp = self.client.put(
            "/auth/change-password",
            json={"current_password": "wrong", "new_password": "newpassword456"},
            headers=self.auth(self.token),
        )
        self.assertEqual(resp.status_code, 401)

    def test_admin_logs_in_through_auth(self):
        self.create_admin()
        resp = self.login("/auth/login", email="admin@example.com", password="adminpass123")
        self.assertEqual(resp.json()["data"]["user"]["role"], "admin")


class ProfileTests(ApiTestCase):
    def test_customer_profile_update(self):
        token, _ = self.register_customer()

        resp = self.client.put("/customers/profile", json={"first_name": "Alicia", "phone": "555-9"}, headers=self.auth(token))

        self.assertEqual(resp.status_code, 200)
        data = resp.json()["data"]
        self.assertEqual((data["first_name"], data["last_name"], data["phone"]), ("Alicia", "Smith", "555-9"))

    def test_retailer_profile_and_dashboard(self):
        token, _ = self.register_retailer()
        self.create_product(token, "A", stock=2, low_stock_threshold=5)
        self.create_product(token, "B", stock=50)

        resp = self.client.put(
            "/retailers/profile",
            json={
                "description": "Fresh food",
                "min_order_amount": 15,
                "delivery_areas": [
                    {"area": "Center", "delivery_fee": 2.5, "min_order_amount": 10, "estimated_delivery_minutes": 30}
                ],
            },
            headers=self.auth(token),
        )
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()["data"]["delivery_areas"][0]["area"], "Center")
        self.assertAlmostEqual(resp.json()["data"]["min_order_amount"], 15.0)

        dashboard = self.client.get("/retailers/dashboard", headers=self.auth(token)).json()["data"]
        self.assertEqual(dashboard["active_products"], 2)
        self.assertEqual(dashboard["low_stock_products"], 1)
        self.assertEqual(dashboard["recent_orders"], [])

    def test_health(self):
        resp = self.client.get("/health")
        self.assertEqual(resp.json()["data"], {"status": "ok", "database": "ok"})


if __name__ == "__main__":
    unittest.main()
