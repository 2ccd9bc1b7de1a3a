import asyncio
import unittest
from unittest import mock

from starlette.websockets import WebSocketDisconnect
from fastapi.testclient import TestClient

from marketplace.api.deps import get_notifier
from marketplace.services.notification_service import (
    ConnectionManager,
    NotificationService,
    retailer_room,
    send_email_task,
    user_room,
)
from marketplace.utils.security import create_token
from tests.base import ApiTestCase


class FakeSocket:
    def __init__(self, fail=False):
        self.accepted = False
        self.closed_with = None
        self.sent = []
        self.fail = fail

    async def accept(self):
        self.accepted = True

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("socket gone")
        self.sent.append(message)

    async def close(self, code=1000):
        self.closed_with = code


class ConnectionManagerTests(unittest.TestCase):
    def test_rooms_by_role(self):
        async def scenario():
            manager = ConnectionManager()
            customer, retailer = FakeSocket(), FakeSocket()
            await manager.connect(customer, 1, "customer")
            await manager.connect(retailer, 2, "retailer")

            await manager.send_to_room(retailer_room(2), "order:created", {"order_id": 9})
            await manager.send_to_room(user_room(1), "order:status", {"order_id": 9})
            await manager.broadcast("inventory:changed", {"products": []}, exclude=retailer)
            return manager, customer, retailer

        manager, customer, retailer = asyncio.run(scenario())

        self.assertTrue(customer.accepted)
        self.assertEqual([m["event"] for m in customer.sent], ["order:status", "inventory:changed"])
        self.assertEqual(retailer.sent, [{"event": "order:created", "data": {"order_id": 9}}])
        self.assertEqual(manager.room_size(user_room(2)), 1)

    def test_disconnect_leaves_every_room(self):
        async def scenario():
            manager = ConnectionManager()
            ws = FakeSocket()
            await manager.connect(ws, 5, "retailer")
            manager.disconnect(ws)
            manager.disconnect(ws)
            return manager

        manager = asyncio.run(scenario())

        self.assertEqual(manager.room_size(user_room(5)), 0)
        self.assertEqual(manager.room_size(retailer_room(5)), 0)

    def test_failed_socket_is_dropped(self):
        async def scenario():
            manager = ConnectionManager()
            good, bad = FakeSocket(), FakeSocket(fail=True)
            await manager.connect(good, 1, "customer")
            await manager.connect(bad, 1, "customer")
            await manager.send_to_room(user_room(1), "ping", {})
            return manager, good

        manager, good = asyncio.run(scenario())

        self.assertEqual(len(good.sent), 1)
        self.assertEqual(manager.room_size(user_room(1)), 1)

    def test_publish_on_the_running_loop(self):
        async def scenario():
            manager = ConnectionManager()
            manager.start()
            ws = FakeSocket()
            await manager.connect(ws, 3, "customer")
            manager.publish(user_room(3), "order:status", {"order_id": 1})
            manager.publish(None, "inventory:changed", {"products": []})
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            await manager.stop()
            return ws

        ws = asyncio.run(scenario())

        self.assertEqual([m["event"] for m in ws.sent], ["order:status", "inventory:changed"])
        self.assertEqual(ws.closed_with, 1001)

    def test_pending_sends_are_tracked_until_done(self):
        async def scenario():
            manager = ConnectionManager()
            manager.start()
            ws = FakeSocket()
            await manager.connect(ws, 3, "customer")
            manager.publish(user_room(3), "order:status", {"order_id": 1})
            pending = len(manager._tasks)
            await manager.stop()
            return manager, ws, pending

        manager, ws, pending = asyncio.run(scenario())

        self.assertEqual(pending, 1)
        self.assertEqual(manager._tasks, set())
        self.assertEqual([m["event"] for m in ws.sent], ["order:status"])

    def test_failed_send_is_logged(self):
        async def scenario():
            async def failing(*args):
                raise RuntimeError("boom")

            manager = ConnectionManager()
            manager.start()
            with mock.patch.object(manager, "send_to_room", failing):
                manager.publish(user_room(3), "order:status", {})
            await manager.stop()
            return manager

        with self.assertLogs("marketplace.services.notification_service", level="ERROR") as logs:
            manager = asyncio.run(scenario())

        self.assertIn("Relay send failed: boom", logs.output[0])
        self.assertEqual(manager._tasks, set())

    def test_publish_without_a_loop_is_dropped(self):
        manager = ConnectionManager()
        manager.publish(user_room(1), "order:status", {})
        self.assertFalse(manager.running)


class NotificationServiceTests(unittest.TestCase):
    def test_relay_errors_do_not_escape(self):
        manager = mock.Mock()
        manager.publish.side_effect = RuntimeError("boom")
        order = mock.Mock(id=1, order_number="ORD-1", total_amount=10, customer_id=2, retailer_id=3, status="pending")

        NotificationService(manager).order_status(order)

        self.assertEqual(manager.publish.call_count, 2)

    def test_no_manager_means_no_pushes(self):
        order = mock.Mock(id=1, order_number="ORD-1", total_amount=10, retailer_id=3)
        NotificationService().order_created(order)

    def test_ticket_messages_skip_the_sender(self):
        manager = mock.Mock()
        ticket = mock.Mock(id=4, subject="Help")

        NotificationService(manager).ticket_message(ticket, {1, 2, None}, sender_id=1)

        manager.publish.assert_called_once_with(user_room(2), "ticket:message", {"ticket_id": 4, "subject": "Help"})

    def test_email_task_without_smtp_is_skipped(self):
        self.assertEqual(send_email_task("a@example.com", "Hi", "Body"), {"to": "a@example.com", "status": "skipped"})

    def test_email_task_sends_through_smtp(self):
        with mock.patch("marketplace.services.notification_service.settings") as settings, mock.patch(
            "marketplace.services.notification_service.smtplib.SMTP"
        ) as smtp:
            settings.SMTP_HOST = "smtp.test"
            settings.SMTP_PORT = 587
            settings.SMTP_USE_TLS = True
            settings.SMTP_USER = None
            settings.SMTP_FROM = "no-reply@test"

            result = send_email_task("a@example.com", "Hi", "Body")

        self.assertEqual(result["status"], "sent")
        session = smtp.return_value.__enter__.return_value
        session.starttls.assert_called_once()
        session.send_message.assert_called_once()


class WebsocketEndpointTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.shop_token, self.shop_id = self.register_retailer()
        self.alice_token, self.alice_id = self.register_customer()

    def test_bad_token_is_refused(self):
        with TestClient(self.app) as client:
            with self.assertRaises(WebSocketDisconnect) as ctx:
                with client.websocket_connect("/ws?token=garbage") as ws:
                    ws.receive_json()
        self.assertEqual(ctx.exception.code, 1008)

    def test_unknown_user_is_refused(self):
        with TestClient(self.app) as client:
            with self.assertRaises(WebSocketDisconnect):
                with client.websocket_connect(f"/ws?token={create_token(999, 'customer')}") as ws:
                    ws.receive_json()

    def test_ping_and_errors(self):
        with TestClient(self.app) as client:
            with client.websocket_connect(f"/ws?token={self.alice_token}") as ws:
                ws.send_json({"event": "ping"})
                self.assertEqual(ws.receive_json(), {"event": "pong", "data": {}})

                ws.send_text("not json")
                self.assertEqual(ws.receive_json()["event"], "error")

                ws.send_json({"event": "dance"})
                self.assertEqual(ws.receive_json(), {"event": "error", "data": {"message": "Unknown event dance"}})

                ws.send_json({"event": "inventory:update", "data": {"product_id": 1}})
                self.assertEqual(ws.receive_json()["event"], "error")

    def test_chat_between_users(self):
        with TestClient(self.app) as client:
            with client.websocket_connect(f"/ws?token={self.shop_token}") as shop, client.websocket_connect(
                f"/ws?token={self.alice_token}"
            ) as alice:
                alice.send_json({"event": "chat:message", "data": {"to": self.shop_id, "message": "Open today?"}})
                self.assertEqual(
                    shop.receive_json(),
                    {"event": "chat:message", "data": {"from": self.alice_id, "message": "Open today?"}},
                )

    def test_order_placed_over_http_reaches_the_retailer(self):
        del self.app.dependency_overrides[get_notifier]
        product = self.create_product(self.shop_token, stock=3)

        with TestClient(self.app) as client:
            with client.websocket_connect(f"/ws?token={self.shop_token}") as shop:
                resp = client.post(
                    "/orders",
                    json={
                        "items": [{"product_id": product["id"], "quantity": 1}],
                        "shipping_address": {"street": "1 Main St", "city": "Springfield"},
                    },
                    headers=self.auth(self.alice_token),
                )
                self.assertEqual(resp.status_code, 201, resp.text)

                created = shop.receive_json()
                self.assertEqual(created["event"], "order:created")
                self.assertEqual(created["data"]["order_id"], resp.json()["data"]["id"])
                inventory = shop.receive_json()
                self.assertEqual(inventory["event"], "inventory:changed")
                self.assertEqual(inventory["data"]["products"], [{"product_id": product["id"], "stock": 2}])


if __name__ == "__main__":
    unittest.main()
