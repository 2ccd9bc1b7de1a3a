# marketplace/services/notification_service.py
import asyncio
import smtplib
from collections import defaultdict
from email.message import EmailMessage

from fastapi import WebSocket

from marketplace.celery_worker import celery_app
from marketplace.utils.logging import get_logger
from marketplace.utils import settings

logger = get_logger(__name__)


def user_room(user_id: int) -> str:
    return f"user:{user_id}"


def retailer_room(retailer_id: int) -> str:
    return f"retailer:{retailer_id}"


class ConnectionManager:
    """
    Websocket rooms of one application instance.

    Created by the app factory, started in the lifespan and stopped at
    shutdown. Request handlers run in worker threads, so they go through
    publish(), which hands the send over to the manager's event loop.
    Delivery is best effort: a socket that fails is dropped.
    """

    def __init__(self):
        self._rooms: dict[str, set[WebSocket]] = defaultdict(set)
        self._memberships: dict[WebSocket, set[str]] = {}
        self._loop: asyncio.AbstractEventLoop | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._loop is not None

    def start(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop or asyncio.get_running_loop()
        logger.info("Notification relay started")

    async def stop(self) -> None:
        sockets = list(self._memberships)
        self._loop = None
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        for ws in sockets:
            try:
                await ws.close(code=1001)
            except RuntimeError:
                pass  # already closed by the client
        self._rooms.clear()
        self._memberships.clear()
        logger.info(f"Notification relay stopped, closed {len(sockets)} connections")

    async def connect(self, websocket: WebSocket, user_id: int, role: str) -> None:
        await websocket.accept()
        if self._loop is None:
            self.start()

        rooms = {user_room(user_id)}
        if role == "retailer":
            rooms.add(retailer_room(user_id))

        self._memberships[websocket] = rooms
        for room in rooms:
            self._rooms[room].add(websocket)
        logger.info(f"User {user_id} connected to rooms {sorted(rooms)}")

    def disconnect(self, websocket: WebSocket) -> None:
        for room in self._memberships.pop(websocket, set()):
            members = self._rooms.get(room)
            if members is not None:
                members.discard(websocket)
                if not members:
                    del self._rooms[room]

    def room_size(self, room: str) -> int:
        return len(self._rooms.get(room, ()))

    async def _send(self, sockets, event: str, data: dict) -> None:
        message = {"event": event, "data": data}
        for ws in list(sockets):
            try:
                await ws.send_json(message)
            except Exception as e:
                logger.warning(f"Dropping websocket after failed send of {event}: {e}")
                self.disconnect(ws)

    async def send_to_room(self, room: str, event: str, data: dict, exclude: WebSocket | None = None) -> None:
        sockets = [ws for ws in self._rooms.get(room, ()) if ws is not exclude]
        await self._send(sockets, event, data)

    async def broadcast(self, event: str, data: dict, exclude: WebSocket | None = None) -> None:
        sockets = [ws for ws in self._memberships if ws is not exclude]
        await self._send(sockets, event, data)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Relay send failed: {task.exception()}")

    def publish(self, room: str | None, event: str, data: dict) -> None:
        """Fire and forget from any thread; room None means everybody."""
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.debug(f"Relay not running, {event} not delivered")
            return

        coro = self.broadcast(event, data) if room is None else self.send_to_room(room, event, data)
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            task = loop.create_task(coro)
            self._tasks.add(task)
            task.add_done_callback(self._task_done)
        else:
            asyncio.run_coroutine_threadsafe(coro, loop)


class NotificationService:
    """Domain events -> websocket pushes and emails."""

    def __init__(self, manager: ConnectionManager | None = None):
        self.manager = manager

    def _push(self, room: str | None, event: str, data: dict) -> None:
        if self.manager is None:
            return
        try:
            self.manager.publish(room, event, data)
        except Exception as e:
            # the relay must never fail the request that triggered it
            logger.error(f"Error publishing {event}: {e}")

    def order_created(self, order) -> None:
        payload = {"order_id": order.id, "order_number": order.order_number, "total_amount": float(order.total_amount)}
        self._push(retailer_room(order.retailer_id), "order:created", payload)

    def order_status(self, order) -> None:
        payload = {
            "order_id": order.id,
            "status": order.status,
            "customer_id": order.customer_id,
            "retailer_id": order.retailer_id,
        }
        self._push(user_room(order.customer_id), "order:status", payload)
        self._push(retailer_room(order.retailer_id), "order:status", payload)

    def payment_status(self, order) -> None:
        payload = {"order_id": order.id, "payment_status": order.payment_status, "status": order.status}
        self._push(user_room(order.customer_id), "payment:status", payload)
        self._push(retailer_room(order.retailer_id), "payment:status", payload)

    def inventory_changed(self, changes: list[dict]) -> None:
        if changes:
            self._push(None, "inventory:changed", {"products": changes})

    def ticket_message(self, ticket, recipients, sender_id: int) -> None:
        for user_id in recipients:
            if user_id is not None and user_id != sender_id:
                self._push(
                    user_room(user_id),
                    "ticket:message",
                    {"ticket_id": ticket.id, "subject": ticket.subject},
                )

    def ticket_status(self, ticket, customer_email: str | None) -> None:
        self._push(
            user_room(ticket.customer_id),
            "ticket:status",
            {"ticket_id": ticket.id, "status": ticket.status},
        )
        if customer_email:
            self.send_email(
                customer_email,
                "Support ticket status updated",
                f'Your ticket "{ticket.subject}" has been {ticket.status.replace("_", " ")}.',
            )

    @staticmethod
    def send_email(to: str, subject: str, body: str) -> None:
        try:
            send_email_task.delay(to, subject, body)
        except Exception as e:
            logger.error(f"Could not queue email to {to}: {e}")


@celery_app.task(name="marketplace.services.notification_service.send_email_task")
def send_email_task(to: str, subject: str, body: str):
    if not settings.SMTP_HOST:
        logger.info(f"[EMAIL skipped, no SMTP_HOST] to={to} subject={subject!r}")
        return {"to": to, "status": "skipped"}

    msg = EmailMessage()
    msg["From"] = settings.SMTP_FROM
    msg["To"] = to
    msg["Subject"] = subject
    msg.set_content(body)

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as smtp:
        if settings.SMTP_USE_TLS:
            smtp.starttls()
        if settings.SMTP_USER:
            smtp.login(settings.SMTP_USER, settings.SMTP_PASSWORD or "")
        smtp.send_message(msg)

    logger.info(f"[EMAIL] sent to={to} subject={subject!r}")
    return {"to": to, "status": "sent"}
