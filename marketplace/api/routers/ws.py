# marketplace/api/routers/ws.py
import json

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from starlette.concurrency import run_in_threadpool

from marketplace.data.database import SessionLocal
from marketplace.repos.order_repo import OrderRepo
from marketplace.repos.user_repo import UserRepo
from marketplace.services.notification_service import ConnectionManager, retailer_room, user_room
from marketplace.utils.security import decode_token
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["realtime"])


def _active_user(user_id: int):
    db = SessionLocal()
    try:
        user = UserRepo(db).get_user(user_id)
        return (user.id, user.role) if user and user.is_active else None
    finally:
        db.close()


def _order_parties(order_id) -> tuple[int, int] | None:
    if not isinstance(order_id, int):
        return None
    db = SessionLocal()
    try:
        order = OrderRepo(db).get_order(order_id)
        return (order.customer_id, order.retailer_id) if order else None
    finally:
        db.close()


async def _send_error(websocket: WebSocket, message: str) -> None:
    await websocket.send_json({"event": "error", "data": {"message": message}})


async def _handle(manager: ConnectionManager, websocket: WebSocket, user_id: int, role: str, message: dict) -> None:
    event = message.get("event")
    data = message.get("data") or {}

    if event == "ping":
        await websocket.send_json({"event": "pong", "data": {}})

    elif event == "chat:message":
        to = data.get("to")
        if not isinstance(to, int) or not data.get("message"):
            await _send_error(websocket, "chat:message needs 'to' and 'message'")
            return
        await manager.send_to_room(user_room(to), "chat:message", {"from": user_id, "message": data["message"]})

    elif event == "order:update":
        parties = await run_in_threadpool(_order_parties, data.get("order_id"))
        if parties is None or user_id not in parties:
            await _send_error(websocket, "Unknown order")
            return
        customer_id, retailer_id = parties
        await manager.send_to_room(user_room(customer_id), "order:update", data, exclude=websocket)
        await manager.send_to_room(retailer_room(retailer_id), "order:update", data, exclude=websocket)

    elif event == "inventory:update":
        if role != "retailer":
            await _send_error(websocket, "Only retailers can publish inventory updates")
            return
        await manager.broadcast("inventory:changed", {"retailer_id": user_id, **data}, exclude=websocket)

    else:
        await _send_error(websocket, f"Unknown event {event}")


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, token: str | None = Query(None)):
    manager: ConnectionManager = websocket.app.state.connections

    try:
        claimed_id = int(decode_token(token or "")["sub"])
    except ValueError:
        await websocket.close(code=1008)
        return

    identity = await run_in_threadpool(_active_user, claimed_id)
    if identity is None:
        await websocket.close(code=1008)
        return
    user_id, role = identity

    await manager.connect(websocket, user_id, role)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                await _send_error(websocket, "Messages must be JSON")
                continue
            if not isinstance(message, dict):
                await _send_error(websocket, "Messages must be JSON objects")
                continue
            await _handle(manager, websocket, user_id, role, message)
    except WebSocketDisconnect:
        logger.info(f"User {user_id} disconnected")
    finally:
        manager.disconnect(websocket)
