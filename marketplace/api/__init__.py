# marketplace/api/__init__.py
import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from marketplace.api.responses import register_error_handlers
from marketplace.api.routers import (
    analytics,
    auth,
    cart,
    customers,
    health,
    orders,
    payments,
    products,
    retailers,
    stores,
    support,
    ws,
)
from marketplace.data.database import init_db
from marketplace.data.seed import seed
from marketplace.services.notification_service import ConnectionManager
from marketplace.utils.logging import configure_logging, get_logger
from marketplace.utils.settings import CORS_ORIGINS

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    seed()
    app.state.connections.start(asyncio.get_running_loop())
    logger.info("Marketplace API started")
    yield
    await app.state.connections.stop()
    logger.info("Marketplace API stopped")


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="Local Marketplace", version="1.0.0", lifespan=lifespan)
    app.state.connections = ConnectionManager()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials="*" not in CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(customers.router)
    app.include_router(retailers.router)
    app.include_router(products.router)
    app.include_router(cart.router)
    app.include_router(orders.router)
    app.include_router(payments.router)
    app.include_router(stores.router)
    app.include_router(support.router)
    app.include_router(analytics.router)
    app.include_router(ws.router)

    return app
