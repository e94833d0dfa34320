# backend/therasoul/main.py
"""
FastAPI application for the TheraSoul backend.

Process-wide collaborators are created here and attached to ``app.state``:
slot locks, the payment gateway, the in-app notification inbox and the
event publisher feeding it.
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import Settings, is_running_tests, settings
from .core.slot_lock import build_slot_locks
from .errors import register_error_handlers
from .events import EventPublisher
from .init_db import init_db
from .routes import admin, monitoring, notifications, sessions, therapists
from .services.notification_service import InAppNotificationDispatcher, NotificationInbox
from .services.payment_gateway import MockPaymentGateway

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    config: Settings = app.state.settings
    logger.info(f"Starting TheraSoul backend ({config.environment})")
    if config.auto_create_tables and not is_running_tests():
        init_db()
    yield
    logger.info("TheraSoul backend shutting down")


def create_app(config: Optional[Settings] = None) -> FastAPI:
    """Build the application with fresh collaborators."""
    config = config or settings

    app = FastAPI(
        title="TheraSoul API",
        description="Therapy marketplace: session booking lifecycle, therapists and dashboards",
        version="0.1.0",
        lifespan=app_lifespan,
    )
    app.state.settings = config

    inbox = NotificationInbox(limit=config.notification_inbox_limit)
    app.state.notification_inbox = inbox
    app.state.event_publisher = EventPublisher(InAppNotificationDispatcher(inbox))
    app.state.payment_gateway = MockPaymentGateway(
        currency=config.payment_currency, max_amount=config.mock_payment_max_amount
    )
    app.state.slot_locks = build_slot_locks(config)

    register_error_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(sessions.router)
    app.include_router(therapists.router)
    app.include_router(admin.router)
    app.include_router(notifications.router)
    app.include_router(monitoring.router)

    return app


app = create_app()
