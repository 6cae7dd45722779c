"""
Webhook pipeline wiring.

Builds the store, enqueuer, dispatcher and relay around one session factory
and one HTTP client. Both the API process and the ARQ worker call
build_pipeline once at startup and close it at shutdown.
"""
from dataclasses import dataclass

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from formhooks.config import Settings
from formhooks.database import create_engine, create_session_factory
from formhooks.services.delivery_client import DeliveryClient
from formhooks.services.dispatcher import Dispatcher
from formhooks.services.enqueuer import Enqueuer
from formhooks.services.notification_store import NotificationStore
from formhooks.services.relay import Relay
from formhooks.services.response_service import ResponseService


@dataclass
class Pipeline:
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    http_client: httpx.AsyncClient
    store: NotificationStore
    enqueuer: Enqueuer
    dispatcher: Dispatcher
    relay: Relay
    response_service: ResponseService

    async def close(self):
        await self.http_client.aclose()
        await self.engine.dispose()


def build_pipeline(
    settings: Settings,
    engine: AsyncEngine | None = None,
    http_client: httpx.AsyncClient | None = None
) -> Pipeline:
    """Construct every pipeline component from settings."""
    engine = engine or create_engine(settings.DATABASE_URL, echo=False)
    session_factory = create_session_factory(engine)
    http_client = http_client or httpx.AsyncClient(timeout=settings.WEBHOOK_TIMEOUT_SECONDS)

    delivery_client = DeliveryClient(
        http_client,
        user_agent=settings.WEBHOOK_USER_AGENT,
        timeout=settings.WEBHOOK_TIMEOUT_SECONDS,
    )
    store = NotificationStore(session_factory)
    enqueuer = Enqueuer(session_factory, store)

    return Pipeline(
        engine=engine,
        session_factory=session_factory,
        http_client=http_client,
        store=store,
        enqueuer=enqueuer,
        dispatcher=Dispatcher(
            store,
            delivery_client,
            max_attempts=settings.WEBHOOK_MAX_ATTEMPTS,
            batch_size=settings.WEBHOOK_BATCH_SIZE,
        ),
        relay=Relay(session_factory, delivery_client),
        response_service=ResponseService(session_factory, enqueuer),
    )
