from __future__ import annotations

from datetime import datetime, timedelta, timezone

import httpx
import pytest
from sqlalchemy import event

from formhooks.database import create_engine, create_session_factory
from formhooks.models.base import Base
from formhooks.models.form import Client, Form, FormStep
from formhooks.models.notification import NotificationStatus, WebhookNotification
from formhooks.models.user_settings import UserSettings
from formhooks.services.delivery_client import DeliveryClient
from formhooks.services.dispatcher import Dispatcher
from formhooks.services.enqueuer import Enqueuer
from formhooks.services.notification_store import NotificationStore

USER_AGENT = "Online Designer Webhook/1.0"
HOOK_URL = "https://hooks.example.com/catch/1"


class Endpoint:
    """Fake webhook receiver for httpx.MockTransport.

    Answers with the queued statuses in order, then with `default`.
    A status of None simulates a refused connection.
    """

    def __init__(self, *statuses: int | None, default: int | None = 200):
        self.statuses = list(statuses)
        self.default = default
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status = self.statuses.pop(0) if self.statuses else self.default
        if status is None:
            raise httpx.ConnectError("Connection refused", request=request)
        return httpx.Response(status, text="ok" if status < 300 else "nope")

    @property
    def bodies(self) -> list[bytes]:
        return [r.content for r in self.requests]


@pytest.fixture
async def engine(tmp_path):
    # File-backed so concurrent sessions get their own connections; BEGIN IMMEDIATE
    # serializes writers instead of failing lock upgrades with "database is locked".
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'formhooks.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def store(session_factory):
    return NotificationStore(session_factory)


@pytest.fixture
def endpoint():
    return Endpoint()


@pytest.fixture
async def http_client(endpoint):
    client = httpx.AsyncClient(transport=httpx.MockTransport(endpoint))
    yield client
    await client.aclose()


@pytest.fixture
def delivery_client(http_client):
    return DeliveryClient(http_client, user_agent=USER_AGENT, timeout=5.0)


@pytest.fixture
def dispatcher(store, delivery_client):
    return Dispatcher(store, delivery_client, max_attempts=3, batch_size=10)


@pytest.fixture
def enqueuer(session_factory, store):
    return Enqueuer(session_factory, store)


async def add_notification(
    session_factory,
    *,
    created_at: datetime | None = None,
    status: NotificationStatus = NotificationStatus.PENDING,
    attempts: int = 0,
    url: str = HOOK_URL,
    payload: dict | None = None,
) -> str:
    notification = WebhookNotification(
        webhook_url=url,
        form_id="form-1",
        response_id=f"resp-{attempts}-{status.value}",
        payload=payload if payload is not None else {"response_id": "resp-1", "answers": []},
        status=status,
        attempts=attempts,
        created_at=created_at or datetime.now(timezone.utc),
    )
    async with session_factory() as db:
        db.add(notification)
        await db.commit()
        return notification.id


async def add_notifications(session_factory, count: int) -> list[str]:
    """Insert `count` pending notifications with strictly increasing created_at."""
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    return [
        await add_notification(session_factory, created_at=base + timedelta(seconds=i))
        for i in range(count)
    ]


async def seed_form(
    session_factory,
    *,
    user_id: str = "user-1",
    client_url: str | None = None,
    with_client: bool = True,
    zapier_url: str | None = None,
    zapier_enabled: bool = False,
    api_key: str | None = "key-1",
) -> dict[str, str]:
    """Create a tenant with settings, an optional client, a form and two steps."""
    async with session_factory() as db:
        db.add(UserSettings(
            user_id=user_id,
            webhook_url=zapier_url,
            zapier_enabled=zapier_enabled,
            api_key=api_key,
        ))
        client = None
        if with_client:
            client = Client(user_id=user_id, name="Acme Kitchens", webhook_url=client_url)
            db.add(client)
            await db.flush()
        form = Form(user_id=user_id, client_id=client.id if client else None, name="Quote request")
        db.add(form)
        await db.flush()
        text_step = FormStep(form_id=form.id, title="Tell us more", question_type="text_area", step_order=2)
        choice_step = FormStep(form_id=form.id, title="Room", question_type="multiple_choice", step_order=1)
        db.add_all([text_step, choice_step])
        await db.commit()
        return {
            "user_id": user_id,
            "client_id": client.id if client else None,
            "form_id": form.id,
            "text_step_id": text_step.id,
            "choice_step_id": choice_step.id,
        }
