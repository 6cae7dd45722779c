from __future__ import annotations

import httpx
import pytest
from prometheus_client import REGISTRY
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from conftest import HOOK_URL, add_notification, seed_form
from formhooks.config import settings
from formhooks.main import create_app
from formhooks.models.form import Client
from formhooks.models.notification import NotificationStatus, WebhookNotification
from formhooks.pipeline import build_pipeline

ZAPIER_URL = "https://hooks.zapier.com/hooks/catch/123/abc/"


@pytest.fixture
def pipeline(engine, http_client):
    return build_pipeline(settings, engine=engine, http_client=http_client)


@pytest.fixture
async def api(pipeline):
    app = create_app(pipeline)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.mark.asyncio
async def test_health(api):
    resp = await api.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_process_returns_batch_summary(api, session_factory, endpoint):
    await add_notification(session_factory)
    await add_notification(session_factory, status=NotificationStatus.SENT, attempts=1)
    endpoint.statuses = [500]

    resp = await api.post("/api/webhooks/process")

    assert resp.status_code == 200
    assert resp.json() == {"processed": 1, "successful": 0, "failed": 1}


@pytest.mark.asyncio
async def test_process_reports_store_outage_as_500(api, pipeline, monkeypatch):
    async def broken(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection refused"))

    monkeypatch.setattr(pipeline.store, "select_eligible", broken)

    resp = await api.post("/api/webhooks/process")

    assert resp.status_code == 500
    assert resp.json() == {"detail": "Error fetching notifications"}


@pytest.mark.asyncio
async def test_process_checks_token_when_configured(api, monkeypatch):
    monkeypatch.setattr(settings, "DISPATCHER_TOKEN", "s3cret")

    assert (await api.post("/api/webhooks/process")).status_code == 401
    assert (await api.post("/api/webhooks/process", headers={"Authorization": "Bearer nope"})).status_code == 401
    resp = await api.post("/api/webhooks/process", headers={"Authorization": "Bearer s3cret"})
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_send_relays_to_on_file_url(api, session_factory, endpoint):
    await seed_form(session_factory, zapier_url=ZAPIER_URL, zapier_enabled=True)

    resp = await api.post(
        "/api/webhooks/send",
        json={"webhook_url": ZAPIER_URL, "payload": {"hello": "world"}, "user_id": "user-1"},
    )

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Webhook sent successfully"}
    assert len(endpoint.requests) == 1


@pytest.mark.asyncio
async def test_send_rejects_other_urls(api, session_factory, endpoint):
    await seed_form(session_factory, zapier_url=ZAPIER_URL, zapier_enabled=True)

    resp = await api.post(
        "/api/webhooks/send",
        json={"webhook_url": "https://internal.example.com/admin", "payload": {}, "user_id": "user-1"},
    )

    assert resp.status_code == 403
    assert endpoint.requests == []


@pytest.mark.asyncio
async def test_send_passes_upstream_failure_through(api, session_factory, endpoint):
    await seed_form(session_factory, zapier_url=ZAPIER_URL, zapier_enabled=True)
    endpoint.statuses = [404]

    resp = await api.post(
        "/api/webhooks/send",
        json={"webhook_url": ZAPIER_URL, "payload": {}, "user_id": "user-1"},
    )

    assert resp.status_code == 404
    assert resp.json() == {"error": "Webhook delivery failed", "status": 404, "details": "nope"}


@pytest.mark.asyncio
async def test_send_transport_error_is_502(api, session_factory, endpoint):
    await seed_form(session_factory, zapier_url=ZAPIER_URL, zapier_enabled=True)
    endpoint.statuses = [None]

    resp = await api.post(
        "/api/webhooks/send",
        json={"webhook_url": ZAPIER_URL, "payload": {}, "user_id": "user-1"},
    )

    assert resp.status_code == 502
    assert resp.json()["status"] is None
    assert "Connection refused" in resp.json()["details"]


@pytest.mark.asyncio
async def test_send_malformed_on_file_url_is_502(api, session_factory, endpoint):
    bad_url = "http://example.com:abc/hook"
    await seed_form(session_factory, zapier_url=bad_url, zapier_enabled=True)

    resp = await api.post(
        "/api/webhooks/send",
        json={"webhook_url": bad_url, "payload": {}, "user_id": "user-1"},
    )

    assert resp.status_code == 502
    assert resp.json()["status"] is None
    assert endpoint.requests == []


@pytest.mark.asyncio
async def test_submit_response_enqueues_notification(api, session_factory, endpoint):
    ids = await seed_form(session_factory, client_url=HOOK_URL)

    resp = await api.post(
        f"/api/forms/{ids['form_id']}/responses",
        json={
            "contact_name": "Grace Hopper",
            "contact_email": "grace@example.com",
            "answers": [{"step_id": ids["choice_step_id"], "answer_text": "Bathroom"}],
        },
    )

    assert resp.status_code == 201
    response_id = resp.json()["id"]
    async with session_factory() as db:
        [notification] = (await db.execute(select(WebhookNotification))).scalars().all()
    assert notification.response_id == response_id
    assert notification.payload["answers__multiple_choice"] == ["Room → Bathroom"]
    # delivery is left to the dispatcher
    assert endpoint.requests == []

    resp = await api.post("/api/webhooks/process")
    assert resp.json() == {"processed": 1, "successful": 1, "failed": 0}
    [request] = endpoint.requests
    assert str(request.url) == HOOK_URL


@pytest.mark.asyncio
async def test_submit_response_survives_enqueue_failure(api, pipeline, session_factory, monkeypatch):
    ids = await seed_form(session_factory, client_url=HOOK_URL)

    async def broken_create(**kwargs):
        raise OperationalError("INSERT", {}, Exception("connection reset"))

    monkeypatch.setattr(pipeline.store, "create", broken_create)

    resp = await api.post(f"/api/forms/{ids['form_id']}/responses", json={"contact_name": "X"})

    assert resp.status_code == 201


@pytest.mark.asyncio
async def test_submit_response_unknown_form(api):
    resp = await api.post("/api/forms/missing/responses", json={})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_notification_audit_trail(api, session_factory):
    ids = await seed_form(session_factory, client_url=HOOK_URL)
    await seed_form(session_factory, user_id="user-2", api_key="key-2")
    await api.post(f"/api/forms/{ids['form_id']}/responses", json={"contact_name": "A"})

    resp = await api.get(f"/api/forms/{ids['form_id']}/notifications", headers={"X-API-Key": "key-1"})
    assert resp.status_code == 200
    [row] = resp.json()
    assert row["status"] == "pending"
    assert row["attempts"] == 0
    assert row["webhook_url"] == HOOK_URL

    other = await api.get(f"/api/forms/{ids['form_id']}/notifications", headers={"X-API-Key": "key-2"})
    assert other.status_code == 404

    anonymous = await api.get(f"/api/forms/{ids['form_id']}/notifications", headers={"X-API-Key": "bogus"})
    assert anonymous.status_code == 401


@pytest.mark.asyncio
async def test_client_webhook_configuration(api, session_factory):
    ids = await seed_form(session_factory, client_url=None)
    path = f"/api/clients/{ids['client_id']}/webhook"
    headers = {"X-API-Key": "key-1"}

    assert (await api.get(path, headers=headers)).json() == {"url": None, "configured": False}

    resp = await api.put(path, json={"url": HOOK_URL}, headers=headers)
    assert resp.status_code == 200
    assert (await api.get(path, headers=headers)).json() == {"url": HOOK_URL, "configured": True}

    resp = await api.put(path, json={"url": "not a url"}, headers=headers)
    assert resp.status_code == 422

    assert (await api.delete(path, headers=headers)).status_code == 200
    async with session_factory() as db:
        client = (await db.execute(select(Client).where(Client.id == ids["client_id"]))).scalar_one()
    assert client.webhook_url is None


@pytest.mark.asyncio
async def test_client_webhook_is_tenant_scoped(api, session_factory):
    ids = await seed_form(session_factory, client_url=HOOK_URL)
    await seed_form(session_factory, user_id="user-2", api_key="key-2")

    resp = await api.put(
        f"/api/clients/{ids['client_id']}/webhook",
        json={"url": "https://attacker.example.com/"},
        headers={"X-API-Key": "key-2"},
    )

    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_request_metrics_use_route_templates(api):
    before = REGISTRY.get_sample_value(
        "http_requests_total",
        {"method": "POST", "endpoint": "/api/forms/{form_id}/responses", "status": "404"},
    ) or 0

    for i in range(3):
        await api.post(f"/api/forms/missing-{i}/responses", json={})

    after = REGISTRY.get_sample_value(
        "http_requests_total",
        {"method": "POST", "endpoint": "/api/forms/{form_id}/responses", "status": "404"},
    )
    assert after - before == 3
    assert REGISTRY.get_sample_value(
        "http_requests_total",
        {"method": "POST", "endpoint": "/api/forms/missing-0/responses", "status": "404"},
    ) is None

    await api.get("/no/such/route")
    assert REGISTRY.get_sample_value(
        "http_requests_total",
        {"method": "GET", "endpoint": "unmatched", "status": "404"},
    ) >= 1


@pytest.mark.asyncio
async def test_submit_response_with_unknown_step_is_422(api, session_factory):
    ids = await seed_form(session_factory, client_url=HOOK_URL)

    resp = await api.post(
        f"/api/forms/{ids['form_id']}/responses",
        json={"answers": [{"step_id": "no-such-step", "answer_text": "?"}]},
    )

    assert resp.status_code == 422
    assert "no-such-step" in resp.json()["detail"]
    async with session_factory() as db:
        assert (await db.execute(select(WebhookNotification))).scalars().all() == []
