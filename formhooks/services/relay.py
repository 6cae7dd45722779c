"""
Ad-hoc webhook relay.

Synchronous forwarding used by the legacy Zapier flow. The caller names the
URL, so the relay only forwards to the tenant's own on-file URL and only when
the tenant has enabled delivery; anything else is rejected before any
outbound call. Nothing is persisted.
"""
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from formhooks.logging_config import get_logger
from formhooks.models.user_settings import UserSettings
from formhooks.routes.metrics import track_relay
from formhooks.services.delivery_client import DeliveryClient, DeliveryResult


class RelayAuthorizationError(Exception):
    """The tenant may not relay to the requested URL."""


class Relay:
    """Forwards caller-supplied payloads to a tenant's verified webhook URL."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], delivery_client: DeliveryClient):
        self.session_factory = session_factory
        self.delivery_client = delivery_client

    async def authorize(self, webhook_url: str, tenant_id: str) -> None:
        """Raise RelayAuthorizationError unless tenant_id may deliver to webhook_url."""
        async with self.session_factory() as db:
            user_settings = await db.get(UserSettings, tenant_id)

        if user_settings is None or not user_settings.zapier_enabled:
            raise RelayAuthorizationError("Webhook not enabled")
        if user_settings.webhook_url != webhook_url:
            raise RelayAuthorizationError("Webhook URL mismatch")

    async def relay(self, webhook_url: str, payload: dict[str, Any], tenant_id: str) -> DeliveryResult:
        """
        Verify and forward a payload once.
        
        Raises:
            RelayAuthorizationError: delivery disabled or URL not on file
        """
        log = get_logger(tenant_id=tenant_id, webhook_url=webhook_url)
        try:
            await self.authorize(webhook_url, tenant_id)
        except RelayAuthorizationError as e:
            log.warning("relay_rejected", reason=str(e))
            track_relay("rejected")
            raise

        result = await self.delivery_client.deliver(webhook_url, payload)
        track_relay("sent" if result.success else "failed")
        log.info("relay_completed", success=result.success, status_code=result.status_code)
        return result
