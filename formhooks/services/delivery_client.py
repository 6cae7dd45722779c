"""
Webhook Delivery Client

Performs a single outbound webhook POST. Retry policy lives in the
dispatcher; this client never retries.
"""
import json
from dataclasses import dataclass
from typing import Any

import httpx

from formhooks.logging_config import get_logger


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of one delivery attempt."""
    success: bool
    status_code: int | None = None
    body: str | None = None
    error: str | None = None


def encode_payload(payload: dict[str, Any]) -> bytes:
    """Serialize a payload; equal payloads always produce equal bytes."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


class DeliveryClient:
    """Stateless POST-only client wrapping a shared httpx.AsyncClient."""

    def __init__(self, http_client: httpx.AsyncClient, user_agent: str, timeout: float = 10.0):
        self.http_client = http_client
        self.user_agent = user_agent
        self.timeout = timeout

    async def deliver(self, url: str, payload: dict[str, Any]) -> DeliveryResult:
        """
        POST the JSON payload to url.
        
        Returns a successful result iff the endpoint answered 2xx. Non-2xx
        answers carry the status code and body; transport errors (DNS,
        refused connection, timeout) and unusable URLs carry the exception
        text.
        """
        log = get_logger(webhook_url=url)
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self.user_agent,
        }

        content = encode_payload(payload)

        try:
            response = await self.http_client.post(
                url,
                content=content,
                headers=headers,
                timeout=self.timeout,
            )
        except Exception as e:
            # Malformed URLs raise httpx.InvalidURL, which is not an HTTPError
            error = str(e) or type(e).__name__
            log.warning("webhook_transport_error", error=error, error_type=type(e).__name__)
            return DeliveryResult(success=False, error=error)

        if response.is_success:
            log.info("webhook_delivered", status_code=response.status_code)
            return DeliveryResult(success=True, status_code=response.status_code)

        log.warning("webhook_rejected", status_code=response.status_code)
        return DeliveryResult(
            success=False,
            status_code=response.status_code,
            body=response.text,
            error=f"HTTP {response.status_code}: {response.reason_phrase}",
        )
