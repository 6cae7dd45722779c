"""
Webhook API routes.

Provides the dispatcher trigger and the ad-hoc relay used by the legacy
Zapier integration.
"""
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from formhooks.dependencies.auth import require_dispatcher_token
from formhooks.dependencies.services import get_dispatcher, get_relay
from formhooks.services.dispatcher import Dispatcher
from formhooks.services.relay import Relay, RelayAuthorizationError


router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


class DispatchSummaryResponse(BaseModel):
    """Response model for a dispatcher run."""
    processed: int
    successful: int
    failed: int


class RelayRequest(BaseModel):
    """Request model for relaying a payload."""
    webhook_url: str
    payload: dict[str, Any]
    user_id: str


@router.post(
    "/process",
    response_model=DispatchSummaryResponse,
    dependencies=[Depends(require_dispatcher_token)]
)
async def process_webhooks(dispatcher: Dispatcher = Depends(get_dispatcher)):
    """
    Run one dispatcher batch.
    
    Meant to be called by an external scheduler. Returns 500 when the
    notification store cannot be queried so the scheduler can alert.
    """
    try:
        summary = await dispatcher.run_batch()
    except SQLAlchemyError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error fetching notifications"
        )
    return summary.to_dict()


@router.post("/send")
async def send_webhook(request: RelayRequest, relay: Relay = Depends(get_relay)):
    """
    Forward a payload to the caller's own webhook URL.
    
    The URL must match the one on file and delivery must be enabled.
    """
    try:
        result = await relay.relay(request.webhook_url, request.payload, request.user_id)
    except RelayAuthorizationError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Webhook not enabled or URL mismatch: {e}"
        )

    if result.success:
        return {"success": True, "message": "Webhook sent successfully"}

    return JSONResponse(
        status_code=result.status_code or status.HTTP_502_BAD_GATEWAY,
        content={
            "error": "Webhook delivery failed",
            "status": result.status_code,
            "details": result.body if result.body is not None else result.error,
        },
    )
