"""
Client webhook configuration routes.

Provides endpoints for setting the automation webhook URL of a client.
Responses to any form assigned to the client are delivered to this URL.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, HttpUrl
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from formhooks.database import get_db
from formhooks.dependencies.auth import get_tenant_id
from formhooks.models.form import Client


router = APIRouter(prefix="/api/clients", tags=["clients"])


class SetWebhookRequest(BaseModel):
    """Request model for setting a client's webhook URL."""
    url: HttpUrl


async def get_owned_client(
    client_id: str,
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db)
) -> Client:
    """Load a client belonging to the caller, or 404."""
    stmt = select(Client).where(Client.id == client_id, Client.user_id == tenant_id)
    result = await db.execute(stmt)
    client = result.scalar_one_or_none()

    if not client:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Client not found"
        )
    return client


@router.put("/{client_id}/webhook", response_model=dict)
async def set_webhook(
    request: SetWebhookRequest,
    client: Client = Depends(get_owned_client),
    db: AsyncSession = Depends(get_db)
):
    """
    Set the webhook URL for a client.
    
    The URL will receive a POST for every response recorded on the
    client's forms.
    """
    client.webhook_url = str(request.url)
    await db.commit()

    return {
        "message": "Webhook configured successfully",
        "url": client.webhook_url
    }


@router.get("/{client_id}/webhook", response_model=dict)
async def get_webhook(client: Client = Depends(get_owned_client)):
    """Get current webhook configuration for a client."""
    return {
        "url": client.webhook_url,
        "configured": bool(client.webhook_url and client.webhook_url.strip())
    }


@router.delete("/{client_id}/webhook", response_model=dict)
async def delete_webhook(
    client: Client = Depends(get_owned_client),
    db: AsyncSession = Depends(get_db)
):
    """Remove webhook configuration for a client."""
    client.webhook_url = None
    await db.commit()

    return {"message": "Webhook removed successfully"}
