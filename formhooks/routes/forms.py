"""
Form API routes.

Response intake (the event source for webhooks) and the per-form
notification audit trail.
"""
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from formhooks.database import get_db
from formhooks.dependencies.auth import get_tenant_id
from formhooks.dependencies.services import get_response_service
from formhooks.models.form import Form
from formhooks.models.notification import WebhookNotification
from formhooks.services.response_service import AnswerInput, Contact, ResponseService, UnknownStepError


router = APIRouter(prefix="/api/forms", tags=["forms"])


class AnswerRequest(BaseModel):
    """A single submitted answer."""
    step_id: str
    answer_text: str | None = None
    selected_option_id: str | None = None
    file_url: str | None = None
    file_name: str | None = None
    file_size: int | None = None
    width: float | None = None
    height: float | None = None
    depth: float | None = None
    units: str | None = None
    scale_rating: int | None = None


class SubmitResponseRequest(BaseModel):
    """Request model for submitting a form response."""
    contact_name: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    contact_postcode: str | None = None
    answers: list[AnswerRequest] = Field(default_factory=list)


class NotificationResponse(BaseModel):
    """Response model for a notification record."""
    id: str
    webhook_url: str
    response_id: str
    status: str
    attempts: int
    last_attempt_at: str | None = None
    error_message: str | None = None
    created_at: str
    payload: dict[str, Any]


def notification_to_response(notification: WebhookNotification) -> NotificationResponse:
    """Convert WebhookNotification model to NotificationResponse."""
    return NotificationResponse(
        id=notification.id,
        webhook_url=notification.webhook_url,
        response_id=notification.response_id,
        status=notification.status.value,
        attempts=notification.attempts,
        last_attempt_at=notification.last_attempt_at.isoformat() if notification.last_attempt_at else None,
        error_message=notification.error_message,
        created_at=notification.created_at.isoformat(),
        payload=notification.payload,
    )


@router.post("/{form_id}/responses", status_code=status.HTTP_201_CREATED)
async def submit_response(
    form_id: str,
    request: SubmitResponseRequest,
    service: ResponseService = Depends(get_response_service)
):
    """
    Record a form response.
    
    Webhook notification happens in the background and never affects
    the outcome of this call.
    """
    contact = Contact(
        name=request.contact_name,
        email=request.contact_email,
        phone=request.contact_phone,
        postcode=request.contact_postcode,
    )
    answers = [
        AnswerInput(step_id=a.step_id, values=a.model_dump(exclude={"step_id"}, exclude_none=True))
        for a in request.answers
    ]

    try:
        response = await service.record_response(form_id, contact, answers)
    except LookupError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Form not found"
        )
    except UnknownStepError as e:
        raise HTTPException(
            status_code=422,
            detail=str(e)
        )

    return {"id": response.id, "form_id": response.form_id}


@router.get("/{form_id}/notifications", response_model=list[NotificationResponse])
async def list_notifications(
    form_id: str,
    limit: int = 50,
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db)
):
    """Webhook delivery audit trail for one of the caller's forms, newest first."""
    stmt = select(Form.id).where(Form.id == form_id, Form.user_id == tenant_id)
    result = await db.execute(stmt)
    if result.scalar_one_or_none() is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Form not found or access denied"
        )

    stmt = (
        select(WebhookNotification)
        .where(WebhookNotification.form_id == form_id)
        .order_by(WebhookNotification.created_at.desc())
        .limit(min(max(limit, 1), 200))
    )
    result = await db.execute(stmt)
    notifications = result.scalars().all()
    return [notification_to_response(n) for n in notifications]
