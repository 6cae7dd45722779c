"""
Webhook Enqueuer

Turns a recorded form response into a pending webhook notification.

Enqueueing is best-effort relative to recording the response: every error
is logged and reported, then returned as an EnqueueResult instead of being
raised, so the caller that recorded the response is never affected.
"""
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from formhooks.logging_config import get_logger
from formhooks.models.form import Client, Form, FormResponse, FormStep, ResponseAnswer
from formhooks.models.user_settings import UserSettings
from formhooks.routes.metrics import track_enqueue
from formhooks.sentry_config import capture_exception
from formhooks.services.notification_store import NotificationStore

TEXT_QUESTION_TYPES = ("text_input", "text_area")


@dataclass(frozen=True)
class EnqueueResult:
    """Outcome of an enqueue call: queued, skipped (no destination) or error."""
    status: str
    notification_id: str | None = None
    error: str | None = None


def _clean_url(url: str | None) -> str | None:
    if url is None:
        return None
    url = url.strip()
    return url or None


def _fmt(value: Any, default: str) -> str:
    if value is None:
        return default
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


def build_payload(
    response: FormResponse,
    form: Form,
    client: Client | None,
    answers: list[tuple[ResponseAnswer, FormStep]]
) -> dict[str, Any]:
    """
    Build the flat webhook document for a response.
    
    The result only holds JSON-native values; it is stored as-is and
    replayed unchanged on every retry.
    
    Args:
        response: The recorded response
        form: The form it was submitted to
        client: The form's client, if any
        answers: (answer, step) pairs ordered by step_order
    """
    answer_rows = []
    text_responses = []
    multiple_choice = []
    image_selections = []
    file_uploads = []
    dimensions = []
    opinion_ratings = []
    file_attachments = []
    file_names = []

    for answer, step in answers:
        answer_rows.append({
            "question": step.title,
            "question_type": step.question_type,
            "answer_text": answer.answer_text,
            "selected_option_id": answer.selected_option_id,
            "file_url": answer.file_url,
            "file_name": answer.file_name,
            "file_size": answer.file_size,
            "width": answer.width,
            "height": answer.height,
            "depth": answer.depth,
            "units": answer.units,
            "scale_rating": answer.scale_rating,
            "step_order": step.step_order,
        })

        kind = step.question_type
        if kind in TEXT_QUESTION_TYPES and answer.answer_text is not None:
            text_responses.append(answer.answer_text)
        elif kind == "multiple_choice":
            multiple_choice.append(f"{step.title} → {answer.answer_text or 'No selection'}")
        elif kind == "image_selection":
            image_selections.append(f"{step.title} → {answer.answer_text or 'No selection'}")
        elif kind == "file_upload" and answer.file_url is not None:
            size = f"{answer.file_size // 1024} KB" if answer.file_size is not None else "Unknown size"
            file_uploads.append(f"{answer.file_name or 'Unknown file'} ({size}) - {answer.file_url}")
        elif kind == "dimensions":
            units = answer.units or ""
            dimensions.append(
                f"Width: {_fmt(answer.width, 'N/A')}{units}, "
                f"Height: {_fmt(answer.height, 'N/A')}{units}, "
                f"Depth: {_fmt(answer.depth, 'N/A')}{units}"
            )
        elif kind == "opinion_scale":
            opinion_ratings.append(f"{step.title} rating: {_fmt(answer.scale_rating, 'No rating')}/5 stars")

        if answer.file_url is not None:
            file_attachments.append(answer.file_url)
        if answer.file_name is not None:
            file_names.append(answer.file_name)

    return {
        "response_id": response.id,
        "form_id": form.id,
        "form_name": form.name,
        "client_id": client.id if client else None,
        "client_name": client.name if client else None,
        "submitted_at": response.submitted_at.isoformat(),
        "contact__name": response.contact_name or "",
        "contact__email": response.contact_email or "",
        "contact__phone": response.contact_phone or "",
        "contact__postcode": response.contact_postcode or "",
        "answers": answer_rows,
        "answers__text_responses": text_responses,
        "answers__multiple_choice": multiple_choice,
        "answers__image_selections": image_selections,
        "answers__file_uploads": file_uploads,
        "answers__dimensions": dimensions,
        "answers__opinion_ratings": opinion_ratings,
        "file_attachments": file_attachments,
        "file_names": file_names,
        "total_questions_answered": len(answer_rows),
        "completion_percentage": 100,
    }


class Enqueuer:
    """Resolves a response's destination and stores a pending notification."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], store: NotificationStore):
        self.session_factory = session_factory
        self.store = store

    async def resolve_destination(self, db: AsyncSession, form: Form) -> str | None:
        """
        Destination for a form's responses.
        
        The form's client URL wins; otherwise the owner's own integration
        URL is used when they have enabled delivery. Blank URLs count as
        not configured.
        """
        if form.client_id is not None:
            client = await db.get(Client, form.client_id)
            url = _clean_url(client.webhook_url) if client else None
            if url:
                return url

        user_settings = await db.get(UserSettings, form.user_id)
        if user_settings and user_settings.zapier_enabled:
            return _clean_url(user_settings.webhook_url)
        return None

    async def enqueue_response(self, response_id: str) -> EnqueueResult:
        """
        Enqueue a notification for an already committed response.
        
        Never raises.
        """
        log = get_logger(response_id=response_id)
        try:
            async with self.session_factory() as db:
                response = await db.get(FormResponse, response_id)
                if response is None:
                    raise LookupError(f"Response not found: {response_id}")
                form = await db.get(Form, response.form_id)
                if form is None:
                    raise LookupError(f"Form not found: {response.form_id}")

                webhook_url = await self.resolve_destination(db, form)
                if webhook_url is None:
                    log.info("webhook_enqueue_skipped", form_id=form.id, reason="no_destination")
                    track_enqueue("skipped")
                    return EnqueueResult(status="skipped")

                client = await db.get(Client, form.client_id) if form.client_id else None
                stmt = (
                    select(ResponseAnswer, FormStep)
                    .join(FormStep, ResponseAnswer.step_id == FormStep.id)
                    .where(ResponseAnswer.response_id == response.id)
                    .order_by(FormStep.step_order.asc())
                )
                rows = (await db.execute(stmt)).all()
                payload = build_payload(response, form, client, [(a, s) for a, s in rows])

            notification = await self.store.create(
                webhook_url=webhook_url,
                form_id=payload["form_id"],
                response_id=response_id,
                payload=payload,
            )
        except Exception as e:
            log.exception("webhook_enqueue_failed")
            capture_exception(e, response_id=response_id)
            track_enqueue("error")
            return EnqueueResult(status="error", error=str(e))

        log.info("webhook_enqueued", notification_id=notification.id, form_id=notification.form_id)
        track_enqueue("queued")
        return EnqueueResult(status="queued", notification_id=notification.id)
