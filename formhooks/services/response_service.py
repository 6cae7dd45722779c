"""
Form response service.

Records submitted responses. Recording is the primary write; the webhook
enqueue that follows it is best-effort and its result is discarded.

SECURITY: All tenant-facing queries MUST include a user_id filter.
"""
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from formhooks.logging_config import get_logger
from formhooks.models.form import Form, FormResponse, FormStep, ResponseAnswer
from formhooks.services.enqueuer import Enqueuer

ANSWER_FIELDS = (
    "answer_text", "selected_option_id", "file_url", "file_name", "file_size",
    "width", "height", "depth", "units", "scale_rating",
)


class UnknownStepError(ValueError):
    """An answer names a step that does not belong to the form."""

    def __init__(self, step_ids: list[str]):
        self.step_ids = step_ids
        super().__init__(f"Unknown step ids: {', '.join(step_ids)}")


@dataclass
class Contact:
    """Contact details captured with a response."""
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    postcode: str | None = None


@dataclass
class AnswerInput:
    """One answer as submitted; step_id names the form step."""
    step_id: str
    values: dict[str, Any] = field(default_factory=dict)


class ResponseService:
    """Service for recording form responses."""
    
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], enqueuer: Enqueuer):
        self.session_factory = session_factory
        self.enqueuer = enqueuer
    
    async def record_response(
        self,
        form_id: str,
        contact: Contact,
        answers: list[AnswerInput]
    ) -> FormResponse:
        """
        Persist a response with its answers, then enqueue its webhook.
        
        Args:
            form_id: Form being answered
            contact: Contact details
            answers: Submitted answers
            
        Returns:
            The committed FormResponse
            
        Raises:
            LookupError: the form does not exist
            UnknownStepError: an answer names a step the form does not have
        """
        async with self.session_factory() as db:
            form = await db.get(Form, form_id)
            if form is None:
                raise LookupError(f"Form not found: {form_id}")

            stmt = select(FormStep.id).where(FormStep.form_id == form_id)
            known = set((await db.execute(stmt)).scalars().all())
            unknown = sorted({a.step_id for a in answers} - known)
            if unknown:
                raise UnknownStepError(unknown)

            response = FormResponse(
                form_id=form_id,
                contact_name=contact.name,
                contact_email=contact.email,
                contact_phone=contact.phone,
                contact_postcode=contact.postcode,
            )
            response.answers = [
                ResponseAnswer(
                    step_id=answer.step_id,
                    **{k: v for k, v in answer.values.items() if k in ANSWER_FIELDS}
                )
                for answer in answers
            ]
            db.add(response)
            await db.commit()

        get_logger(form_id=form_id, response_id=response.id).info("response_recorded", answers=len(answers))

        # Result intentionally discarded: enqueue never affects the recorded response
        await self.enqueuer.enqueue_response(response.id)
        return response
