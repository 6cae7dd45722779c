"""
Notification store.

Access layer for the webhook_notifications table. Every outcome update is a
single conditional UPDATE committed on its own, so a record only moves
forward from the exact state the dispatcher selected it in.
"""
from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from formhooks.models.base import utcnow
from formhooks.models.notification import NotificationStatus, WebhookNotification


class NotificationStore:
    """Reads and writes notification records through an injected session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def create(
        self,
        webhook_url: str,
        form_id: str,
        response_id: str,
        payload: dict[str, Any]
    ) -> WebhookNotification:
        """
        Insert a new pending notification with zero attempts.
        
        Args:
            webhook_url: Destination URL
            form_id: Form the response belongs to
            response_id: Response that triggered the notification
            payload: Fully materialized JSON document to deliver
            
        Returns:
            Newly created WebhookNotification
        """
        notification = WebhookNotification(
            webhook_url=webhook_url,
            form_id=form_id,
            response_id=response_id,
            payload=payload,
            status=NotificationStatus.PENDING,
            attempts=0,
        )
        async with self.session_factory() as db:
            db.add(notification)
            await db.commit()
            await db.refresh(notification)
        return notification

    async def select_eligible(self, max_attempts: int, limit: int) -> list[WebhookNotification]:
        """Oldest-first batch of pending notifications that still have attempts left."""
        stmt = (
            select(WebhookNotification)
            .where(
                WebhookNotification.status == NotificationStatus.PENDING,
                WebhookNotification.attempts < max_attempts,
            )
            .order_by(WebhookNotification.created_at.asc(), WebhookNotification.id.asc())
            .limit(limit)
        )
        async with self.session_factory() as db:
            result = await db.execute(stmt)
            return list(result.scalars().all())

    async def mark_sent(
        self,
        notification: WebhookNotification,
        attempted_at: datetime | None = None
    ) -> bool:
        """
        Record a successful attempt.
        
        Returns False when the record was no longer in the state it was
        selected in (another run got there first); nothing is written then.
        """
        values = {
            "status": NotificationStatus.SENT,
            "attempts": notification.attempts + 1,
            "last_attempt_at": attempted_at or utcnow(),
            "error_message": None,
        }
        return await self._transition(notification, values)

    async def record_failure(
        self,
        notification: WebhookNotification,
        error_message: str,
        max_attempts: int,
        attempted_at: datetime | None = None
    ) -> NotificationStatus | None:
        """
        Record a failed attempt.
        
        Returns the new status (PENDING while attempts remain, FAILED once
        max_attempts is reached), or None if the record had moved on.
        """
        attempts = notification.attempts + 1
        new_status = NotificationStatus.PENDING if attempts < max_attempts else NotificationStatus.FAILED
        values = {
            "status": new_status,
            "attempts": attempts,
            "last_attempt_at": attempted_at or utcnow(),
            "error_message": error_message,
        }
        if await self._transition(notification, values):
            return new_status
        return None

    async def _transition(self, notification: WebhookNotification, values: dict[str, Any]) -> bool:
        stmt = (
            update(WebhookNotification)
            .where(
                WebhookNotification.id == notification.id,
                WebhookNotification.status == NotificationStatus.PENDING,
                WebhookNotification.attempts == notification.attempts,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        async with self.session_factory() as db:
            result = await db.execute(stmt)
            await db.commit()
            return result.rowcount == 1

    async def get(self, notification_id: str) -> WebhookNotification | None:
        """Get notification by ID."""
        async with self.session_factory() as db:
            return await db.get(WebhookNotification, notification_id)
