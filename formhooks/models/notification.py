"""
Webhook notification model.

One row per delivery of a recorded form response to one destination.
Rows are created by the enqueuer, updated only by the dispatcher and
never deleted: the table doubles as the delivery audit trail.
"""
import enum
from datetime import datetime
from typing import Any
from sqlalchemy import JSON, String, Text, Integer, DateTime, Index, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from formhooks.models.base import Base, TimestampMixin, new_uuid


class NotificationStatus(str, enum.Enum):
    """Notification delivery status. SENT and FAILED are terminal."""
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class WebhookNotification(Base, TimestampMixin):
    """
    Durable record of a pending or attempted webhook delivery.
    
    `webhook_url`, `form_id`, `response_id` and `payload` are captured at
    enqueue time and never rewritten, so every retry sends the same body.
    """
    __tablename__ = "webhook_notifications"
    __table_args__ = (
        Index("ix_webhook_notifications_dispatch", "status", "attempts", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    webhook_url: Mapped[str] = mapped_column(Text, nullable=False)
    form_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    response_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    payload: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False
    )
    status: Mapped[NotificationStatus] = mapped_column(
        SQLEnum(
            NotificationStatus,
            native_enum=False,
            length=20,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=False,
        default=NotificationStatus.PENDING
    )
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_attempt_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self):
        return (
            f"<WebhookNotification(id={self.id}, status={self.status}, "
            f"attempts={self.attempts}, url={self.webhook_url})>"
        )
