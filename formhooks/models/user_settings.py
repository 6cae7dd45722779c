"""
Per-user integration settings.

Holds the tenant's own integration URL (Zapier) and the flag that
enables outbound delivery to it.
"""
from sqlalchemy import String, Text, Boolean
from sqlalchemy.orm import Mapped, mapped_column
from formhooks.models.base import Base, TimestampMixin


class UserSettings(Base, TimestampMixin):
    """Integration settings for one tenant (user)."""
    __tablename__ = "user_settings"

    user_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    webhook_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    zapier_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    api_key: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)

    def __repr__(self):
        return f"<UserSettings(user_id={self.user_id}, zapier_enabled={self.zapier_enabled})>"
