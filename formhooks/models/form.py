"""
Form, client and response models.

Only the columns the webhook pipeline reads are mapped here; the rest of
the form-builder schema is owned by the main application.

SECURITY: Queries serving a tenant MUST filter on user_id.
"""
from datetime import datetime
from sqlalchemy import String, Text, Integer, Float, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from formhooks.models.base import Base, TimestampMixin, new_uuid, utcnow


class Client(Base, TimestampMixin):
    """
    A tenant's client. Forms are grouped under clients and each client may
    carry its own automation webhook URL.
    """
    __tablename__ = "clients"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    webhook_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    forms = relationship("Form", back_populates="client")

    def __repr__(self):
        return f"<Client(id={self.id}, name={self.name})>"


class Form(Base, TimestampMixin):
    """A form owned by a tenant, optionally assigned to a client."""
    __tablename__ = "forms"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    client_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    client = relationship("Client", back_populates="forms")
    steps = relationship("FormStep", back_populates="form", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Form(id={self.id}, name={self.name})>"


class FormStep(Base):
    """A single question of a form."""
    __tablename__ = "form_steps"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    form_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("forms.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    question_type: Mapped[str] = mapped_column(String(50), nullable=False)
    step_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    form = relationship("Form", back_populates="steps")


class FormResponse(Base):
    """A submitted response to a form."""
    __tablename__ = "form_responses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    form_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("forms.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    contact_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    contact_postcode: Mapped[str | None] = mapped_column(String(20), nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False
    )

    answers = relationship("ResponseAnswer", back_populates="response", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<FormResponse(id={self.id}, form_id={self.form_id})>"


class ResponseAnswer(Base):
    """One answer within a response."""
    __tablename__ = "response_answers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    response_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("form_responses.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    step_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("form_steps.id", ondelete="CASCADE"),
        nullable=False
    )
    answer_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    selected_option_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    file_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    width: Mapped[float | None] = mapped_column(Float, nullable=True)
    height: Mapped[float | None] = mapped_column(Float, nullable=True)
    depth: Mapped[float | None] = mapped_column(Float, nullable=True)
    units: Mapped[str | None] = mapped_column(String(20), nullable=True)
    scale_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)

    response = relationship("FormResponse", back_populates="answers")
    step = relationship("FormStep")
