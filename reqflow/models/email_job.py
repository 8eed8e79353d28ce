"""Outbound email queue rows."""

from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text, func

from reqflow.core.database import Base
from reqflow.models.shared import UUIDType, generate_uuid, utc_now


class EmailJobStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class EmailJob(Base):
    """An email waiting for (or done with) the transport.

    ``organization_id`` always comes from the entity that triggered the
    email, never from a default.
    """

    __tablename__ = "email_jobs"
    __table_args__ = (
        Index("ix_email_jobs_status_created_at", "status", "created_at"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    organization_id = Column(
        UUIDType,
        ForeignKey("organizations.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    notification_id = Column(
        UUIDType,
        ForeignKey("notifications.id", ondelete="SET NULL"),
        nullable=True,
    )
    recipient_user_id = Column(UUIDType, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    recipient_email = Column(String(255), nullable=False)
    subject = Column(String(500), nullable=False)
    body_template_id = Column(String(100), nullable=False)
    body_html = Column(Text, nullable=True)
    body_text = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=EmailJobStatus.PENDING.value)
    error_message = Column(Text, nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        onupdate=utc_now,
    )
