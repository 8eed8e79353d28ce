"""Pydantic schemas for Notification."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from reqflow.models.notification import NotificationType


class NotificationResponse(BaseModel):
    id: UUID
    organization_id: UUID
    recipient_user_id: UUID
    type: NotificationType
    title: str
    message: str
    link: str | None
    resource_type: str | None
    resource_id: UUID | None
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationCountResponse(BaseModel):
    unread_count: int


class NotificationBulkResponse(BaseModel):
    affected: int


class CustomNotificationCreate(BaseModel):
    recipient_user_ids: list[UUID] = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1, max_length=1000)
    link: str | None = Field(default=None, max_length=500)
    event_key: str | None = Field(default=None, max_length=255)
    send_email: bool = False


class CustomNotificationResponse(BaseModel):
    recipient_user_ids: list[UUID]
    emails_queued: int
    email_errors: list[str]
