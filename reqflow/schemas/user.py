from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    full_name: str = Field(..., min_length=1, max_length=255)
    email_notifications_enabled: bool = True


class UserUpdate(BaseModel):
    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    email_notifications_enabled: bool | None = None


class UserResponse(BaseModel):
    id: UUID
    email: str
    full_name: str
    email_notifications_enabled: bool
    created_at: datetime

    model_config = {"from_attributes": True}
