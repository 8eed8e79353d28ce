from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class ItemCodeSettingsResponse(BaseModel):
    organization_id: UUID
    prefix: str
    next_number: int
    padding: int
    last_issued_number: int
    next_code: str
    updated_at: datetime


class ItemCodeFormatUpdate(BaseModel):
    prefix: str | None = Field(default=None, min_length=1, max_length=20)
    padding: int | None = Field(default=None, ge=0, le=12)


class ItemCodeNextNumberUpdate(BaseModel):
    # Range checks live in the allocator so they are enforced for every caller.
    next_number: int
