from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class ItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    unit_of_measure: str | None = Field(default=None, max_length=20)
    unit_price: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    category_id: UUID | None = None


class ItemResponse(BaseModel):
    id: UUID
    organization_id: UUID
    code: str
    name: str
    description: str | None
    unit_of_measure: str | None
    unit_price: Decimal | None
    category_id: UUID | None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
