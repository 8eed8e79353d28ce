from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from reqflow.models.requisition import RequisitionStatus


class RequisitionCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    total_amount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)


class RequisitionReject(BaseModel):
    reason: str | None = Field(default=None, max_length=2000)


class RequisitionResponse(BaseModel):
    id: UUID
    organization_id: UUID
    reference: str
    title: str
    description: str | None
    total_amount: Decimal
    status: RequisitionStatus
    submitted_by: UUID
    approved_by: UUID | None
    rejected_by: UUID | None
    rejection_reason: str | None
    revision: int
    submitted_at: datetime | None
    decided_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class RequisitionTransitionResponse(BaseModel):
    requisition: RequisitionResponse
    notified_user_ids: list[UUID]
    emails_queued: int
    notification_error: str | None = None
    email_errors: list[str] = []
