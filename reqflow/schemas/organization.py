from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from reqflow.models.organization_member import WorkflowRole


class OrganizationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    item_code_prefix: str | None = Field(default=None, min_length=1, max_length=20)
    item_code_padding: int | None = Field(default=None, ge=0, le=12)


class OrganizationUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)


class OrganizationResponse(BaseModel):
    id: UUID
    name: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MemberCreate(BaseModel):
    user_id: UUID
    workflow_role: WorkflowRole = WorkflowRole.SUBMITTER


class MemberUpdate(BaseModel):
    workflow_role: WorkflowRole | None = None
    is_active: bool | None = None


class MemberResponse(BaseModel):
    id: UUID
    organization_id: UUID
    user_id: UUID
    workflow_role: WorkflowRole
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
