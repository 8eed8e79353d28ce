"""Membership of a user in an organization, with the user's workflow role."""

from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, UniqueConstraint, func

from reqflow.core.database import Base
from reqflow.models.shared import UUIDType, generate_uuid, utc_now


class WorkflowRole(str, Enum):
    SUBMITTER = "submitter"
    REVIEWER = "reviewer"
    APPROVER = "approver"
    ADMIN = "admin"


# Roles that are told about newly submitted requisitions.
REVIEWING_ROLES = frozenset({WorkflowRole.REVIEWER, WorkflowRole.APPROVER, WorkflowRole.ADMIN})
APPROVING_ROLES = frozenset({WorkflowRole.APPROVER, WorkflowRole.ADMIN})


class OrganizationMember(Base):
    __tablename__ = "organization_members"
    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", name="uq_organization_members_org_user"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    organization_id = Column(
        UUIDType,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(
        UUIDType,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    workflow_role = Column(String(20), nullable=False, default=WorkflowRole.SUBMITTER.value)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now())
