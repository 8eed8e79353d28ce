from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text, func

from reqflow.core.database import Base
from reqflow.models.shared import UUIDType, generate_uuid, utc_now


class RequisitionStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Requisition(Base):
    __tablename__ = "requisitions"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    organization_id = Column(
        UUIDType,
        ForeignKey("organizations.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    reference = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    total_amount = Column(Numeric(14, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default=RequisitionStatus.DRAFT.value, index=True)
    submitted_by = Column(UUIDType, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    approved_by = Column(UUIDType, ForeignKey("users.id", ondelete="RESTRICT"), nullable=True)
    rejected_by = Column(UUIDType, ForeignKey("users.id", ondelete="RESTRICT"), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    # Bumped on every workflow transition; part of the notification event key.
    revision = Column(Integer, nullable=False, default=0)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    decided_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        onupdate=utc_now,
    )
