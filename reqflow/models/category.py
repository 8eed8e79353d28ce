from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text, UniqueConstraint, func

from reqflow.core.database import Base
from reqflow.models.shared import UUIDType, generate_uuid, utc_now


class Category(Base):
    """Item category. Rows referenced by items are deactivated, never deleted."""

    __tablename__ = "categories"
    __table_args__ = (
        UniqueConstraint("organization_id", "code", name="uq_categories_org_code"),
        UniqueConstraint("organization_id", "name", name="uq_categories_org_name"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    organization_id = Column(
        UUIDType,
        ForeignKey("organizations.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    code = Column(String(50), nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        onupdate=utc_now,
    )
