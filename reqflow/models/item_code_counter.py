"""Per-organization counter backing sequential item codes."""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, func

from reqflow.core.database import Base
from reqflow.models.shared import UUIDType, generate_uuid, utc_now


class ItemCodeCounter(Base):
    """One row per organization; the only source of truth for the next code.

    ``next_number`` is advanced exclusively through a compare-and-swap update
    in ``ItemCodeCounterRepository``.
    """

    __tablename__ = "item_code_counters"
    __table_args__ = (
        CheckConstraint("next_number >= 1", name="ck_item_code_counters_next_number"),
        CheckConstraint("padding >= 0", name="ck_item_code_counters_padding"),
        CheckConstraint("last_issued_number >= 0", name="ck_item_code_counters_last_issued"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    organization_id = Column(
        UUIDType,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    prefix = Column(String(20), nullable=False, default="ITEM")
    next_number = Column(Integer, nullable=False, default=1)
    padding = Column(Integer, nullable=False, default=3)
    last_issued_number = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        onupdate=utc_now,
    )
