from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from reqflow.core.sorting import apply_order_by
from reqflow.models.requisition import Requisition


class RequisitionRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, requisition_id: UUID, organization_id: UUID) -> Requisition | None:
        return (
            self.db.query(Requisition)
            .filter(
                Requisition.id == requisition_id,
                Requisition.organization_id == organization_id,
            )
            .first()
        )

    def get_unscoped(self, requisition_id: UUID) -> Requisition | None:
        """Load a requisition regardless of organization.

        Only for resolving the organization of an event's subject; callers
        must compare the result's ``organization_id`` themselves.
        """
        return self.db.query(Requisition).filter(Requisition.id == requisition_id).first()

    def get_all(
        self,
        organization_id: UUID,
        skip: int = 0,
        limit: int = 100,
        status: str | None = None,
        submitted_by: UUID | None = None,
        order_by: str | None = None,
    ) -> list[Requisition]:
        query = self.db.query(Requisition).filter(Requisition.organization_id == organization_id)
        if status is not None:
            query = query.filter(Requisition.status == status)
        if submitted_by is not None:
            query = query.filter(Requisition.submitted_by == submitted_by)
        query = apply_order_by(query, Requisition, order_by)
        return query.offset(skip).limit(limit).all()

    def create(self, requisition: Requisition) -> Requisition:
        self.db.add(requisition)
        self.db.commit()
        self.db.refresh(requisition)
        return requisition

    def save(self, requisition: Requisition) -> Requisition:
        self.db.commit()
        self.db.refresh(requisition)
        return requisition
