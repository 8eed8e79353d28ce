from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from reqflow.models.organization import Organization
from reqflow.models.organization_member import OrganizationMember
from reqflow.schemas.organization import OrganizationUpdate


class OrganizationRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_for_user(self, user_id: UUID) -> list[Organization]:
        return (
            self.db.query(Organization)
            .join(OrganizationMember, OrganizationMember.organization_id == Organization.id)
            .filter(
                OrganizationMember.user_id == user_id,
                OrganizationMember.is_active == True,  # noqa: E712
            )
            .order_by(Organization.name)
            .all()
        )

    def get_by_id(self, org_id: UUID) -> Organization | None:
        return self.db.query(Organization).filter(Organization.id == org_id).first()

    def add(self, name: str) -> Organization:
        """Stage a new organization without committing."""
        org = Organization(name=name)
        self.db.add(org)
        self.db.flush()
        return org

    def update(self, org_id: UUID, data: OrganizationUpdate) -> Organization | None:
        org = self.get_by_id(org_id)
        if not org:
            return None
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(org, key, value)
        self.db.commit()
        self.db.refresh(org)
        return org
