from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from reqflow.models.organization_member import OrganizationMember, WorkflowRole


class MemberRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, organization_id: UUID, user_id: UUID) -> OrganizationMember | None:
        return (
            self.db.query(OrganizationMember)
            .filter(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.user_id == user_id,
            )
            .first()
        )

    def get_active(self, organization_id: UUID, user_id: UUID) -> OrganizationMember | None:
        member = self.get(organization_id, user_id)
        if member is None or not member.is_active:
            return None
        return member

    def get_all(self, organization_id: UUID) -> list[OrganizationMember]:
        return (
            self.db.query(OrganizationMember)
            .filter(OrganizationMember.organization_id == organization_id)
            .order_by(OrganizationMember.created_at)
            .all()
        )

    def add(
        self,
        organization_id: UUID,
        user_id: UUID,
        workflow_role: WorkflowRole,
        commit: bool = True,
    ) -> OrganizationMember:
        member = OrganizationMember(
            organization_id=organization_id,
            user_id=user_id,
            workflow_role=workflow_role.value,
        )
        self.db.add(member)
        if commit:
            self.db.commit()
            self.db.refresh(member)
        else:
            self.db.flush()
        return member

    def update(
        self,
        member: OrganizationMember,
        workflow_role: WorkflowRole | None = None,
        is_active: bool | None = None,
    ) -> OrganizationMember:
        if workflow_role is not None:
            member.workflow_role = workflow_role.value  # type: ignore[assignment]
        if is_active is not None:
            member.is_active = is_active  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(member)
        return member

    def user_ids_with_roles(
        self,
        organization_id: UUID,
        roles: Iterable[WorkflowRole],
    ) -> list[UUID]:
        rows = (
            self.db.query(OrganizationMember.user_id)
            .filter(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.is_active == True,  # noqa: E712
                OrganizationMember.workflow_role.in_([role.value for role in roles]),
            )
            .all()
        )
        return [row[0] for row in rows]

    def active_member_ids(self, organization_id: UUID, user_ids: Iterable[UUID]) -> set[UUID]:
        ids = list(user_ids)
        if not ids:
            return set()
        rows = (
            self.db.query(OrganizationMember.user_id)
            .filter(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.is_active == True,  # noqa: E712
                OrganizationMember.user_id.in_(ids),
            )
            .all()
        )
        return {row[0] for row in rows}
