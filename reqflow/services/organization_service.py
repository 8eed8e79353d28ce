"""Organization provisioning and membership management."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from reqflow.core.config import settings
from reqflow.core.errors import InvalidArgumentError, NotFoundError, PermissionDeniedError
from reqflow.models.organization import Organization
from reqflow.models.organization_member import OrganizationMember, WorkflowRole
from reqflow.repositories.item_code_counter_repository import ItemCodeCounterRepository
from reqflow.repositories.member_repository import MemberRepository
from reqflow.repositories.organization_repository import OrganizationRepository
from reqflow.repositories.user_repository import UserRepository
from reqflow.schemas.organization import OrganizationCreate

logger = logging.getLogger(__name__)


class OrganizationService:
    def __init__(self, db: Session):
        self.db = db
        self.org_repo = OrganizationRepository(db)
        self.counter_repo = ItemCodeCounterRepository(db)
        self.member_repo = MemberRepository(db)
        self.user_repo = UserRepository(db)

    def create_organization(
        self,
        data: OrganizationCreate,
        creator_user_id: UUID | None = None,
    ) -> Organization:
        """Create an organization together with its item code counter.

        The counter is committed in the same transaction as the organization
        so no organization ever exists without one. When ``creator_user_id``
        is given, that user becomes the organization's first admin.
        """
        if creator_user_id is not None and self.user_repo.get_by_id(creator_user_id) is None:
            raise NotFoundError(f"User {creator_user_id} not found")

        org = self.org_repo.add(data.name)
        self.counter_repo.add(
            organization_id=org.id,  # type: ignore[arg-type]
            prefix=data.item_code_prefix or settings.ITEM_CODE_DEFAULT_PREFIX,
            padding=(
                settings.ITEM_CODE_DEFAULT_PADDING
                if data.item_code_padding is None
                else data.item_code_padding
            ),
        )
        if creator_user_id is not None:
            self.member_repo.add(org.id, creator_user_id, WorkflowRole.ADMIN, commit=False)  # type: ignore[arg-type]
        self.db.commit()
        self.db.refresh(org)
        logger.info("Created organization %s (%s)", org.id, org.name)
        return org

    def require_organization(self, organization_id: UUID) -> Organization:
        org = self.org_repo.get_by_id(organization_id)
        if org is None:
            raise NotFoundError(f"Organization {organization_id} not found")
        return org

    def add_member(
        self,
        organization_id: UUID,
        user_id: UUID,
        workflow_role: WorkflowRole = WorkflowRole.SUBMITTER,
    ) -> OrganizationMember:
        self.require_organization(organization_id)
        if self.user_repo.get_by_id(user_id) is None:
            raise NotFoundError(f"User {user_id} not found")
        if self.member_repo.get(organization_id, user_id) is not None:
            raise InvalidArgumentError(
                f"User {user_id} is already a member of organization {organization_id}"
            )
        return self.member_repo.add(organization_id, user_id, workflow_role)

    def update_member(
        self,
        organization_id: UUID,
        user_id: UUID,
        workflow_role: WorkflowRole | None = None,
        is_active: bool | None = None,
    ) -> OrganizationMember:
        member = self.member_repo.get(organization_id, user_id)
        if member is None:
            raise NotFoundError(f"User {user_id} is not a member of organization {organization_id}")
        return self.member_repo.update(member, workflow_role=workflow_role, is_active=is_active)

    def require_role(
        self,
        organization_id: UUID,
        user_id: UUID,
        roles: frozenset[WorkflowRole] | None = None,
    ) -> OrganizationMember:
        """Return the active membership of ``user_id``, optionally requiring a role."""
        member = self.member_repo.get_active(organization_id, user_id)
        if member is None:
            raise PermissionDeniedError(
                f"User {user_id} is not an active member of organization {organization_id}"
            )
        if roles is not None and WorkflowRole(member.workflow_role) not in roles:
            allowed = ", ".join(sorted(role.value for role in roles))
            raise PermissionDeniedError(f"This action requires one of the roles: {allowed}")
        return member
