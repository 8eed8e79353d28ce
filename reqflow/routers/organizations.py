"""Organization and membership endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from reqflow.core.auth import get_current_organization, get_current_user
from reqflow.core.database import get_db
from reqflow.core.errors import ReqflowError, to_http_exception
from reqflow.models.organization import Organization
from reqflow.models.organization_member import OrganizationMember, WorkflowRole
from reqflow.repositories.member_repository import MemberRepository
from reqflow.repositories.organization_repository import OrganizationRepository
from reqflow.schemas.organization import (
    MemberCreate,
    MemberResponse,
    MemberUpdate,
    OrganizationCreate,
    OrganizationResponse,
    OrganizationUpdate,
)
from reqflow.services.organization_service import OrganizationService

router = APIRouter()

ADMIN_ONLY = frozenset({WorkflowRole.ADMIN})


@router.post(
    "/",
    response_model=OrganizationResponse,
    status_code=201,
    summary="Create organization",
    responses={404: {"description": "User not found"}, 422: {"description": "Validation error"}},
)
async def create_organization(
    data: OrganizationCreate,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> Organization:
    """Create an organization with its item code counter; the caller becomes admin."""
    try:
        return OrganizationService(db).create_organization(data, creator_user_id=user_id)
    except ReqflowError as e:
        raise to_http_exception(e) from None


@router.get(
    "/",
    response_model=list[OrganizationResponse],
    summary="List my organizations",
)
async def list_my_organizations(
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> list[Organization]:
    """Organizations the caller is an active member of."""
    return OrganizationRepository(db).get_for_user(user_id)


@router.get(
    "/current",
    response_model=OrganizationResponse,
    summary="Get current organization",
    responses={404: {"description": "Organization not found"}},
)
async def get_current_org(
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> Organization:
    org = OrganizationRepository(db).get_by_id(organization_id)
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found")
    return org


@router.put(
    "/current",
    response_model=OrganizationResponse,
    summary="Update current organization",
    responses={
        403: {"description": "Admin role required"},
        404: {"description": "Organization not found"},
    },
)
async def update_current_org(
    data: OrganizationUpdate,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
    user_id: UUID = Depends(get_current_user),
) -> Organization:
    try:
        OrganizationService(db).require_role(organization_id, user_id, ADMIN_ONLY)
    except ReqflowError as e:
        raise to_http_exception(e) from None
    org = OrganizationRepository(db).update(organization_id, data)
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found")
    return org


@router.get(
    "/current/members",
    response_model=list[MemberResponse],
    summary="List members",
)
async def list_members(
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> list[OrganizationMember]:
    return MemberRepository(db).get_all(organization_id)


@router.post(
    "/current/members",
    response_model=MemberResponse,
    status_code=201,
    summary="Add member",
    responses={
        400: {"description": "Already a member"},
        403: {"description": "Admin role required"},
        404: {"description": "User not found"},
    },
)
async def add_member(
    data: MemberCreate,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
    user_id: UUID = Depends(get_current_user),
) -> OrganizationMember:
    service = OrganizationService(db)
    try:
        service.require_role(organization_id, user_id, ADMIN_ONLY)
        return service.add_member(organization_id, data.user_id, data.workflow_role)
    except ReqflowError as e:
        raise to_http_exception(e) from None


@router.patch(
    "/current/members/{member_user_id}",
    response_model=MemberResponse,
    summary="Update member",
    responses={
        403: {"description": "Admin role required"},
        404: {"description": "Member not found"},
    },
)
async def update_member(
    member_user_id: UUID,
    data: MemberUpdate,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
    user_id: UUID = Depends(get_current_user),
) -> OrganizationMember:
    service = OrganizationService(db)
    try:
        service.require_role(organization_id, user_id, ADMIN_ONLY)
        return service.update_member(
            organization_id,
            member_user_id,
            workflow_role=data.workflow_role,
            is_active=data.is_active,
        )
    except ReqflowError as e:
        raise to_http_exception(e) from None
