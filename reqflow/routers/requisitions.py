"""Requisition endpoints and workflow transitions."""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from reqflow.core.auth import get_current_organization, get_current_user
from reqflow.core.database import get_db
from reqflow.core.errors import ReqflowError, to_http_exception
from reqflow.models.requisition import Requisition, RequisitionStatus
from reqflow.repositories.requisition_repository import RequisitionRepository
from reqflow.schemas.requisition import (
    RequisitionCreate,
    RequisitionReject,
    RequisitionResponse,
    RequisitionTransitionResponse,
)
from reqflow.services.requisition_workflow import RequisitionWorkflow, WorkflowResult

router = APIRouter()

TRANSITION_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"description": "Transition not allowed from the current status"},
    403: {"description": "Missing workflow role"},
    404: {"description": "Requisition not found"},
}


def _transition_response(result: WorkflowResult) -> RequisitionTransitionResponse:
    return RequisitionTransitionResponse(
        requisition=RequisitionResponse.model_validate(result.requisition),
        notified_user_ids=sorted(result.notified_user_ids, key=str),
        emails_queued=result.emails_queued,
        notification_error=result.notification_error,
        email_errors=result.email_errors,
    )


@router.get(
    "/",
    response_model=list[RequisitionResponse],
    summary="List requisitions",
)
async def list_requisitions(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    status: RequisitionStatus | None = None,
    submitted_by: UUID | None = None,
    order_by: str | None = Query(default=None),
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> list[Requisition]:
    return RequisitionRepository(db).get_all(
        organization_id,
        skip=skip,
        limit=limit,
        status=status.value if status else None,
        submitted_by=submitted_by,
        order_by=order_by,
    )


@router.get(
    "/{requisition_id}",
    response_model=RequisitionResponse,
    summary="Get requisition",
    responses={404: {"description": "Requisition not found"}},
)
async def get_requisition(
    requisition_id: UUID,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> Requisition:
    try:
        return RequisitionWorkflow(db).get(requisition_id, organization_id)
    except ReqflowError as e:
        raise to_http_exception(e) from None


@router.post(
    "/",
    response_model=RequisitionResponse,
    status_code=201,
    summary="Create draft requisition",
    responses={403: {"description": "Not a member of the organization"}},
)
async def create_requisition(
    data: RequisitionCreate,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
    user_id: UUID = Depends(get_current_user),
) -> Requisition:
    try:
        return RequisitionWorkflow(db).create(organization_id, user_id, data)
    except ReqflowError as e:
        raise to_http_exception(e) from None


@router.post(
    "/{requisition_id}/submit",
    response_model=RequisitionTransitionResponse,
    summary="Submit requisition for review",
    responses=TRANSITION_RESPONSES,
)
async def submit_requisition(
    requisition_id: UUID,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
    user_id: UUID = Depends(get_current_user),
) -> RequisitionTransitionResponse:
    """Submit a draft or rejected requisition. Reviewers are notified."""
    try:
        result = RequisitionWorkflow(db).submit(requisition_id, organization_id, user_id)
    except ReqflowError as e:
        raise to_http_exception(e) from None
    return _transition_response(result)


@router.post(
    "/{requisition_id}/approve",
    response_model=RequisitionTransitionResponse,
    summary="Approve requisition",
    responses=TRANSITION_RESPONSES,
)
async def approve_requisition(
    requisition_id: UUID,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
    user_id: UUID = Depends(get_current_user),
) -> RequisitionTransitionResponse:
    try:
        result = RequisitionWorkflow(db).approve(requisition_id, organization_id, user_id)
    except ReqflowError as e:
        raise to_http_exception(e) from None
    return _transition_response(result)


@router.post(
    "/{requisition_id}/reject",
    response_model=RequisitionTransitionResponse,
    summary="Reject requisition",
    responses=TRANSITION_RESPONSES,
)
async def reject_requisition(
    requisition_id: UUID,
    data: RequisitionReject,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
    user_id: UUID = Depends(get_current_user),
) -> RequisitionTransitionResponse:
    try:
        result = RequisitionWorkflow(db).reject(
            requisition_id, organization_id, user_id, reason=data.reason
        )
    except ReqflowError as e:
        raise to_http_exception(e) from None
    return _transition_response(result)
