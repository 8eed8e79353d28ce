"""Item code counter settings for the current organization."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from reqflow.core.auth import get_current_organization, get_current_user
from reqflow.core.database import get_db
from reqflow.core.errors import ReqflowError, to_http_exception
from reqflow.models.item_code_counter import ItemCodeCounter
from reqflow.models.organization_member import WorkflowRole
from reqflow.schemas.item_code import (
    ItemCodeFormatUpdate,
    ItemCodeNextNumberUpdate,
    ItemCodeSettingsResponse,
)
from reqflow.services.organization_service import OrganizationService
from reqflow.services.sequence_allocator import SequenceAllocator, format_code

router = APIRouter()


def _settings_response(counter: ItemCodeCounter) -> ItemCodeSettingsResponse:
    return ItemCodeSettingsResponse(
        organization_id=counter.organization_id,  # type: ignore[arg-type]
        prefix=str(counter.prefix),
        next_number=int(counter.next_number),
        padding=int(counter.padding),
        last_issued_number=int(counter.last_issued_number),
        next_code=format_code(str(counter.prefix), int(counter.next_number), int(counter.padding)),
        updated_at=counter.updated_at,  # type: ignore[arg-type]
    )


@router.get(
    "/",
    response_model=ItemCodeSettingsResponse,
    summary="Get item code settings",
    responses={404: {"description": "Organization has no counter"}},
)
async def get_item_code_settings(
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> ItemCodeSettingsResponse:
    try:
        counter = SequenceAllocator(db).get_counter(organization_id)
    except ReqflowError as e:
        raise to_http_exception(e) from None
    return _settings_response(counter)


@router.patch(
    "/format",
    response_model=ItemCodeSettingsResponse,
    summary="Update item code format",
    responses={
        400: {"description": "Invalid prefix or padding"},
        403: {"description": "Admin role required"},
    },
)
async def update_item_code_format(
    data: ItemCodeFormatUpdate,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
    user_id: UUID = Depends(get_current_user),
) -> ItemCodeSettingsResponse:
    try:
        OrganizationService(db).require_role(
            organization_id, user_id, frozenset({WorkflowRole.ADMIN})
        )
        counter = SequenceAllocator(db).update_format(
            organization_id, prefix=data.prefix, padding=data.padding
        )
    except ReqflowError as e:
        raise to_http_exception(e) from None
    return _settings_response(counter)


@router.put(
    "/next_number",
    response_model=ItemCodeSettingsResponse,
    summary="Set next item number",
    responses={
        400: {"description": "Number already issued or below 1"},
        403: {"description": "Admin role required"},
    },
)
async def set_next_item_number(
    data: ItemCodeNextNumberUpdate,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
    user_id: UUID = Depends(get_current_user),
) -> ItemCodeSettingsResponse:
    """Move the counter forward. Numbers already issued can never be reused."""
    try:
        OrganizationService(db).require_role(
            organization_id, user_id, frozenset({WorkflowRole.ADMIN})
        )
        counter = SequenceAllocator(db).set_next(organization_id, data.next_number)
    except ReqflowError as e:
        raise to_http_exception(e) from None
    return _settings_response(counter)
