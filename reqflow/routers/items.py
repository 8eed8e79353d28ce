"""Item endpoints. Creating an item allocates its code."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from reqflow.core.auth import get_current_organization, get_current_user
from reqflow.core.database import get_db
from reqflow.core.errors import ReqflowError, to_http_exception
from reqflow.core.idempotency import (
    IdempotencyResult,
    check_idempotency,
    record_idempotency_response,
)
from reqflow.models.item import Item
from reqflow.repositories.item_repository import ItemRepository
from reqflow.schemas.item import ItemCreate, ItemResponse
from reqflow.services.item_service import ItemService
from reqflow.services.organization_service import OrganizationService

router = APIRouter()


@router.get(
    "/",
    response_model=list[ItemResponse],
    summary="List items",
)
async def list_items(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    category_id: UUID | None = None,
    is_active: bool | None = None,
    order_by: str | None = Query(default=None),
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> list[Item]:
    return ItemRepository(db).get_all(
        organization_id,
        skip=skip,
        limit=limit,
        category_id=category_id,
        is_active=is_active,
        order_by=order_by,
    )


@router.get(
    "/{item_id}",
    response_model=ItemResponse,
    summary="Get item",
    responses={404: {"description": "Item not found"}},
)
async def get_item(
    item_id: UUID,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> Item:
    try:
        return ItemService(db).get(item_id, organization_id)
    except ReqflowError as e:
        raise to_http_exception(e) from None


@router.post(
    "/",
    response_model=ItemResponse,
    status_code=201,
    summary="Create item",
    responses={
        400: {"description": "Inactive category"},
        404: {"description": "Category or item code counter not found"},
        409: {"description": "Item code allocation kept losing to concurrent writers"},
        503: {"description": "Item could not be stored"},
    },
)
async def create_item(
    data: ItemCreate,
    request: Request,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
    user_id: UUID = Depends(get_current_user),
) -> Item | JSONResponse:
    """Create an item with the organization's next item code.

    Send an ``Idempotency-Key`` header to make retries safe: a replay returns
    the first response and allocates no further code.
    """
    try:
        OrganizationService(db).require_role(organization_id, user_id)
    except ReqflowError as e:
        raise to_http_exception(e) from None

    idempotency = check_idempotency(request, db, organization_id)
    if isinstance(idempotency, JSONResponse):
        return idempotency

    try:
        # Allocation backs off with blocking sleeps between retries.
        item = await run_in_threadpool(ItemService(db).create, organization_id, data)
    except ReqflowError as e:
        raise to_http_exception(e) from None

    if isinstance(idempotency, IdempotencyResult):
        body = ItemResponse.model_validate(item).model_dump(mode="json")
        record_idempotency_response(db, organization_id, idempotency.key, 201, body)

    return item
