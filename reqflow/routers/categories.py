"""Item category endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from reqflow.core.auth import get_current_organization, get_current_user
from reqflow.core.database import get_db
from reqflow.core.errors import ReqflowError, to_http_exception
from reqflow.models.category import Category
from reqflow.repositories.category_repository import CategoryRepository
from reqflow.schemas.category import CategoryCreate, CategoryResponse, CategoryUpdate
from reqflow.services.category_service import CategoryService
from reqflow.services.organization_service import OrganizationService

router = APIRouter()


@router.get(
    "/",
    response_model=list[CategoryResponse],
    summary="List categories",
)
async def list_categories(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    is_active: bool | None = None,
    order_by: str | None = Query(default=None),
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> list[Category]:
    return CategoryRepository(db).get_all(
        organization_id, skip=skip, limit=limit, is_active=is_active, order_by=order_by
    )


@router.get(
    "/{category_id}",
    response_model=CategoryResponse,
    summary="Get category",
    responses={404: {"description": "Category not found"}},
)
async def get_category(
    category_id: UUID,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> Category:
    try:
        return CategoryService(db).get(category_id, organization_id)
    except ReqflowError as e:
        raise to_http_exception(e) from None


@router.post(
    "/",
    response_model=CategoryResponse,
    status_code=201,
    summary="Create category",
    responses={
        400: {"description": "Code or name already in use"},
        403: {"description": "Not a member of the organization"},
    },
)
async def create_category(
    data: CategoryCreate,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
    user_id: UUID = Depends(get_current_user),
) -> Category:
    try:
        OrganizationService(db).require_role(organization_id, user_id)
        return CategoryService(db).create(organization_id, data)
    except ReqflowError as e:
        raise to_http_exception(e) from None


@router.put(
    "/{category_id}",
    response_model=CategoryResponse,
    summary="Update category",
    responses={
        400: {"description": "Code or name already in use"},
        404: {"description": "Category not found"},
    },
)
async def update_category(
    category_id: UUID,
    data: CategoryUpdate,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
    user_id: UUID = Depends(get_current_user),
) -> Category:
    try:
        OrganizationService(db).require_role(organization_id, user_id)
        return CategoryService(db).update(category_id, organization_id, data)
    except ReqflowError as e:
        raise to_http_exception(e) from None


@router.post(
    "/{category_id}/deactivate",
    response_model=CategoryResponse,
    summary="Deactivate category",
    responses={404: {"description": "Category not found"}},
)
async def deactivate_category(
    category_id: UUID,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
    user_id: UUID = Depends(get_current_user),
) -> Category:
    try:
        OrganizationService(db).require_role(organization_id, user_id)
        return CategoryService(db).deactivate(category_id, organization_id)
    except ReqflowError as e:
        raise to_http_exception(e) from None


@router.post(
    "/{category_id}/reactivate",
    response_model=CategoryResponse,
    summary="Reactivate category",
    responses={404: {"description": "Category not found"}},
)
async def reactivate_category(
    category_id: UUID,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
    user_id: UUID = Depends(get_current_user),
) -> Category:
    try:
        OrganizationService(db).require_role(organization_id, user_id)
        return CategoryService(db).reactivate(category_id, organization_id)
    except ReqflowError as e:
        raise to_http_exception(e) from None


@router.delete(
    "/{category_id}",
    summary="Delete category",
    responses={
        200: {"description": "Category in use; deactivated instead", "model": CategoryResponse},
        204: {"description": "Category deleted"},
        404: {"description": "Category not found"},
    },
)
async def delete_category(
    category_id: UUID,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
    user_id: UUID = Depends(get_current_user),
) -> Response:
    """Delete a category; categories still used by items are deactivated instead."""
    try:
        OrganizationService(db).require_role(organization_id, user_id)
        deactivated = CategoryService(db).delete(category_id, organization_id)
    except ReqflowError as e:
        raise to_http_exception(e) from None
    if deactivated is None:
        return Response(status_code=204)
    return Response(
        content=CategoryResponse.model_validate(deactivated).model_dump_json(),
        media_type="application/json",
        status_code=200,
    )
