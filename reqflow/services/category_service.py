"""Category management with soft deletion once a category is in use."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from reqflow.core.errors import InvalidArgumentError, NotFoundError
from reqflow.models.category import Category
from reqflow.repositories.category_repository import CategoryRepository
from reqflow.schemas.category import CategoryCreate, CategoryUpdate

logger = logging.getLogger(__name__)


def normalize_code(code: str) -> str:
    """``"office supplies"`` -> ``"OFFICE_SUPPLIES"``."""
    return "_".join(code.strip().upper().replace("-", " ").split())


class CategoryService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = CategoryRepository(db)

    def get(self, category_id: UUID, organization_id: UUID) -> Category:
        category = self.repo.get_by_id(category_id, organization_id)
        if category is None:
            raise NotFoundError(f"Category {category_id} not found")
        return category

    def _check_unique(
        self,
        organization_id: UUID,
        code: str | None,
        name: str | None,
        exclude_id: UUID | None = None,
    ) -> None:
        if code is not None:
            existing = self.repo.get_by_code(organization_id, code)
            if existing is not None and existing.id != exclude_id:
                raise InvalidArgumentError(f"Category code '{code}' already exists")
        if name is not None:
            existing = self.repo.get_by_name(organization_id, name)
            if existing is not None and existing.id != exclude_id:
                raise InvalidArgumentError(f"Category name '{name}' already exists")

    def create(self, organization_id: UUID, data: CategoryCreate) -> Category:
        data = data.model_copy(
            update={"code": normalize_code(data.code), "name": data.name.strip()}
        )
        self._check_unique(organization_id, data.code, data.name)
        return self.repo.create(organization_id, data)

    def update(self, category_id: UUID, organization_id: UUID, data: CategoryUpdate) -> Category:
        category = self.get(category_id, organization_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("code") is not None:
            changes["code"] = normalize_code(changes["code"])
        if changes.get("name") is not None:
            changes["name"] = changes["name"].strip()
        self._check_unique(
            organization_id,
            changes.get("code"),
            changes.get("name"),
            exclude_id=category_id,
        )
        return self.repo.update(category, CategoryUpdate(**changes))

    def deactivate(self, category_id: UUID, organization_id: UUID) -> Category:
        return self.repo.set_active(self.get(category_id, organization_id), False)

    def reactivate(self, category_id: UUID, organization_id: UUID) -> Category:
        return self.repo.set_active(self.get(category_id, organization_id), True)

    def delete(self, category_id: UUID, organization_id: UUID) -> Category | None:
        """Delete a category, or deactivate it when items still reference it.

        Returns the deactivated category, or None when the row was removed.
        """
        category = self.get(category_id, organization_id)
        if self.repo.is_referenced(category_id):
            logger.info("Category %s is in use; deactivating instead of deleting", category_id)
            return self.repo.set_active(category, False)
        self.repo.delete(category)
        return None
