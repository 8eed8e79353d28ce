from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from reqflow.core.sorting import apply_order_by
from reqflow.models.category import Category
from reqflow.models.item import Item
from reqflow.schemas.category import CategoryCreate, CategoryUpdate


class CategoryRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_all(
        self,
        organization_id: UUID,
        skip: int = 0,
        limit: int = 100,
        is_active: bool | None = None,
        order_by: str | None = None,
    ) -> list[Category]:
        query = self.db.query(Category).filter(Category.organization_id == organization_id)
        if is_active is not None:
            query = query.filter(Category.is_active == is_active)
        query = apply_order_by(
            query, Category, order_by, default_field="name", default_direction="asc"
        )
        return query.offset(skip).limit(limit).all()

    def get_by_id(self, category_id: UUID, organization_id: UUID) -> Category | None:
        return (
            self.db.query(Category)
            .filter(Category.id == category_id, Category.organization_id == organization_id)
            .first()
        )

    def get_by_code(self, organization_id: UUID, code: str) -> Category | None:
        return (
            self.db.query(Category)
            .filter(Category.organization_id == organization_id, Category.code == code)
            .first()
        )

    def get_by_name(self, organization_id: UUID, name: str) -> Category | None:
        return (
            self.db.query(Category)
            .filter(Category.organization_id == organization_id, Category.name == name)
            .first()
        )

    def create(self, organization_id: UUID, data: CategoryCreate) -> Category:
        category = Category(organization_id=organization_id, **data.model_dump())
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        return category

    def update(self, category: Category, data: CategoryUpdate) -> Category:
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(category, key, value)
        self.db.commit()
        self.db.refresh(category)
        return category

    def set_active(self, category: Category, is_active: bool) -> Category:
        category.is_active = is_active  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(category)
        return category

    def is_referenced(self, category_id: UUID) -> bool:
        return (
            self.db.query(Item.id).filter(Item.category_id == category_id).first() is not None
        )

    def delete(self, category: Category) -> None:
        self.db.delete(category)
        self.db.commit()
