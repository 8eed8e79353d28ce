from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from reqflow.core.sorting import apply_order_by
from reqflow.models.item import Item


class ItemRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_all(
        self,
        organization_id: UUID,
        skip: int = 0,
        limit: int = 100,
        category_id: UUID | None = None,
        is_active: bool | None = None,
        order_by: str | None = None,
    ) -> list[Item]:
        query = self.db.query(Item).filter(Item.organization_id == organization_id)
        if category_id is not None:
            query = query.filter(Item.category_id == category_id)
        if is_active is not None:
            query = query.filter(Item.is_active == is_active)
        query = apply_order_by(query, Item, order_by, default_field="code", default_direction="asc")
        return query.offset(skip).limit(limit).all()

    def get_by_id(self, item_id: UUID, organization_id: UUID) -> Item | None:
        return (
            self.db.query(Item)
            .filter(Item.id == item_id, Item.organization_id == organization_id)
            .first()
        )

    def codes_with_prefix(self, organization_id: UUID, prefix: str) -> list[str]:
        rows = (
            self.db.query(Item.code)
            .filter(Item.organization_id == organization_id, Item.code.like(f"{prefix}-%"))
            .all()
        )
        return [row[0] for row in rows]

    def create(
        self,
        *,
        organization_id: UUID,
        code: str,
        name: str,
        description: str | None = None,
        unit_of_measure: str | None = None,
        unit_price: Decimal | None = None,
        category_id: UUID | None = None,
    ) -> Item:
        item = Item(
            organization_id=organization_id,
            code=code,
            name=name,
            description=description,
            unit_of_measure=unit_of_measure,
            unit_price=unit_price,
            category_id=category_id,
        )
        self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        return item
