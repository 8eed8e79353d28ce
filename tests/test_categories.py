"""Tests for category service and API endpoints."""

from uuid import uuid4

import pytest

from reqflow.core.errors import InvalidArgumentError, NotFoundError
from reqflow.repositories.item_repository import ItemRepository
from reqflow.schemas.category import CategoryCreate, CategoryUpdate
from reqflow.services.category_service import CategoryService, normalize_code
from tests.conftest import ALPHA_ORG_ID, BETA_ORG_ID, OUTSIDER_ID, SUBMITTER_ID, headers


@pytest.fixture
def service(db_session):
    return CategoryService(db_session)


class TestNormalizeCode:
    def test_uppercases_and_joins_words(self):
        assert normalize_code(" office supplies ") == "OFFICE_SUPPLIES"

    def test_hyphens_become_underscores(self):
        assert normalize_code("it-hardware") == "IT_HARDWARE"


class TestCategoryService:
    def test_create_normalizes_code(self, service):
        category = service.create(
            ALPHA_ORG_ID, CategoryCreate(code="office supplies", name="Office")
        )
        assert category.code == "OFFICE_SUPPLIES"
        assert category.is_active is True

    def test_duplicate_code_rejected(self, service):
        service.create(ALPHA_ORG_ID, CategoryCreate(code="OFFICE", name="Office"))
        with pytest.raises(InvalidArgumentError):
            service.create(ALPHA_ORG_ID, CategoryCreate(code="office", name="Other"))

    def test_duplicate_name_rejected(self, service):
        service.create(ALPHA_ORG_ID, CategoryCreate(code="OFFICE", name="Office"))
        with pytest.raises(InvalidArgumentError):
            service.create(ALPHA_ORG_ID, CategoryCreate(code="OTHER", name="Office"))

    def test_same_code_allowed_in_other_organization(self, service):
        service.create(ALPHA_ORG_ID, CategoryCreate(code="OFFICE", name="Office"))
        beta = service.create(BETA_ORG_ID, CategoryCreate(code="OFFICE", name="Office"))
        assert beta.organization_id == BETA_ORG_ID

    def test_update_keeps_own_code(self, service):
        category = service.create(ALPHA_ORG_ID, CategoryCreate(code="OFFICE", name="Office"))
        updated = service.update(
            category.id, ALPHA_ORG_ID, CategoryUpdate(code="office", name="Office Supplies")
        )
        assert updated.code == "OFFICE"
        assert updated.name == "Office Supplies"

    def test_get_from_other_organization_is_not_found(self, service):
        category = service.create(ALPHA_ORG_ID, CategoryCreate(code="OFFICE", name="Office"))
        with pytest.raises(NotFoundError):
            service.get(category.id, BETA_ORG_ID)

    def test_deactivate_and_reactivate(self, service):
        category = service.create(ALPHA_ORG_ID, CategoryCreate(code="OFFICE", name="Office"))
        assert service.deactivate(category.id, ALPHA_ORG_ID).is_active is False
        assert service.reactivate(category.id, ALPHA_ORG_ID).is_active is True

    def test_delete_unused_category_removes_it(self, service):
        category_id = service.create(ALPHA_ORG_ID, CategoryCreate(code="OFFICE", name="Office")).id
        assert service.delete(category_id, ALPHA_ORG_ID) is None
        with pytest.raises(NotFoundError):
            service.get(category_id, ALPHA_ORG_ID)

    def test_delete_referenced_category_deactivates(self, db_session, service):
        category = service.create(ALPHA_ORG_ID, CategoryCreate(code="OFFICE", name="Office"))
        ItemRepository(db_session).create(
            organization_id=ALPHA_ORG_ID, code="ITEM-001", name="Pen", category_id=category.id
        )

        result = service.delete(category.id, ALPHA_ORG_ID)

        assert result is not None
        assert result.is_active is False
        assert service.get(category.id, ALPHA_ORG_ID).is_active is False


class TestCategoryApi:
    def test_create_and_list(self, client):
        response = client.post(
            "/v1/categories/",
            json={"code": "office", "name": "Office"},
            headers=headers(SUBMITTER_ID, ALPHA_ORG_ID),
        )
        assert response.status_code == 201
        assert response.json()["code"] == "OFFICE"

        listed = client.get("/v1/categories/", headers=headers(SUBMITTER_ID, ALPHA_ORG_ID))
        assert [c["code"] for c in listed.json()] == ["OFFICE"]

        beta = client.get("/v1/categories/", headers=headers(SUBMITTER_ID, BETA_ORG_ID))
        assert beta.json() == []

    def test_duplicate_returns_400(self, client):
        body = {"code": "office", "name": "Office"}
        client.post("/v1/categories/", json=body, headers=headers(SUBMITTER_ID, ALPHA_ORG_ID))
        response = client.post(
            "/v1/categories/", json=body, headers=headers(SUBMITTER_ID, ALPHA_ORG_ID)
        )
        assert response.status_code == 400

    def test_non_member_cannot_create(self, client):
        response = client.post(
            "/v1/categories/",
            json={"code": "office", "name": "Office"},
            headers=headers(OUTSIDER_ID, ALPHA_ORG_ID),
        )
        assert response.status_code == 403

    def test_missing_organization_header(self, client):
        response = client.get("/v1/categories/", headers=headers(SUBMITTER_ID))
        assert response.status_code == 400

    def test_get_unknown_category(self, client):
        response = client.get(
            f"/v1/categories/{uuid4()}", headers=headers(SUBMITTER_ID, ALPHA_ORG_ID)
        )
        assert response.status_code == 404

    def test_delete_unused_returns_204(self, client):
        created = client.post(
            "/v1/categories/",
            json={"code": "office", "name": "Office"},
            headers=headers(SUBMITTER_ID, ALPHA_ORG_ID),
        ).json()
        response = client.delete(
            f"/v1/categories/{created['id']}", headers=headers(SUBMITTER_ID, ALPHA_ORG_ID)
        )
        assert response.status_code == 204

    def test_delete_referenced_returns_deactivated_category(self, client):
        created = client.post(
            "/v1/categories/",
            json={"code": "office", "name": "Office"},
            headers=headers(SUBMITTER_ID, ALPHA_ORG_ID),
        ).json()
        client.post(
            "/v1/items/",
            json={"name": "Pen", "category_id": created["id"]},
            headers=headers(SUBMITTER_ID, ALPHA_ORG_ID),
        )

        response = client.delete(
            f"/v1/categories/{created['id']}", headers=headers(SUBMITTER_ID, ALPHA_ORG_ID)
        )
        assert response.status_code == 200
        assert response.json()["is_active"] is False
