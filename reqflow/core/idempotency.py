"""Idempotency support for mutating API endpoints.

A client that retries ``POST /v1/items`` after a timeout must not burn a
second item code. Endpoints call ``check_idempotency`` first: it returns a
cached ``JSONResponse`` when the ``Idempotency-Key`` was already answered for
the organization, an ``IdempotencyResult`` to be completed with
``record_idempotency_response`` when the key is new, or ``None`` when the
client sent no key.
"""

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from fastapi import Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from reqflow.repositories.idempotency_repository import IdempotencyRepository

IDEMPOTENCY_HEADER = "Idempotency-Key"


@dataclass
class IdempotencyResult:
    """Holds pending idempotency key info for later recording."""

    key: str
    method: str
    path: str


def check_idempotency(
    request: Request,
    db: Session,
    organization_id: UUID,
) -> JSONResponse | IdempotencyResult | None:
    key = request.headers.get(IDEMPOTENCY_HEADER)
    if not key:
        return None

    repo = IdempotencyRepository(db)
    existing = repo.get_by_key(organization_id, key)

    if existing is not None and existing.response_status is not None:
        response = JSONResponse(
            content=existing.response_body,
            status_code=int(existing.response_status),
        )
        response.headers["Idempotency-Replayed"] = "true"
        return response

    if existing is None:
        repo.create(
            organization_id=organization_id,
            idempotency_key=key,
            request_method=request.method,
            request_path=request.url.path,
        )

    return IdempotencyResult(key=key, method=request.method, path=request.url.path)


def record_idempotency_response(
    db: Session,
    organization_id: UUID,
    key: str,
    status: int,
    body: dict[str, Any],
) -> None:
    """Persist the endpoint response so replays return it verbatim."""
    repo = IdempotencyRepository(db)
    record = repo.get_by_key(organization_id, key)
    if record is not None:
        repo.update_response(record, status, body)
