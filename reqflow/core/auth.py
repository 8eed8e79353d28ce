"""Request identity supplied by the upstream identity provider.

Authentication happens before a request reaches this service. The identity
layer forwards the authenticated user and the organization currently
selected in the client as headers, and this module trusts that pairing.
"""

from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, HTTPException, Request

USER_HEADER = "X-User-Id"
ORGANIZATION_HEADER = "X-Organization-Id"


@dataclass(frozen=True)
class SessionContext:
    user_id: UUID | None
    organization_id: UUID | None


def _parse_uuid_header(request: Request, header: str) -> UUID | None:
    raw = request.headers.get(header)
    if not raw:
        return None
    try:
        return UUID(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {header} header") from None


def get_session_context(request: Request) -> SessionContext:
    return SessionContext(
        user_id=_parse_uuid_header(request, USER_HEADER),
        organization_id=_parse_uuid_header(request, ORGANIZATION_HEADER),
    )


def get_current_organization(
    context: SessionContext = Depends(get_session_context),
) -> UUID:
    """Return the organization selected for this request.

    Every tenant-scoped endpoint depends on this; there is no fallback
    organization.
    """
    if context.organization_id is None:
        raise HTTPException(status_code=400, detail=f"{ORGANIZATION_HEADER} header is required")
    return context.organization_id


def get_current_user(
    context: SessionContext = Depends(get_session_context),
) -> UUID:
    if context.user_id is None:
        raise HTTPException(status_code=401, detail=f"{USER_HEADER} header is required")
    return context.user_id
