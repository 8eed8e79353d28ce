"""Typed error hierarchy shared by services and routers.

Services raise these; routers translate them into ``HTTPException`` using the
``status_code`` each class carries. Every error also exposes a stable
machine-readable ``code``.
"""

from __future__ import annotations

from fastapi import HTTPException


class ReqflowError(Exception):
    """Base class for all domain errors."""

    code = "error"
    status_code = 500


class NotFoundError(ReqflowError):
    """A referenced organization, counter, template or record does not exist."""

    code = "not_found"
    status_code = 404


class ConflictError(ReqflowError):
    """A concurrent writer won the race; the whole operation may be retried."""

    code = "conflict"
    status_code = 409


class InvalidArgumentError(ReqflowError):
    """Malformed input, administrative override or event payload."""

    code = "invalid_argument"
    status_code = 400


class PermissionDeniedError(ReqflowError):
    code = "permission_denied"
    status_code = 403


class TemplateError(ReqflowError):
    """An email template could not be rendered."""

    code = "template_error"
    status_code = 422

    def __init__(self, message: str, missing: list[str] | None = None):
        super().__init__(message)
        self.missing = missing or []


class TransportError(ReqflowError):
    """A downstream store, channel or mail relay is unreachable."""

    code = "transport_error"
    status_code = 503


def to_http_exception(error: ReqflowError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=str(error))
