"""RFC 7807 responses for failures that never reach a command envelope."""

import uuid
from http import HTTPStatus
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from trainhub.domain.errors import (
    PROBLEM_BASE,
    ConflictError,
    DomainError,
    NotFoundError,
    StoreError,
)

PROBLEM_TYPE_VALIDATION = f"{PROBLEM_BASE}/validation-error"
PROBLEM_TYPE_NOT_FOUND = f"{PROBLEM_BASE}/not-found"
PROBLEM_TYPE_DOMAIN = f"{PROBLEM_BASE}/domain-error"
PROBLEM_TYPE_SERVER = f"{PROBLEM_BASE}/server-error"

PROBLEM_MEDIA_TYPE = "application/problem+json"

_TYPE_BY_STATUS = {
    HTTPStatus.BAD_REQUEST: PROBLEM_TYPE_VALIDATION,
    HTTPStatus.NOT_FOUND: PROBLEM_TYPE_NOT_FOUND,
    HTTPStatus.UNPROCESSABLE_ENTITY: PROBLEM_TYPE_VALIDATION,
}

# Checked in order, so subclasses must come before their bases.
_DOMAIN_STATUS: tuple[tuple[type[DomainError], int], ...] = (
    (NotFoundError, HTTPStatus.NOT_FOUND),
    (ConflictError, HTTPStatus.CONFLICT),
    (StoreError, HTTPStatus.SERVICE_UNAVAILABLE),
)


class Problem(BaseModel):
    type: str
    title: str
    status: int
    detail: str
    request_id: str
    errors: list[dict[str, Any]] = Field(default_factory=list)


def resolve_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None) or request.headers.get("X-Request-ID")
    if not request_id:
        request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    return request_id


def problem_type_for(status_code: int) -> str:
    if status_code >= 500:
        return PROBLEM_TYPE_SERVER
    return _TYPE_BY_STATUS.get(status_code, PROBLEM_TYPE_DOMAIN)


def status_for(exc: DomainError) -> int:
    for error_class, status_code in _DOMAIN_STATUS:
        if isinstance(exc, error_class):
            return int(status_code)
    return int(HTTPStatus.BAD_REQUEST)


def problem_details(
    request: Request,
    *,
    status: int,
    title: str | None,
    detail: str,
    errors: list[dict[str, Any]] | None = None,
    type_: str | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    if title is None:
        try:
            title = HTTPStatus(status).phrase
        except ValueError:
            title = "Error"
    problem = Problem(
        type=type_ or problem_type_for(status),
        title=title,
        status=status,
        detail=detail,
        request_id=resolve_request_id(request),
        errors=errors or [],
    )
    response = JSONResponse(
        status_code=status,
        content=problem.model_dump(),
        headers=headers,
        media_type=PROBLEM_MEDIA_TYPE,
    )
    response.headers.setdefault("X-Request-ID", problem.request_id)
    return response


def domain_problem(request: Request, exc: DomainError) -> JSONResponse:
    return problem_details(
        request,
        status=status_for(exc),
        title=exc.title,
        detail=exc.detail,
        errors=exc.errors,
        type_=exc.type,
    )
