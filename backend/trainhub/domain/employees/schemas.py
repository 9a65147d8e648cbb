from __future__ import annotations

from datetime import date, datetime
from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, EmailStr


def _blank_to_none(value: object) -> object:
    if isinstance(value, str) and not value.strip():
        return None
    return value


OptionalEmail = Annotated[EmailStr | None, BeforeValidator(_blank_to_none)]
OptionalDate = Annotated[date | None, BeforeValidator(_blank_to_none)]


class EmployeeCreateRequest(BaseModel):
    first_name: str
    last_name: str
    email: OptionalEmail = None
    hire_date: OptionalDate = None
    department: str | None = None
    position: str | None = None


class EmployeeUpdateRequest(BaseModel):
    employee_id: int
    first_name: str | None = None
    last_name: str | None = None
    email: OptionalEmail = None
    hire_date: OptionalDate = None
    department: str | None = None
    position: str | None = None


class EmployeeRef(BaseModel):
    employee_id: int


class EmployeeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: int
    first_name: str
    last_name: str
    email: str | None = None
    hire_date: date | None = None
    department: str | None = None
    position: str | None = None
    active: bool
    created_at: datetime
