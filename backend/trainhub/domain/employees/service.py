from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from trainhub.domain.employees.db_models import Employee
from trainhub.domain.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

UNSET = object()


def _required(value: str | None, error: str) -> str:
    normalized = (value or "").strip()
    if not normalized:
        raise ValidationError(detail=error)
    return normalized


def _optional(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    return normalized or None


def normalize_email(email: str | None) -> str | None:
    normalized = _optional(email)
    return normalized.lower() if normalized else None


async def _ensure_email_available(
    session: AsyncSession,
    email: str | None,
    *,
    exclude_employee_id: int | None = None,
) -> None:
    if email is None:
        return
    stmt = select(Employee.employee_id).where(Employee.email == email, Employee.active.is_(True))
    if exclude_employee_id is not None:
        stmt = stmt.where(Employee.employee_id != exclude_employee_id)
    if (await session.execute(stmt.limit(1))).scalar_one_or_none() is not None:
        raise ConflictError(detail="email_in_use")


async def create_employee(
    session: AsyncSession,
    *,
    first_name: str,
    last_name: str,
    email: str | None = None,
    hire_date: date | None = None,
    department: str | None = None,
    position: str | None = None,
) -> Employee:
    normalized_email = normalize_email(email)
    employee = Employee(
        first_name=_required(first_name, "first_name_required"),
        last_name=_required(last_name, "last_name_required"),
        email=normalized_email,
        hire_date=hire_date,
        department=_optional(department),
        position=_optional(position),
        active=True,
    )
    await _ensure_email_available(session, normalized_email)
    session.add(employee)
    await session.flush()
    logger.info("employee_created", extra={"extra": {"employee_id": employee.employee_id}})
    return employee


async def list_employees(session: AsyncSession) -> list[Employee]:
    stmt = (
        select(Employee)
        .where(Employee.active.is_(True))
        .order_by(Employee.last_name.asc(), Employee.first_name.asc(), Employee.employee_id.asc())
    )
    return list((await session.execute(stmt)).scalars().all())


async def get_employee(
    session: AsyncSession,
    employee_id: int,
    *,
    include_inactive: bool = False,
) -> Employee:
    employee = await session.get(Employee, employee_id)
    if employee is None or (not employee.active and not include_inactive):
        raise NotFoundError(detail="employee_not_found")
    return employee


async def update_employee(
    session: AsyncSession,
    employee_id: int,
    *,
    first_name: str | None | object = UNSET,
    last_name: str | None | object = UNSET,
    email: str | None | object = UNSET,
    hire_date: date | None | object = UNSET,
    department: str | None | object = UNSET,
    position: str | None | object = UNSET,
) -> Employee:
    employee = await get_employee(session, employee_id)
    if first_name is not UNSET:
        employee.first_name = _required(
            first_name if isinstance(first_name, str) else None, "first_name_required"
        )
    if last_name is not UNSET:
        employee.last_name = _required(
            last_name if isinstance(last_name, str) else None, "last_name_required"
        )
    if email is not UNSET:
        normalized_email = normalize_email(email if isinstance(email, str) else None)
        if normalized_email != employee.email:
            await _ensure_email_available(
                session, normalized_email, exclude_employee_id=employee.employee_id
            )
        employee.email = normalized_email
    if hire_date is not UNSET:
        employee.hire_date = hire_date if isinstance(hire_date, date) else None
    if department is not UNSET:
        employee.department = _optional(department if isinstance(department, str) else None)
    if position is not UNSET:
        employee.position = _optional(position if isinstance(position, str) else None)
    await session.flush()
    return employee


async def soft_delete_employee(session: AsyncSession, employee_id: int) -> None:
    employee = await get_employee(session, employee_id)
    employee.active = False
    await session.flush()
    logger.info("employee_deactivated", extra={"extra": {"employee_id": employee_id}})
