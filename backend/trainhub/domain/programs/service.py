from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from trainhub.domain.errors import NotFoundError, ValidationError
from trainhub.domain.programs.db_models import TrainingModule, TrainingProgram
from trainhub.infra.db import utcnow

logger = logging.getLogger(__name__)

UNSET = object()

MODULE_ORDER = (
    TrainingModule.order_index.asc(),
    TrainingModule.created_at.asc(),
    TrainingModule.module_id.asc(),
)


def _normalize_name(name: str | None, *, error: str = "name_required") -> str:
    normalized = (name or "").strip()
    if not normalized:
        raise ValidationError(detail=error)
    return normalized


def _normalize_text(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    return normalized or None


def _validate_duration(duration_minutes: int | None) -> int:
    if duration_minutes is None:
        return 0
    if duration_minutes < 0:
        raise ValidationError(detail="invalid_duration")
    return duration_minutes


async def create_program(
    session: AsyncSession,
    *,
    name: str,
    description: str | None = None,
) -> TrainingProgram:
    program = TrainingProgram(
        name=_normalize_name(name),
        description=_normalize_text(description),
        active=True,
    )
    session.add(program)
    await session.flush()
    logger.info("training_program_created", extra={"extra": {"program_id": program.program_id}})
    return program


async def list_programs(
    session: AsyncSession,
    *,
    include_module_counts: bool = False,
) -> list[TrainingProgram] | list[tuple[TrainingProgram, int]]:
    if not include_module_counts:
        stmt = (
            select(TrainingProgram)
            .where(TrainingProgram.active.is_(True))
            .order_by(TrainingProgram.created_at.desc(), TrainingProgram.program_id.desc())
        )
        return list((await session.execute(stmt)).scalars().all())

    stmt = (
        select(TrainingProgram, func.count(TrainingModule.module_id))
        .outerjoin(TrainingModule, TrainingModule.program_id == TrainingProgram.program_id)
        .where(TrainingProgram.active.is_(True))
        .group_by(TrainingProgram.program_id)
        .order_by(TrainingProgram.created_at.desc(), TrainingProgram.program_id.desc())
    )
    return [(program, int(count or 0)) for program, count in (await session.execute(stmt)).all()]


async def get_program(
    session: AsyncSession,
    program_id: int,
    *,
    include_inactive: bool = False,
) -> TrainingProgram:
    program = await session.get(TrainingProgram, program_id)
    if program is None or (not program.active and not include_inactive):
        raise NotFoundError(detail="program_not_found")
    return program


async def update_program(
    session: AsyncSession,
    program_id: int,
    *,
    name: str | None | object = UNSET,
    description: str | None | object = UNSET,
) -> TrainingProgram:
    program = await get_program(session, program_id)
    if name is not UNSET:
        program.name = _normalize_name(name if isinstance(name, str) else None)
    if description is not UNSET:
        program.description = _normalize_text(description if isinstance(description, str) else None)
    program.updated_at = utcnow()
    await session.flush()
    return program


async def delete_program(session: AsyncSession, program_id: int) -> None:
    program = await get_program(session, program_id)
    program.active = False
    program.updated_at = utcnow()
    await session.flush()
    logger.info("training_program_deactivated", extra={"extra": {"program_id": program_id}})


async def count_modules(session: AsyncSession, program_id: int) -> int:
    stmt = select(func.count(TrainingModule.module_id)).where(TrainingModule.program_id == program_id)
    return int((await session.execute(stmt)).scalar_one() or 0)


async def create_module(
    session: AsyncSession,
    *,
    program_id: int,
    name: str,
    description: str | None = None,
    order_index: int | None = None,
    content: str | None = None,
    duration_minutes: int | None = None,
    required: bool = True,
) -> TrainingModule:
    program = await get_program(session, program_id)
    module = TrainingModule(
        program_id=program.program_id,
        name=_normalize_name(name),
        description=_normalize_text(description),
        order_index=order_index if order_index is not None else 0,
        content=content,
        duration_minutes=_validate_duration(duration_minutes),
        required=bool(required),
    )
    session.add(module)
    program.updated_at = utcnow()
    await session.flush()
    return module


async def list_modules_by_program(session: AsyncSession, program_id: int) -> list[TrainingModule]:
    await get_program(session, program_id)
    stmt = select(TrainingModule).where(TrainingModule.program_id == program_id).order_by(*MODULE_ORDER)
    return list((await session.execute(stmt)).scalars().all())


async def get_module(session: AsyncSession, module_id: int) -> TrainingModule:
    module = await session.get(TrainingModule, module_id)
    if module is None:
        raise NotFoundError(detail="module_not_found")
    return module


async def update_module(
    session: AsyncSession,
    module_id: int,
    *,
    name: str | None | object = UNSET,
    description: str | None | object = UNSET,
    order_index: int | None | object = UNSET,
    content: str | None | object = UNSET,
    duration_minutes: int | None | object = UNSET,
    required: bool | None | object = UNSET,
) -> TrainingModule:
    module = await get_module(session, module_id)
    if name is not UNSET:
        module.name = _normalize_name(name if isinstance(name, str) else None)
    if description is not UNSET:
        module.description = _normalize_text(description if isinstance(description, str) else None)
    if order_index is not UNSET:
        if not isinstance(order_index, int) or isinstance(order_index, bool):
            raise ValidationError(detail="invalid_order_index")
        module.order_index = order_index
    if content is not UNSET:
        module.content = content if isinstance(content, str) else None
    if duration_minutes is not UNSET:
        module.duration_minutes = _validate_duration(
            duration_minutes if isinstance(duration_minutes, int) else None
        )
    if required is not UNSET:
        if not isinstance(required, bool):
            raise ValidationError(detail="invalid_required")
        module.required = required
    await session.flush()
    return module


async def reorder_module(session: AsyncSession, module_id: int, order_index: int) -> TrainingModule:
    return await update_module(session, module_id, order_index=order_index)


async def delete_module(session: AsyncSession, module_id: int) -> None:
    module = await get_module(session, module_id)
    # Progress rows referencing the module stay behind; rollups skip them.
    await session.delete(module)
    await session.flush()
    logger.info(
        "training_module_deleted",
        extra={"extra": {"module_id": module_id, "program_id": module.program_id}},
    )
