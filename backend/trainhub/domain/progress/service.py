from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from trainhub.domain.errors import NotFoundError, ValidationError
from trainhub.domain.progress.db_models import (
    PROGRESS_STATUSES,
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    STATUS_NOT_STARTED,
    TrainingProgress,
)
from trainhub.infra.db import ensure_utc, utcnow
from trainhub.settings import settings

logger = logging.getLogger(__name__)

STATUS_RANK = {status: rank for rank, status in enumerate(PROGRESS_STATUSES)}


def normalize_status(status: str | None) -> str:
    normalized = (status or "").strip().lower()
    if normalized not in STATUS_RANK:
        raise ValidationError(detail="invalid_status")
    return normalized


def _validate_score(score: float | None) -> float | None:
    if score is None:
        return None
    if score < 0 or score > 100:
        raise ValidationError(detail="invalid_score")
    return float(score)


def _validate_transition(current: str, target: str, *, allow_regression: bool) -> None:
    if allow_regression:
        return
    if STATUS_RANK.get(target, 0) < STATUS_RANK.get(current, 0):
        raise ValidationError(detail="invalid_status_transition")


async def get_progress(
    session: AsyncSession,
    *,
    employee_id: int,
    module_id: int,
) -> TrainingProgress | None:
    stmt = select(TrainingProgress).where(
        TrainingProgress.employee_id == employee_id,
        TrainingProgress.module_id == module_id,
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def list_progress_for_employee(session: AsyncSession, employee_id: int) -> list[TrainingProgress]:
    stmt = (
        select(TrainingProgress)
        .where(TrainingProgress.employee_id == employee_id)
        .order_by(TrainingProgress.progress_id.asc())
    )
    return list((await session.execute(stmt)).scalars().all())


async def upsert_progress(
    session: AsyncSession,
    *,
    employee_id: int,
    module_id: int,
    program_id: int,
    status: str = STATUS_NOT_STARTED,
    started_at: datetime | None = None,
) -> TrainingProgress:
    """Insert or fully replace the progress row for ``(employee_id, module_id)``.

    A replaced row keeps its primary key but loses everything else: completion
    time, score and attempts are reset to the values of this call.
    """
    resolved_status = normalize_status(status)
    progress = await get_progress(session, employee_id=employee_id, module_id=module_id)
    if progress is None:
        progress = TrainingProgress(employee_id=employee_id, module_id=module_id)
        session.add(progress)
    progress.program_id = program_id
    progress.status = resolved_status
    progress.started_at = ensure_utc(started_at)
    progress.completed_at = None
    progress.score = None
    progress.attempts = 0
    await session.flush()
    return progress


async def update_progress_status(
    session: AsyncSession,
    *,
    employee_id: int,
    module_id: int,
    status: str,
    score: float | None = None,
    now: datetime | None = None,
) -> TrainingProgress:
    resolved_status = normalize_status(status)
    resolved_score = _validate_score(score)
    progress = await get_progress(session, employee_id=employee_id, module_id=module_id)
    if progress is None:
        raise NotFoundError(detail="progress_not_found")

    resolved_now = ensure_utc(now) or utcnow()
    if resolved_status in (STATUS_IN_PROGRESS, STATUS_COMPLETED) and progress.started_at is None:
        progress.started_at = resolved_now
    if resolved_status == STATUS_COMPLETED:
        progress.completed_at = resolved_now
        progress.attempts = (progress.attempts or 0) + 1
        if resolved_score is not None:
            progress.score = resolved_score
    else:
        progress.completed_at = None
    progress.status = resolved_status
    await session.flush()
    return progress


async def set_progress_status(
    session: AsyncSession,
    *,
    employee_id: int,
    module_id: int,
    status: str,
    score: float | None = None,
    allow_regression: bool | None = None,
    now: datetime | None = None,
) -> TrainingProgress:
    resolved_status = normalize_status(status)
    progress = await get_progress(session, employee_id=employee_id, module_id=module_id)
    if progress is None:
        raise NotFoundError(detail="progress_not_found")
    regression_allowed = (
        settings.allow_status_regression if allow_regression is None else allow_regression
    )
    _validate_transition(progress.status, resolved_status, allow_regression=regression_allowed)
    previous_status = progress.status
    progress = await update_progress_status(
        session,
        employee_id=employee_id,
        module_id=module_id,
        status=resolved_status,
        score=score,
        now=now,
    )
    logger.info(
        "training_progress_updated",
        extra={
            "extra": {
                "employee_id": employee_id,
                "module_id": module_id,
                "from_status": previous_status,
                "to_status": resolved_status,
            }
        },
    )
    return progress
