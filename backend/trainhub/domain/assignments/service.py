from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from trainhub.domain.assignments.schemas import AssignmentResult
from trainhub.domain.employees import service as employee_service
from trainhub.domain.errors import AssignmentError
from trainhub.domain.programs import service as program_service
from trainhub.domain.progress import service as progress_service
from trainhub.domain.progress.db_models import STATUS_NOT_STARTED
from trainhub.infra.db import ensure_utc, utcnow

logger = logging.getLogger(__name__)


async def assign_program_to_employee(
    session: AsyncSession,
    *,
    employee_id: int,
    program_id: int,
    now: datetime | None = None,
) -> AssignmentResult:
    """Create or reset one progress row per module of the program.

    Reassigning resets every module of the program back to ``not_started`` with a
    fresh start time. Must run inside a single transaction: when any upsert fails
    the error is raised as ``AssignmentError`` and the caller's transaction rolls
    back, so no module is left reset while others are not.
    """
    employee = await employee_service.get_employee(session, employee_id)
    program = await program_service.get_program(session, program_id)
    modules = await program_service.list_modules_by_program(session, program.program_id)
    if not modules:
        logger.info(
            "training_program_assignment_skipped",
            extra={"extra": {"employee_id": employee_id, "program_id": program_id, "reason": "no_modules"}},
        )
        return AssignmentResult(employee_id=employee_id, program_id=program_id, modules_assigned=0)

    started_at = ensure_utc(now) or utcnow()
    assigned = 0
    try:
        for module in modules:
            await progress_service.upsert_progress(
                session,
                employee_id=employee.employee_id,
                module_id=module.module_id,
                program_id=program.program_id,
                status=STATUS_NOT_STARTED,
                started_at=started_at,
            )
            assigned += 1
    except SQLAlchemyError as exc:
        logger.warning(
            "training_program_assignment_failed",
            extra={
                "extra": {
                    "employee_id": employee_id,
                    "program_id": program_id,
                    "modules_done": assigned,
                    "modules_total": len(modules),
                }
            },
        )
        raise AssignmentError(detail="assignment_failed") from exc

    logger.info(
        "training_program_assigned",
        extra={"extra": {"employee_id": employee_id, "program_id": program_id, "modules_assigned": assigned}},
    )
    return AssignmentResult(employee_id=employee_id, program_id=program_id, modules_assigned=assigned)
