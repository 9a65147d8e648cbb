from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from trainhub.domain.analytics import aggregation
from trainhub.domain.analytics.schemas import (
    ComplianceReport,
    CompletionSummaryReport,
    DashboardStats,
    DepartmentCompliance,
    EmployeeAssignment,
    EmployeeProgressReport,
    EmployeeProgressSummary,
    ProgramAnalytics,
)
from trainhub.domain.employees import service as employee_service
from trainhub.domain.employees.db_models import Employee
from trainhub.domain.programs import service as program_service
from trainhub.domain.programs.db_models import TrainingModule, TrainingProgram
from trainhub.domain.programs.schemas import ProgramResponse
from trainhub.domain.progress import service as progress_service
from trainhub.domain.progress.db_models import TrainingProgress
from trainhub.infra.db import ensure_utc, utcnow
from trainhub.settings import settings

logger = logging.getLogger(__name__)


def _program_ref(program: TrainingProgram) -> aggregation.ProgramRef:
    return aggregation.ProgramRef(
        program_id=program.program_id,
        name=program.name,
        created_at=program.created_at,
    )


def _module_ref(module: TrainingModule) -> aggregation.ModuleRef:
    return aggregation.ModuleRef(
        module_id=module.module_id,
        program_id=module.program_id,
        name=module.name,
        order_index=module.order_index,
        required=module.required,
        duration_minutes=module.duration_minutes,
        created_at=module.created_at,
    )


def _employee_ref(employee: Employee) -> aggregation.EmployeeRef:
    return aggregation.EmployeeRef(
        employee_id=employee.employee_id,
        first_name=employee.first_name,
        last_name=employee.last_name,
        email=employee.email,
        department=employee.department,
        position=employee.position,
        hire_date=employee.hire_date,
    )


def _progress_row(progress: TrainingProgress) -> aggregation.ProgressRow:
    return aggregation.ProgressRow(
        progress_id=progress.progress_id,
        employee_id=progress.employee_id,
        module_id=progress.module_id,
        program_id=progress.program_id,
        status=progress.status,
        started_at=progress.started_at,
        completed_at=progress.completed_at,
        score=progress.score,
        attempts=progress.attempts or 0,
    )


async def load_snapshot(
    session: AsyncSession,
    *,
    employees: list[Employee] | None = None,
) -> aggregation.TrainingSnapshot:
    """Read active programs, their modules, employees and progress into a snapshot.

    When ``employees`` is given only their progress rows are loaded.
    """
    programs = await program_service.list_programs(session)
    program_ids = [program.program_id for program in programs]
    modules: list[TrainingModule] = []
    if program_ids:
        stmt = (
            select(TrainingModule)
            .where(TrainingModule.program_id.in_(program_ids))
            .order_by(*program_service.MODULE_ORDER)
        )
        modules = list((await session.execute(stmt)).scalars().all())

    if employees is None:
        employees = await employee_service.list_employees(session)
    employee_ids = [employee.employee_id for employee in employees]
    progress: list[TrainingProgress] = []
    if employee_ids:
        stmt = (
            select(TrainingProgress)
            .where(TrainingProgress.employee_id.in_(employee_ids))
            .order_by(TrainingProgress.progress_id.asc())
        )
        progress = list((await session.execute(stmt)).scalars().all())

    return aggregation.TrainingSnapshot(
        programs={program.program_id: _program_ref(program) for program in programs},
        modules={module.module_id: _module_ref(module) for module in modules},
        employees=tuple(_employee_ref(employee) for employee in employees),
        progress=tuple(_progress_row(row) for row in progress),
    )


async def list_programs_with_module_count(session: AsyncSession) -> list[ProgramResponse]:
    rows = await program_service.list_programs(session, include_module_counts=True)
    return [
        ProgramResponse.model_validate(program).model_copy(update={"module_count": count})
        for program, count in rows
    ]


async def list_employees_with_progress_summary(session: AsyncSession) -> list[EmployeeProgressSummary]:
    snapshot = await load_snapshot(session)
    return aggregation.employee_summaries(snapshot)


async def get_employee_assignments(session: AsyncSession, employee_id: int) -> list[EmployeeAssignment]:
    employee = await employee_service.get_employee(session, employee_id)
    snapshot = await load_snapshot(session, employees=[employee])
    return aggregation.employee_assignments(snapshot, employee.employee_id)


async def get_department_compliance(session: AsyncSession) -> list[DepartmentCompliance]:
    snapshot = await load_snapshot(session)
    return aggregation.department_compliance(snapshot)


async def get_completion_summary(
    session: AsyncSession,
    *,
    now: datetime | None = None,
) -> CompletionSummaryReport:
    snapshot = await load_snapshot(session)
    summaries = aggregation.employee_summaries(snapshot)
    return CompletionSummaryReport(
        generated_at=ensure_utc(now) or utcnow(),
        total_employees=len(snapshot.employees),
        total_programs=len(snapshot.programs),
        completion_stats=aggregation.completion_stats(summaries),
        programs=await list_programs_with_module_count(session),
        departments=aggregation.department_compliance(snapshot, summaries),
    )


async def get_employee_progress_report(
    session: AsyncSession,
    *,
    now: datetime | None = None,
) -> EmployeeProgressReport:
    return EmployeeProgressReport(
        generated_at=ensure_utc(now) or utcnow(),
        employees=await list_employees_with_progress_summary(session),
    )


async def get_program_analytics(session: AsyncSession) -> list[ProgramAnalytics]:
    snapshot = await load_snapshot(session)
    return aggregation.program_analytics(snapshot)


async def get_compliance_report(
    session: AsyncSession,
    *,
    now: datetime | None = None,
    period_days: int | None = None,
    at_risk_threshold: int | None = None,
    limit: int | None = None,
) -> ComplianceReport:
    period_end = ensure_utc(now) or utcnow()
    days = period_days if period_days is not None else settings.recent_completion_days
    threshold = at_risk_threshold if at_risk_threshold is not None else settings.at_risk_threshold_percent
    list_limit = limit if limit is not None else settings.report_list_limit
    period_start = period_end - timedelta(days=days)

    snapshot = await load_snapshot(session)
    summaries = aggregation.employee_summaries(snapshot)
    report = ComplianceReport(
        generated_at=period_end,
        period_start=period_start,
        period_end=period_end,
        overall_compliance=aggregation.overall_compliance(summaries),
        completion_stats=aggregation.completion_stats(summaries),
        departments=aggregation.department_compliance(snapshot, summaries),
        outstanding_training=aggregation.outstanding_training(summaries, limit=list_limit),
        recent_completions=aggregation.recent_completions(
            snapshot, since=period_start, limit=list_limit
        ),
        at_risk_employees=aggregation.at_risk_employees(
            summaries, threshold=threshold, limit=list_limit
        ),
    )
    logger.info(
        "compliance_report_generated",
        extra={
            "extra": {
                "period_days": days,
                "employees": len(summaries),
                "overall_compliance": report.overall_compliance,
            }
        },
    )
    return report


async def get_dashboard_stats(session: AsyncSession) -> DashboardStats:
    snapshot = await load_snapshot(session)
    return aggregation.dashboard_stats(snapshot)


async def list_progress(session: AsyncSession, employee_id: int) -> list[TrainingProgress]:
    await employee_service.get_employee(session, employee_id)
    return await progress_service.list_progress_for_employee(session, employee_id)
