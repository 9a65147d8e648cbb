"""Training progress rollups computed from an in-memory snapshot.

Nothing in this module touches the database. The query layer loads a
``TrainingSnapshot`` and hands it to these functions, which makes every rollup
testable with plain dataclasses.

Rows whose module or program is gone (hard-deleted module, soft-deleted
program) or whose employee is not part of the snapshot are skipped, never
reported as errors.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Iterable, Mapping, Sequence

from trainhub.domain.analytics.schemas import (
    AtRiskEmployee,
    CompletionStats,
    DashboardStats,
    DepartmentCompliance,
    EmployeeAssignment,
    EmployeeProgressSummary,
    ModuleProgressItem,
    OutstandingTraining,
    ProgramAnalytics,
    RecentCompletion,
)
from trainhub.domain.progress.db_models import STATUS_COMPLETED, STATUS_IN_PROGRESS, STATUS_NOT_STARTED

NO_DEPARTMENT = "No Department"
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class ProgramRef:
    program_id: int
    name: str
    created_at: datetime | None = None


@dataclass(frozen=True)
class ModuleRef:
    module_id: int
    program_id: int
    name: str
    order_index: int = 0
    required: bool = True
    duration_minutes: int = 0
    created_at: datetime | None = None


@dataclass(frozen=True)
class EmployeeRef:
    employee_id: int
    first_name: str
    last_name: str
    email: str | None = None
    department: str | None = None
    position: str | None = None
    hire_date: date | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass(frozen=True)
class ProgressRow:
    progress_id: int
    employee_id: int
    module_id: int
    program_id: int
    status: str = STATUS_NOT_STARTED
    started_at: datetime | None = None
    completed_at: datetime | None = None
    score: float | None = None
    attempts: int = 0


@dataclass(frozen=True)
class TrainingSnapshot:
    programs: Mapping[int, ProgramRef] = field(default_factory=dict)
    modules: Mapping[int, ModuleRef] = field(default_factory=dict)
    employees: Sequence[EmployeeRef] = ()
    progress: Sequence[ProgressRow] = ()

    def module_counts(self) -> dict[int, int]:
        counts: dict[int, int] = {program_id: 0 for program_id in self.programs}
        for module in self.modules.values():
            if module.program_id in counts:
                counts[module.program_id] += 1
        return counts


def _ratio_half_up(numerator: int, denominator: int) -> int:
    return (2 * numerator + denominator) // (2 * denominator)


def completion_rate(completed: int, total: int) -> int:
    """Percentage rounded half-up; 0 when there is nothing to complete."""
    if total <= 0:
        return 0
    return _ratio_half_up(100 * completed, total)


def department_label(department: str | None) -> str:
    normalized = (department or "").strip()
    return normalized or NO_DEPARTMENT


def program_status(rows: Iterable[ProgressRow], total_modules: int) -> str:
    completed = 0
    touched = 0
    for row in rows:
        if row.status == STATUS_COMPLETED:
            completed += 1
            touched += 1
        elif row.status == STATUS_IN_PROGRESS:
            touched += 1
    if total_modules > 0 and completed == total_modules:
        return STATUS_COMPLETED
    if touched > 0:
        return STATUS_IN_PROGRESS
    return STATUS_NOT_STARTED


def live_rows(snapshot: TrainingSnapshot) -> list[ProgressRow]:
    employee_ids = {employee.employee_id for employee in snapshot.employees}
    rows: list[ProgressRow] = []
    for row in snapshot.progress:
        module = snapshot.modules.get(row.module_id)
        if module is None or module.program_id != row.program_id:
            continue
        if row.program_id not in snapshot.programs or row.employee_id not in employee_ids:
            continue
        rows.append(row)
    return rows


def _rows_by_employee_program(snapshot: TrainingSnapshot) -> dict[int, dict[int, list[ProgressRow]]]:
    grouped: dict[int, dict[int, list[ProgressRow]]] = defaultdict(lambda: defaultdict(list))
    for row in live_rows(snapshot):
        grouped[row.employee_id][row.program_id].append(row)
    return grouped


def _module_sort_key(module: ModuleRef) -> tuple:
    return (module.order_index, module.created_at or _EPOCH, module.module_id)


def _build_assignment(
    snapshot: TrainingSnapshot,
    program_id: int,
    rows: list[ProgressRow],
    total_modules: int,
) -> tuple[EmployeeAssignment, int]:
    status = program_status(rows, total_modules)
    completed = sum(1 for row in rows if row.status == STATUS_COMPLETED)
    in_progress = sum(1 for row in rows if row.status == STATUS_IN_PROGRESS)
    started = [row.started_at for row in rows if row.started_at is not None]
    finished = [row.completed_at for row in rows if row.completed_at is not None]
    ordered = sorted(rows, key=lambda row: _module_sort_key(snapshot.modules[row.module_id]))
    modules = []
    for row in ordered:
        module = snapshot.modules[row.module_id]
        modules.append(
            ModuleProgressItem(
                progress_id=row.progress_id,
                module_id=module.module_id,
                module_name=module.name,
                order_index=module.order_index,
                required=module.required,
                duration_minutes=module.duration_minutes,
                status=row.status,
                started_at=row.started_at,
                completed_at=row.completed_at,
                score=row.score,
                attempts=row.attempts,
            )
        )
    assignment = EmployeeAssignment(
        program_id=program_id,
        program_name=snapshot.programs[program_id].name,
        status=status,
        total_modules=total_modules,
        completed_modules=completed,
        in_progress_modules=in_progress,
        completion_rate=completion_rate(completed, total_modules),
        assigned_at=min(started) if started else None,
        completed_at=max(finished) if status == STATUS_COMPLETED and finished else None,
        modules=modules,
    )
    return assignment, min(row.progress_id for row in rows)


def employee_assignments(snapshot: TrainingSnapshot, employee_id: int) -> list[EmployeeAssignment]:
    """One entry per program the employee holds live progress rows for.

    Ordered by earliest start time, newest first. Entries with no start time
    come after the dated ones, newest row first.
    """
    counts = snapshot.module_counts()
    per_program = _rows_by_employee_program(snapshot).get(employee_id, {})
    built = [
        _build_assignment(snapshot, program_id, rows, counts.get(program_id, 0))
        for program_id, rows in per_program.items()
    ]
    built.sort(
        key=lambda item: (
            item[0].assigned_at is not None,
            item[0].assigned_at or _EPOCH,
            item[1],
        ),
        reverse=True,
    )
    return [assignment for assignment, _ in built]


def _employee_status(program_statuses: list[str]) -> str:
    if not program_statuses:
        return "no_assignments"
    if all(status == STATUS_COMPLETED for status in program_statuses):
        return "compliant"
    if any(status != STATUS_NOT_STARTED for status in program_statuses):
        return STATUS_IN_PROGRESS
    return STATUS_NOT_STARTED


def _summarize(
    employee: EmployeeRef,
    per_program: Mapping[int, list[ProgressRow]],
    counts: Mapping[int, int],
) -> EmployeeProgressSummary:
    statuses = [program_status(rows, counts.get(program_id, 0)) for program_id, rows in per_program.items()]
    assigned = len(statuses)
    completed_programs = statuses.count(STATUS_COMPLETED)
    total_modules = sum(len(rows) for rows in per_program.values())
    completed_modules = sum(
        1 for rows in per_program.values() for row in rows if row.status == STATUS_COMPLETED
    )
    return EmployeeProgressSummary(
        employee_id=employee.employee_id,
        first_name=employee.first_name,
        last_name=employee.last_name,
        email=employee.email,
        hire_date=employee.hire_date,
        department=employee.department,
        position=employee.position,
        assigned_programs=assigned,
        completed_programs=completed_programs,
        total_modules=total_modules,
        completed_modules=completed_modules,
        completion_rate=completion_rate(completed_modules, total_modules),
        status=_employee_status(statuses),
    )


def employee_summary(snapshot: TrainingSnapshot, employee: EmployeeRef) -> EmployeeProgressSummary:
    grouped = _rows_by_employee_program(snapshot)
    return _summarize(employee, grouped.get(employee.employee_id, {}), snapshot.module_counts())


def employee_summaries(snapshot: TrainingSnapshot) -> list[EmployeeProgressSummary]:
    grouped = _rows_by_employee_program(snapshot)
    counts = snapshot.module_counts()
    return [
        _summarize(employee, grouped.get(employee.employee_id, {}), counts)
        for employee in snapshot.employees
    ]


def _is_compliant(summary: EmployeeProgressSummary) -> bool:
    return summary.assigned_programs > 0 and summary.completed_programs == summary.assigned_programs


def department_compliance(
    snapshot: TrainingSnapshot,
    summaries: Sequence[EmployeeProgressSummary] | None = None,
) -> list[DepartmentCompliance]:
    resolved = list(summaries) if summaries is not None else employee_summaries(snapshot)
    buckets: dict[str, list[EmployeeProgressSummary]] = defaultdict(list)
    for summary in resolved:
        buckets[department_label(summary.department)].append(summary)

    results: list[DepartmentCompliance] = []
    for department, members in buckets.items():
        with_assignments = [member for member in members if member.assigned_programs > 0]
        compliant = [member for member in with_assignments if _is_compliant(member)]
        results.append(
            DepartmentCompliance(
                department=department,
                total_employees=len(members),
                employees_with_assignments=len(with_assignments),
                compliant_employees=len(compliant),
                compliance_rate=completion_rate(len(compliant), len(with_assignments)),
                average_completion=_ratio_half_up(
                    sum(member.completion_rate for member in members), len(members)
                ),
            )
        )
    results.sort(key=lambda item: (item.department == NO_DEPARTMENT, item.department.lower()))
    return results


def completion_stats(summaries: Iterable[EmployeeProgressSummary]) -> CompletionStats:
    stats = CompletionStats()
    for summary in summaries:
        if summary.assigned_programs == 0:
            stats.no_assignments += 1
        elif summary.completed_programs == summary.assigned_programs:
            stats.fully_compliant += 1
        elif summary.completed_programs > 0:
            stats.partially_compliant += 1
        else:
            stats.non_compliant += 1
    return stats


def overall_compliance(summaries: Iterable[EmployeeProgressSummary]) -> int:
    with_assignments = [summary for summary in summaries if summary.assigned_programs > 0]
    compliant = [summary for summary in with_assignments if _is_compliant(summary)]
    return completion_rate(len(compliant), len(with_assignments))


def program_analytics(snapshot: TrainingSnapshot) -> list[ProgramAnalytics]:
    counts = snapshot.module_counts()
    per_program: dict[int, dict[int, list[ProgressRow]]] = defaultdict(dict)
    for employee_id, programs in _rows_by_employee_program(snapshot).items():
        for program_id, rows in programs.items():
            per_program[program_id][employee_id] = rows

    results: list[ProgramAnalytics] = []
    for program_id, program in snapshot.programs.items():
        holders = per_program.get(program_id, {})
        completed = 0
        durations: list[float] = []
        for rows in holders.values():
            if program_status(rows, counts[program_id]) != STATUS_COMPLETED:
                continue
            completed += 1
            started = [row.started_at for row in rows if row.started_at is not None]
            finished = [row.completed_at for row in rows if row.completed_at is not None]
            if started and finished:
                durations.append((max(finished) - min(started)).total_seconds() / 86400)
        results.append(
            ProgramAnalytics(
                program_id=program_id,
                name=program.name,
                module_count=counts[program_id],
                assigned_employees=len(holders),
                completed_employees=completed,
                completion_rate=completion_rate(completed, len(holders)),
                average_days_to_complete=(
                    round(sum(durations) / len(durations), 1) if durations else None
                ),
            )
        )
    results.sort(key=lambda item: (-item.assigned_employees, item.name.lower(), item.program_id))
    return results


def at_risk_employees(
    summaries: Iterable[EmployeeProgressSummary],
    *,
    threshold: int = 50,
    limit: int = 10,
) -> list[AtRiskEmployee]:
    flagged = [
        summary
        for summary in summaries
        if summary.assigned_programs > 0 and summary.completion_rate < threshold
    ]
    flagged.sort(key=lambda item: (item.completion_rate, item.last_name, item.first_name))
    return [
        AtRiskEmployee(
            employee_id=summary.employee_id,
            name=f"{summary.first_name} {summary.last_name}",
            department=department_label(summary.department),
            completion_rate=summary.completion_rate,
            assigned_programs=summary.assigned_programs,
        )
        for summary in flagged[:limit]
    ]


def outstanding_training(
    summaries: Iterable[EmployeeProgressSummary],
    *,
    limit: int = 10,
) -> list[OutstandingTraining]:
    pending = [summary for summary in summaries if summary.assigned_programs > summary.completed_programs]
    pending.sort(
        key=lambda item: (
            -(item.assigned_programs - item.completed_programs),
            item.last_name,
            item.first_name,
        )
    )
    return [
        OutstandingTraining(
            employee_id=summary.employee_id,
            name=f"{summary.first_name} {summary.last_name}",
            department=department_label(summary.department),
            outstanding_programs=summary.assigned_programs - summary.completed_programs,
        )
        for summary in pending[:limit]
    ]


def recent_completions(
    snapshot: TrainingSnapshot,
    *,
    since: datetime,
    limit: int = 10,
) -> list[RecentCompletion]:
    counts = snapshot.module_counts()
    employees = {employee.employee_id: employee for employee in snapshot.employees}
    completions: list[RecentCompletion] = []
    for employee_id, programs in _rows_by_employee_program(snapshot).items():
        for program_id, rows in programs.items():
            if program_status(rows, counts[program_id]) != STATUS_COMPLETED:
                continue
            finished = [row.completed_at for row in rows if row.completed_at is not None]
            if not finished or max(finished) < since:
                continue
            completions.append(
                RecentCompletion(
                    employee_id=employee_id,
                    employee_name=employees[employee_id].full_name,
                    program_id=program_id,
                    program_name=snapshot.programs[program_id].name,
                    completed_at=max(finished),
                )
            )
    completions.sort(key=lambda item: (item.completed_at, item.employee_id), reverse=True)
    return completions[:limit]


def dashboard_stats(snapshot: TrainingSnapshot) -> DashboardStats:
    counts = snapshot.module_counts()
    active = 0
    completed = 0
    for programs in _rows_by_employee_program(snapshot).values():
        for program_id, rows in programs.items():
            if program_status(rows, counts[program_id]) == STATUS_COMPLETED:
                completed += 1
            else:
                active += 1
    rows = live_rows(snapshot)
    done = sum(1 for row in rows if row.status == STATUS_COMPLETED)
    return DashboardStats(
        total_programs=len(snapshot.programs),
        total_modules=sum(counts.values()),
        total_employees=len(snapshot.employees),
        active_assignments=active,
        completed_assignments=completed,
        overall_completion_rate=completion_rate(done, len(rows)),
    )
