from datetime import datetime, timedelta, timezone

from trainhub.domain.analytics import aggregation
from trainhub.domain.analytics.aggregation import (
    EmployeeRef,
    ModuleRef,
    ProgramRef,
    ProgressRow,
    TrainingSnapshot,
)

T0 = datetime(2025, 1, 6, 9, 0, tzinfo=timezone.utc)


def _onboarding_snapshot(statuses: dict[int, str]) -> TrainingSnapshot:
    modules = {
        1: ModuleRef(module_id=1, program_id=10, name="A", order_index=0, duration_minutes=10),
        2: ModuleRef(module_id=2, program_id=10, name="B", order_index=1, duration_minutes=20),
        3: ModuleRef(module_id=3, program_id=10, name="C", order_index=2, duration_minutes=30),
    }
    progress = tuple(
        ProgressRow(
            progress_id=100 + module_id,
            employee_id=1,
            module_id=module_id,
            program_id=10,
            status=status,
            started_at=T0,
            completed_at=T0 + timedelta(days=module_id) if status == "completed" else None,
        )
        for module_id, status in statuses.items()
    )
    return TrainingSnapshot(
        programs={10: ProgramRef(program_id=10, name="Onboarding")},
        modules=modules,
        employees=(EmployeeRef(employee_id=1, first_name="Jane", last_name="Doe", department="Engineering"),),
        progress=progress,
    )


def test_completion_rate_rounds_half_up_and_guards_zero():
    assert aggregation.completion_rate(0, 0) == 0
    assert aggregation.completion_rate(1, 3) == 33
    assert aggregation.completion_rate(2, 3) == 67
    assert aggregation.completion_rate(1, 8) == 13
    assert aggregation.completion_rate(3, 3) == 100


def test_program_status_rules():
    def row(status):
        return ProgressRow(progress_id=1, employee_id=1, module_id=1, program_id=1, status=status)

    assert aggregation.program_status([row("completed")] * 2, 2) == "completed"
    assert aggregation.program_status([row("completed"), row("not_started")], 2) == "in_progress"
    assert aggregation.program_status([row("not_started")] * 2, 2) == "not_started"
    assert aggregation.program_status([], 0) == "not_started"


def test_onboarding_scenario():
    snapshot = _onboarding_snapshot({1: "completed", 2: "not_started", 3: "not_started"})
    summary = aggregation.employee_summary(snapshot, snapshot.employees[0])
    assert (summary.completed_modules, summary.total_modules, summary.completion_rate) == (1, 3, 33)

    snapshot = _onboarding_snapshot({1: "completed", 2: "in_progress", 3: "not_started"})
    [assignment] = aggregation.employee_assignments(snapshot, 1)
    assert assignment.status == "in_progress"
    assert [item.module_name for item in assignment.modules] == ["A", "B", "C"]

    snapshot = _onboarding_snapshot({1: "completed", 2: "completed", 3: "completed"})
    [assignment] = aggregation.employee_assignments(snapshot, 1)
    summary = aggregation.employee_summary(snapshot, snapshot.employees[0])
    assert assignment.status == "completed"
    assert assignment.completed_at == T0 + timedelta(days=3)
    assert summary.completion_rate == 100
    assert summary.completed_programs == 1
    assert summary.status == "compliant"


def test_employee_without_rows_has_zero_rate():
    snapshot = TrainingSnapshot(
        employees=(EmployeeRef(employee_id=5, first_name="New", last_name="Hire"),),
    )
    summary = aggregation.employee_summary(snapshot, snapshot.employees[0])
    assert summary.total_modules == 0
    assert summary.completion_rate == 0
    assert summary.status == "no_assignments"


def test_orphaned_and_inactive_program_rows_are_skipped():
    snapshot = _onboarding_snapshot({1: "completed", 2: "completed", 3: "completed"})
    orphaned = TrainingSnapshot(
        programs=snapshot.programs,
        modules={key: value for key, value in snapshot.modules.items() if key != 3},
        employees=snapshot.employees,
        progress=snapshot.progress
        + (ProgressRow(progress_id=500, employee_id=1, module_id=77, program_id=99, status="completed"),),
    )

    rows = aggregation.live_rows(orphaned)
    assert sorted(row.module_id for row in rows) == [1, 2]
    [assignment] = aggregation.employee_assignments(orphaned, 1)
    assert assignment.total_modules == 2
    assert assignment.status == "completed"


def test_assignments_order_newest_start_first_then_undated_by_row():
    programs = {pid: ProgramRef(program_id=pid, name=f"P{pid}") for pid in (1, 2, 3, 4)}
    modules = {pid: ModuleRef(module_id=pid, program_id=pid, name=f"M{pid}") for pid in programs}
    progress = (
        ProgressRow(progress_id=1, employee_id=1, module_id=1, program_id=1, started_at=T0),
        ProgressRow(progress_id=2, employee_id=1, module_id=2, program_id=2),
        ProgressRow(progress_id=3, employee_id=1, module_id=3, program_id=3, started_at=T0 + timedelta(days=1)),
        ProgressRow(progress_id=4, employee_id=1, module_id=4, program_id=4),
    )
    snapshot = TrainingSnapshot(
        programs=programs,
        modules=modules,
        employees=(EmployeeRef(employee_id=1, first_name="A", last_name="B"),),
        progress=progress,
    )

    ordered = [item.program_id for item in aggregation.employee_assignments(snapshot, 1)]
    assert ordered == [3, 1, 4, 2]


def test_department_rollup_excludes_employees_without_assignments():
    snapshot = TrainingSnapshot(
        programs={1: ProgramRef(program_id=1, name="Safety")},
        modules={1: ModuleRef(module_id=1, program_id=1, name="Only")},
        employees=(
            EmployeeRef(employee_id=1, first_name="Ada", last_name="One", department="Engineering"),
            EmployeeRef(employee_id=2, first_name="Bo", last_name="Two", department="Engineering"),
            EmployeeRef(employee_id=3, first_name="Cy", last_name="Three", department="  "),
        ),
        progress=(
            ProgressRow(progress_id=1, employee_id=1, module_id=1, program_id=1, status="completed"),
            ProgressRow(progress_id=2, employee_id=3, module_id=1, program_id=1, status="in_progress"),
        ),
    )

    rollup = {item.department: item for item in aggregation.department_compliance(snapshot)}

    engineering = rollup["Engineering"]
    assert engineering.total_employees == 2
    assert engineering.employees_with_assignments == 1
    assert engineering.compliance_rate == 100
    assert engineering.average_completion == 50
    assert rollup[aggregation.NO_DEPARTMENT].compliance_rate == 0
    assert list(rollup) == ["Engineering", aggregation.NO_DEPARTMENT]


def test_report_helpers():
    snapshot = TrainingSnapshot(
        programs={
            1: ProgramRef(program_id=1, name="Safety"),
            2: ProgramRef(program_id=2, name="Ethics"),
        },
        modules={
            1: ModuleRef(module_id=1, program_id=1, name="S1"),
            2: ModuleRef(module_id=2, program_id=2, name="E1"),
            3: ModuleRef(module_id=3, program_id=2, name="E2"),
        },
        employees=(
            EmployeeRef(employee_id=1, first_name="Ada", last_name="One"),
            EmployeeRef(employee_id=2, first_name="Bo", last_name="Two"),
            EmployeeRef(employee_id=3, first_name="Cy", last_name="Three"),
        ),
        progress=(
            ProgressRow(
                progress_id=1,
                employee_id=1,
                module_id=1,
                program_id=1,
                status="completed",
                started_at=T0,
                completed_at=T0 + timedelta(days=2),
            ),
            ProgressRow(progress_id=2, employee_id=2, module_id=1, program_id=1, status="not_started"),
            ProgressRow(
                progress_id=3,
                employee_id=2,
                module_id=2,
                program_id=2,
                status="completed",
                completed_at=T0,
            ),
            ProgressRow(progress_id=4, employee_id=2, module_id=3, program_id=2, status="not_started"),
        ),
    )
    summaries = aggregation.employee_summaries(snapshot)

    stats = aggregation.completion_stats(summaries)
    assert (stats.fully_compliant, stats.partially_compliant, stats.non_compliant, stats.no_assignments) == (
        1,
        0,
        1,
        1,
    )
    assert aggregation.overall_compliance(summaries) == 50

    analytics = aggregation.program_analytics(snapshot)
    safety = next(item for item in analytics if item.name == "Safety")
    assert safety.assigned_employees == 2
    assert safety.completed_employees == 1
    assert safety.completion_rate == 50
    assert safety.average_days_to_complete == 2.0
    assert analytics[0].name == "Safety"

    at_risk = aggregation.at_risk_employees(summaries, threshold=50)
    assert [item.employee_id for item in at_risk] == [2]
    assert at_risk[0].department == aggregation.NO_DEPARTMENT

    outstanding = aggregation.outstanding_training(summaries)
    assert [(item.employee_id, item.outstanding_programs) for item in outstanding] == [(2, 2)]

    recent = aggregation.recent_completions(snapshot, since=T0 + timedelta(days=1))
    assert [(item.employee_id, item.program_id) for item in recent] == [(1, 1)]

    dashboard = aggregation.dashboard_stats(snapshot)
    assert dashboard.total_programs == 2
    assert dashboard.total_modules == 3
    assert dashboard.completed_assignments == 1
    assert dashboard.active_assignments == 2
    assert dashboard.overall_completion_rate == 50
