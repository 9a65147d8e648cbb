from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

from trainhub.domain.programs.schemas import ProgramResponse

ProgressStatus = Literal["not_started", "in_progress", "completed"]
EmployeeTrainingStatus = Literal["no_assignments", "compliant", "in_progress", "not_started"]


class ModuleProgressItem(BaseModel):
    progress_id: int
    module_id: int
    module_name: str
    order_index: int
    required: bool
    duration_minutes: int
    status: ProgressStatus
    started_at: datetime | None = None
    completed_at: datetime | None = None
    score: float | None = None
    attempts: int = 0


class EmployeeAssignment(BaseModel):
    program_id: int
    program_name: str
    status: ProgressStatus
    total_modules: int
    completed_modules: int
    in_progress_modules: int
    completion_rate: int
    assigned_at: datetime | None = None
    completed_at: datetime | None = None
    modules: list[ModuleProgressItem]


class EmployeeProgressSummary(BaseModel):
    employee_id: int
    first_name: str
    last_name: str
    email: str | None = None
    hire_date: date | None = None
    department: str | None = None
    position: str | None = None
    assigned_programs: int
    completed_programs: int
    total_modules: int
    completed_modules: int
    completion_rate: int
    status: EmployeeTrainingStatus


class DepartmentCompliance(BaseModel):
    department: str
    total_employees: int
    employees_with_assignments: int
    compliant_employees: int
    compliance_rate: int
    average_completion: int


class CompletionStats(BaseModel):
    fully_compliant: int = 0
    partially_compliant: int = 0
    non_compliant: int = 0
    no_assignments: int = 0


class ProgramAnalytics(BaseModel):
    program_id: int
    name: str
    module_count: int
    assigned_employees: int
    completed_employees: int
    completion_rate: int
    average_days_to_complete: float | None = None


class AtRiskEmployee(BaseModel):
    employee_id: int
    name: str
    department: str
    completion_rate: int
    assigned_programs: int


class OutstandingTraining(BaseModel):
    employee_id: int
    name: str
    department: str
    outstanding_programs: int


class RecentCompletion(BaseModel):
    employee_id: int
    employee_name: str
    program_id: int
    program_name: str
    completed_at: datetime


class DashboardStats(BaseModel):
    total_programs: int
    total_modules: int
    total_employees: int
    active_assignments: int
    completed_assignments: int
    overall_completion_rate: int


class CompletionSummaryReport(BaseModel):
    generated_at: datetime
    total_employees: int
    total_programs: int
    completion_stats: CompletionStats
    programs: list[ProgramResponse]
    departments: list[DepartmentCompliance]


class EmployeeProgressReport(BaseModel):
    generated_at: datetime
    employees: list[EmployeeProgressSummary]


class ComplianceReportRequest(BaseModel):
    period_days: int | None = Field(None, gt=0)


class ComplianceReport(BaseModel):
    generated_at: datetime
    period_start: datetime
    period_end: datetime
    overall_compliance: int
    completion_stats: CompletionStats
    departments: list[DepartmentCompliance]
    outstanding_training: list[OutstandingTraining]
    recent_completions: list[RecentCompletion]
    at_risk_employees: list[AtRiskEmployee]
