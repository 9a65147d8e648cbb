"""Named command boundary over the training services.

Every command takes a plain JSON-like payload and produces a ``CommandResult``
which renders as ``{"success": true, "data": ...}`` or
``{"success": false, "error": ...}``. Domain and payload errors never escape
``CommandDispatcher.dispatch``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel
from pydantic import ValidationError as PayloadValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from trainhub.domain.analytics import service as analytics_service
from trainhub.domain.analytics.schemas import ComplianceReportRequest
from trainhub.domain.assignments import service as assignment_service
from trainhub.domain.assignments.schemas import AssignProgramRequest
from trainhub.domain.employees import service as employee_service
from trainhub.domain.employees.schemas import (
    EmployeeCreateRequest,
    EmployeeRef,
    EmployeeResponse,
    EmployeeUpdateRequest,
)
from trainhub.domain.errors import DomainError, NotFoundError, ValidationError
from trainhub.domain.programs import service as program_service
from trainhub.domain.programs.schemas import (
    ModuleCreateRequest,
    ModuleRef,
    ModuleReorderRequest,
    ModuleResponse,
    ModuleUpdateRequest,
    ProgramCreateRequest,
    ProgramListRequest,
    ProgramRef,
    ProgramResponse,
    ProgramUpdateRequest,
)
from trainhub.domain.progress import service as progress_service
from trainhub.domain.progress.schemas import ProgressResponse, ProgressStatusRequest
from trainhub.infra.db import TrainingStore
from trainhub.infra.logging import log_context
from trainhub.settings import Settings

logger = logging.getLogger(__name__)

Handler = Callable[[AsyncSession, Any, Settings], Awaitable[Any]]


@dataclass(frozen=True)
class Command:
    name: str
    handler: Handler
    request_model: type[BaseModel] | None = None
    writes: bool = False

    def parse(self, payload: Any) -> BaseModel | None:
        if self.request_model is None:
            return None
        return self.request_model.model_validate({} if payload is None else payload)


COMMANDS: dict[str, Command] = {}


def command(name: str, request_model: type[BaseModel] | None = None, *, writes: bool = False):
    def decorator(func: Handler) -> Handler:
        COMMANDS[name] = Command(name=name, handler=func, request_model=request_model, writes=writes)
        return func

    return decorator


class CommandResult(BaseModel):
    success: bool
    data: Any = None
    error: str | None = None
    error_type: str | None = None
    errors: list[dict[str, Any]] = []

    @classmethod
    def failure(
        cls,
        error: str,
        error_type: str,
        errors: list[dict[str, Any]] | None = None,
    ) -> "CommandResult":
        return cls(success=False, error=error, error_type=error_type, errors=errors or [])

    def envelope(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.data}
        return {
            "success": False,
            "error": self.error,
            "error_type": self.error_type,
            "errors": self.errors,
        }


def _payload_errors(exc: PayloadValidationError) -> list[dict[str, Any]]:
    return [
        {
            "field": ".".join(str(part) for part in error["loc"]) or "payload",
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]


def _changes(request: BaseModel, key: str) -> dict[str, Any]:
    changes = request.model_dump(exclude_unset=True)
    changes.pop(key, None)
    return changes


# Programs and modules


@command("createProgram", ProgramCreateRequest, writes=True)
async def _create_program(session: AsyncSession, request: ProgramCreateRequest, _settings: Settings):
    program = await program_service.create_program(
        session, name=request.name, description=request.description
    )
    return ProgramResponse.model_validate(program).model_copy(update={"module_count": 0})


@command("listPrograms", ProgramListRequest)
async def _list_programs(session: AsyncSession, request: ProgramListRequest, _settings: Settings):
    if request.include_module_counts:
        return await analytics_service.list_programs_with_module_count(session)
    programs = await program_service.list_programs(session)
    return [ProgramResponse.model_validate(program) for program in programs]


@command("getProgram", ProgramRef)
async def _get_program(session: AsyncSession, request: ProgramRef, _settings: Settings):
    program = await program_service.get_program(session, request.program_id)
    count = await program_service.count_modules(session, program.program_id)
    return ProgramResponse.model_validate(program).model_copy(update={"module_count": count})


@command("updateProgram", ProgramUpdateRequest, writes=True)
async def _update_program(session: AsyncSession, request: ProgramUpdateRequest, _settings: Settings):
    program = await program_service.update_program(
        session, request.program_id, **_changes(request, "program_id")
    )
    return ProgramResponse.model_validate(program)


@command("deleteProgram", ProgramRef, writes=True)
async def _delete_program(session: AsyncSession, request: ProgramRef, _settings: Settings):
    await program_service.delete_program(session, request.program_id)
    return {"program_id": request.program_id, "deleted": True}


@command("createModule", ModuleCreateRequest, writes=True)
async def _create_module(session: AsyncSession, request: ModuleCreateRequest, _settings: Settings):
    module = await program_service.create_module(session, **request.model_dump())
    return ModuleResponse.model_validate(module)


@command("listModulesByProgram", ProgramRef)
async def _list_modules(session: AsyncSession, request: ProgramRef, _settings: Settings):
    modules = await program_service.list_modules_by_program(session, request.program_id)
    return [ModuleResponse.model_validate(module) for module in modules]


@command("updateModule", ModuleUpdateRequest, writes=True)
async def _update_module(session: AsyncSession, request: ModuleUpdateRequest, _settings: Settings):
    module = await program_service.update_module(
        session, request.module_id, **_changes(request, "module_id")
    )
    return ModuleResponse.model_validate(module)


@command("deleteModule", ModuleRef, writes=True)
async def _delete_module(session: AsyncSession, request: ModuleRef, _settings: Settings):
    await program_service.delete_module(session, request.module_id)
    return {"module_id": request.module_id, "deleted": True}


@command("reorderModule", ModuleReorderRequest, writes=True)
async def _reorder_module(session: AsyncSession, request: ModuleReorderRequest, _settings: Settings):
    module = await program_service.reorder_module(session, request.module_id, request.order_index)
    return ModuleResponse.model_validate(module)


# Employees


@command("createEmployee", EmployeeCreateRequest, writes=True)
async def _create_employee(session: AsyncSession, request: EmployeeCreateRequest, _settings: Settings):
    employee = await employee_service.create_employee(session, **request.model_dump())
    return EmployeeResponse.model_validate(employee)


@command("listEmployees")
async def _list_employees(session: AsyncSession, _request: None, _settings: Settings):
    employees = await employee_service.list_employees(session)
    return [EmployeeResponse.model_validate(employee) for employee in employees]


@command("getEmployee", EmployeeRef)
async def _get_employee(session: AsyncSession, request: EmployeeRef, _settings: Settings):
    employee = await employee_service.get_employee(session, request.employee_id)
    return EmployeeResponse.model_validate(employee)


@command("updateEmployee", EmployeeUpdateRequest, writes=True)
async def _update_employee(session: AsyncSession, request: EmployeeUpdateRequest, _settings: Settings):
    employee = await employee_service.update_employee(
        session, request.employee_id, **_changes(request, "employee_id")
    )
    return EmployeeResponse.model_validate(employee)


@command("deleteEmployee", EmployeeRef, writes=True)
async def _delete_employee(session: AsyncSession, request: EmployeeRef, _settings: Settings):
    await employee_service.soft_delete_employee(session, request.employee_id)
    return {"employee_id": request.employee_id, "deleted": True}


# Assignments and progress


@command("assignProgramToEmployee", AssignProgramRequest, writes=True)
async def _assign_program(session: AsyncSession, request: AssignProgramRequest, _settings: Settings):
    return await assignment_service.assign_program_to_employee(
        session, employee_id=request.employee_id, program_id=request.program_id
    )


@command("getEmployeeAssignments", EmployeeRef)
async def _employee_assignments(session: AsyncSession, request: EmployeeRef, _settings: Settings):
    return await analytics_service.get_employee_assignments(session, request.employee_id)


@command("getEmployeeProgress", EmployeeRef)
async def _employee_progress(session: AsyncSession, request: EmployeeRef, _settings: Settings):
    rows = await analytics_service.list_progress(session, request.employee_id)
    return [ProgressResponse.model_validate(row) for row in rows]


@command("setProgressStatus", ProgressStatusRequest, writes=True)
async def _set_progress_status(session: AsyncSession, request: ProgressStatusRequest, settings: Settings):
    progress = await progress_service.set_progress_status(
        session,
        employee_id=request.employee_id,
        module_id=request.module_id,
        status=request.status,
        score=request.score,
        allow_regression=settings.allow_status_regression,
    )
    return ProgressResponse.model_validate(progress)


# Reports


@command("listEmployeesWithProgress")
async def _employees_with_progress(session: AsyncSession, _request: None, _settings: Settings):
    return await analytics_service.list_employees_with_progress_summary(session)


@command("getDepartmentCompliance")
async def _department_compliance(session: AsyncSession, _request: None, _settings: Settings):
    return await analytics_service.get_department_compliance(session)


@command("getCompletionSummary")
async def _completion_summary(session: AsyncSession, _request: None, _settings: Settings):
    return await analytics_service.get_completion_summary(session)


@command("getEmployeeProgressReport")
async def _employee_progress_report(session: AsyncSession, _request: None, _settings: Settings):
    return await analytics_service.get_employee_progress_report(session)


@command("getProgramAnalytics")
async def _program_analytics(session: AsyncSession, _request: None, _settings: Settings):
    return await analytics_service.get_program_analytics(session)


@command("getComplianceReport", ComplianceReportRequest)
async def _compliance_report(session: AsyncSession, request: ComplianceReportRequest, settings: Settings):
    return await analytics_service.get_compliance_report(
        session,
        period_days=request.period_days or settings.recent_completion_days,
        at_risk_threshold=settings.at_risk_threshold_percent,
        limit=settings.report_list_limit,
    )


@command("getDashboardStats")
async def _dashboard_stats(session: AsyncSession, _request: None, _settings: Settings):
    return await analytics_service.get_dashboard_stats(session)


class CommandDispatcher:
    """Runs named commands against a store, one session or transaction each."""

    def __init__(self, store: TrainingStore, settings: Settings) -> None:
        self.store = store
        self.settings = settings

    @staticmethod
    def command_names() -> list[str]:
        return sorted(COMMANDS)

    @staticmethod
    def has_command(name: str) -> bool:
        return name in COMMANDS

    async def _run(self, entry: Command, request: BaseModel | None) -> Any:
        if entry.writes:
            async with self.store.transaction() as session:
                return await entry.handler(session, request, self.settings)
        async with self.store.session() as session:
            return await entry.handler(session, request, self.settings)

    async def dispatch(self, name: str, payload: Any = None) -> CommandResult:
        entry = COMMANDS.get(name)
        if entry is None:
            logger.info("command_unknown", extra={"extra": {"command": name}})
            return CommandResult.failure("unknown_command", NotFoundError.code)

        try:
            with log_context(command=name):
                request = entry.parse(payload)
                result = await self._run(entry, request)
        except PayloadValidationError as exc:
            errors = _payload_errors(exc)
            logger.info(
                "command_rejected",
                extra={"extra": {"command": name, "fields": [error["field"] for error in errors]}},
            )
            return CommandResult.failure("invalid_payload", ValidationError.code, errors)
        except DomainError as exc:
            logger.info(
                "command_failed",
                extra={"extra": {"command": name, "error": exc.detail, "error_type": exc.code}},
            )
            return CommandResult.failure(exc.detail, exc.code, exc.errors)
        except Exception:  # noqa: BLE001
            logger.exception("command_crashed", extra={"extra": {"command": name}})
            return CommandResult.failure("internal_error", "internal_error")

        return CommandResult(success=True, data=jsonable_encoder(result))
