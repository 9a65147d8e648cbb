import logging
from dataclasses import replace

import pytest

from trainhub.api.commands import COMMANDS, CommandDispatcher
from trainhub.infra.logging import clear_log_context, current_log_context

REQUIRED_COMMANDS = {
    "createProgram",
    "listPrograms",
    "createModule",
    "listModulesByProgram",
    "updateModule",
    "deleteModule",
    "reorderModule",
    "createEmployee",
    "listEmployees",
    "getEmployee",
    "updateEmployee",
    "deleteEmployee",
    "assignProgramToEmployee",
    "getEmployeeAssignments",
    "setProgressStatus",
}


def test_required_commands_are_registered():
    assert REQUIRED_COMMANDS <= set(COMMANDS)


async def _ok(dispatcher: CommandDispatcher, name: str, payload=None):
    result = await dispatcher.dispatch(name, payload)
    assert result.success, result.envelope()
    return result.envelope()["data"]


@pytest.mark.anyio
async def test_full_training_flow_through_commands(dispatcher):
    program = await _ok(dispatcher, "createProgram", {"name": "Onboarding"})
    module_ids = []
    for index, (name, duration) in enumerate((("A", 10), ("B", 20), ("C", 30))):
        module = await _ok(
            dispatcher,
            "createModule",
            {
                "program_id": program["program_id"],
                "name": name,
                "order_index": index,
                "duration_minutes": duration,
            },
        )
        module_ids.append(module["module_id"])
    employee = await _ok(
        dispatcher,
        "createEmployee",
        {"first_name": "Jane", "last_name": "Doe", "email": "jane@example.com", "department": "Ops"},
    )

    assigned = await _ok(
        dispatcher,
        "assignProgramToEmployee",
        {"employee_id": employee["employee_id"], "program_id": program["program_id"]},
    )
    assert assigned["modules_assigned"] == 3

    progress = await _ok(
        dispatcher,
        "setProgressStatus",
        {
            "employee_id": employee["employee_id"],
            "module_id": module_ids[0],
            "status": "completed",
            "score": 90,
        },
    )
    assert progress["status"] == "completed"
    assert progress["attempts"] == 1
    assert progress["completed_at"] is not None

    [assignment] = await _ok(
        dispatcher, "getEmployeeAssignments", {"employee_id": employee["employee_id"]}
    )
    assert assignment["total_modules"] == 3
    assert assignment["completed_modules"] == 1
    assert assignment["completion_rate"] == 33
    assert assignment["status"] == "in_progress"

    programs = await _ok(dispatcher, "listPrograms")
    assert programs[0]["module_count"] == 3

    modules = await _ok(dispatcher, "listModulesByProgram", {"program_id": program["program_id"]})
    assert [module["name"] for module in modules] == ["A", "B", "C"]

    dashboard = await _ok(dispatcher, "getDashboardStats")
    assert dashboard["overall_completion_rate"] == 33


@pytest.mark.anyio
async def test_module_edits_through_commands(dispatcher):
    program = await _ok(dispatcher, "createProgram", {"name": "Edits"})
    module = await _ok(dispatcher, "createModule", {"program_id": program["program_id"], "name": "Draft"})

    updated = await _ok(
        dispatcher, "updateModule", {"module_id": module["module_id"], "description": "Now with text"}
    )
    assert updated["name"] == "Draft"
    assert updated["description"] == "Now with text"

    rejected = await dispatcher.dispatch("updateModule", {"module_id": module["module_id"], "required": None})
    assert rejected.error == "invalid_required"

    reordered = await _ok(dispatcher, "reorderModule", {"module_id": module["module_id"], "order_index": 4})
    assert reordered["order_index"] == 4

    deleted = await _ok(dispatcher, "deleteModule", {"module_id": module["module_id"]})
    assert deleted == {"module_id": module["module_id"], "deleted": True}
    assert await _ok(dispatcher, "listModulesByProgram", {"program_id": program["program_id"]}) == []


@pytest.mark.anyio
async def test_employee_commands(dispatcher):
    employee = await _ok(dispatcher, "createEmployee", {"first_name": "Kai", "last_name": "Moe"})

    fetched = await _ok(dispatcher, "getEmployee", {"employee_id": employee["employee_id"]})
    assert fetched["first_name"] == "Kai"

    updated = await _ok(
        dispatcher, "updateEmployee", {"employee_id": employee["employee_id"], "position": "Driver"}
    )
    assert updated["position"] == "Driver"
    assert updated["last_name"] == "Moe"

    await _ok(dispatcher, "deleteEmployee", {"employee_id": employee["employee_id"]})
    assert await _ok(dispatcher, "listEmployees") == []

    result = await dispatcher.dispatch("getEmployee", {"employee_id": employee["employee_id"]})
    assert result.envelope() == {
        "success": False,
        "error": "employee_not_found",
        "error_type": "not_found_error",
        "errors": [],
    }


@pytest.mark.anyio
async def test_domain_errors_become_failure_envelopes(dispatcher):
    blank = await dispatcher.dispatch("createProgram", {"name": "  "})
    assert (blank.success, blank.error, blank.error_type) == (False, "name_required", "validation_error")

    await _ok(dispatcher, "createEmployee", {"first_name": "A", "last_name": "B", "email": "a@example.com"})
    duplicate = await dispatcher.dispatch(
        "createEmployee", {"first_name": "C", "last_name": "D", "email": "A@example.com"}
    )
    assert (duplicate.error, duplicate.error_type) == ("email_in_use", "conflict_error")

    status = await dispatcher.dispatch(
        "setProgressStatus", {"employee_id": 1, "module_id": 1, "status": "paused"}
    )
    assert (status.error, status.error_type) == ("invalid_status", "validation_error")


@pytest.mark.anyio
async def test_invalid_payloads_are_reported_per_field(dispatcher):
    result = await dispatcher.dispatch("createModule", {"name": "No program", "duration_minutes": -1})

    assert result.success is False
    assert result.error == "invalid_payload"
    assert result.error_type == "validation_error"
    assert {error["field"] for error in result.errors} == {"program_id", "duration_minutes"}

    not_an_object = await dispatcher.dispatch("getEmployee", ["not", "a", "dict"])
    assert not_an_object.error == "invalid_payload"


@pytest.mark.anyio
async def test_unknown_command(dispatcher):
    result = await dispatcher.dispatch("launchRocket", {})
    assert result.envelope()["success"] is False
    assert result.error == "unknown_command"
    assert not dispatcher.has_command("launchRocket")


@pytest.mark.anyio
async def test_unexpected_errors_are_contained(dispatcher, monkeypatch, caplog):
    async def explode(session, request, settings):
        raise RuntimeError("boom")

    entry = COMMANDS["listEmployees"]
    monkeypatch.setitem(COMMANDS, "listEmployees", replace(entry, handler=explode))

    with caplog.at_level(logging.ERROR, logger="trainhub.api.commands"):
        result = await dispatcher.dispatch("listEmployees")

    assert result.envelope()["success"] is False
    assert result.error == "internal_error"
    assert any(record.getMessage() == "command_crashed" for record in caplog.records)


@pytest.mark.anyio
async def test_command_name_is_bound_only_while_it_runs(dispatcher, monkeypatch):
    seen = {}

    async def capture(session, request, settings):
        seen.update(current_log_context())
        return []

    entry = COMMANDS["listEmployees"]
    monkeypatch.setitem(COMMANDS, "listEmployees", replace(entry, handler=capture))
    clear_log_context()

    result = await dispatcher.dispatch("listEmployees")

    assert result.success is True
    assert seen == {"command": "listEmployees"}
    assert current_log_context() == {}


@pytest.mark.anyio
async def test_regression_setting_is_applied(store, test_settings):
    strict = CommandDispatcher(store, test_settings.model_copy(update={"allow_status_regression": False}))
    program = await _ok(strict, "createProgram", {"name": "Strict"})
    module = await _ok(strict, "createModule", {"program_id": program["program_id"], "name": "Only"})
    employee = await _ok(strict, "createEmployee", {"first_name": "Ed", "last_name": "Ng"})
    await _ok(
        strict,
        "assignProgramToEmployee",
        {"employee_id": employee["employee_id"], "program_id": program["program_id"]},
    )
    key = {"employee_id": employee["employee_id"], "module_id": module["module_id"]}
    await _ok(strict, "setProgressStatus", {**key, "status": "completed"})

    result = await strict.dispatch("setProgressStatus", {**key, "status": "not_started"})
    assert result.error == "invalid_status_transition"


@pytest.mark.anyio
async def test_compliance_report_command(dispatcher):
    report = await _ok(dispatcher, "getComplianceReport", {"period_days": 7})
    assert report["overall_compliance"] == 0
    assert report["departments"] == []

    rejected = await dispatcher.dispatch("getComplianceReport", {"period_days": 0})
    assert rejected.error == "invalid_payload"
