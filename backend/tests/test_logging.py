import io
import json
import logging
import sys

import pytest

from trainhub.infra.logging import (
    RedactingJsonFormatter,
    clear_log_context,
    configure_logging,
    current_log_context,
    log_context,
    redact_text,
    update_log_context,
)


def _record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("trainhub.test", logging.INFO, __file__, 1, message, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def _fresh_context():
    clear_log_context()
    yield
    clear_log_context()


def test_redact_text_masks_emails():
    redacted = redact_text("contact jane@example.com about module 3")

    assert redacted == "contact [REDACTED_EMAIL] about module 3"


def test_formatter_merges_context_and_masks_employee_fields():
    formatter = RedactingJsonFormatter()
    update_log_context(command="createEmployee", request_id="req-1")
    payload = json.loads(
        formatter.format(
            _record(
                "employee_created",
                extra={
                    "employee_id": 7,
                    "email": "jane@example.com",
                    "employee_name": "Jane Doe",
                    "department": "Sales",
                    "note": "mail bob@example.com",
                },
            )
        )
    )

    assert payload["message"] == "employee_created"
    assert payload["command"] == "createEmployee"
    assert payload["request_id"] == "req-1"
    assert payload["employee_id"] == 7
    assert payload["email"] == "[REDACTED]"
    assert payload["employee_name"] == "[REDACTED]"
    assert payload["department"] == "Sales"
    assert payload["note"] == "mail [REDACTED_EMAIL]"


def test_nested_employee_fields_are_masked():
    formatter = RedactingJsonFormatter()
    payload = json.loads(
        formatter.format(
            _record("at_risk", extra={"employees": [{"employee_id": 1, "first_name": "Jane"}]})
        )
    )

    assert payload["employees"] == [{"employee_id": 1, "first_name": "[REDACTED]"}]


def test_formatter_includes_exception_text():
    formatter = RedactingJsonFormatter()
    try:
        raise RuntimeError("boom for jane@example.com")
    except RuntimeError:
        record = logging.LogRecord(
            "trainhub.test", logging.ERROR, __file__, 1, "command_crashed", (), sys.exc_info()
        )

    payload = json.loads(formatter.format(record))
    assert "RuntimeError: boom for [REDACTED_EMAIL]" in payload["exc_info"]


def test_update_log_context_skips_none_values():
    context = update_log_context(command="listPrograms", request_id=None)

    assert context == {"command": "listPrograms"}


def test_log_context_restores_outer_fields():
    update_log_context(request_id="req-9")

    with log_context(command="assignProgramToEmployee", request_id=None) as bound:
        assert bound == {"request_id": "req-9", "command": "assignProgramToEmployee"}

    assert current_log_context() == {"request_id": "req-9"}


def test_configure_logging_writes_json_lines():
    stream = io.StringIO()
    root = logging.getLogger()
    previous_handlers, previous_level = list(root.handlers), root.level
    try:
        configure_logging("INFO", stream=stream)
        logging.getLogger("trainhub.test").info("store_opened", extra={"extra": {"backend": "sqlite"}})
    finally:
        root.handlers[:] = previous_handlers
        root.setLevel(previous_level)

    line = json.loads(stream.getvalue().strip())
    assert line["message"] == "store_opened"
    assert line["backend"] == "sqlite"
    assert line["level"] == "INFO"
