import json

import pytest

from trainhub import cli
from trainhub.settings import Settings


def _settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}",
        log_level="WARNING",
        _env_file=None,
    )


@pytest.mark.anyio
async def test_cli_call_prints_envelope(tmp_path, capsys):
    app_settings = _settings(tmp_path)

    assert await cli.run(["init-db"], app_settings=app_settings) == 0
    exit_code = await cli.run(
        ["call", "createProgram", "--payload", json.dumps({"name": "Onboarding"})],
        app_settings=app_settings,
    )

    assert exit_code == 0
    envelope = json.loads(capsys.readouterr().out)
    assert envelope["success"] is True
    assert envelope["data"]["name"] == "Onboarding"


@pytest.mark.anyio
async def test_cli_call_failure_sets_exit_code(tmp_path, capsys):
    exit_code = await cli.run(
        ["call", "getEmployee", "--payload", '{"employee_id": 1}'],
        app_settings=_settings(tmp_path),
    )

    assert exit_code == 1
    assert json.loads(capsys.readouterr().out)["error"] == "employee_not_found"


@pytest.mark.anyio
async def test_cli_lists_commands(capsys, tmp_path):
    assert await cli.run(["commands"], app_settings=_settings(tmp_path)) == 0
    assert "setProgressStatus" in capsys.readouterr().out.split()


@pytest.mark.anyio
async def test_cli_rejects_bad_payload(tmp_path):
    with pytest.raises(SystemExit):
        await cli.run(["call", "createProgram", "--payload", "[1, 2]"], app_settings=_settings(tmp_path))
