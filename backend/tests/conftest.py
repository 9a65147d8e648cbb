import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
from fastapi.testclient import TestClient

from trainhub.api.commands import CommandDispatcher
from trainhub.infra.db import TrainingStore
from trainhub.main import create_app
from trainhub.settings import Settings


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        app_env="test",
        database_url="sqlite+aiosqlite://",
        database_auto_create=True,
        log_level="WARNING",
        _env_file=None,
    )


@pytest.fixture
async def store(anyio_backend, test_settings):
    training_store = TrainingStore(test_settings.database_url)
    await training_store.open()
    await training_store.create_all()
    yield training_store
    await training_store.close()


@pytest.fixture
def dispatcher(store, test_settings) -> CommandDispatcher:
    return CommandDispatcher(store, test_settings)


@pytest.fixture
def client(tmp_path):
    app_settings = Settings(
        app_env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'trainhub-test.db'}",
        log_level="WARNING",
        _env_file=None,
    )
    app = create_app(app_settings)
    with TestClient(app) as test_client:
        yield test_client
