"""
Pytest configuration for check-in leaderboard tests.
"""

import json

import pytest

from checkin import (
    CheckinBoardSystem,
    CheckinConfig,
    DatabaseManager,
    EntryStore,
    QRArtifactGenerator,
    ScanEngine,
    ScanLedger,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the host environment from leaking into configuration."""
    for env_var in CheckinConfig.ENV_MAPPINGS:
        monkeypatch.delenv(env_var, raising=False)


@pytest.fixture
def make_config(tmp_path):
    """Factory writing a JSON config file and loading it."""

    def _make(settings=None):
        path = tmp_path / "checkin_config.json"
        path.write_text(json.dumps(settings or {}), encoding="utf-8")
        return CheckinConfig(str(path))

    return _make


@pytest.fixture
def config(make_config):
    return make_config({"artifact": {"qr_size": 200, "name_height": 40, "padding": 10}})


@pytest.fixture
async def database(tmp_path, config):
    db = DatabaseManager(str(tmp_path / "data.db"), config)
    await db.init_db()
    yield db
    await db.close()


@pytest.fixture
def entries(database):
    return EntryStore(database)


@pytest.fixture
def ledger(database):
    return ScanLedger(database)


@pytest.fixture
def engine(entries, ledger):
    return ScanEngine(entries, ledger, dedup_by_origin=True)


@pytest.fixture
def artifacts(entries, config):
    return QRArtifactGenerator(entries, config)


@pytest.fixture
async def system(tmp_path, make_config):
    """Full system with an admin password and trusted X-Forwarded-For."""
    cfg = make_config(
        {
            "admin": {"password": "secret"},
            "scanning": {"trust_forwarded_for": True},
            "artifact": {"qr_size": 200, "name_height": 40, "padding": 10},
        }
    )
    board = CheckinBoardSystem(db_path=str(tmp_path / "board.db"), config=cfg)
    await board.init_db()
    yield board
    await board.close()


@pytest.fixture
async def client(aiohttp_client, system):
    return await aiohttp_client(system.build_app())


@pytest.fixture
def admin_headers():
    return {"X-Admin-Password": "secret"}
