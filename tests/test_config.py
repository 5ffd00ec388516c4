import pytest

from wikicore.config import DatabaseSettings, Settings

ENV_VARS = [
    "WIKIFEAT_COUCHDB_URL",
    "WIKIFEAT_COUCHDB_USER",
    "WIKIFEAT_COUCHDB_PASSWORD",
    "WIKIFEAT_MAIN_DB",
    "WIKIFEAT_COUCHDB_TIMEOUT",
    "WIKIFEAT_COUCHDB_RETRIES",
    "WIKIFEAT_RENDER_WORKERS",
    "WIKIFEAT_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings.from_env(dotenv=False)

    assert settings.database.url == "http://localhost:5984"
    assert settings.database.main_db == "wikifeat_main_db"
    assert settings.database.timeout_s == 10
    assert settings.database.retries == 3
    assert settings.renderer.workers == 4
    assert settings.log.level == "INFO"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("WIKIFEAT_COUCHDB_URL", "http://couch:5984/")
    monkeypatch.setenv("WIKIFEAT_COUCHDB_USER", "admin")
    monkeypatch.setenv("WIKIFEAT_COUCHDB_PASSWORD", "pw")
    monkeypatch.setenv("WIKIFEAT_MAIN_DB", "main")
    monkeypatch.setenv("WIKIFEAT_COUCHDB_RETRIES", "0")
    monkeypatch.setenv("WIKIFEAT_RENDER_WORKERS", "0")
    monkeypatch.setenv("WIKIFEAT_LOG_LEVEL", "debug")

    settings = Settings.from_env(dotenv=False)

    assert settings.database.url == "http://couch:5984"
    assert (settings.database.admin_user, settings.database.admin_password) == ("admin", "pw")
    assert settings.database.main_db == "main"
    assert settings.database.retries == 0
    assert settings.renderer.workers == 1
    assert settings.log.level == "DEBUG"


def test_blank_values_fall_back(monkeypatch):
    monkeypatch.setenv("WIKIFEAT_MAIN_DB", "")
    monkeypatch.setenv("WIKIFEAT_COUCHDB_TIMEOUT", "  ")

    db = DatabaseSettings.from_env()
    assert db.main_db == "wikifeat_main_db"
    assert db.timeout_s == 10


def test_bad_integer_names_variable(monkeypatch):
    monkeypatch.setenv("WIKIFEAT_COUCHDB_TIMEOUT", "soon")

    with pytest.raises(ValueError, match="WIKIFEAT_COUCHDB_TIMEOUT"):
        Settings.from_env(dotenv=False)
