from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


@dataclass
class DatabaseSettings:
    url: str = "http://localhost:5984"
    admin_user: str = ""
    admin_password: str = ""
    main_db: str = "wikifeat_main_db"
    timeout_s: int = 10
    retries: int = 3

    @classmethod
    def from_env(cls) -> DatabaseSettings:
        return cls(
            url=os.getenv("WIKIFEAT_COUCHDB_URL", "http://localhost:5984").rstrip("/"),
            admin_user=os.getenv("WIKIFEAT_COUCHDB_USER", ""),
            admin_password=os.getenv("WIKIFEAT_COUCHDB_PASSWORD", ""),
            main_db=os.getenv("WIKIFEAT_MAIN_DB", "") or "wikifeat_main_db",
            timeout_s=_env_int("WIKIFEAT_COUCHDB_TIMEOUT", 10),
            retries=_env_int("WIKIFEAT_COUCHDB_RETRIES", 3),
        )


@dataclass
class RendererSettings:
    workers: int = 4

    @classmethod
    def from_env(cls) -> RendererSettings:
        return cls(workers=max(1, _env_int("WIKIFEAT_RENDER_WORKERS", 4)))


@dataclass
class LogSettings:
    level: str = "INFO"

    @classmethod
    def from_env(cls) -> LogSettings:
        return cls(level=os.getenv("WIKIFEAT_LOG_LEVEL", "INFO").upper())


@dataclass
class Settings:
    database: DatabaseSettings
    renderer: RendererSettings
    log: LogSettings

    @classmethod
    def from_env(cls, dotenv: bool = True) -> Settings:
        if dotenv:
            load_dotenv()
        return cls(
            database=DatabaseSettings.from_env(),
            renderer=RendererSettings.from_env(),
            log=LogSettings.from_env(),
        )
