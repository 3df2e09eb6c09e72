from __future__ import annotations

import os
from datetime import date
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, model_validator

from fundraise.schemas import Targets
from fundraise.seed import DEFAULT_TARGET_FINAL, DEFAULT_TARGET_PRIMARY

StoreKind = Literal["sqlite", "json", "memory", "http"]

# Environment variable -> Settings field
_ENV_FIELDS: dict[str, str] = {
    "FUNDRAISE_STORE": "store",
    "FUNDRAISE_TARGET_PRIMARY": "target_primary",
    "FUNDRAISE_TARGET_FINAL": "target_final",
    "FUNDRAISE_DATABASE_PATH": "database_path",
    "FUNDRAISE_JSON_PATH": "json_path",
    "FUNDRAISE_REMOTE_URL": "remote_url",
    "FUNDRAISE_PASSWORD": "password",
    "FUNDRAISE_STALE_AFTER_DAYS": "stale_after_days",
    "FUNDRAISE_REFERENCE_DATE": "reference_date",
}


def _resolve_project_root() -> Path:
    override = os.getenv("FUNDRAISE_HOME", "").strip()
    if override:
        return Path(override).expanduser().resolve()
    return Path.cwd().resolve()


class Settings(BaseModel):
    project_root: Path = Field(default_factory=_resolve_project_root)
    # Unset paths live under <project_root>/data
    data_dir: Path | None = None

    target_primary: float = DEFAULT_TARGET_PRIMARY
    target_final: float = DEFAULT_TARGET_FINAL

    store: StoreKind = "sqlite"
    database_path: Path | None = None
    json_path: Path | None = None
    remote_url: str = "http://127.0.0.1:8001/api"
    request_timeout_seconds: float = 10.0

    password: str = ""
    stale_after_days: int = 14
    reference_date: date | None = None

    @model_validator(mode="after")
    def _derive_paths(self) -> Settings:
        if self.data_dir is None:
            self.data_dir = self.project_root / "data"
        if self.database_path is None:
            self.database_path = self.data_dir / "fundraise.db"
        if self.json_path is None:
            self.json_path = self.data_dir / "db.json"
        return self

    @property
    def database_url(self) -> str:
        return f"sqlite:///{self.database_path}"

    @property
    def targets(self) -> Targets:
        return Targets(primary=self.target_primary, final=self.target_final)

    def today(self) -> date:
        return self.reference_date or date.today()

    def ensure_directories(self) -> None:
        for path in (self.data_dir, self.database_path.parent, self.json_path.parent):
            path.mkdir(parents=True, exist_ok=True)


def load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        return {}
    return data


def _config_file() -> Path:
    override = os.getenv("FUNDRAISE_CONFIG", "").strip()
    if override:
        return Path(override).expanduser()
    return _resolve_project_root() / "fundraise.yaml"


def load_settings() -> Settings:
    """Build settings from fundraise.yaml, then environment variables on top."""
    values: dict[str, Any] = {k: v for k, v in load_yaml(_config_file()).items() if k in Settings.model_fields}
    for env_name, field in _ENV_FIELDS.items():
        raw = os.getenv(env_name, "").strip()
        if raw:
            values[field] = raw
    return Settings(**values)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
