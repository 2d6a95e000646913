from __future__ import annotations

import importlib
import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Optional

from ..core.constants import (
    DEFAULT_ACCESS_TOKEN_TTL_SECONDS,
    DEFAULT_REFRESH_TOKEN_TTL_SECONDS,
    DEFAULT_TWO_FACTOR_ISSUER,
)


def get_settings_module() -> str:
    # APP_ENV picks the settings module; anything unrecognised means development
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return f"{__name__}.production"

    if env in {"test", "testing"}:
        return f"{__name__}.testing"

    return f"{__name__}.development"


def env_flag(name: str, default: str = "0") -> bool:
    value = os.getenv(name, default).strip().lower()
    return value in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    SECRET_KEY: str
    JWT_SECRET: str
    DB_CONFIG: dict = field(default_factory=dict)
    ACCESS_TOKEN_TTL_SECONDS: int = DEFAULT_ACCESS_TOKEN_TTL_SECONDS
    REFRESH_TOKEN_TTL_SECONDS: int = DEFAULT_REFRESH_TOKEN_TTL_SECONDS
    TWO_FACTOR_ENCRYPTION_KEY: str = ""
    TWO_FACTOR_ISSUER: str = DEFAULT_TWO_FACTOR_ISSUER
    STORE_BACKEND: str = "mysql"
    TOKEN_STORE_ENABLED: bool = True
    AUTO_INIT_DB: bool = False
    DEBUG: bool = False
    TESTING: bool = False
    LOG_LEVEL: str = "INFO"


def load_settings(module_name: Optional[str] = None, **overrides: Any) -> Settings:
    """Read a settings module into a frozen record; keyword overrides win."""
    module = importlib.import_module(module_name or get_settings_module())
    values = {f.name: getattr(module, f.name) for f in fields(Settings) if hasattr(module, f.name)}
    return replace(Settings(**values), **overrides)
