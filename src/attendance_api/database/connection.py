from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import mysql.connector


@dataclass(frozen=True)
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "DBConfig":
        return cls(
            host=str(values.get("host", "localhost")),
            port=int(values.get("port", 3306)),
            user=str(values.get("user", "root")),
            password=str(values.get("password", "")),
            database=str(values.get("database", "attendance_api")),
        )


class DatabaseConnection:
    """DB connection factory shared by all MySQL repositories.

    Note: a short-lived connection is opened per operation; nothing here holds
    per-request state.
    """

    def __init__(self, config: DBConfig):
        self._config = config

    @property
    def config(self) -> DBConfig:
        return self._config

    def connect(self, *, with_database: bool = True):
        kwargs = dict(
            host=self._config.host,
            port=int(self._config.port),
            user=self._config.user,
            password=self._config.password,
        )
        if with_database:
            kwargs["database"] = self._config.database
        return mysql.connector.connect(**kwargs)
