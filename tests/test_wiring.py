from __future__ import annotations

from datetime import datetime

import pytest

from attendance_api.auth.mysql_token_repository import MySQLTokenRepository
from attendance_api.auth.model import Token
from attendance_api.container import build_container
from attendance_api.core.exceptions import ConfigurationError
from attendance_api.database.bootstrap import SCHEMA_PATH, apply_schema, iter_sql_statements
from attendance_api.database.connection import DBConfig
from attendance_api.settings import get_settings_module, load_settings
from attendance_api.users.mysql_user_repository import MySQLUserRepository


class FakeCursor:
    def __init__(self, conn):
        self._conn = conn
        self.rowcount = conn.rowcount

    def execute(self, sql, params=None):
        self._conn.executed.append((" ".join(sql.split()), params))

    def fetchone(self):
        return self._conn.rows[0] if self._conn.rows else None

    def fetchall(self):
        return list(self._conn.rows)

    def close(self):
        pass


class FakeConnection:
    def __init__(self, rows=None, rowcount=0):
        self.rows = rows or []
        self.rowcount = rowcount
        self.executed = []
        self.committed = 0
        self.rolled_back = 0

    def cursor(self, dictionary=False):
        return FakeCursor(self)

    def commit(self):
        self.committed += 1

    def rollback(self):
        self.rolled_back += 1

    def close(self):
        pass


class BrokenCursor(FakeCursor):
    def execute(self, sql, params=None):
        raise RuntimeError("db down")


class BrokenConnection(FakeConnection):
    def cursor(self, dictionary=False):
        return BrokenCursor(self)


class FakeConnectionFactory:
    def __init__(self, conn):
        self._conn = conn
        self.config = DBConfig.from_mapping({"database": "attendance_api_test"})

    def connect(self, *, with_database=True):
        return self._conn


@pytest.mark.parametrize(
    "env, expected",
    [("production", "production"), ("prod", "production"), ("test", "testing"), ("whatever", "development")],
)
def test_settings_module_follows_app_env(monkeypatch, env, expected):
    monkeypatch.setenv("APP_ENV", env)

    assert get_settings_module() == f"attendance_api.settings.{expected}"


def test_testing_settings_use_memory_store():
    settings = load_settings("attendance_api.settings.testing")

    assert settings.STORE_BACKEND == "memory"
    assert settings.TESTING is True
    assert len(settings.JWT_SECRET.encode()) >= 32


def test_mysql_backend_wires_mysql_repositories():
    container = build_container(load_settings("attendance_api.settings.testing", STORE_BACKEND="mysql"))

    assert isinstance(container.users_repo, MySQLUserRepository)
    assert isinstance(container.tokens_repo, MySQLTokenRepository)
    assert container.conn is not None


def test_short_jwt_secret_fails_at_wiring():
    with pytest.raises(ConfigurationError):
        build_container(load_settings("attendance_api.settings.testing", JWT_SECRET="short"))


def test_schema_has_three_tables():
    statements = list(iter_sql_statements(SCHEMA_PATH.read_text(encoding="utf-8")))

    assert len(statements) == 3
    assert all(s.startswith("CREATE TABLE IF NOT EXISTS") for s in statements)


def test_sql_splitter_keeps_quoted_semicolons():
    sql = "-- comment; here\nINSERT INTO t VALUES ('a;b');\nSELECT 1;"

    assert list(iter_sql_statements(sql)) == ["INSERT INTO t VALUES ('a;b')", "SELECT 1"]


def test_apply_schema_runs_every_statement():
    conn = FakeConnection()

    count = apply_schema(FakeConnectionFactory(conn))

    # CREATE DATABASE + the three tables
    assert count == 3
    assert len(conn.executed) == 4
    assert conn.executed[0][0].startswith("CREATE DATABASE IF NOT EXISTS `attendance_api_test`")


def test_mysql_revoke_reports_whether_it_won():
    won = MySQLTokenRepository(FakeConnectionFactory(FakeConnection(rowcount=1)))
    lost = MySQLTokenRepository(FakeConnectionFactory(FakeConnection(rowcount=0)))

    assert won.revoke("t1") is True
    assert lost.revoke("t1") is False


def test_mysql_token_save_assigns_id_and_stores_naive_utc():
    conn = FakeConnection()
    repo = MySQLTokenRepository(FakeConnectionFactory(conn))

    saved = repo.save(Token(id="", user_id="u1", access_token="a", refresh_token="r"))

    assert len(saved.id) == 32
    _, params = conn.executed[0]
    assert params[0] == saved.id
    assert params[5].tzinfo is None
    assert conn.committed == 1


def test_mysql_user_row_mapping():
    row = {
        "id": "abc",
        "username": "alice",
        "password_hash": "h",
        "email": None,
        "full_name": "Alice",
        "role": "TEACHER",
        "authorities": None,
        "photo_url": None,
        "phone_number": None,
        "gender": "FEMALE",
        "date_of_birth": None,
        "active": 1,
        "email_verified": 0,
        "phone_verified": 0,
        "two_factor_enabled": 0,
        "two_factor_secret": None,
        "created_at": datetime(2025, 1, 1, 8, 0),
        "updated_at": datetime(2025, 1, 1, 8, 0),
    }
    repo = MySQLUserRepository(FakeConnectionFactory(FakeConnection(rows=[row])))

    user = repo.find_by_username("alice")

    assert user.email == ""
    assert user.authorities == user.role.authorities
    assert user.created_at.tzinfo is not None


def test_cursor_rolls_back_on_error():
    conn = BrokenConnection()
    repo = MySQLTokenRepository(FakeConnectionFactory(conn))

    with pytest.raises(RuntimeError):
        repo.revoke_all("u1")
    assert conn.rolled_back == 1
    assert conn.committed == 0
