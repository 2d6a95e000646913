from __future__ import annotations

import json
import uuid
from dataclasses import replace
from typing import Any, Optional, Sequence

from ..common.datetime_utils import as_utc, to_naive_utc
from ..core.enums import Gender, Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import User
from .repository import UserRepository

_COLUMNS = """
    id, username, password_hash, email, full_name, role, authorities,
    photo_url, phone_number, gender, date_of_birth, active,
    email_verified, phone_verified, two_factor_enabled, two_factor_secret,
    created_at, updated_at
"""


def _row_to_user(row: dict[str, Any]) -> User:
    authorities = row.get("authorities")
    if isinstance(authorities, (bytes, bytearray)):
        authorities = authorities.decode("utf-8")
    role = Role(row["role"])
    return User(
        id=str(row["id"]),
        username=row["username"],
        password_hash=row["password_hash"],
        email=row.get("email") or "",
        full_name=row.get("full_name") or "",
        role=role,
        authorities=frozenset(json.loads(authorities)) if authorities else role.authorities,
        photo_url=row.get("photo_url"),
        phone_number=row.get("phone_number"),
        gender=Gender(row["gender"]) if row.get("gender") else None,
        date_of_birth=row.get("date_of_birth"),
        active=bool(row.get("active", True)),
        email_verified=bool(row.get("email_verified", False)),
        phone_verified=bool(row.get("phone_verified", False)),
        two_factor_enabled=bool(row.get("two_factor_enabled", False)),
        two_factor_secret=row.get("two_factor_secret"),
        created_at=as_utc(row["created_at"]),
        updated_at=as_utc(row["updated_at"]),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_by_username(self, username: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE username=%s", (username,))
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def find_by_id(self, user_id: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE id=%s", (user_id,))
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def find_all(self) -> Sequence[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users ORDER BY created_at")
            return [_row_to_user(r) for r in fetchall(cur)]

    def save(self, user: User) -> User:
        if not user.id:
            user = replace(user, id=uuid.uuid4().hex)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(
                    id, username, password_hash, email, full_name, role, authorities,
                    photo_url, phone_number, gender, date_of_birth, active,
                    email_verified, phone_verified, two_factor_enabled, two_factor_secret,
                    created_at, updated_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    username=VALUES(username), password_hash=VALUES(password_hash),
                    email=VALUES(email), full_name=VALUES(full_name), role=VALUES(role),
                    authorities=VALUES(authorities), photo_url=VALUES(photo_url),
                    phone_number=VALUES(phone_number), gender=VALUES(gender),
                    date_of_birth=VALUES(date_of_birth), active=VALUES(active),
                    email_verified=VALUES(email_verified), phone_verified=VALUES(phone_verified),
                    two_factor_enabled=VALUES(two_factor_enabled),
                    two_factor_secret=VALUES(two_factor_secret), updated_at=VALUES(updated_at)
                """,
                (
                    user.id,
                    user.username,
                    user.password_hash,
                    user.email,
                    user.full_name,
                    user.role.value,
                    json.dumps(sorted(user.authorities)),
                    user.photo_url,
                    user.phone_number,
                    user.gender.value if user.gender else None,
                    user.date_of_birth,
                    int(user.active),
                    int(user.email_verified),
                    int(user.phone_verified),
                    int(user.two_factor_enabled),
                    user.two_factor_secret,
                    to_naive_utc(user.created_at),
                    to_naive_utc(user.updated_at),
                ),
            )
        return user
