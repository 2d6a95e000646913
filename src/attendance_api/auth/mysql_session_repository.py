from __future__ import annotations

import uuid
from dataclasses import replace
from typing import Sequence

from ..common.datetime_utils import as_utc, to_naive_utc
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import Session
from .repository import SessionRepository


class MySQLSessionRepository(SessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_active_by_user_id(self, user_id: str) -> Sequence[Session]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, user_id, device, ip_address, last_login_at, active
                FROM sessions
                WHERE user_id=%s AND active=1
                ORDER BY last_login_at DESC
                """,
                (user_id,),
            )
            return [
                Session(
                    id=str(r["id"]),
                    user_id=str(r["user_id"]),
                    device=r["device"],
                    ip_address=r.get("ip_address"),
                    last_login_at=as_utc(r["last_login_at"]),
                    active=bool(r["active"]),
                )
                for r in fetchall(cur)
            ]

    def save(self, session: Session) -> Session:
        if not session.id:
            session = replace(session, id=uuid.uuid4().hex)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO sessions(id, user_id, device, ip_address, last_login_at, active)
                VALUES(%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    device=VALUES(device), ip_address=VALUES(ip_address),
                    last_login_at=VALUES(last_login_at), active=VALUES(active)
                """,
                (
                    session.id,
                    session.user_id,
                    session.device,
                    session.ip_address,
                    to_naive_utc(session.last_login_at),
                    int(session.active),
                ),
            )
        return session

    def invalidate_all(self, user_id: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE sessions SET active=0 WHERE user_id=%s AND active=1", (user_id,))
            return int(cur.rowcount)
