from __future__ import annotations

import uuid
from dataclasses import replace
from typing import Any, Optional

from ..common.datetime_utils import as_utc, to_naive_utc
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Token
from .repository import TokenRepository


def _row_to_token(r: dict[str, Any]) -> Token:
    return Token(
        id=str(r["id"]),
        user_id=str(r["user_id"]),
        access_token=r["access_token"],
        refresh_token=r["refresh_token"],
        expired_at=as_utc(r["expired_at"]) if r.get("expired_at") else None,
        created_at=as_utc(r["created_at"]),
        revoked=bool(r.get("revoked", False)),
    )


class MySQLTokenRepository(TokenRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_by_refresh_token(self, refresh_token: str) -> Optional[Token]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, user_id, access_token, refresh_token, expired_at, created_at, revoked
                FROM tokens
                WHERE refresh_token=%s
                ORDER BY created_at DESC
                LIMIT 1
                """,
                (refresh_token,),
            )
            r = fetchone(cur)
            return _row_to_token(r) if r else None

    def save(self, token: Token) -> Token:
        if not token.id:
            token = replace(token, id=uuid.uuid4().hex)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO tokens(id, user_id, access_token, refresh_token, expired_at, created_at, revoked)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    access_token=VALUES(access_token), refresh_token=VALUES(refresh_token),
                    expired_at=VALUES(expired_at), revoked=VALUES(revoked)
                """,
                (
                    token.id,
                    token.user_id,
                    token.access_token,
                    token.refresh_token,
                    to_naive_utc(token.expired_at) if token.expired_at else None,
                    to_naive_utc(token.created_at),
                    int(token.revoked),
                ),
            )
        return token

    def revoke(self, token_id: str) -> bool:
        # Conditional update: only one concurrent caller can flip the flag.
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE tokens SET revoked=1 WHERE id=%s AND revoked=0", (token_id,))
            return cur.rowcount > 0

    def revoke_all(self, user_id: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE tokens SET revoked=1 WHERE user_id=%s AND revoked=0", (user_id,))
            return int(cur.rowcount)
