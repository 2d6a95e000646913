from __future__ import annotations

import threading
import uuid
from dataclasses import replace
from typing import Optional, Sequence

from .model import Session, Token
from .repository import SessionRepository, TokenRepository


class InMemoryTokenRepository(TokenRepository):
    def __init__(self) -> None:
        self._by_id: dict[str, Token] = {}
        self._lock = threading.Lock()

    def find_by_refresh_token(self, refresh_token: str) -> Optional[Token]:
        with self._lock:
            matches = [t for t in self._by_id.values() if t.refresh_token == refresh_token]
        if not matches:
            return None
        return max(matches, key=lambda t: t.created_at)

    def find_active_by_user_id(self, user_id: str) -> Sequence[Token]:
        with self._lock:
            return [t for t in self._by_id.values() if t.user_id == user_id and not t.revoked]

    def save(self, token: Token) -> Token:
        if not token.id:
            token = replace(token, id=uuid.uuid4().hex)
        with self._lock:
            self._by_id[token.id] = token
        return token

    def revoke(self, token_id: str) -> bool:
        with self._lock:
            token = self._by_id.get(token_id)
            if token is None or token.revoked:
                return False
            self._by_id[token_id] = replace(token, revoked=True)
            return True

    def revoke_all(self, user_id: str) -> int:
        with self._lock:
            ids = [t.id for t in self._by_id.values() if t.user_id == user_id and not t.revoked]
            for token_id in ids:
                self._by_id[token_id] = replace(self._by_id[token_id], revoked=True)
            return len(ids)


class InMemorySessionRepository(SessionRepository):
    def __init__(self) -> None:
        self._by_id: dict[str, Session] = {}
        self._lock = threading.Lock()

    def find_active_by_user_id(self, user_id: str) -> Sequence[Session]:
        with self._lock:
            return [s for s in self._by_id.values() if s.user_id == user_id and s.active]

    def find_all_by_user_id(self, user_id: str) -> Sequence[Session]:
        with self._lock:
            return [s for s in self._by_id.values() if s.user_id == user_id]

    def save(self, session: Session) -> Session:
        if not session.id:
            session = replace(session, id=uuid.uuid4().hex)
        with self._lock:
            self._by_id[session.id] = session
        return session

    def invalidate_all(self, user_id: str) -> int:
        with self._lock:
            ids = [s.id for s in self._by_id.values() if s.user_id == user_id and s.active]
            for session_id in ids:
                self._by_id[session_id] = replace(self._by_id[session_id], active=False)
            return len(ids)
