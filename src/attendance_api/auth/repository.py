from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Session, Token


class TokenRepository(Protocol):
    def find_by_refresh_token(self, refresh_token: str) -> Optional[Token]:
        """Latest record carrying this refresh token, revoked or not."""

        raise NotImplementedError

    def save(self, token: Token) -> Token:
        raise NotImplementedError

    def revoke(self, token_id: str) -> bool:
        """Mark one record revoked. False if it was already revoked (or missing)."""

        raise NotImplementedError

    def revoke_all(self, user_id: str) -> int:
        raise NotImplementedError


class SessionRepository(Protocol):
    def find_active_by_user_id(self, user_id: str) -> Sequence[Session]:
        raise NotImplementedError

    def save(self, session: Session) -> Session:
        raise NotImplementedError

    def invalidate_all(self, user_id: str) -> int:
        raise NotImplementedError
