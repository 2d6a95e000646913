from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Any, Optional

from jose import jwt
from jose.exceptions import JOSEError

from ..common.datetime_utils import now_utc
from ..core.constants import (
    DEFAULT_ACCESS_TOKEN_TTL_SECONDS,
    DEFAULT_REFRESH_TOKEN_TTL_SECONDS,
    MIN_JWT_SECRET_BYTES,
)
from ..core.enums import TokenType
from ..core.exceptions import ConfigurationError

ALGORITHM = "HS256"


class TokenIssuer:
    """Signs and validates compact HS256 bearer tokens.

    Malformed, tampered and expired tokens all come back as "invalid": no
    exception leaves validate()/extract_subject().
    """

    def __init__(
        self,
        secret: str,
        *,
        access_ttl_seconds: int = DEFAULT_ACCESS_TOKEN_TTL_SECONDS,
        refresh_ttl_seconds: int = DEFAULT_REFRESH_TOKEN_TTL_SECONDS,
    ):
        if not secret or len(secret.encode("utf-8")) < MIN_JWT_SECRET_BYTES:
            raise ConfigurationError(f"JWT secret must be at least {MIN_JWT_SECRET_BYTES} bytes")
        self._secret = secret
        self.access_ttl = timedelta(seconds=int(access_ttl_seconds))
        self.refresh_ttl = timedelta(seconds=int(refresh_ttl_seconds))

    def issue_access_token(self, user_id: str, *, now: Optional[datetime] = None) -> str:
        return self._issue(user_id, TokenType.ACCESS, self.access_ttl, now)

    def issue_refresh_token(self, user_id: str, *, now: Optional[datetime] = None) -> str:
        return self._issue(user_id, TokenType.REFRESH, self.refresh_ttl, now)

    def validate(self, token: Optional[str], *, token_type: Optional[TokenType] = None) -> bool:
        claims = self._decode(token)
        if claims is None:
            return False
        return token_type is None or claims.get("typ") == token_type.value

    def extract_subject(self, token: Optional[str]) -> Optional[str]:
        claims = self._decode(token)
        if claims is None:
            return None
        return claims.get("sub")

    def _issue(self, user_id: str, token_type: TokenType, ttl: timedelta, now: Optional[datetime]) -> str:
        issued_at = now or now_utc()
        claims = {
            "sub": str(user_id),
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + ttl).timestamp()),
            "typ": token_type.value,
            # Two tokens minted in the same second must still differ.
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def _decode(self, token: Optional[str]) -> Optional[dict[str, Any]]:
        if not token or not isinstance(token, str):
            return None
        try:
            claims = jwt.decode(token, self._secret, algorithms=[ALGORITHM])
        except (JOSEError, ValueError, TypeError):
            return None
        if not claims.get("sub") or "exp" not in claims:
            return None
        return claims
