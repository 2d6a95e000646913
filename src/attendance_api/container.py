from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .auth.memory_repositories import InMemorySessionRepository, InMemoryTokenRepository
from .auth.mysql_session_repository import MySQLSessionRepository
from .auth.mysql_token_repository import MySQLTokenRepository
from .auth.repository import SessionRepository, TokenRepository
from .auth.service import AuthService
from .auth.two_factor import TwoFactorService
from .core.exceptions import ConfigurationError
from .database.connection import DBConfig, DatabaseConnection
from .security.crypto import SecretCodec
from .security.tokens import TokenIssuer
from .security.totp import TotpEngine
from .settings import Settings
from .users.memory_user_repository import InMemoryUserRepository
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import UserService

logger = logging.getLogger(__name__)

STORE_BACKENDS = {"memory", "mysql"}


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    users_repo: UserRepository
    tokens_repo: Optional[TokenRepository]
    sessions_repo: Optional[SessionRepository]

    token_issuer: TokenIssuer
    auth_service: AuthService
    two_factor_service: TwoFactorService
    user_service: UserService


def build_container(settings: Settings) -> Container:
    backend = (settings.STORE_BACKEND or "").strip().lower()
    if backend not in STORE_BACKENDS:
        raise ConfigurationError(f"Unknown STORE_BACKEND: {settings.STORE_BACKEND!r}")

    conn: Optional[DatabaseConnection] = None
    tokens_repo: Optional[TokenRepository] = None
    sessions_repo: Optional[SessionRepository] = None

    if backend == "mysql":
        conn = DatabaseConnection(DBConfig.from_mapping(settings.DB_CONFIG))
        users_repo: UserRepository = MySQLUserRepository(conn)
        if settings.TOKEN_STORE_ENABLED:
            tokens_repo = MySQLTokenRepository(conn)
            sessions_repo = MySQLSessionRepository(conn)
    else:
        users_repo = InMemoryUserRepository()
        if settings.TOKEN_STORE_ENABLED:
            tokens_repo = InMemoryTokenRepository()
            sessions_repo = InMemorySessionRepository()

    if tokens_repo is None:
        logger.warning("Token store disabled: login will not issue tokens and logout is unavailable")

    token_issuer = TokenIssuer(
        settings.JWT_SECRET,
        access_ttl_seconds=settings.ACCESS_TOKEN_TTL_SECONDS,
        refresh_ttl_seconds=settings.REFRESH_TOKEN_TTL_SECONDS,
    )
    two_factor_service = TwoFactorService(
        users_repo,
        SecretCodec(settings.TWO_FACTOR_ENCRYPTION_KEY or None),
        TotpEngine(),
        issuer=settings.TWO_FACTOR_ISSUER,
    )
    auth_service = AuthService(
        users_repo,
        token_issuer=token_issuer,
        tokens=tokens_repo,
        sessions=sessions_repo,
        two_factor=two_factor_service,
    )
    user_service = UserService(users_repo, tokens=tokens_repo)

    return Container(
        conn=conn,
        users_repo=users_repo,
        tokens_repo=tokens_repo,
        sessions_repo=sessions_repo,
        token_issuer=token_issuer,
        auth_service=auth_service,
        two_factor_service=two_factor_service,
        user_service=user_service,
    )
