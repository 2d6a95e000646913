from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_utc
from ..common.validators import require_min_length, require_non_empty
from ..core.constants import MIN_PASSWORD_LENGTH
from ..core.enums import LoginStatus, TokenType
from ..core.exceptions import (
    ConfigurationError,
    InvalidCredentialsError,
    UserNotFoundError,
    UsernameExistsError,
    ValidationError,
)
from ..security.passwords import hash_password, password_matches
from ..security.tokens import TokenIssuer
from ..security.totp import Code
from ..users.model import User, UserView
from ..users.repository import UserRepository
from .model import AuthResult, ClientContext, Session, Token, TokenPair
from .repository import SessionRepository, TokenRepository
from .two_factor import TwoFactorService

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


class AuthService:
    """Use case: register, login (with optional TOTP step), refresh, logout.

    Login runs CREDENTIALS_CHECK -> (MFA_REQUIRED | AUTHENTICATED) -> TOKENS_ISSUED.
    Without a token issuer and token/session stores the service still
    authenticates but issues no tokens.
    """

    def __init__(
        self,
        users: UserRepository,
        *,
        token_issuer: Optional[TokenIssuer] = None,
        tokens: Optional[TokenRepository] = None,
        sessions: Optional[SessionRepository] = None,
        two_factor: Optional[TwoFactorService] = None,
    ):
        self._users = users
        self._issuer = token_issuer
        self._tokens = tokens
        self._sessions = sessions
        self._two_factor = two_factor

    @property
    def token_infrastructure_available(self) -> bool:
        return self._issuer is not None and self._tokens is not None and self._sessions is not None

    def register(self, username: str, password: str) -> UserView:
        logger.info("Registration attempt for username=%s", username)
        if self._users.find_by_username(username):
            logger.warning("Registration failed - username already exists: %s", username)
            raise UsernameExistsError(username)

        # Strength is checked on the raw password; the hash does not reflect its length.
        require_non_empty(password, "Password")
        require_min_length(password, "Password", MIN_PASSWORD_LENGTH)

        user = User(
            id="",
            username=username,
            password_hash=hash_password(password),
            full_name=username,
        )
        errors = user.collect_validation_errors()
        if errors:
            raise ValidationError(errors[0], errors)

        saved = self._users.save(user)
        logger.info("User registered successfully: id=%s, username=%s", saved.id, saved.username)
        return saved.to_view()

    def login(
        self,
        username: str,
        password: str,
        otp: Optional[Code] = None,
        *,
        client: Optional[ClientContext] = None,
        now: Optional[datetime] = None,
    ) -> AuthResult:
        logger.info("Login attempt for username=%s", username)
        user = self._users.find_by_username(username)
        if not user:
            logger.warning("Login failed - user not found: %s", username)
            raise UserNotFoundError(username)

        if not password_matches(user.password_hash, password):
            logger.warning("Login failed - invalid credentials for username=%s", username)
            raise InvalidCredentialsError()

        if not user.active:
            logger.warning("Login failed - account disabled for username=%s", username)
            raise InvalidCredentialsError()

        if user.two_factor_enabled:
            if otp is None or (isinstance(otp, str) and not otp.strip()):
                logger.info("Login for username=%s requires a 2FA code", username)
                return AuthResult(user=user.to_view(), status=LoginStatus.MFA_REQUIRED)
            if self._two_factor is None:
                raise ConfigurationError("2FA configured but service unavailable")
            if not self._two_factor.verify_code(user, otp, at_time=now):
                logger.warning("Login failed - invalid 2FA code for username=%s", username)
                raise InvalidCredentialsError()

        if not self.token_infrastructure_available:
            logger.info("Login successful for username=%s (no token store configured)", username)
            return AuthResult(user=user.to_view(), status=LoginStatus.AUTHENTICATED)

        pair = self._start_session(user, client or ClientContext(), now or now_utc())
        logger.info("Login successful for username=%s", username)
        return AuthResult(
            user=user.to_view(),
            status=LoginStatus.TOKENS_ISSUED,
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        )

    def refresh_token(self, refresh_token: str, *, now: Optional[datetime] = None) -> str:
        """Single-use refresh: returns a new access token; the presented token is revoked."""
        return self.rotate_tokens(refresh_token, now=now).access_token

    def rotate_tokens(self, refresh_token: str, *, now: Optional[datetime] = None) -> TokenPair:
        if not self.token_infrastructure_available:
            logger.warning("Token refresh requested but token store is not configured")
            raise InvalidCredentialsError("Invalid or expired refresh token")
        if not refresh_token:
            raise InvalidCredentialsError("Invalid or expired refresh token")

        now = now or now_utc()
        record = self._tokens.find_by_refresh_token(refresh_token)
        if record is None or not record.is_usable(now):
            logger.warning("Refresh rejected - unknown, revoked or expired refresh token")
            raise InvalidCredentialsError("Invalid or expired refresh token")

        owner = self._users.find_by_id(record.user_id)
        if not owner or not owner.active:
            logger.warning("Refresh rejected - user %s is missing or disabled", record.user_id)
            raise InvalidCredentialsError("Invalid or expired refresh token")

        # The old record must be claimed before a replacement exists.
        if not self._tokens.revoke(record.id):
            logger.warning("Refresh rejected - refresh token already used for user %s", record.user_id)
            raise InvalidCredentialsError("Invalid or expired refresh token")

        pair = self._mint(record.user_id, now)
        self._tokens.save(self._token_record(record.user_id, pair, now))
        logger.info("Tokens rotated for user %s", record.user_id)
        return pair

    def logout(self, user_id: Optional[str]) -> bool:
        """Revoke every token and deactivate every session of the user (idempotent)."""
        if not user_id:
            return False
        if self._tokens is None or self._sessions is None:
            logger.warning("Logout requested but token/session repositories are not configured")
            return False

        self._tokens.revoke_all(user_id)
        self._sessions.invalidate_all(user_id)
        logger.info("User logged out: %s", user_id)
        return True

    def authenticate_bearer(self, authorization: Optional[str]) -> str:
        """Resolve an `Authorization: Bearer <token>` header to a user id."""
        if self._issuer is None:
            raise InvalidCredentialsError("Unauthorized")
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            if authorization:
                logger.warning("Authorization header present but does not start with Bearer")
            raise InvalidCredentialsError("Unauthorized")

        token = authorization[len(BEARER_PREFIX):].strip()
        if not self._issuer.validate(token, token_type=TokenType.ACCESS):
            logger.warning("Invalid bearer token presented")
            raise InvalidCredentialsError("Unauthorized")

        user_id = self._issuer.extract_subject(token)
        if not user_id:
            raise InvalidCredentialsError("Unauthorized")

        user = self._users.find_by_id(user_id)
        if not user or not user.active:
            logger.warning("Bearer token presented for missing or disabled user %s", user_id)
            raise InvalidCredentialsError("Unauthorized")
        return user_id

    def _start_session(self, user: User, client: ClientContext, now: datetime) -> TokenPair:
        self._best_effort(self._tokens.revoke_all, user.id, "revoke tokens")
        self._best_effort(self._sessions.invalidate_all, user.id, "invalidate sessions")

        pair = self._mint(user.id, now)
        self._tokens.save(self._token_record(user.id, pair, now))
        self._sessions.save(
            Session(
                id="",
                user_id=user.id,
                device=client.device_or_unknown,
                ip_address=client.ip_or_unknown,
                last_login_at=now,
                active=True,
            )
        )
        return pair

    def _mint(self, user_id: str, now: datetime) -> TokenPair:
        return TokenPair(
            access_token=self._issuer.issue_access_token(user_id, now=now),
            refresh_token=self._issuer.issue_refresh_token(user_id, now=now),
        )

    def _token_record(self, user_id: str, pair: TokenPair, now: datetime) -> Token:
        return Token(
            id="",
            user_id=user_id,
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            expired_at=now + self._issuer.refresh_ttl,
            created_at=now,
        )

    @staticmethod
    def _best_effort(action: Callable[[str], object], user_id: str, what: str) -> None:
        # Prior tokens/sessions must not block a new login.
        try:
            action(user_id)
        except Exception:
            logger.warning("Could not %s for user %s", what, user_id, exc_info=True)
