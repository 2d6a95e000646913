from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from ..core.constants import DEFAULT_TWO_FACTOR_ISSUER
from ..core.exceptions import InvalidStateError, NotFoundError, SecretNotFoundError
from ..security.crypto import SecretCodec
from ..security.qr import png_data_uri
from ..security.totp import Code, TotpEngine
from ..users.model import User
from ..users.repository import UserRepository
from .model import TwoFactorSetup

logger = logging.getLogger(__name__)


class TwoFactorService:
    """Use case: TOTP two-factor lifecycle (setup -> verify/enable -> disable).

    A staged secret does not gate login until one code has been verified.
    """

    def __init__(
        self,
        users: UserRepository,
        codec: SecretCodec,
        totp: TotpEngine,
        *,
        issuer: str = DEFAULT_TWO_FACTOR_ISSUER,
        qr_renderer: Callable[[str], str] = png_data_uri,
    ):
        self._users = users
        self._codec = codec
        self._totp = totp
        self._issuer = issuer
        self._qr_renderer = qr_renderer

    def setup(self, user_id: str) -> TwoFactorSetup:
        user = self._require_user(user_id)
        if user.two_factor_enabled:
            raise InvalidStateError("2FA is already enabled for this user")

        logger.info("Generating 2FA secret for user: %s", user_id)
        secret = self._totp.generate_secret()
        account = user.email.strip() or user.username.strip() or user.id
        uri = self._totp.provisioning_uri(self._issuer, account, secret)

        self._users.save(user.touched(two_factor_secret=self._codec.encrypt(secret)))
        logger.info("2FA secret staged for user: %s", user_id)

        return TwoFactorSetup(secret=secret, provisioning_uri=uri, qr_code_data_uri=self._qr_renderer(uri))

    def verify_and_enable(self, user_id: str, code: Optional[Code], *, at_time: Optional[datetime] = None) -> bool:
        user = self._require_user(user_id)
        if not user.two_factor_secret:
            raise SecretNotFoundError()

        secret = self._codec.decrypt(user.two_factor_secret)
        if not self._totp.verify(secret, code, at_time):
            logger.warning("Invalid 2FA code provided for user: %s", user_id)
            return False

        self._users.save(user.touched(two_factor_enabled=True))
        logger.info("2FA enabled for user: %s", user_id)
        return True

    def verify_code(self, user: User, code: Optional[Code], *, at_time: Optional[datetime] = None) -> bool:
        """Check a code for an account that already has 2FA enabled."""
        if not user.two_factor_enabled:
            logger.warning("2FA verification attempted but not enabled for user: %s", user.id)
            raise InvalidStateError("2FA is not enabled for this user")
        if not user.two_factor_secret:
            raise SecretNotFoundError("No 2FA secret found")

        secret = self._codec.decrypt(user.two_factor_secret)
        return self._totp.verify(secret, code, at_time)

    def disable(self, user_id: str, code: Optional[Code], *, at_time: Optional[datetime] = None) -> bool:
        user = self._require_user(user_id)
        if not user.two_factor_enabled:
            logger.warning("2FA disable attempted but not enabled for user: %s", user_id)
            raise InvalidStateError("2FA is not enabled for this user")

        if not self.verify_code(user, code, at_time=at_time):
            logger.warning("Invalid code provided for 2FA disable by user: %s", user_id)
            return False

        self._users.save(user.touched(two_factor_enabled=False, two_factor_secret=None))
        logger.info("2FA disabled for user: %s", user_id)
        return True

    def _require_user(self, user_id: str) -> User:
        user = self._users.find_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user
