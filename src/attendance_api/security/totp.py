from __future__ import annotations

import binascii
from datetime import datetime
from typing import Optional, Union

import pyotp

from ..common.datetime_utils import now_utc
from ..core.constants import TOTP_DIGITS, TOTP_INTERVAL_SECONDS, TOTP_VALID_WINDOW
from ..core.exceptions import ProvisioningError

Code = Union[str, int]


def normalize_code(code: Optional[Code]) -> Optional[str]:
    """Return the code as a 6-digit string, or None when it cannot be one.

    Integers are zero-padded so that e.g. 1234 means "001234".
    """
    if code is None or isinstance(code, bool):
        return None
    if isinstance(code, int):
        if code < 0:
            return None
        text = str(code).zfill(TOTP_DIGITS)
    else:
        text = str(code).strip().replace(" ", "")
    if len(text) != TOTP_DIGITS or not text.isdigit():
        return None
    return text


class TotpEngine:
    """RFC 6238 time-based codes (6 digits, 30 s step, +-1 step tolerance)."""

    def __init__(self, *, valid_window: int = TOTP_VALID_WINDOW):
        self._valid_window = int(valid_window)

    def generate_secret(self) -> str:
        # 32 base32 chars = 160 bits
        return pyotp.random_base32()

    def provisioning_uri(self, issuer: str, account: str, secret: str) -> str:
        if not issuer or not issuer.strip():
            raise ProvisioningError("Issuer label is required")
        if not account or not account.strip():
            raise ProvisioningError("Account label is required")
        if not secret or not secret.strip():
            raise ProvisioningError("Secret is required")

        return self._totp(secret).provisioning_uri(name=account.strip(), issuer_name=issuer.strip())

    def verify(self, secret: str, code: Optional[Code], at_time: Optional[datetime] = None) -> bool:
        normalized = normalize_code(code)
        if normalized is None:
            return False

        totp = self._totp(secret)
        try:
            return totp.verify(normalized, for_time=at_time or now_utc(), valid_window=self._valid_window)
        except (binascii.Error, ValueError, TypeError) as exc:
            raise ProvisioningError("TOTP secret is malformed") from exc

    def code_at(self, secret: str, at_time: Optional[datetime] = None) -> str:
        """Current code for a secret; used by clients and tests."""
        try:
            return self._totp(secret).at(at_time or now_utc())
        except (binascii.Error, ValueError, TypeError) as exc:
            raise ProvisioningError("TOTP secret is malformed") from exc

    @staticmethod
    def _totp(secret: str) -> pyotp.TOTP:
        if not secret:
            raise ProvisioningError("Secret is required")
        return pyotp.TOTP(secret, digits=TOTP_DIGITS, interval=TOTP_INTERVAL_SECONDS)
