from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..common.datetime_utils import now_utc
from ..core.constants import UNKNOWN_CLIENT
from ..core.enums import LoginStatus
from ..users.model import UserView


@dataclass(frozen=True)
class Token:
    """Bearer-token record. `expired_at` bounds the refresh token's validity."""

    id: str
    user_id: str
    access_token: str
    refresh_token: str
    expired_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=now_utc)
    revoked: bool = False

    def is_usable(self, now: datetime) -> bool:
        if self.revoked:
            return False
        return self.expired_at is None or self.expired_at >= now


@dataclass(frozen=True)
class Session:
    """Device/session record; rows are kept as history once inactive."""

    id: str
    user_id: str
    device: str
    ip_address: Optional[str]
    last_login_at: datetime = field(default_factory=now_utc)
    active: bool = True


@dataclass(frozen=True)
class ClientContext:
    """What the boundary layer knows about the caller."""

    device: Optional[str] = None
    ip_address: Optional[str] = None

    @property
    def device_or_unknown(self) -> str:
        return self.device or UNKNOWN_CLIENT

    @property
    def ip_or_unknown(self) -> str:
        return self.ip_address or UNKNOWN_CLIENT


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class AuthResult:
    user: UserView
    status: LoginStatus
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

    @property
    def mfa_required(self) -> bool:
        return self.status == LoginStatus.MFA_REQUIRED


@dataclass(frozen=True)
class TwoFactorSetup:
    """Returned once at setup so the user can add the secret to an authenticator."""

    secret: str
    provisioning_uri: str
    qr_code_data_uri: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "secretKey": self.secret,
            "qrCodeUrl": self.provisioning_uri,
            "qrCodeImage": self.qr_code_data_uri,
        }
