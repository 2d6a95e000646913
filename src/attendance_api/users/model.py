from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, FrozenSet, Optional

from ..common.datetime_utils import now_utc
from ..core.constants import MIN_USERNAME_LENGTH
from ..core.enums import Gender, Role

EMAIL_PATTERN = re.compile(
    r"[a-zA-Z0-9+._%\-]{1,256}"
    r"@"
    r"[a-zA-Z0-9][a-zA-Z0-9\-]{0,64}"
    r"(\.[a-zA-Z0-9][a-zA-Z0-9\-]{0,25})+"
)
USERNAME_PATTERN = re.compile(r"[a-zA-Z0-9_.-]+")
FULL_NAME_PATTERN = re.compile(r"[a-zA-Z0-9_\s.-]+")
PHOTO_URL_PATTERN = re.compile(r"https?://.*")
PHONE_PATTERN = re.compile(r"\+?[0-9]{7,15}")


def is_valid_email(email: str) -> bool:
    return EMAIL_PATTERN.fullmatch(email) is not None


@dataclass(frozen=True)
class User:
    """Domain entity: User.

    Note: plain data object (no storage code). `password_hash` and
    `two_factor_secret` never leave the service layer; use `to_view()`.
    """

    id: str
    username: str
    password_hash: str
    email: str = ""
    full_name: str = ""
    role: Role = Role.STUDENT
    authorities: FrozenSet[str] = field(default_factory=lambda: Role.STUDENT.authorities)
    photo_url: Optional[str] = None
    phone_number: Optional[str] = None
    gender: Optional[Gender] = None
    date_of_birth: Optional[str] = None
    active: bool = True
    email_verified: bool = False
    phone_verified: bool = False
    two_factor_enabled: bool = False
    two_factor_secret: Optional[str] = None
    created_at: datetime = field(default_factory=now_utc)
    updated_at: datetime = field(default_factory=now_utc)

    def has_authority(self, authority: str) -> bool:
        return authority in self.authorities

    def has_any_authority(self, *authorities: str) -> bool:
        return any(self.has_authority(a) for a in authorities)

    def with_role(self, role: Role) -> "User":
        """Role change; authorities are re-derived from the new role, never merged."""
        return replace(self, role=role, authorities=role.authorities)

    def touched(self, **changes: Any) -> "User":
        return replace(self, updated_at=now_utc(), **changes)

    def collect_validation_errors(self) -> list[str]:
        errors: list[str] = []

        if not isinstance(self.username, str) or not self.username.strip():
            errors.append("Username is required")
        else:
            if len(self.username) < MIN_USERNAME_LENGTH:
                errors.append(f"Username must be at least {MIN_USERNAME_LENGTH} characters")
            if not USERNAME_PATTERN.fullmatch(self.username):
                errors.append("Username can only contain letters, numbers, dots, underscores, and hyphens")

        if not self.password_hash or not self.password_hash.strip():
            errors.append("Password is required")

        if self.email and not is_valid_email(self.email):
            errors.append("Invalid email format")

        if self.full_name and self.full_name.strip():
            if len(self.full_name) < 2:
                errors.append("Full name must be at least 2 characters if provided")
            if not FULL_NAME_PATTERN.fullmatch(self.full_name):
                errors.append(
                    "Full name can only contain letters, numbers, spaces, dots, underscores, and hyphens"
                )

        if self.photo_url and not PHOTO_URL_PATTERN.fullmatch(self.photo_url):
            errors.append("Photo URL must be a valid HTTP(S) URL")

        if self.phone_number and not PHONE_PATTERN.fullmatch(self.phone_number):
            errors.append("Phone number must be valid if provided")

        if self.date_of_birth:
            try:
                parsed = date.fromisoformat(self.date_of_birth)
            except ValueError:
                errors.append("Date of birth must be an ISO date (yyyy-MM-dd) if provided")
            else:
                if parsed.year <= 1900:
                    errors.append("Date of birth must be valid if provided")

        return errors

    def to_view(self) -> "UserView":
        return UserView(
            id=self.id,
            username=self.username,
            email=self.email,
            full_name=self.full_name,
            photo_url=self.photo_url,
            phone_number=self.phone_number,
            gender=self.gender,
            date_of_birth=self.date_of_birth,
            role=self.role,
            authorities=tuple(sorted(self.authorities)),
            active=self.active,
            email_verified=self.email_verified,
            phone_verified=self.phone_verified,
            two_factor_enabled=self.two_factor_enabled,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


@dataclass(frozen=True)
class UserView:
    """Sanitized user: no password hash, no 2FA secret."""

    id: str
    username: str
    email: str
    full_name: str
    photo_url: Optional[str]
    phone_number: Optional[str]
    gender: Optional[Gender]
    date_of_birth: Optional[str]
    role: Role
    authorities: tuple[str, ...]
    active: bool
    email_verified: bool
    phone_verified: bool
    two_factor_enabled: bool
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "fullName": self.full_name,
            "photoUrl": self.photo_url,
            "phoneNumber": self.phone_number,
            "gender": self.gender.value if self.gender else None,
            "dateOfBirth": self.date_of_birth,
            "role": self.role.value,
            "authorities": list(self.authorities),
            "active": self.active,
            "emailVerified": self.email_verified,
            "phoneVerified": self.phone_verified,
            "twoFactorEnabled": self.two_factor_enabled,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }
