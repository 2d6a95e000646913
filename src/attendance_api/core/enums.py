from __future__ import annotations

from enum import Enum
from typing import FrozenSet, Optional


class Role(str, Enum):
    """User role used for authorization. Each role maps to a fixed capability set."""

    STUDENT = "STUDENT"
    TEACHER = "TEACHER"
    ADMIN = "ADMIN"

    @property
    def authorities(self) -> FrozenSet[str]:
        return ROLE_AUTHORITIES[self]

    @classmethod
    def parse(cls, value: Optional[str]) -> "Role":
        """Parse a role name case-insensitively; raises ValueError for unknown names."""
        if value is None:
            raise ValueError("Role is required")
        return cls(value.strip().upper())


ROLE_AUTHORITIES: dict[Role, FrozenSet[str]] = {
    Role.STUDENT: frozenset(
        {
            "ATTENDANCE_VIEW",
            "PROFILE_VIEW",
            "PROFILE_EDIT",
            "TWO_FACTOR_MANAGE",
        }
    ),
    Role.TEACHER: frozenset(
        {
            "COURSE_VIEW",
            "SCHEDULE_VIEW",
            "ATTENDANCE_VIEW",
            "ATTENDANCE_MANAGE",
        }
    ),
    Role.ADMIN: frozenset(
        {
            "ATTENDANCE_VIEW",
            "ATTENDANCE_MANAGE",
            "PROFILE_VIEW",
            "PROFILE_EDIT",
            "STUDENT_VIEW",
            "STUDENT_MANAGE",
            "TEACHER_VIEW",
            "TEACHER_MANAGE",
            "ROLE_MANAGE",
            "COURSE_VIEW",
            "COURSE_CREATE",
            "COURSE_EDIT",
            "COURSE_DELETE",
        }
    ),
}


class Gender(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"

    @classmethod
    def lenient(cls, value: Optional[str]) -> Optional["Gender"]:
        """Unknown or empty values map to None instead of failing."""
        if not value:
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


class LoginStatus(str, Enum):
    """Outcome of a login attempt once credentials have been checked."""

    MFA_REQUIRED = "MFA_REQUIRED"
    AUTHENTICATED = "AUTHENTICATED"
    TOKENS_ISSUED = "TOKENS_ISSUED"


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class ErrorKind(str, Enum):
    """Closed set of failure kinds the HTTP boundary maps to status codes."""

    VALIDATION = "VALIDATION"
    USERNAME_EXISTS = "USERNAME_EXISTS"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    FORBIDDEN = "FORBIDDEN"
    INVALID_STATE = "INVALID_STATE"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL = "INTERNAL"
