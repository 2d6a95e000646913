from __future__ import annotations

from typing import Optional, Sequence

from .enums import ErrorKind


class DomainError(Exception):
    """Base exception for business rule violations."""

    kind: ErrorKind = ErrorKind.INTERNAL


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, errors: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.errors = list(errors) if errors else [message]


class UsernameExistsError(DomainError):
    kind = ErrorKind.USERNAME_EXISTS

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"Username already exists: {username}")


class UserNotFoundError(DomainError):
    kind = ErrorKind.USER_NOT_FOUND

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"User not found: {username}")


class AuthenticationError(DomainError):
    """Raised when credentials (password, OTP, bearer or refresh token) are invalid."""

    kind = ErrorKind.INVALID_CREDENTIALS


class InvalidCredentialsError(AuthenticationError):
    def __init__(self, message: str = "Invalid username or password"):
        super().__init__(message)


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    kind = ErrorKind.FORBIDDEN


class InvalidStateError(DomainError):
    """Raised when an operation does not fit the account's current state."""

    kind = ErrorKind.INVALID_STATE


class SecretNotFoundError(InvalidStateError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str = "No 2FA secret found. Please generate one first."):
        super().__init__(message)


class CryptoError(DomainError):
    """Secret encryption or decryption failed."""


class ProvisioningError(DomainError):
    """A TOTP secret or provisioning URI could not be produced or used."""


class ConfigurationError(DomainError):
    """Required wiring or settings are missing or invalid."""


class NotFoundError(DomainError):
    """Raised when a looked-up record (other than a login target) does not exist."""

    kind = ErrorKind.NOT_FOUND
