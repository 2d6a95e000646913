from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ..auth.repository import TokenRepository
from ..common.validators import optional_str, require_min_length
from ..core.constants import MIN_PASSWORD_LENGTH
from ..core.enums import Gender, Role
from ..core.exceptions import (
    AuthorizationError,
    InvalidCredentialsError,
    NotFoundError,
    UsernameExistsError,
    ValidationError,
)
from ..security.passwords import hash_password, password_matches
from .model import User, UserView
from .repository import UserRepository

logger = logging.getLogger(__name__)

ROLE_MANAGE = "ROLE_MANAGE"


@dataclass(frozen=True)
class ProfileUpdate:
    """Partial profile change; `None` means "leave unchanged"."""

    username: Optional[str] = None
    email: Optional[str] = None
    full_name: Optional[str] = None
    photo_url: Optional[str] = None
    phone_number: Optional[str] = None
    gender: Optional[str] = None
    date_of_birth: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProfileUpdate":
        return cls(
            username=optional_str(data, "username"),
            email=optional_str(data, "email"),
            full_name=optional_str(data, "fullName"),
            photo_url=optional_str(data, "photoUrl"),
            phone_number=optional_str(data, "phoneNumber"),
            gender=optional_str(data, "gender"),
            date_of_birth=optional_str(data, "dateOfBirth"),
        )


@dataclass(frozen=True)
class AdminUserUpdate:
    role: Optional[str] = None
    active: Optional[bool] = None
    email_verified: Optional[bool] = None
    phone_verified: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AdminUserUpdate":
        return cls(
            role=optional_str(data, "role"),
            active=data.get("active"),
            email_verified=data.get("emailVerified"),
            phone_verified=data.get("phoneVerified"),
        )


class UserService:
    """Use case: self-service profile and admin user management."""

    def __init__(self, users: UserRepository, *, tokens: Optional[TokenRepository] = None):
        self._users = users
        self._tokens = tokens

    # --- self-service ---

    def get_profile(self, user_id: str) -> UserView:
        return self._require_user(user_id).to_view()

    def update_profile(self, user_id: str, changes: ProfileUpdate) -> UserView:
        user = self._require_user(user_id)
        updates: dict[str, Any] = {}

        if changes.username is not None and changes.username != user.username:
            existing = self._users.find_by_username(changes.username)
            if existing and existing.id != user.id:
                raise UsernameExistsError(changes.username)
            updates["username"] = changes.username
        if changes.email is not None:
            updates["email"] = changes.email
            updates["email_verified"] = True
        if changes.full_name is not None:
            updates["full_name"] = changes.full_name
        if changes.photo_url is not None:
            updates["photo_url"] = changes.photo_url
        if changes.phone_number is not None:
            updates["phone_number"] = changes.phone_number
            updates["phone_verified"] = True
        if changes.gender is not None:
            updates["gender"] = Gender.lenient(changes.gender)
        if changes.date_of_birth is not None:
            updates["date_of_birth"] = changes.date_of_birth

        updated = user.touched(**updates)
        errors = updated.collect_validation_errors()
        if errors:
            raise ValidationError(errors[0], errors)

        saved = self._users.save(updated)
        logger.info("User profile updated: %s", user_id)
        return saved.to_view()

    def change_password(self, user_id: str, current_password: str, new_password: str, confirm_password: str) -> None:
        user = self._require_user(user_id)

        if not password_matches(user.password_hash, current_password):
            raise ValidationError("Current password is incorrect")
        require_min_length(new_password, "New password", MIN_PASSWORD_LENGTH)
        if new_password != confirm_password:
            raise ValidationError("New password and confirm password do not match")

        self._users.save(user.touched(password_hash=hash_password(new_password)))
        logger.info("Password changed for user %s", user_id)

    # --- admin ---

    def list_users(self, actor_id: str) -> list[UserView]:
        self._require_manager(actor_id)
        return [u.to_view() for u in self._users.find_all()]

    def get_user(self, actor_id: str, user_id: str) -> UserView:
        self._require_manager(actor_id)
        return self._require_user(user_id).to_view()

    def admin_update_user(self, actor_id: str, user_id: str, changes: AdminUserUpdate) -> UserView:
        self._require_manager(actor_id)
        user = self._require_user(user_id)

        if changes.role is not None:
            try:
                role = Role.parse(changes.role)
            except ValueError:
                raise ValidationError(f"Unknown role: {changes.role}")
            user = user.with_role(role)

        updates: dict[str, Any] = {}
        if changes.active is not None:
            updates["active"] = bool(changes.active)
        if changes.email_verified is not None:
            updates["email_verified"] = bool(changes.email_verified)
        if changes.phone_verified is not None:
            updates["phone_verified"] = bool(changes.phone_verified)

        saved = self._users.save(user.touched(**updates))
        if not saved.active:
            self._revoke_tokens(user_id)
        logger.info("User %s updated by admin %s", user_id, actor_id)
        return saved.to_view()

    def disable_user(self, actor_id: str, user_id: str) -> UserView:
        """Soft delete: the record stays, login is refused from now on."""
        self._require_manager(actor_id)
        user = self._require_user(user_id)
        saved = self._users.save(user.touched(active=False))
        self._revoke_tokens(user_id)
        logger.info("User %s disabled by admin %s", user_id, actor_id)
        return saved.to_view()

    def _revoke_tokens(self, user_id: str) -> None:
        if self._tokens is not None:
            self._tokens.revoke_all(user_id)

    def _require_user(self, user_id: str) -> User:
        user = self._users.find_by_id(user_id) if user_id else None
        if not user:
            raise NotFoundError("User not found")
        return user

    def _require_manager(self, actor_id: str) -> User:
        actor = self._users.find_by_id(actor_id) if actor_id else None
        if not actor:
            raise InvalidCredentialsError("Unauthorized")
        if actor.role != Role.ADMIN and not actor.has_authority(ROLE_MANAGE):
            logger.warning("User %s denied admin access", actor_id)
            raise AuthorizationError("Forbidden")
        return actor
