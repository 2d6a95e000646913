from __future__ import annotations

import pytest

from attendance_api.core.enums import Gender, Role
from attendance_api.core.exceptions import (
    AuthorizationError,
    InvalidCredentialsError,
    NotFoundError,
    UsernameExistsError,
    ValidationError,
)
from attendance_api.users.service import AdminUserUpdate, ProfileUpdate

PASSWORD = "s3cretpass"


@pytest.fixture
def admin(auth_service, users_repo):
    view = auth_service.register("root", PASSWORD)
    users_repo.save(users_repo.find_by_id(view.id).with_role(Role.ADMIN))
    return view


# --- profile ---


def test_get_profile(user_service, alice):
    assert user_service.get_profile(alice.id).username == "alice"


def test_get_profile_unknown(user_service):
    with pytest.raises(NotFoundError):
        user_service.get_profile("missing")


def test_update_profile_marks_contacts_verified(user_service, alice):
    view = user_service.update_profile(
        alice.id,
        ProfileUpdate(email="alice@example.com", phone_number="0901234567", gender="female", full_name="Alice N"),
    )

    assert view.email == "alice@example.com"
    assert view.email_verified is True
    assert view.phone_verified is True
    assert view.gender == Gender.FEMALE
    assert view.full_name == "Alice N"
    assert view.updated_at >= alice.updated_at


def test_update_profile_unknown_gender_is_cleared(user_service, alice):
    assert user_service.update_profile(alice.id, ProfileUpdate(gender="robot")).gender is None


def test_update_profile_returns_all_errors(user_service, users_repo, alice):
    with pytest.raises(ValidationError) as exc:
        user_service.update_profile(alice.id, ProfileUpdate(email="bad", phone_number="1"))

    assert exc.value.errors == ["Invalid email format", "Phone number must be valid if provided"]
    assert users_repo.find_by_id(alice.id).email == ""


def test_update_profile_username_must_be_unique(user_service, auth_service, alice):
    auth_service.register("bob", PASSWORD)

    with pytest.raises(UsernameExistsError):
        user_service.update_profile(alice.id, ProfileUpdate(username="bob"))


def test_update_profile_from_camel_case(user_service, alice):
    changes = ProfileUpdate.from_dict({"fullName": "Alice Nguyen", "dateOfBirth": "2000-01-02"})

    view = user_service.update_profile(alice.id, changes)

    assert view.full_name == "Alice Nguyen"
    assert view.date_of_birth == "2000-01-02"


def test_profile_update_rejects_non_string_fields():
    with pytest.raises(ValidationError) as exc:
        ProfileUpdate.from_dict({"phoneNumber": 901234567})

    assert str(exc.value) == "phoneNumber must be a string"


def test_change_password(user_service, auth_service, alice):
    user_service.change_password(alice.id, PASSWORD, "new-password", "new-password")

    with pytest.raises(InvalidCredentialsError):
        auth_service.login("alice", PASSWORD)
    assert auth_service.login("alice", "new-password").user.id == alice.id


@pytest.mark.parametrize(
    "current, new, confirm, message",
    [
        ("wrong-password", "new-password", "new-password", "Current password is incorrect"),
        (PASSWORD, "short", "short", "New password must be at least 8 characters"),
        (PASSWORD, "new-password", "other-password", "New password and confirm password do not match"),
    ],
)
def test_change_password_rejects(user_service, alice, current, new, confirm, message):
    with pytest.raises(ValidationError) as exc:
        user_service.change_password(alice.id, current, new, confirm)

    assert str(exc.value) == message


# --- admin ---


def test_list_users_requires_manager(user_service, alice):
    with pytest.raises(AuthorizationError):
        user_service.list_users(alice.id)


def test_unknown_actor_is_unauthorized(user_service):
    with pytest.raises(InvalidCredentialsError):
        user_service.list_users("missing")


def test_admin_lists_and_reads_users(user_service, admin, alice):
    assert {u.username for u in user_service.list_users(admin.id)} == {"root", "alice"}
    assert user_service.get_user(admin.id, alice.id).id == alice.id


def test_admin_get_unknown_user(user_service, admin):
    with pytest.raises(NotFoundError):
        user_service.get_user(admin.id, "missing")


def test_role_manage_authority_is_enough(user_service, users_repo, alice, auth_service):
    manager = auth_service.register("manager", PASSWORD)
    stored = users_repo.find_by_id(manager.id)
    users_repo.save(stored.touched(authorities=stored.authorities | {"ROLE_MANAGE"}))

    assert len(user_service.list_users(manager.id)) == 2


def test_admin_update_role_rederives_authorities(user_service, admin, alice):
    view = user_service.admin_update_user(admin.id, alice.id, AdminUserUpdate(role="teacher", email_verified=True))

    assert view.role == Role.TEACHER
    assert set(view.authorities) == Role.TEACHER.authorities
    assert view.email_verified is True


def test_admin_update_unknown_role(user_service, admin, alice):
    with pytest.raises(ValidationError):
        user_service.admin_update_user(admin.id, alice.id, AdminUserUpdate(role="superuser"))


def test_disable_user_is_soft_delete(user_service, auth_service, users_repo, admin, alice):
    view = user_service.disable_user(admin.id, alice.id)

    assert view.active is False
    assert users_repo.find_by_id(alice.id) is not None
    with pytest.raises(InvalidCredentialsError):
        auth_service.login("alice", PASSWORD)


def test_disable_user_revokes_tokens(user_service, auth_service, tokens_repo, admin, alice):
    login = auth_service.login("alice", PASSWORD)

    user_service.disable_user(admin.id, alice.id)

    assert tokens_repo.find_by_refresh_token(login.refresh_token).revoked is True
    with pytest.raises(InvalidCredentialsError):
        auth_service.rotate_tokens(login.refresh_token)


def test_admin_deactivation_revokes_tokens(user_service, auth_service, tokens_repo, admin, alice):
    login = auth_service.login("alice", PASSWORD)

    user_service.admin_update_user(admin.id, alice.id, AdminUserUpdate(active=False))

    assert tokens_repo.find_by_refresh_token(login.refresh_token).revoked is True


def test_admin_update_keeps_tokens_of_active_user(user_service, auth_service, tokens_repo, admin, alice):
    login = auth_service.login("alice", PASSWORD)

    user_service.admin_update_user(admin.id, alice.id, AdminUserUpdate(role="teacher"))

    assert tokens_repo.find_by_refresh_token(login.refresh_token).revoked is False
