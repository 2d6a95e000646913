import pytest

from attendance_api.core.enums import Gender, Role
from attendance_api.users.model import User, is_valid_email


def _user(**kw):
    base = dict(id="u1", username="alice", password_hash="hash")
    base.update(kw)
    return User(**base)


def test_valid_user_has_no_errors():
    user = _user(
        email="alice@example.com",
        full_name="Alice Nguyen",
        photo_url="https://cdn.example.com/a.png",
        phone_number="+84901234567",
        date_of_birth="2001-05-17",
    )

    assert user.collect_validation_errors() == []


def test_all_errors_are_collected_together():
    user = _user(
        username="a!",
        password_hash="",
        email="nope",
        full_name="A",
        photo_url="ftp://x",
        phone_number="12",
        date_of_birth="1800-01-01",
    )

    errors = user.collect_validation_errors()

    assert errors == [
        "Username must be at least 3 characters",
        "Username can only contain letters, numbers, dots, underscores, and hyphens",
        "Password is required",
        "Invalid email format",
        "Full name must be at least 2 characters if provided",
        "Photo URL must be a valid HTTP(S) URL",
        "Phone number must be valid if provided",
        "Date of birth must be valid if provided",
    ]


def test_non_string_username_is_reported():
    assert _user(username=12345).collect_validation_errors() == ["Username is required"]


def test_unparseable_birth_date():
    errors = _user(date_of_birth="17/05/2001").collect_validation_errors()

    assert errors == ["Date of birth must be an ISO date (yyyy-MM-dd) if provided"]


@pytest.mark.parametrize("email", ["a@b.co", "first.last+tag@mail.example.org"])
def test_email_pattern_accepts(email):
    assert is_valid_email(email)


@pytest.mark.parametrize("email", ["", "plain", "a@b", "@example.com"])
def test_email_pattern_rejects(email):
    assert not is_valid_email(email)


def test_role_change_rederives_authorities():
    admin = _user(role=Role.ADMIN, authorities=Role.ADMIN.authorities)

    teacher = admin.with_role(Role.TEACHER)

    assert teacher.role == Role.TEACHER
    assert teacher.authorities == Role.TEACHER.authorities
    assert not teacher.has_authority("ROLE_MANAGE")


def test_authority_checks():
    user = _user()

    assert user.has_authority("PROFILE_VIEW")
    assert user.has_any_authority("ROLE_MANAGE", "TWO_FACTOR_MANAGE")
    assert not user.has_any_authority("ROLE_MANAGE", "COURSE_CREATE")


def test_view_hides_secrets():
    data = _user(two_factor_secret="s", gender=Gender.FEMALE).to_view().to_dict()

    assert "passwordHash" not in data
    assert "twoFactorSecret" not in data
    assert data["gender"] == "FEMALE"
    assert data["role"] == "STUDENT"
    assert data["authorities"] == sorted(Role.STUDENT.authorities)


def test_role_parse():
    assert Role.parse(" admin ") == Role.ADMIN
    with pytest.raises(ValueError):
        Role.parse("superuser")


def test_gender_lenient():
    assert Gender.lenient("female") == Gender.FEMALE
    assert Gender.lenient("other") is None
    assert Gender.lenient(None) is None
