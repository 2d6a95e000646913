from __future__ import annotations

import pytest

from attendance_api.auth.memory_repositories import InMemorySessionRepository, InMemoryTokenRepository
from attendance_api.auth.service import AuthService
from attendance_api.auth.two_factor import TwoFactorService
from attendance_api.main import create_app
from attendance_api.security.crypto import SecretCodec
from attendance_api.security.tokens import TokenIssuer
from attendance_api.security.totp import TotpEngine
from attendance_api.settings import load_settings
from attendance_api.users.memory_user_repository import InMemoryUserRepository
from attendance_api.users.service import UserService

JWT_SECRET = "unit-test-jwt-secret-0123456789abcdef"
ENCRYPTION_KEY = "MDEyMzQ1Njc4OWFiY2RlZjAxMjM0NTY3ODlhYmNkZWY="
PASSWORD = "s3cretpass"


def fake_qr(uri: str) -> str:
    return "data:image/png;base64,QR"


@pytest.fixture
def users_repo():
    return InMemoryUserRepository()


@pytest.fixture
def tokens_repo():
    return InMemoryTokenRepository()


@pytest.fixture
def sessions_repo():
    return InMemorySessionRepository()


@pytest.fixture
def issuer():
    return TokenIssuer(JWT_SECRET)


@pytest.fixture
def codec():
    return SecretCodec(ENCRYPTION_KEY)


@pytest.fixture
def totp():
    return TotpEngine()


@pytest.fixture
def two_factor(users_repo, codec, totp):
    return TwoFactorService(users_repo, codec, totp, qr_renderer=fake_qr)


@pytest.fixture
def auth_service(users_repo, issuer, tokens_repo, sessions_repo, two_factor):
    return AuthService(
        users_repo,
        token_issuer=issuer,
        tokens=tokens_repo,
        sessions=sessions_repo,
        two_factor=two_factor,
    )


@pytest.fixture
def user_service(users_repo, tokens_repo):
    return UserService(users_repo, tokens=tokens_repo)


@pytest.fixture
def alice(auth_service):
    return auth_service.register("alice", PASSWORD)


@pytest.fixture
def app():
    return create_app(load_settings("attendance_api.settings.testing"))


@pytest.fixture
def client(app):
    return app.test_client()
