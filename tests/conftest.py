"""
Shared fixtures: an app bound to an in-memory database with local file
storage under a temporary directory, plus helpers for users and tokens.
"""
import pytest

from app import create_app
from auth import create_access_token, hash_password
from config import TestingConfig
from database import db
from models import User, UserRole, UserStatus


@pytest.fixture
def app(tmp_path):
    class Config(TestingConfig):
        UPLOAD_FOLDER = str(tmp_path / "uploads")

    app = create_app(Config)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make(email="jane@example.com", role=UserRole.CANDIDATE, password="password123",
              verified=True, name=None):
        user = User(
            email=email,
            password_hash=hash_password(password),
            name=name,
            role=role,
            status=UserStatus.ACTIVE if verified else UserStatus.PENDING_VERIFICATION,
            email_verified=verified,
        )
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def auth_headers(app):
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(user)}"}
    return _headers


@pytest.fixture
def candidate_user(make_user):
    return make_user()


@pytest.fixture
def candidate_headers(candidate_user, auth_headers):
    return auth_headers(candidate_user)


@pytest.fixture
def mis_user(make_user):
    return make_user(email="mis@example.com", role=UserRole.MIS, name="Back Office")


@pytest.fixture
def mis_headers(mis_user, auth_headers):
    return auth_headers(mis_user)
