import os

# Settings are read at import time, so the environment goes first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "testing-secret"
os.environ["COOKIE_DOMAIN"] = ""
os.environ["ENV"] = "test"
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id.apps.googleusercontent.com"
os.environ["RUN_SCHEDULER"] = "false"

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from account_service.core.database import Base, get_db
from account_service.main import app
from account_service.services.credential_service import CredentialService
from account_service.services.oauth_service import GoogleOAuthVerifier, OAuthIdentity, get_oauth_verifier
from account_service.services.token_service import ADMIN_ROLE, TokenService, get_token_service
from account_service.services.user_service import UserService

TEST_SECRET = "testing_secret"
TEST_PASSWORD = "password123"


@pytest.fixture
def engine():
    # StaticPool keeps one in-memory database shared by every session
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def token_service():
    return TokenService(secret_key=TEST_SECRET)


@pytest.fixture
def credentials():
    return CredentialService()


@pytest.fixture
def users():
    return UserService()


@pytest.fixture
def google_verifier():
    verifier = MagicMock(spec=GoogleOAuthVerifier)
    verifier.verify.return_value = OAuthIdentity(
        email="b@x.com", display_name="Bea Example", provider_subject_id="google-sub-1"
    )
    return verifier


@pytest.fixture
def client(session_factory, token_service, google_verifier):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_token_service] = lambda: token_service
    app.dependency_overrides[get_oauth_verifier] = lambda: google_verifier
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def take_token(client: TestClient, response) -> str:
    """Read the session cookie off a response and empty the client's jar"""
    token = response.cookies.get("token")
    client.cookies.clear()
    return token


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def signup(client):
    def _signup(email="a@x.com", password=TEST_PASSWORD, first_name="Ada", last_name="Lovelace"):
        response = client.post("/user/signup", json={
            "firstName": first_name,
            "lastName": last_name,
            "email": email,
            "password": password,
        })
        assert response.status_code == 200, response.text
        return take_token(client, response)
    return _signup


@pytest.fixture
def admin_token(db, credentials, token_service):
    admin_id = credentials.register(
        db, first_name="Root", last_name="Admin", email="admin@x.com", password=TEST_PASSWORD
    )
    return token_service.issue(db, admin_id, ADMIN_ROLE)
