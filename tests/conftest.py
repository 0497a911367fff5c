"""Shared fixtures: one app per test on a throwaway SQLite file."""

import pytest

from api import create_app

EMAIL = "alice@example.com"
PASSWORD = "correct horse battery staple"
NAME = "Alice"


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'auth.db'}"


@pytest.fixture
def app(database_url):
    app = create_app("testing", {"DATABASE_URL": database_url})
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def manager(app):
    return app.extensions["session_manager"]


@pytest.fixture
def signer(app):
    return app.extensions["token_signer"]


@pytest.fixture
def registered_user(manager):
    outcome = manager.register(NAME, EMAIL, PASSWORD)
    assert outcome.succeeded
    return EMAIL


@pytest.fixture
def logged_in(manager, registered_user):
    """Login payload for device 'phone'."""
    outcome = manager.login(EMAIL, PASSWORD, device_id="phone")
    assert outcome.succeeded
    return outcome.data


@pytest.fixture
def auth_headers(logged_in):
    return {"Authorization": f"Bearer {logged_in['accessToken']}"}
