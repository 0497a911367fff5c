"""
Racing writers on the same (user, device).

A rival manager with its own engine and session commits between our read and
our write. The loser must get a retryable conflict and the ledger must keep
the winner's token.
"""

import pytest

from conftest import EMAIL, PASSWORD
from models.db_storage import DBStorage
from services.credential_store import CredentialStore
from services.outcomes import AuthFailure
from services.session_manager import SessionManager
from services.token_ledger import RefreshTokenLedger


@pytest.fixture
def rival(app, database_url, signer):
    rival_storage = DBStorage()
    rival_storage.reload(database_url)
    return SessionManager(rival_storage, signer)


def _race_after(monkeypatch, method_name, rival_call):
    """Run rival_call right after the first ledger read of method_name."""
    original = getattr(RefreshTokenLedger, method_name)
    fired = []
    rival_outcomes = []

    def racing(self, *args, **kwargs):
        record = original(self, *args, **kwargs)
        if not fired:
            fired.append(True)
            rival_outcomes.append(rival_call())
        return record

    monkeypatch.setattr(RefreshTokenLedger, method_name, racing)
    return rival_outcomes


def test_concurrent_relogin_on_same_device_has_no_lost_update(manager, rival, logged_in, monkeypatch):
    rival_outcomes = _race_after(
        monkeypatch, "find_active", lambda: rival.login(EMAIL, PASSWORD, device_id="phone")
    )

    ours = manager.login(EMAIL, PASSWORD, device_id="phone")
    theirs = rival_outcomes[0]

    assert theirs.succeeded
    assert not ours.succeeded
    assert ours.failure is AuthFailure.CONCURRENT_UPDATE
    assert ours.retryable
    assert ours.http_status == 409
    # the stored hash still belongs to the token the winner was handed
    assert manager.refresh(theirs.data["refreshToken"]).succeeded


def test_concurrent_first_login_on_new_device_has_no_lost_update(manager, rival, registered_user, monkeypatch):
    rival_outcomes = _race_after(
        monkeypatch, "find_active", lambda: rival.login(EMAIL, PASSWORD, device_id="tablet")
    )

    ours = manager.login(EMAIL, PASSWORD, device_id="tablet")
    theirs = rival_outcomes[0]

    assert theirs.succeeded
    assert ours.failure is AuthFailure.CONCURRENT_UPDATE
    assert manager.refresh(theirs.data["refreshToken"]).succeeded


def test_concurrent_refresh_of_one_token_succeeds_once(manager, rival, logged_in, monkeypatch):
    raw = logged_in["refreshToken"]
    rival_outcomes = _race_after(monkeypatch, "find_by_hash", lambda: rival.refresh(raw))

    ours = manager.refresh(raw)
    theirs = rival_outcomes[0]

    assert theirs.succeeded
    assert ours.failure is AuthFailure.CONCURRENT_UPDATE
    assert manager.refresh(theirs.data["refreshToken"]).succeeded


def test_retry_after_conflict_succeeds(manager, rival, logged_in, monkeypatch):
    _race_after(monkeypatch, "find_active", lambda: rival.login(EMAIL, PASSWORD, device_id="phone"))

    assert manager.login(EMAIL, PASSWORD, device_id="phone").retryable
    retried = manager.login(EMAIL, PASSWORD, device_id="phone")
    assert retried.succeeded
    assert manager.refresh(retried.data["refreshToken"]).succeeded


def test_concurrent_register_with_same_email_reports_duplicate(manager, rival, monkeypatch):
    original = CredentialStore.find_by_email
    fired = []
    rival_outcomes = []

    def racing(self, email):
        user = original(self, email)
        if not fired:
            fired.append(True)
            rival_outcomes.append(rival.register("Rival", "carol@example.com", PASSWORD))
        return user

    monkeypatch.setattr(CredentialStore, "find_by_email", racing)

    ours = manager.register("Carol", "Carol@Example.com", PASSWORD)

    assert rival_outcomes[0].succeeded
    assert ours.failure is AuthFailure.DUPLICATE_EMAIL
    assert manager.login("carol@example.com", PASSWORD).succeeded
