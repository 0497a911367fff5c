"""Tests for the credential store and the refresh token ledger."""

from datetime import timedelta

import pytest

from models import storage
from models.base_model import utcnow
from models.refresh_token import RefreshToken
from services.credential_store import CredentialStore, DuplicateEmail
from services.token_ledger import RefreshTokenLedger
from utils.security import verify_password


@pytest.fixture
def user_id(app):
    with storage.transaction() as session:
        user = CredentialStore(session).create("Bob", "Bob@Example.com", "hunter22")
    return user.id


def _rows(user_id):
    with storage.transaction() as session:
        return (
            session.query(RefreshToken)
            .filter(RefreshToken.user_id == user_id)
            .order_by(RefreshToken.created_at)
            .all()
        )


def test_create_stores_lowercase_email_and_hashed_password(user_id):
    with storage.transaction() as session:
        user = CredentialStore(session).get(user_id)
    assert user.email == "bob@example.com"
    assert user.password_hash != "hunter22"
    assert verify_password("hunter22", user.password_hash)


def test_find_by_email_ignores_case(user_id):
    with storage.transaction() as session:
        store = CredentialStore(session)
        assert store.find_by_email("BOB@EXAMPLE.COM").id == user_id
        assert store.find_by_email("  bob@example.com ").id == user_id
        assert store.find_by_email("nobody@example.com") is None


def test_create_rejects_duplicate_email_in_any_casing(user_id):
    with pytest.raises(DuplicateEmail):
        with storage.transaction() as session:
            CredentialStore(session).create("Other Bob", "BOB@example.COM", "pw")


def test_password_is_write_only(user_id):
    with storage.transaction() as session:
        user = CredentialStore(session).get(user_id)
    with pytest.raises(AttributeError):
        user.password


def test_store_overwrites_active_row_for_same_device(user_id):
    now = utcnow()
    with storage.transaction() as session:
        RefreshTokenLedger(session).store(user_id, "phone", "a" * 64, now + timedelta(days=1), now)
    with storage.transaction() as session:
        RefreshTokenLedger(session).store(user_id, "phone", "b" * 64, now + timedelta(days=2), now)

    rows = _rows(user_id)
    assert len(rows) == 1
    assert rows[0].token_hash == "b" * 64
    assert not rows[0].revoked
    assert rows[0].version_id == 2


def test_store_keeps_devices_apart(user_id):
    now = utcnow()
    with storage.transaction() as session:
        ledger = RefreshTokenLedger(session)
        ledger.store(user_id, "phone", "a" * 64, now + timedelta(days=1), now)
        ledger.store(user_id, "laptop", "b" * 64, now + timedelta(days=1), now)
    assert {row.device_id for row in _rows(user_id)} == {"phone", "laptop"}


def test_rotate_revokes_old_row_and_inserts_successor(user_id):
    now = utcnow()
    with storage.transaction() as session:
        ledger = RefreshTokenLedger(session)
        record = ledger.store(user_id, "phone", "a" * 64, now + timedelta(days=1), now)
        successor = ledger.rotate(record, "b" * 64, now + timedelta(days=1), now)
    assert successor.device_id == "phone"

    rows = _rows(user_id)
    assert len(rows) == 2
    by_hash = {row.token_hash: row for row in rows}
    assert by_hash["a" * 64].revoked
    assert not by_hash["b" * 64].revoked

    with storage.transaction() as session:
        assert RefreshTokenLedger(session).find_active(user_id, "phone").token_hash == "b" * 64


def test_revoke_all_only_touches_active_rows(user_id):
    now = utcnow()
    with storage.transaction() as session:
        ledger = RefreshTokenLedger(session)
        ledger.store(user_id, "phone", "a" * 64, now + timedelta(days=1), now)
        laptop = ledger.store(user_id, "laptop", "b" * 64, now + timedelta(days=1), now)
        ledger.revoke(laptop, now)
    with storage.transaction() as session:
        assert RefreshTokenLedger(session).revoke_all(user_id, now) == 1
    assert all(row.revoked for row in _rows(user_id))


def test_expired_row_is_not_usable(user_id):
    now = utcnow()
    with storage.transaction() as session:
        record = RefreshTokenLedger(session).store(user_id, "phone", "a" * 64, now - timedelta(seconds=1), now)
    assert record.is_expired(now)
    assert not record.is_usable(now)
