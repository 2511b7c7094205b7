"""
Tests for the in-memory document store and identity provider used as
fallback backends.
"""
from datetime import datetime

import pytest

from conftest import run
from storeadmin.adapters.identity_provider import IdentityProviderError
from storeadmin.db.document_store import SERVER_TIMESTAMP, DocumentNotFoundError


def test_server_timestamp_is_resolved_on_write(store):
    run(store.set("users", "u1", {"createdAt": SERVER_TIMESTAMP, "meta": {"seenAt": SERVER_TIMESTAMP}}))

    doc = run(store.get("users", "u1"))
    assert isinstance(doc["createdAt"], datetime)
    assert isinstance(doc["meta"]["seenAt"], datetime)


def test_update_missing_document_raises(store):
    with pytest.raises(DocumentNotFoundError):
        run(store.update("users", "ghost", {"role": "admin"}))


def test_update_merges_top_level_fields(store):
    run(store.set("users", "u1", {"role": "seller", "email": "e@x.com"}))
    run(store.update("users", "u1", {"role": "admin"}))
    assert run(store.get("users", "u1")) == {"role": "admin", "email": "e@x.com"}


def test_get_returns_a_copy(store):
    run(store.set("users", "u1", {"permissions": {"can_view_dashboard": True}}))
    doc = run(store.get("users", "u1"))
    doc["permissions"]["can_view_dashboard"] = False
    assert run(store.get("users", "u1"))["permissions"]["can_view_dashboard"] is True


def test_batch_is_applied_only_on_commit(store):
    run(store.set("users", "u1", {"role": "seller"}))
    batch = store.batch()
    batch.delete("users", "u1")

    assert run(store.get("users", "u1")) is not None
    run(batch.commit())
    assert run(store.get("users", "u1")) is None


def test_failed_batch_applies_nothing(store):
    run(store.set("users", "u1", {"role": "seller"}))
    batch = store.batch()
    batch.delete("users", "u1")
    batch.update("users", "missing", {"role": "admin"})

    with pytest.raises(DocumentNotFoundError):
        run(batch.commit())
    assert run(store.get("users", "u1")) == {"role": "seller"}


def test_batch_cannot_be_committed_twice(store):
    batch = store.batch()
    run(batch.commit())
    with pytest.raises(RuntimeError):
        run(batch.commit())


def test_where_matches_by_equality(store):
    run(store.set("partner_requests", "a", {"email": "x@y.com"}))
    run(store.set("partner_requests", "b", {"email": "X@y.com"}))
    docs = run(store.where("partner_requests", "email", "x@y.com"))
    assert [d.id for d in docs] == ["a"]


def test_add_generates_ids(store):
    first = run(store.add("audit_log", {"action": "a"}))
    second = run(store.add("audit_log", {"action": "b"}))
    assert first != second


def test_identity_email_is_unique_case_insensitively(identity):
    run(identity.create_user("Shop@X.com", "pw", "Shop"))
    with pytest.raises(IdentityProviderError) as exc_info:
        run(identity.create_user("shop@x.com", "pw", "Shop 2"))
    assert exc_info.value.code == "auth/email-already-exists"
    assert exc_info.value.is_auth_error


def test_identity_does_not_expose_password_hash(identity):
    account = run(identity.create_user("a@b.com", "pw", "A"))
    assert "password_hash" not in account
    assert "password_hash" not in run(identity.get_user(account["uid"]))


def test_delete_unknown_account_raises_user_not_found(identity):
    with pytest.raises(IdentityProviderError) as exc_info:
        run(identity.delete_user("nope"))
    assert exc_info.value.code == "auth/user-not-found"
