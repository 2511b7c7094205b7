"""
Tests for deleteUserAccount: grouped document deletion, identity removal,
idempotent re-invocation and failure mapping.
"""
import pytest

from conftest import run
from storeadmin.adapters.identity_provider import IdentityProviderError
from storeadmin.exceptions import InternalError, InvalidArgumentError
from storeadmin.services.account_service import delete_user_account


def test_delete_removes_profile_requests_pending_seller_and_identity(store, identity, admin_caller, seeded_user):
    result = run(delete_user_account(
        {"userId": seeded_user, "email": "seller@shop.test"},
        admin_caller, store=store, identity=identity,
    ))

    assert result.success is True
    assert "seller@shop.test" in result.message
    assert run(store.get("users", seeded_user)) is None
    assert run(store.where("partner_requests", "email", "seller@shop.test")) == []
    assert run(store.get("pending_sellers", "seller@shop.test")) is None
    assert run(identity.get_user(seeded_user)) is None


def test_delete_keeps_other_applicants_requests(store, identity, admin_caller, seeded_user):
    run(delete_user_account(
        {"userId": seeded_user, "email": "seller@shop.test"},
        admin_caller, store=store, identity=identity,
    ))
    assert run(store.get("partner_requests", "req-other")) is not None


def test_delete_twice_is_a_noop(store, identity, admin_caller, seeded_user):
    payload = {"userId": seeded_user, "email": "seller@shop.test"}
    run(delete_user_account(payload, admin_caller, store=store, identity=identity))

    result = run(delete_user_account(payload, admin_caller, store=store, identity=identity))

    assert result.success is True


def test_delete_writes_audit_record(store, identity, admin_caller, seeded_user):
    run(delete_user_account(
        {"userId": seeded_user, "email": "seller@shop.test"},
        admin_caller, store=store, identity=identity,
    ))

    records = run(store.where("audit_log", "action", "user.delete"))
    assert len(records) == 1
    assert records[0].data["entity_id"] == seeded_user
    assert records[0].data["user_id"] == "admin-uid"
    assert records[0].data["details"]["partner_requests_deleted"] == 2


@pytest.mark.parametrize("payload", [
    {"email": "seller@shop.test"},
    {"userId": "u1"},
    {"userId": "", "email": "seller@shop.test"},
    None,
])
def test_delete_requires_user_id_and_email(store, identity, admin_caller, payload):
    with pytest.raises(InvalidArgumentError) as exc_info:
        run(delete_user_account(payload, admin_caller, store=store, identity=identity))
    assert exc_info.value.message == "userId and email are required"


def test_identity_failure_after_commit_is_internal_and_documents_stay_deleted(
    store, identity, admin_caller, seeded_user, monkeypatch,
):
    async def broken_delete(uid):
        raise IdentityProviderError("auth/internal-error", "identity backend unavailable")

    monkeypatch.setattr(identity, "delete_user", broken_delete)

    with pytest.raises(InternalError) as exc_info:
        run(delete_user_account(
            {"userId": seeded_user, "email": "seller@shop.test"},
            admin_caller, store=store, identity=identity,
        ))

    assert exc_info.value.message == "Failed to delete user: identity backend unavailable"
    # batch уже зафиксирован: компенсации нет
    assert run(store.get("users", seeded_user)) is None


def test_batch_failure_leaves_documents_untouched(store, identity, admin_caller, seeded_user, monkeypatch):
    async def broken_where(collection, field_name, value):
        raise RuntimeError("query timeout")

    monkeypatch.setattr(store, "where", broken_where)

    with pytest.raises(InternalError) as exc_info:
        run(delete_user_account(
            {"userId": seeded_user, "email": "seller@shop.test"},
            admin_caller, store=store, identity=identity,
        ))

    assert "query timeout" in exc_info.value.message
    assert run(store.get("users", seeded_user)) is not None
    assert run(identity.get_user(seeded_user)) is not None


def test_whitespace_user_id_counts_as_present(store, identity, admin_caller):
    # " " - заполненное значение; отсутствующий аккаунт = уже удалён
    result = run(delete_user_account(
        {"userId": " ", "email": "ghost@shop.test"}, admin_caller, store=store, identity=identity,
    ))
    assert result.success is True
