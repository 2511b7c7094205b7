"""
Tests for approvePartnerRequest: the pending → approved transition,
account provisioning and the error vocabulary.
"""
import asyncio

import pytest

from conftest import run
from storeadmin.exceptions import (
    AlreadyExistsError,
    FailedPreconditionError,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
)
from storeadmin.services.account_service import approve_partner_request

PENDING_REQUEST = {
    "email": "a@b.com",
    "password": "pw123456",
    "name": "A",
    "role": "Seller",
    "status": "pending",
}


@pytest.fixture
def pending_request(store):
    run(store.set("partner_requests", "req-a", dict(PENDING_REQUEST)))
    return "req-a"


def test_approve_creates_account_profile_and_marks_approved(store, identity, admin_caller, pending_request):
    result = run(approve_partner_request(
        {"requestId": pending_request}, admin_caller, store=store, identity=identity,
    ))

    assert result.success is True
    uid = result.user_id
    account = run(identity.get_user(uid))
    assert account["email"] == "a@b.com"
    assert account["display_name"] == "A"
    assert account["custom_claims"] == {}

    profile = run(store.get("users", uid))
    assert profile["role"] == "seller"
    assert profile["name"] == "A"
    assert profile["email"] == "a@b.com"
    assert profile["phone"] is None
    assert profile["businessName"] is None
    assert "createdAt" in profile and "updatedAt" in profile

    request = run(store.get("partner_requests", pending_request))
    assert request["status"] == "approved"
    assert request["approvedBy"] == "admin-uid"
    assert "approvedAt" in request


def test_business_metadata_is_copied(store, identity, admin_caller):
    run(store.set("partner_requests", "req-b", {
        **PENDING_REQUEST,
        "email": "shop@b.com",
        "phone": "+1-555-0100",
        "businessName": "Bolt Shoes",
        "businessType": "retail",
    }))

    result = run(approve_partner_request({"requestId": "req-b"}, admin_caller, store=store, identity=identity))

    profile = run(store.get("users", result.user_id))
    assert profile["phone"] == "+1-555-0100"
    assert profile["businessName"] == "Bolt Shoes"
    assert profile["businessType"] == "retail"
    assert profile["businessAddress"] is None


def test_admin_role_request_grants_claim(store, identity, admin_caller):
    run(store.set("partner_requests", "req-adm", {**PENDING_REQUEST, "email": "ops@b.com", "role": "ADMIN"}))

    result = run(approve_partner_request({"requestId": "req-adm"}, admin_caller, store=store, identity=identity))

    assert run(store.get("users", result.user_id))["role"] == "admin"
    assert run(identity.get_user(result.user_id))["custom_claims"] == {"admin": True}


def test_already_approved_request_fails_precondition(store, identity, admin_caller):
    run(store.set("partner_requests", "req-done", {**PENDING_REQUEST, "status": "approved"}))

    with pytest.raises(FailedPreconditionError) as exc_info:
        run(approve_partner_request({"requestId": "req-done"}, admin_caller, store=store, identity=identity))

    assert "approved" in exc_info.value.message
    assert identity._accounts == {}


def test_rejected_status_is_echoed(store, identity, admin_caller):
    run(store.set("partner_requests", "req-rej", {**PENDING_REQUEST, "status": "rejected"}))

    with pytest.raises(FailedPreconditionError) as exc_info:
        run(approve_partner_request({"requestId": "req-rej"}, admin_caller, store=store, identity=identity))

    assert exc_info.value.message == "Request is not pending (current status: rejected)"


def test_missing_request_is_not_found(store, identity, admin_caller):
    with pytest.raises(NotFoundError) as exc_info:
        run(approve_partner_request({"requestId": "nope"}, admin_caller, store=store, identity=identity))
    assert exc_info.value.code == "not-found"


def test_request_id_is_required(store, identity, admin_caller):
    with pytest.raises(InvalidArgumentError) as exc_info:
        run(approve_partner_request({}, admin_caller, store=store, identity=identity))
    assert exc_info.value.message == "requestId is required"


def test_duplicate_email_is_already_exists(store, identity, admin_caller, pending_request):
    run(identity.create_user("a@b.com", "other-pass", "Existing"))

    with pytest.raises(AlreadyExistsError) as exc_info:
        run(approve_partner_request({"requestId": pending_request}, admin_caller, store=store, identity=identity))

    assert "already in use" in exc_info.value.message
    assert run(store.get("partner_requests", pending_request))["status"] == "pending"


def test_store_failure_is_internal_with_generic_message(store, identity, admin_caller, pending_request, monkeypatch):
    async def broken_set(collection, doc_id, data):
        raise RuntimeError("disk full on shard 7")

    monkeypatch.setattr(store, "set", broken_set)

    with pytest.raises(InternalError) as exc_info:
        run(approve_partner_request({"requestId": pending_request}, admin_caller, store=store, identity=identity))

    assert exc_info.value.message == "Failed to approve partner request"
    assert "disk full" not in exc_info.value.message


def test_concurrent_approvals_create_one_account(store, identity, admin_caller, pending_request):
    async def approve_twice():
        return await asyncio.gather(
            approve_partner_request({"requestId": pending_request}, admin_caller, store=store, identity=identity),
            approve_partner_request({"requestId": pending_request}, admin_caller, store=store, identity=identity),
            return_exceptions=True,
        )

    outcomes = run(approve_twice())

    successes = [o for o in outcomes if not isinstance(o, Exception)]
    failures = [o for o in outcomes if isinstance(o, Exception)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], FailedPreconditionError)
    assert len(identity._accounts) == 1
