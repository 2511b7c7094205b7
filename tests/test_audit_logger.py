"""
Tests for the audit logger buffer fallback and application startup on
in-memory backends.
"""
from fastapi.testclient import TestClient

from conftest import run
from storeadmin.dependencies import current_backends, reset_backends
from storeadmin.services.audit_logger import AdminAuditAction, AdminAuditLogger


class FlakyStore:
    """Хранилище, у которого ``add`` падает до вызова ``recover()``."""

    def __init__(self, inner):
        self.inner = inner
        self.down = True

    async def add(self, collection, data):
        if self.down:
            raise ConnectionError("store unavailable")
        return await self.inner.add(collection, data)


def test_log_writes_record(store):
    audit = AdminAuditLogger()
    run(audit.log(store, AdminAuditAction.STAFF_CREATE, "user", "u1", user_id="admin", details={"x": 1}))

    [doc] = run(store.where("audit_log", "entity_id", "u1"))
    assert doc.data["action"] == "staff.create"
    assert doc.data["details"] == {"x": 1}
    assert audit.buffer_size == 0


def test_failed_write_is_buffered_and_flushed_later(store):
    flaky = FlakyStore(store)
    audit = AdminAuditLogger()

    run(audit.log(flaky, AdminAuditAction.USER_DELETE, "user", "u1"))
    assert audit.buffer_size == 1
    assert run(audit.flush_buffer(flaky)) == 0

    flaky.down = False
    assert run(audit.flush_buffer(flaky)) == 1
    assert audit.buffer_size == 0
    assert len(run(store.where("audit_log", "action", "user.delete"))) == 1


def test_buffer_is_bounded(store):
    flaky = FlakyStore(store)
    audit = AdminAuditLogger(max_buffer_size=2)
    for i in range(3):
        run(audit.log(flaky, "custom.action", "user", f"u{i}"))
    assert audit.buffer_size == 2


def test_startup_activates_memory_backends():
    from storeadmin.main import app

    reset_backends()
    with TestClient(app) as client:
        store, identity = current_backends()
        assert getattr(store, "kind", None) == "memory"
        assert getattr(identity, "kind", None) == "memory"
        assert client.get("/").json()["name"] == "StoreAdmin"
    reset_backends()
