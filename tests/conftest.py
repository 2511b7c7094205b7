"""
Pytest configuration and shared fixtures for StoreAdmin tests
"""
from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path

import pytest

# Пакет storeadmin импортируется из src/ и без установки
SRC = Path(__file__).resolve().parents[1] / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

# Окружение тестов - до импорта приложения
os.environ["NATS_ENABLED"] = "false"
os.environ["MEMORY_STORE"] = "true"
os.environ["APP_ENV"] = "testing"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"

from storeadmin.db.collections import COLLECTION_USERS  # noqa: E402
from storeadmin.memory_store import MemoryDocumentStore, MemoryIdentityProvider  # noqa: E402
from storeadmin.models.caller import CallerContext  # noqa: E402


def run(coro):
    """Выполняет корутину в новом event loop."""
    return asyncio.run(coro)


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def identity():
    return MemoryIdentityProvider()


@pytest.fixture
def admin_caller(store):
    """Администратор по роли в профиле, без claim в токене."""
    run(store.set(COLLECTION_USERS, "admin-uid", {"role": "admin", "email": "root@shop.test"}))
    return CallerContext(uid="admin-uid", token={"sub": "admin-uid"})


@pytest.fixture
def customer_caller(store):
    """Обычный покупатель: роль не админская, claim отсутствует."""
    run(store.set(COLLECTION_USERS, "customer-uid", {"role": "customer", "email": "c@shop.test"}))
    return CallerContext(uid="customer-uid", token={"sub": "customer-uid"})


@pytest.fixture
def seeded_user(store, identity):
    """Пользователь с профилем, заявками партнёра и pending seller."""
    account = run(identity.create_user("seller@shop.test", "secret123", "Seller"))
    uid = account["uid"]
    run(store.set(COLLECTION_USERS, uid, {"role": "seller", "email": "seller@shop.test"}))
    run(store.set("partner_requests", "req-1", {"email": "seller@shop.test", "status": "approved"}))
    run(store.set("partner_requests", "req-2", {"email": "seller@shop.test", "status": "pending"}))
    run(store.set("partner_requests", "req-other", {"email": "other@shop.test", "status": "pending"}))
    run(store.set("pending_sellers", "seller@shop.test", {"email": "seller@shop.test"}))
    return uid
