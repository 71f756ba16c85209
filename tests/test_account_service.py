import asyncio

import pytest

from conftest import NOW
from services.account_service import AccountService, TenantSeedError, build_seed_data
from services.document_store import MemoryDocumentStore


class FakeAuth:
    def __init__(self):
        self.signed_out = False

    async def create_user(self, email, password, display_name):
        return "uid-1"

    async def sign_in(self, email, password):
        return "uid-1"

    async def sign_out(self):
        self.signed_out = True


class BrokenStore(MemoryDocumentStore):
    async def _apply(self, changes):
        raise ConnectionError("store unavailable")


def test_seed_data_shape() -> None:
    data = build_seed_data("Owner", "owner@example.com", now=NOW)

    assert set(data["templates"]) == {"TPL001", "TPL002"}
    assert data["triggers"]["TRG001"]["type"] == "new-lead"
    assert data["triggers"]["TRG002"]["config"] == {"minutesBefore": 1440}
    assert data["triggers"]["TRG002"]["enabled"] is False
    assert [s["name"] for s in data["leadStatuses"]] == ["New", "Meeting", "Qualified", "Junk"]
    assert data["meetings"]["1"]["startTime"] == "2024-05-02T12:00:00.000Z"
    assert data["adminUser"]["email"] == "owner@example.com"
    assert data["greenApiConfig"] is None


def test_sign_up_seeds_tenant() -> None:
    store = MemoryDocumentStore()
    service = AccountService(store, FakeAuth())

    tenant_id = asyncio.run(service.sign_up("Owner", "owner@example.com", "pw"))

    assert tenant_id == "uid-1"
    tree = asyncio.run(store.get("users/uid-1"))
    assert tree["adminUser"]["name"] == "Owner"
    assert "leads" not in tree


def test_sign_up_seed_failure_is_reported_with_tenant() -> None:
    service = AccountService(BrokenStore(), FakeAuth())

    with pytest.raises(TenantSeedError) as excinfo:
        asyncio.run(service.sign_up("Owner", "owner@example.com", "pw"))
    assert excinfo.value.tenant_id == "uid-1"


def test_retry_seed_only_when_missing() -> None:
    store = MemoryDocumentStore()
    service = AccountService(store)

    assert asyncio.run(service.retry_seed("uid-1", "Owner", "owner@example.com")) is True
    asyncio.run(store.set("users/uid-1/leads/L1", {"name": "Raj", "mobile": "1"}))
    assert asyncio.run(service.retry_seed("uid-1", "Someone", "else@example.com")) is False
    assert asyncio.run(store.get("users/uid-1/leads/L1"))["name"] == "Raj"


def test_sign_in_requires_provider() -> None:
    service = AccountService(MemoryDocumentStore())
    with pytest.raises(RuntimeError):
        asyncio.run(service.sign_in("a@b.c", "pw"))

    auth = FakeAuth()
    asyncio.run(AccountService(MemoryDocumentStore(), auth).sign_out())
    assert auth.signed_out is True
