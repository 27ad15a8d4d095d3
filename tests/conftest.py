"""Shared pytest fixtures for store_orchestrator tests."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from store_orchestrator.config import Settings
from store_orchestrator.main import create_app
from store_orchestrator.models import StoreStatus, TenantNamespace
from store_orchestrator.services.audit_log import AuditLog
from store_orchestrator.services.lifecycle import LifecycleController
from store_orchestrator.services.stats import Stats


class FakeGateway:
    """In-memory stand-in for ClusterGateway that records every call in order."""

    def __init__(self) -> None:
        self.namespaces: list[TenantNamespace] = []
        self.readiness: dict[str, StoreStatus] = {}
        self.releases: set[str] = set()
        self.calls: list[tuple] = []
        self.list_error: Exception | None = None
        self.exists_error: Exception | None = None
        self.install_error: Exception | None = None
        self.cleanup_error: Exception | None = None
        self.uninstall_error: Exception | None = None
        self.install_gate: asyncio.Event | None = None

    def add_store(self, store_id: str, status: StoreStatus = StoreStatus.PROVISIONING,
                  created_at: datetime | None = None) -> None:
        self.namespaces.append(
            TenantNamespace(store_id, created_at or datetime(2026, 1, 1, tzinfo=timezone.utc))
        )
        self.releases.add(store_id)
        self.readiness[store_id] = status

    async def list_tenant_namespaces(self) -> list[TenantNamespace]:
        self.calls.append(("list_tenant_namespaces",))
        if self.list_error:
            raise self.list_error
        return list(self.namespaces)

    async def count_tenants(self) -> int:
        self.calls.append(("count_tenants",))
        if self.list_error:
            raise self.list_error
        return len(self.namespaces)

    async def query_readiness(self, store_id: str) -> StoreStatus:
        self.calls.append(("query_readiness", store_id))
        return self.readiness.get(store_id, StoreStatus.PROVISIONING)

    async def exists(self, store_id: str) -> bool:
        self.calls.append(("exists", store_id))
        if self.exists_error:
            raise self.exists_error
        return store_id in self.releases

    async def install(self, store_id: str) -> None:
        self.calls.append(("install", store_id))
        if self.install_gate is not None:
            await self.install_gate.wait()
        if self.install_error:
            raise self.install_error
        self.releases.add(store_id)
        self.namespaces.append(TenantNamespace(store_id, datetime.now(timezone.utc)))

    async def delete_storage_claims(self, store_id: str) -> int:
        self.calls.append(("delete_storage_claims", store_id))
        if self.cleanup_error:
            raise self.cleanup_error
        return 1

    async def uninstall(self, store_id: str) -> None:
        self.calls.append(("uninstall", store_id))
        if self.uninstall_error:
            raise self.uninstall_error
        self.releases.discard(store_id)
        self.namespaces = [ns for ns in self.namespaces if ns.id != store_id]

    def mutations(self) -> list[tuple]:
        names = {"install", "delete_storage_claims", "uninstall"}
        return [c for c in self.calls if c[0] in names]


@pytest.fixture
def audit_path(tmp_path: Path) -> Path:
    return tmp_path / "logs" / "audit.log"


@pytest.fixture
def settings(audit_path: Path) -> Settings:
    return Settings(
        AUDIT_LOG_PATH=str(audit_path),
        MAX_STORES_GLOBAL=5,
        RATE_LIMIT_REQUESTS=10,
        RATE_LIMIT_WINDOW=60,
        DOMAIN_SUFFIX="local.gd",
    )


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def audit(settings: Settings) -> AuditLog:
    return AuditLog(settings.AUDIT_LOG_PATH, buffer_size=100)


@pytest.fixture
def controller(settings: Settings, fake_gateway: FakeGateway, audit: AuditLog) -> LifecycleController:
    return LifecycleController(settings, gateway=fake_gateway, audit=audit, stats=Stats())


@pytest.fixture
def client(controller: LifecycleController):
    with TestClient(create_app(controller)) as test_client:
        yield test_client


@pytest.fixture
def audit_actions(audit: AuditLog):
    """Return a callable listing the recorded audit actions in order."""
    return lambda: [entry["action"] for entry in audit.recent()]
