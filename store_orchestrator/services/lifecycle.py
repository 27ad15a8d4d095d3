"""
Lifecycle controller — orchestrates store create, list and delete.

Create flow:
  rate limit → validate name → capacity → in-flight lock →
  START → idempotency check → helm install → SUCCESS / FAILED / DUPLICATE

Delete flow:
  START → PVC cleanup (best-effort) → helm uninstall + namespace delete →
  SUCCESS / FAILED

Every create or delete attempt that gets past admission writes exactly one
START and one terminal audit entry. Failures are never retried here.
"""

import asyncio
import logging
import re
from collections import Counter
from datetime import datetime
from typing import Optional

from store_orchestrator.config import Settings
from store_orchestrator.errors import AdmissionRejected, BackendFailure, Conflict, ValidationError
from store_orchestrator.models import AuditAction, StoreResponse, TenantNamespace
from store_orchestrator.services.audit_log import AuditLog
from store_orchestrator.services.capacity import CapacityGuard
from store_orchestrator.services.cluster_gateway import ClusterGateway, GatewayError
from store_orchestrator.services.rate_limiter import RateLimiter
from store_orchestrator.services.stats import Stats

logger = logging.getLogger("lifecycle")

# Helm release names are capped at 53 characters
MAX_STORE_ID_LENGTH = 53

_NON_SLUG = re.compile(r"[^a-z0-9]")


def derive_store_id(name: str, prefix: str = "store-") -> str:
    """Namespace-safe store id: lowercase, every non-alphanumeric replaced by '-'."""
    return prefix + _NON_SLUG.sub("-", name.lower())


def _format_timestamp(value) -> str:
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


class LifecycleController:
    def __init__(
        self,
        settings: Settings,
        gateway: ClusterGateway,
        audit: AuditLog,
        stats: Optional[Stats] = None,
        rate_limiter: Optional[RateLimiter] = None,
        capacity: Optional[CapacityGuard] = None,
    ):
        self.settings = settings
        self.gateway = gateway
        self.audit = audit
        self.stats = stats or Stats()
        self.rate_limiter = rate_limiter or RateLimiter(
            settings.RATE_LIMIT_REQUESTS, settings.RATE_LIMIT_WINDOW
        )
        self.capacity = capacity or CapacityGuard(settings.MAX_STORES_GLOBAL)
        self._in_flight: set[str] = set()

    @classmethod
    def from_settings(cls, settings: Settings) -> "LifecycleController":
        return cls(
            settings,
            gateway=ClusterGateway(settings),
            audit=AuditLog(settings.AUDIT_LOG_PATH, settings.AUDIT_BUFFER_SIZE),
        )

    def store_url(self, store_id: str) -> str:
        return f"http://{store_id}.{self.settings.DOMAIN_SUFFIX}"

    def _truncate(self, diagnostic: str) -> str:
        return diagnostic[: self.settings.DIAGNOSTIC_MAX_CHARS]

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def _admit(self, client_key: str):
        if not self.rate_limiter.admit(client_key):
            self.audit.record(AuditAction.RATE_LIMIT_EXCEEDED, client=client_key)
            raise AdmissionRejected(
                f"Too many requests: limit is {self.rate_limiter.max_requests} "
                f"per {self.rate_limiter.window_seconds}s"
            )

    def _validate_name(self, name: str) -> str:
        if name is None or not name.strip():
            raise ValidationError("Store name must not be empty")
        store_id = derive_store_id(name, self.settings.TENANT_PREFIX)
        if len(store_id) > MAX_STORE_ID_LENGTH:
            raise ValidationError(
                f"Store name too long: id '{store_id}' exceeds {MAX_STORE_ID_LENGTH} characters"
            )
        return store_id

    def _create_failed(self, store_id: str, stage: str, error: GatewayError) -> BackendFailure:
        self.stats.record_failure()
        self.audit.record(
            AuditAction.STORE_CREATE_FAILED,
            id=store_id,
            stage=stage,
            error=self._truncate(error.message),
        )
        logger.error(f"Failed to create store {store_id} at {stage}: {error.message[:200]}")
        return BackendFailure(error.message)

    async def create_store(self, name: str, client_key: str = "unknown") -> dict:
        """Provision a store. Returns as soon as Helm accepts the release."""
        self._admit(client_key)
        store_id = self._validate_name(name)

        try:
            current = await self.gateway.count_tenants()
        except GatewayError as e:
            self.audit.record(AuditAction.STORE_CREATE_START, id=store_id, name=name)
            raise self._create_failed(store_id, "capacity_check", e)

        if not self.capacity.check(current):
            self.audit.record(
                AuditAction.STORE_LIMIT_EXCEEDED,
                id=store_id,
                current=current,
                max=self.capacity.max_stores,
            )
            raise AdmissionRejected(
                f"Store limit reached: {current}/{self.capacity.max_stores} stores"
            )

        # Check-and-add with no await in between, so it is atomic on the event loop
        if store_id in self._in_flight:
            self.audit.record(AuditAction.STORE_CREATE_START, id=store_id, name=name)
            self.audit.record(AuditAction.STORE_CREATE_DUPLICATE, id=store_id, reason="in_flight")
            raise Conflict(f"Store {store_id} is already being created")
        self._in_flight.add(store_id)

        try:
            self.audit.record(AuditAction.STORE_CREATE_START, id=store_id, name=name)
            try:
                exists = await self.gateway.exists(store_id)
            except GatewayError as e:
                raise self._create_failed(store_id, "exists_check", e)
            if exists:
                self.audit.record(AuditAction.STORE_CREATE_DUPLICATE, id=store_id, reason="exists")
                raise Conflict("Store already exists")

            try:
                await self.gateway.install(store_id)
            except GatewayError as e:
                raise self._create_failed(store_id, "install", e)

            self.stats.record_created()
            self.audit.record(AuditAction.STORE_CREATE_SUCCESS, id=store_id)
            logger.info(f"Store {store_id} provisioning started")
            return {"message": "Provisioning started", "id": store_id}
        finally:
            self._in_flight.discard(store_id)

    # ------------------------------------------------------------------
    # List
    # ------------------------------------------------------------------

    async def _to_store(self, ns: TenantNamespace) -> StoreResponse:
        status = await self.gateway.query_readiness(ns.id)
        return StoreResponse(
            id=ns.id,
            status=status,
            url=self.store_url(ns.id),
            createdAt=_format_timestamp(ns.created_at),
        )

    async def list_stores(self) -> list[StoreResponse]:
        """Project tenant namespaces into store views. No caching."""
        try:
            namespaces = await self.gateway.list_tenant_namespaces()
        except GatewayError as e:
            logger.error(f"Failed to list stores: {e.message[:200]}")
            raise BackendFailure(e.message)

        valid = []
        for ns in namespaces:
            if not ns.id or not isinstance(ns.created_at, datetime):
                logger.warning(f"Skipping namespace with incomplete metadata: {ns}")
                continue
            valid.append(ns)

        stores = await asyncio.gather(*(self._to_store(ns) for ns in valid))
        stores = sorted(stores, key=lambda s: s.createdAt)
        self.stats.set_store_totals(Counter(s.status for s in stores))
        return stores

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    async def delete_store(self, store_id: str) -> dict:
        """Tear a store down. PVCs go first so no claim outlives its release."""
        prefix = self.settings.TENANT_PREFIX
        if not store_id or not store_id.startswith(prefix) or store_id == prefix:
            raise ValidationError(f"Not a store id: '{store_id}'")
        if store_id in self._in_flight:
            raise Conflict(f"Store {store_id} is still being created")

        self.audit.record(AuditAction.STORE_DELETE_START, id=store_id)

        storage_cleanup = "ok"
        try:
            claims = await self.gateway.delete_storage_claims(store_id)
            logger.info(f"Store {store_id}: removed {claims} storage claims")
        except GatewayError as e:
            storage_cleanup = f"failed: {self._truncate(e.message)}"
            logger.warning(f"PVC cleanup for {store_id} failed (non-fatal): {e.message[:200]}")

        try:
            await self.gateway.uninstall(store_id)
        except GatewayError as e:
            self.stats.record_failure()
            self.audit.record(
                AuditAction.STORE_DELETE_FAILED,
                id=store_id,
                error=self._truncate(e.message),
                storage_cleanup=storage_cleanup,
            )
            logger.error(f"Failed to delete store {store_id}: {e.message[:200]}")
            raise BackendFailure(e.message)

        self.stats.record_deleted()
        self.audit.record(AuditAction.STORE_DELETE_SUCCESS, id=store_id, storage_cleanup=storage_cleanup)
        logger.info(f"Store {store_id} cleanup triggered")
        return {"message": "Cleanup triggered"}

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def metrics(self) -> dict:
        return self.stats.snapshot()

    def recent_audit(self, limit: Optional[int] = None) -> list[dict]:
        return self.audit.recent(limit)
