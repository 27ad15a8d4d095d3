"""
Cluster gateway — abstracts all Kubernetes API and Helm CLI interactions.

Design principles:
  - Async: K8s client calls run in worker threads, Helm runs as a subprocess,
    so one slow install never stalls other requests
  - Bounded: every call carries an explicit timeout
  - No retries: failures surface as GatewayError with the raw diagnostic
  - Readiness is best-effort: query errors degrade to Provisioning
"""

import asyncio
import logging
from typing import Optional

from kubernetes import client, config
from kubernetes.client import ApiException

from store_orchestrator.config import Settings
from store_orchestrator.models import StoreStatus, TenantNamespace

logger = logging.getLogger("cluster_gateway")


class GatewayError(Exception):
    """A cluster or Helm operation failed. The message is the raw diagnostic."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class GatewayTimeout(GatewayError):
    pass


def pods_ready(pods: list) -> bool:
    """
    A store is Ready iff it has at least one pod and every pod is
    Running with all of its containers reporting ready.
    """
    if not pods:
        return False
    for pod in pods:
        status = pod.status
        if status is None or status.phase != "Running":
            return False
        container_statuses = status.container_statuses or []
        if not container_statuses:
            return False
        if not all(cs.ready for cs in container_statuses):
            return False
    return True


class ClusterGateway:
    def __init__(self, settings: Settings, core_api: Optional[client.CoreV1Api] = None):
        self.settings = settings
        self._core_api = core_api
        self._k8s_loaded = core_api is not None

    # ------------------------------------------------------------------
    # Kubernetes client helpers
    # ------------------------------------------------------------------

    def _ensure_k8s(self):
        """Load Kubernetes config exactly once."""
        if self._k8s_loaded:
            return
        if self.settings.IN_CLUSTER:
            config.load_incluster_config()
        else:
            config.load_kube_config(config_file=self.settings.KUBECONFIG or None)
        self._k8s_loaded = True

    def _api(self) -> client.CoreV1Api:
        if self._core_api is None:
            self._ensure_k8s()
            self._core_api = client.CoreV1Api()
        return self._core_api

    async def _k8s(self, method: str, *args, timeout: Optional[float] = None, **kwargs):
        """Run a CoreV1Api call off the event loop, bounded by timeout."""
        timeout = timeout or self.settings.PROBE_TIMEOUT
        try:
            fn = getattr(self._api(), method)
            return await asyncio.wait_for(
                asyncio.to_thread(fn, *args, _request_timeout=timeout, **kwargs),
                timeout,
            )
        except asyncio.TimeoutError:
            raise GatewayTimeout(f"{method} timed out after {timeout}s")
        except ApiException as e:
            raise GatewayError(f"{method} failed ({e.status} {e.reason}): {e.body}", status=e.status)
        except Exception as e:
            raise GatewayError(f"{method} failed: {e}")

    # ------------------------------------------------------------------
    # Helm wrapper
    # ------------------------------------------------------------------

    async def _helm(self, args: list[str], timeout: float) -> tuple[int, str, str]:
        """Execute a Helm CLI command. Kills the process if it outlives timeout."""
        cmd = [self.settings.HELM_BINARY] + args
        logger.info(f"helm> {' '.join(cmd)}")
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise GatewayError(f"Unable to run {cmd[0]}: {e}")
        try:
            out_b, err_b = await asyncio.wait_for(proc.communicate(), timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise GatewayTimeout(f"helm {args[0]} timed out after {timeout}s")
        out = out_b.decode("utf-8", errors="ignore") if out_b else ""
        err = err_b.decode("utf-8", errors="ignore") if err_b else ""
        if out:
            logger.debug(f"helm stdout: {out[:800]}")
        if err:
            logger.warning(f"helm stderr: {err[:800]}")
        return proc.returncode or 0, out, err

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list_tenant_namespaces(self) -> list[TenantNamespace]:
        """All namespaces following the tenant prefix convention."""
        result = await self._k8s("list_namespace")
        tenants = []
        for ns in result.items or []:
            meta = ns.metadata
            name = getattr(meta, "name", None) if meta else None
            if not name or not name.startswith(self.settings.TENANT_PREFIX):
                continue
            tenants.append(TenantNamespace(id=name, created_at=meta.creation_timestamp))
        return tenants

    async def count_tenants(self) -> int:
        return len(await self.list_tenant_namespaces())

    async def query_readiness(self, store_id: str) -> StoreStatus:
        """Readiness of a store namespace. Never raises; errors map to Provisioning."""
        try:
            pods = await self._k8s("list_namespaced_pod", namespace=store_id)
        except GatewayError as e:
            logger.warning(f"Readiness query for {store_id} failed (non-fatal): {e}")
            return StoreStatus.PROVISIONING
        if pods_ready(pods.items):
            return StoreStatus.READY
        return StoreStatus.PROVISIONING

    async def exists(self, store_id: str) -> bool:
        """Check if a Helm release already exists for the store."""
        rc, _, _ = await self._helm(
            ["status", store_id, "-n", store_id], timeout=self.settings.PROBE_TIMEOUT
        )
        return rc == 0

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def install(self, store_id: str):
        """Install the store chart into its own namespace."""
        timeout = self.settings.INSTALL_TIMEOUT
        rc, out, err = await self._helm([
            "install", store_id, self.settings.HELM_CHART_PATH,
            "--namespace", store_id,
            "--create-namespace",
            "-f", self.settings.HELM_VALUES_PATH,
            "--timeout", f"{timeout}s",
        ], timeout=timeout)
        if rc != 0:
            raise GatewayError(err or out or f"helm install exited with {rc}")
        logger.info(f"Helm release {store_id} installed")

    async def delete_storage_claims(self, store_id: str) -> int:
        """Delete every PVC in the store namespace. Returns the number deleted."""
        try:
            claims = await self._k8s("list_namespaced_persistent_volume_claim", namespace=store_id)
        except GatewayError as e:
            if e.status == 404:
                return 0
            raise
        deleted = 0
        failures = []
        for pvc in claims.items or []:
            name = pvc.metadata.name
            try:
                await self._k8s("delete_namespaced_persistent_volume_claim", name, store_id)
            except GatewayError as e:
                if e.status != 404:
                    logger.warning(f"Failed to delete PVC {name} in {store_id}: {e.message}")
                    failures.append(f"{name}: {e.message}")
                    continue
            deleted += 1
            logger.info(f"Deleted PVC {name} in {store_id}")
        if failures:
            raise GatewayError("; ".join(failures))
        return deleted

    async def uninstall(self, store_id: str):
        """Release the Helm workload, then delete the namespace."""
        if await self.exists(store_id):
            rc, out, err = await self._helm(
                ["uninstall", store_id, "-n", store_id],
                timeout=self.settings.UNINSTALL_TIMEOUT,
            )
            if rc != 0:
                raise GatewayError(err or out or f"helm uninstall exited with {rc}")
            logger.info(f"Helm release {store_id} uninstalled")
        else:
            logger.info(f"Helm release {store_id} not found — skipping uninstall")

        try:
            await self._k8s("delete_namespace", name=store_id)
            logger.info(f"Namespace {store_id} deletion initiated")
        except GatewayError as e:
            if e.status != 404:
                raise
            logger.info(f"Namespace {store_id} already gone")
