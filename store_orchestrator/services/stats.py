"""
Process-wide lifecycle counters.

Each Stats instance owns its own CollectorRegistry so isolated instances
(tests, embedded apps) never collide on metric names.
"""

from prometheus_client import CollectorRegistry, Counter, Gauge

from store_orchestrator.models import StoreStatus


class Stats:
    def __init__(self, registry: CollectorRegistry = None):
        self.registry = registry or CollectorRegistry()
        self._created = Counter(
            "orchestrator_stores_created_total",
            "Total stores whose install was accepted",
            registry=self.registry,
        )
        self._deleted = Counter(
            "orchestrator_stores_deleted_total",
            "Total stores torn down",
            registry=self.registry,
        )
        self._failures = Counter(
            "orchestrator_failures_total",
            "Total backend failures during create or delete",
            registry=self.registry,
        )
        self._stores = Gauge(
            "orchestrator_stores",
            "Stores seen on the last listing",
            ["status"],
            registry=self.registry,
        )

    def record_created(self):
        self._created.inc()

    def record_deleted(self):
        self._deleted.inc()

    def record_failure(self):
        self._failures.inc()

    def set_store_totals(self, counts: dict):
        for status in StoreStatus:
            self._stores.labels(status=status.value).set(counts.get(status, 0))

    def _value(self, name: str) -> int:
        return int(self.registry.get_sample_value(name) or 0)

    def snapshot(self) -> dict:
        return {
            "created": self._value("orchestrator_stores_created_total"),
            "deleted": self._value("orchestrator_stores_deleted_total"),
            "failures": self._value("orchestrator_failures_total"),
        }
