"""Store Orchestrator — per-tenant store provisioning on Kubernetes."""

__version__ = "1.0.0"
