"""
Configuration module — all settings from env vars with sensible defaults.
Follows 12-factor app methodology.
"""
import os
from dataclasses import dataclass


def _origins(raw: str) -> tuple:
    return tuple(o.strip() for o in raw.split(",") if o.strip())


@dataclass(frozen=True)
class Settings:
    # Kubernetes
    KUBECONFIG: str = os.environ.get("KUBECONFIG", "")
    IN_CLUSTER: bool = os.environ.get("IN_CLUSTER", "false").lower() == "true"

    # Tenancy
    TENANT_PREFIX: str = os.environ.get("TENANT_PREFIX", "store-")
    DOMAIN_SUFFIX: str = os.environ.get("DOMAIN_SUFFIX", "local.gd")
    MAX_STORES_GLOBAL: int = int(os.environ.get("MAX_STORES_GLOBAL", "50"))

    # Helm
    HELM_BINARY: str = os.environ.get("HELM_BINARY", "helm")
    HELM_CHART_PATH: str = os.environ.get("HELM_CHART_PATH", "../charts/medusa-store")
    HELM_VALUES_PATH: str = os.environ.get("HELM_VALUES_PATH", "../values-local.yaml")

    # Timeouts (seconds)
    INSTALL_TIMEOUT: int = int(os.environ.get("INSTALL_TIMEOUT", "300"))
    UNINSTALL_TIMEOUT: int = int(os.environ.get("UNINSTALL_TIMEOUT", "300"))
    PROBE_TIMEOUT: float = float(os.environ.get("PROBE_TIMEOUT", "10"))

    # Rate limiting
    RATE_LIMIT_REQUESTS: int = int(os.environ.get("RATE_LIMIT_REQUESTS", "10"))
    RATE_LIMIT_WINDOW: int = int(os.environ.get("RATE_LIMIT_WINDOW", "60"))

    # Audit
    AUDIT_LOG_PATH: str = os.environ.get("AUDIT_LOG_PATH", "audit.log")
    AUDIT_BUFFER_SIZE: int = int(os.environ.get("AUDIT_BUFFER_SIZE", "200"))
    DIAGNOSTIC_MAX_CHARS: int = int(os.environ.get("DIAGNOSTIC_MAX_CHARS", "500"))

    # API
    API_HOST: str = os.environ.get("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.environ.get("API_PORT", "3001"))
    CORS_ORIGINS: tuple = _origins(os.environ.get("CORS_ORIGINS", "*"))
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")


settings = Settings()
