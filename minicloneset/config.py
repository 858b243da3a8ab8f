"""
Configuration module: all settings from env vars with sensible defaults.
Follows 12-factor app methodology.
"""
import os
from dataclasses import dataclass

# CRD
CRD_GROUP = "apps.example.com"
CRD_KIND = "MiniCloneSet"
CRD_PLURAL = "miniclonesets"
HUB_VERSION = "v1"

# Managed pods
OPERATOR_NAME = "minicloneset-operator"
LABEL_APP = "app"
LABEL_MANAGED_BY = "app.kubernetes.io/managed-by"
MAIN_CONTAINER = "main"
CONTAINER_PORT = 80

DEFAULT_MAX_UNAVAILABLE = "25%"


def _split(raw: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    # Kubernetes
    KUBECONFIG: str = os.environ.get("KUBECONFIG", "")
    IN_CLUSTER: bool = os.environ.get("IN_CLUSTER", "false").lower() == "true"
    WATCH_NAMESPACES: tuple[str, ...] = _split(os.environ.get("WATCH_NAMESPACES", ""))

    # Reconciliation
    MAX_WORKERS: int = int(os.environ.get("MAX_WORKERS", "4"))
    SCALE_REQUEUE_S: float = float(os.environ.get("SCALE_REQUEUE_S", "10"))
    ROLLOUT_REQUEUE_S: float = float(os.environ.get("ROLLOUT_REQUEUE_S", "5"))
    CONFLICT_RETRY_S: float = float(os.environ.get("CONFLICT_RETRY_S", "1"))
    TRANSIENT_RETRY_S: float = float(os.environ.get("TRANSIENT_RETRY_S", "15"))
    PASS_TIMEOUT_S: float = float(os.environ.get("PASS_TIMEOUT_S", "30"))
    RESYNC_INTERVAL_S: float = float(os.environ.get("RESYNC_INTERVAL_S", "120"))

    # Observability
    METRICS_PORT: int = int(os.environ.get("METRICS_PORT", "8080"))
    REDIS_URL: str = os.environ.get("REDIS_URL", "")

    # Conversion webhook
    WEBHOOK_HOST: str = os.environ.get("WEBHOOK_HOST", "0.0.0.0")
    WEBHOOK_PORT: int = int(os.environ.get("WEBHOOK_PORT", "9443"))
    WEBHOOK_CERT_FILE: str = os.environ.get("WEBHOOK_CERT_FILE", "")
    WEBHOOK_KEY_FILE: str = os.environ.get("WEBHOOK_KEY_FILE", "")


settings = Settings()
