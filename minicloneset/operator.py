"""
MiniCloneSet Operator: kopf wiring for the reconciler

  MiniCloneSet CRD → Operator watches → Reconcile pass:
    1. Fetch MiniCloneSet (hub version v1)
    2. List owned pods
    3. Strategy engine: scale up / rolling / recreate / scale down / steady
    4. Update status.availableReplicas
    5. Requeue hint → kopf.TemporaryError(delay=...)

  Triggers (level-triggered, every trigger runs a full pass):
    - create / update / resume of a MiniCloneSet
    - any event on a managed pod → reconcile its controller
    - periodic resync timer

  Deletion:
    Pods carry a controller owner reference, so the garbage collector
    cascades the delete. No finalizer is needed.

  Concurrency Control:
    - At most one pass per MiniCloneSet at a time; a second trigger is
      redelivered instead of waiting
    - Distinct MiniCloneSets run in parallel up to MAX_WORKERS
"""

import logging
import threading
from contextlib import contextmanager
from typing import Optional

import kopf
from prometheus_client import start_http_server

from .config import CRD_GROUP, CRD_KIND, CRD_PLURAL, HUB_VERSION, LABEL_MANAGED_BY, OPERATOR_NAME
from .config import settings as operator_config
from .context import PassContext
from .conversion import build_scheme
from .errors import ConflictError, ConversionError, RetryableError
from .models import ResourceIdentity
from .reconciler import Reconciler, Result
from .services.events import EventPublisher
from .services.kubernetes_service import KubernetesStore

logger = logging.getLogger("minicloneset-operator")


# ---------------------------------------------------------------------------
# Per-identity pass exclusion
# ---------------------------------------------------------------------------

class IdentityLocks:
    """Tracks which MiniCloneSets have a pass in flight."""

    def __init__(self):
        self._guard = threading.Lock()
        self._running: set[ResourceIdentity] = set()

    @contextmanager
    def claim(self, identity: ResourceIdentity):
        with self._guard:
            if identity in self._running:
                raise ConflictError(f"a pass for {identity} is already running")
            self._running.add(identity)
        try:
            yield
        finally:
            with self._guard:
                self._running.discard(identity)


# ---------------------------------------------------------------------------
# Reconciler wiring (built once per process)
# ---------------------------------------------------------------------------

_locks = IdentityLocks()
_reconciler = Reconciler(
    store=KubernetesStore(),
    scheme=build_scheme(),
    events=EventPublisher(operator_config.REDIS_URL),
    scale_requeue=operator_config.SCALE_REQUEUE_S,
    rollout_requeue=operator_config.ROLLOUT_REQUEUE_S,
)


def run_pass(namespace: str, name: str, reconciler: Optional[Reconciler] = None,
             locks: Optional[IdentityLocks] = None) -> Result:
    """
    Run one pass and translate domain errors for kopf:
      ConversionError → PermanentError (never retried)
      ConflictError   → TemporaryError, short delay
      other retryable → TemporaryError, backoff delay
    """
    reconciler = reconciler or _reconciler
    locks = locks or _locks
    identity = ResourceIdentity(namespace, name)
    ctx = PassContext(timeout=operator_config.PASS_TIMEOUT_S)
    try:
        with locks.claim(identity):
            return reconciler.reconcile(ctx, identity)
    except ConversionError as e:
        raise kopf.PermanentError(f"MiniCloneSet {identity}: {e}") from e
    except ConflictError as e:
        raise kopf.TemporaryError(str(e), delay=operator_config.CONFLICT_RETRY_S) from e
    except RetryableError as e:
        raise kopf.TemporaryError(str(e), delay=operator_config.TRANSIENT_RETRY_S) from e


def controller_name(meta) -> Optional[str]:
    """Name of the MiniCloneSet controlling a pod, if any."""
    for ref in meta.get("ownerReferences", []) or []:
        if (ref.get("controller") and ref.get("kind") == CRD_KIND
                and ref.get("apiVersion", "").startswith(f"{CRD_GROUP}/")):
            return ref.get("name")
    return None


# ---------------------------------------------------------------------------
# Kopf operator settings
# ---------------------------------------------------------------------------

@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **kwargs):
    settings.posting.enabled = True
    # Keep kopf's bookkeeping out of .status; the reconciler owns it.
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(
        prefix=CRD_GROUP
    )
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage(
        prefix=CRD_GROUP
    )
    settings.execution.max_workers = operator_config.MAX_WORKERS
    start_http_server(operator_config.METRICS_PORT)
    logger.info(
        f"MiniCloneSet Operator started (max_workers={operator_config.MAX_WORKERS}, "
        f"metrics_port={operator_config.METRICS_PORT}, "
        f"namespaces={','.join(operator_config.WATCH_NAMESPACES) or '*'})"
    )


# ---------------------------------------------------------------------------
# CREATE / UPDATE / RESUME: the reconciliation entry point
# ---------------------------------------------------------------------------

@kopf.on.create(CRD_GROUP, HUB_VERSION, CRD_PLURAL)
@kopf.on.update(CRD_GROUP, HUB_VERSION, CRD_PLURAL, field="spec")
@kopf.on.resume(CRD_GROUP, HUB_VERSION, CRD_PLURAL)
def reconcile_minicloneset(name, namespace, logger, **kwargs):
    """
    Drive the MiniCloneSet toward its spec. A requeue hint from the pass is
    turned into a TemporaryError so kopf calls us again after the delay;
    the handler completes once the pass reports steady state.
    """
    result = run_pass(namespace, name)
    if result.requeue_after:
        raise kopf.TemporaryError(
            f"MiniCloneSet {namespace}/{name} still converging", delay=result.requeue_after
        )
    logger.info(f"MiniCloneSet {namespace}/{name} converged")


# ---------------------------------------------------------------------------
# Managed pod events: readiness changes, deletions, external edits
# ---------------------------------------------------------------------------

@kopf.on.event("", "v1", "pods", labels={LABEL_MANAGED_BY: OPERATOR_NAME})
def on_managed_pod_event(meta, namespace, logger, **kwargs):
    owner = controller_name(meta)
    if owner is None:
        return
    try:
        run_pass(namespace, owner)
    except kopf.TemporaryError as e:
        # The owner's own handler or the resync timer redelivers.
        logger.debug(f"Pass for {namespace}/{owner} deferred: {e}")
    except kopf.PermanentError as e:
        logger.error(f"Pass for {namespace}/{owner} failed permanently: {e}")


# ---------------------------------------------------------------------------
# TIMER: periodic resync
# ---------------------------------------------------------------------------

@kopf.timer(CRD_GROUP, HUB_VERSION, CRD_PLURAL,
            interval=operator_config.RESYNC_INTERVAL_S, idle=operator_config.RESYNC_INTERVAL_S)
def resync_minicloneset(name, namespace, logger, **kwargs):
    """Full pass on a schedule so dropped deliveries are eventually repaired."""
    result = run_pass(namespace, name)
    if result.requeue_after:
        logger.info(f"MiniCloneSet {namespace}/{name}: resync found work, converging")


def main():
    namespaces = list(operator_config.WATCH_NAMESPACES)
    kopf.configure(verbose=False)
    kopf.run(standalone=True, clusterwide=not namespaces, namespaces=namespaces)


if __name__ == "__main__":
    main()
