"""
MiniCloneSet reconciler: one level-triggered control-loop pass.

  1. Fetch the MiniCloneSet (hub version); gone → no-op success
  2. List the pods it controls
  3. Ask the strategy engine for this pass's batch and apply it
  4. Persist status.availableReplicas (status subresource only)
  5. Return a requeue hint, or raise

No plan is remembered between passes. A failing call aborts the rest of
the batch without rollback; the next pass recomputes from observed state.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from kubernetes import client

from . import strategy
from .context import PassContext
from .conversion import Scheme
from .errors import MiniCloneSetError, NotFoundError
from .metrics import AVAILABLE_REPLICAS, PASSES, POD_OPERATIONS
from .models import MiniCloneSet, ResourceIdentity
from .pods import build_pod, next_ordinals, set_owner_reference
from .services.events import EventPublisher

logger = logging.getLogger("minicloneset.reconciler")


@dataclass(frozen=True)
class Result:
    requeue_after: Optional[float] = None


class Reconciler:
    def __init__(self, store, scheme: Scheme, events: Optional[EventPublisher] = None,
                 scale_requeue: Optional[float] = None, rollout_requeue: Optional[float] = None):
        self.store = store
        self.scheme = scheme
        self.events = events or EventPublisher()
        self.scale_requeue = scale_requeue
        self.rollout_requeue = rollout_requeue

    def reconcile(self, ctx: PassContext, identity: ResourceIdentity) -> Result:
        try:
            result = self._reconcile(ctx, identity)
        except MiniCloneSetError:
            PASSES.labels(result="error").inc()
            raise
        PASSES.labels(result="requeue" if result.requeue_after else "done").inc()
        return result

    def _reconcile(self, ctx: PassContext, identity: ResourceIdentity) -> Result:
        try:
            raw = self.store.get(ctx, identity)
        except NotFoundError:
            logger.info(f"MiniCloneSet {identity} not found, nothing to do")
            return Result()

        owner = self.scheme.to_hub(self.scheme.decode(raw))
        pods = self.store.list_pods(ctx, owner)

        batch = strategy.plan(
            owner.spec, pods,
            scale_requeue=self.scale_requeue,
            rollout_requeue=self.rollout_requeue,
        )
        logger.info(
            f"[{identity}] {batch.action.value}: pods={len(pods)} desired={owner.spec.replicas} "
            f"create={batch.create} delete={len(batch.delete)} ready={batch.available_replicas}"
        )

        if batch.create:
            self._create_pods(ctx, owner, pods, batch.create)
        for pod in batch.delete:
            self._delete_pod(ctx, owner, pod)

        self._persist_status(ctx, owner, batch.available_replicas)
        return Result(requeue_after=batch.requeue_after)

    def _create_pods(self, ctx: PassContext, owner: MiniCloneSet, pods: list, count: int):
        for ordinal in next_ordinals(pods, owner.metadata.name, count):
            pod = set_owner_reference(build_pod(owner, ordinal), owner)
            self.store.create_pod(ctx, pod)
            POD_OPERATIONS.labels(operation="create").inc()
            self.events.publish(owner.identity, "POD_CREATED",
                                f"Created pod {pod.metadata.name} ({owner.spec.container.image})")

    def _delete_pod(self, ctx: PassContext, owner: MiniCloneSet, pod: client.V1Pod):
        if self.store.delete_pod(ctx, pod):
            POD_OPERATIONS.labels(operation="delete").inc()
            self.events.publish(owner.identity, "POD_DELETED", f"Deleted pod {pod.metadata.name}")

    def _persist_status(self, ctx: PassContext, owner: MiniCloneSet, available: int):
        AVAILABLE_REPLICAS.labels(
            namespace=owner.metadata.namespace, name=owner.metadata.name
        ).set(available)
        if owner.status.availableReplicas == available:
            return
        owner.status.availableReplicas = available
        self.store.update_status(ctx, self.scheme.encode(owner))
        logger.info(f"[{owner.identity}] status.availableReplicas={available}")
