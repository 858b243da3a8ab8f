"""
Update strategy engine.

Given the desired spec and the observed pods, decide the single batch of
work for this pass. Rules are evaluated in strict priority order, first
match wins:

  1. scale up       too few pods: create the missing ones
  2. rolling        outdated pods: surge one replacement, then retire the
                    oldest outdated pod once every up-to-date pod is ready
  3. recreate       outdated pods: delete everything, recreate next pass
  4. scale down     too many pods: delete the surplus, oldest first
  5. steady         nothing to do

Only one batch runs per pass so a faulty decision has a bounded blast radius;
the next pass re-derives everything from observed state.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

from kubernetes import client

from .config import settings
from .models import MiniCloneSetSpec, UpdateStrategyType
from .pods import is_pod_ready, is_pod_up_to_date


class Action(str, Enum):
    SCALE_UP = "ScaleUp"
    ROLLING_SURGE = "RollingSurge"
    ROLLING_RETIRE = "RollingRetire"
    ROLLING_WAIT = "RollingWait"
    RECREATE = "Recreate"
    SCALE_DOWN = "ScaleDown"
    STEADY = "Steady"


@dataclass
class Plan:
    action: Action
    create: int = 0
    delete: list = field(default_factory=list)
    requeue_after: Optional[float] = None
    available_replicas: int = 0

    @property
    def is_noop(self) -> bool:
        return self.create == 0 and not self.delete


def plan(
    spec: MiniCloneSetSpec,
    pods: Sequence[client.V1Pod],
    scale_requeue: Optional[float] = None,
    rollout_requeue: Optional[float] = None,
) -> Plan:
    """Decide the next batch. ``pods`` must be ordered oldest first."""
    if scale_requeue is None:
        scale_requeue = settings.SCALE_REQUEUE_S
    if rollout_requeue is None:
        rollout_requeue = settings.ROLLOUT_REQUEUE_S

    desired = spec.replicas
    image = spec.container.image
    current = len(pods)
    available = sum(1 for p in pods if is_pod_ready(p))
    outdated = [p for p in pods if not is_pod_up_to_date(p, image)]
    recreate = spec.updateStrategy.type == UpdateStrategyType.RECREATE

    if current < desired:
        return Plan(Action.SCALE_UP, create=desired - current,
                    requeue_after=scale_requeue, available_replicas=available)

    if outdated and not recreate:
        if current > desired:
            fresh = [p for p in pods if is_pod_up_to_date(p, image)]
            if all(is_pod_ready(p) for p in fresh):
                return Plan(Action.ROLLING_RETIRE, delete=outdated[:1],
                            requeue_after=rollout_requeue, available_replicas=available)
            return Plan(Action.ROLLING_WAIT, requeue_after=rollout_requeue,
                        available_replicas=available)
        return Plan(Action.ROLLING_SURGE, create=1,
                    requeue_after=rollout_requeue, available_replicas=available)

    if outdated and recreate:
        return Plan(Action.RECREATE, delete=list(pods),
                    requeue_after=rollout_requeue, available_replicas=available)

    if current > desired:
        return Plan(Action.SCALE_DOWN, delete=list(pods[:current - desired]),
                    requeue_after=rollout_requeue, available_replicas=available)

    return Plan(Action.STEADY, available_replicas=available)
