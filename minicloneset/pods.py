"""
Pod lifecycle helpers. Pure functions over ``kubernetes.client`` models;
nothing here talks to the API server.
"""
from typing import Iterable

from kubernetes import client

from .config import (
    CONTAINER_PORT,
    LABEL_APP,
    LABEL_MANAGED_BY,
    MAIN_CONTAINER,
    OPERATOR_NAME,
)
from .models import MiniCloneSet


def owner_labels(owner_name: str) -> dict:
    return {
        LABEL_APP: owner_name,
        LABEL_MANAGED_BY: OPERATOR_NAME,
    }


def owner_selector(owner_name: str) -> str:
    return ",".join(f"{k}={v}" for k, v in owner_labels(owner_name).items())


def is_pod_ready(pod: client.V1Pod) -> bool:
    """True iff the pod carries a Ready condition with status True."""
    if pod.status is None:
        return False
    for condition in pod.status.conditions or []:
        if condition.type == "Ready" and condition.status == "True":
            return True
    return False


def is_pod_up_to_date(pod: client.V1Pod, desired_image: str) -> bool:
    """
    True iff the main container runs ``desired_image``.
    A pod without a main container counts as up to date.
    """
    containers = pod.spec.containers if pod.spec else []
    for container in containers or []:
        if container.name == MAIN_CONTAINER and container.image != desired_image:
            return False
    return True


def is_owned_by(pod: client.V1Pod, owner: MiniCloneSet) -> bool:
    for ref in pod.metadata.owner_references or []:
        if ref.controller and ref.uid == owner.metadata.uid:
            return True
    return False


def next_ordinals(pods: Iterable[client.V1Pod], owner_name: str, count: int) -> list[int]:
    """Pick ``count`` free ordinals, starting at the current pod count."""
    taken = {p.metadata.name for p in pods}
    ordinal = len(taken)
    picked = []
    while len(picked) < count:
        if f"{owner_name}-{ordinal}" not in taken:
            picked.append(ordinal)
        ordinal += 1
    return picked


def build_pod(owner: MiniCloneSet, ordinal: int) -> client.V1Pod:
    """New pod descriptor for ``owner``. The caller sets the owner reference and persists it."""
    name = owner.metadata.name
    return client.V1Pod(
        api_version="v1",
        kind="Pod",
        metadata=client.V1ObjectMeta(
            name=f"{name}-{ordinal}",
            namespace=owner.metadata.namespace,
            labels=owner_labels(name),
        ),
        spec=client.V1PodSpec(
            containers=[
                client.V1Container(
                    name=MAIN_CONTAINER,
                    image=owner.spec.container.image,
                    ports=[
                        client.V1ContainerPort(container_port=CONTAINER_PORT, protocol="TCP")
                    ],
                )
            ],
        ),
    )


def set_owner_reference(pod: client.V1Pod, owner: MiniCloneSet) -> client.V1Pod:
    pod.metadata.owner_references = [
        client.V1OwnerReference(
            api_version=owner.apiVersion,
            kind=owner.kind,
            name=owner.metadata.name,
            uid=owner.metadata.uid,
            controller=True,
            block_owner_deletion=True,
        )
    ]
    return pod
