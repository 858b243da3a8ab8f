"""
Kubernetes service layer: all API server interactions for MiniCloneSets and their pods.

Design principles:
  - Every call is bound to the pass context (deadline + cancellation)
  - Clean error handling: translates K8s API exceptions to domain errors
  - Deletes are idempotent: a pod that is already gone counts as deleted
"""

import logging
from typing import Optional

import urllib3
from kubernetes import client, config
from kubernetes.client import ApiException

from ..config import CRD_GROUP, CRD_PLURAL, HUB_VERSION, settings
from ..context import PassContext
from ..errors import ConflictError, MiniCloneSetError, NotFoundError, TransientError
from ..models import MiniCloneSet, ResourceIdentity
from ..pods import is_owned_by, owner_selector

logger = logging.getLogger("kubernetes_service")

_k8s_loaded = False


def _ensure_k8s():
    """Load Kubernetes config exactly once."""
    global _k8s_loaded
    if _k8s_loaded:
        return
    if settings.IN_CLUSTER:
        config.load_incluster_config()
    else:
        config.load_kube_config(config_file=settings.KUBECONFIG or None)
    _k8s_loaded = True


def core_api() -> client.CoreV1Api:
    _ensure_k8s()
    return client.CoreV1Api()


def custom_api() -> client.CustomObjectsApi:
    _ensure_k8s()
    return client.CustomObjectsApi()


def translate_api_error(e: ApiException, what: str) -> MiniCloneSetError:
    if e.status == 404:
        return NotFoundError(f"{what}: not found")
    if e.status == 409:
        return ConflictError(f"{what}: conflict ({e.reason})")
    return TransientError(f"{what}: HTTP {e.status} {e.reason}")


def _age_key(pod: client.V1Pod):
    created = pod.metadata.creation_timestamp
    return (created.timestamp() if created else 0.0, pod.metadata.name)


class KubernetesStore:
    """Remote object store backed by the Kubernetes API server."""

    def __init__(self, core: Optional[client.CoreV1Api] = None,
                 custom: Optional[client.CustomObjectsApi] = None):
        self._core = core
        self._custom = custom

    @property
    def core(self) -> client.CoreV1Api:
        if self._core is None:
            self._core = core_api()
        return self._core

    @property
    def custom(self) -> client.CustomObjectsApi:
        if self._custom is None:
            self._custom = custom_api()
        return self._custom

    def _call(self, ctx: PassContext, what: str, fn, *args, **kwargs):
        try:
            return fn(*args, _request_timeout=ctx.request_timeout(), **kwargs)
        except ApiException as e:
            raise translate_api_error(e, what) from e
        except urllib3.exceptions.HTTPError as e:
            raise TransientError(f"{what}: {e}") from e

    def get(self, ctx: PassContext, identity: ResourceIdentity) -> dict:
        """Fetch a MiniCloneSet at the hub version. Raises NotFoundError if gone."""
        return self._call(
            ctx, f"get minicloneset {identity}",
            self.custom.get_namespaced_custom_object,
            CRD_GROUP, HUB_VERSION, identity.namespace, CRD_PLURAL, identity.name,
        )

    def list_pods(self, ctx: PassContext, owner: MiniCloneSet) -> list[client.V1Pod]:
        """Pods controlled by ``owner``, oldest first."""
        result = self._call(
            ctx, f"list pods of {owner.identity}",
            self.core.list_namespaced_pod,
            owner.metadata.namespace,
            label_selector=owner_selector(owner.metadata.name),
        )
        pods = [p for p in result.items if is_owned_by(p, owner)]
        return sorted(pods, key=_age_key)

    def create_pod(self, ctx: PassContext, pod: client.V1Pod) -> client.V1Pod:
        created = self._call(
            ctx, f"create pod {pod.metadata.namespace}/{pod.metadata.name}",
            self.core.create_namespaced_pod,
            pod.metadata.namespace, pod,
        )
        logger.info(f"Pod {pod.metadata.namespace}/{pod.metadata.name} created")
        return created

    def delete_pod(self, ctx: PassContext, pod: client.V1Pod) -> bool:
        """Delete a pod. Returns True if deleted, False if it was already gone."""
        try:
            self._call(
                ctx, f"delete pod {pod.metadata.namespace}/{pod.metadata.name}",
                self.core.delete_namespaced_pod,
                pod.metadata.name, pod.metadata.namespace,
            )
        except NotFoundError:
            logger.info(f"Pod {pod.metadata.namespace}/{pod.metadata.name} already gone")
            return False
        logger.info(f"Pod {pod.metadata.namespace}/{pod.metadata.name} deletion initiated")
        return True

    def update_status(self, ctx: PassContext, body: dict) -> dict:
        """
        Replace the status subresource. ``body`` must carry the
        resourceVersion it was read at; a stale one raises ConflictError.
        """
        meta = body["metadata"]
        return self._call(
            ctx, f"update status of {meta['namespace']}/{meta['name']}",
            self.custom.replace_namespaced_custom_object_status,
            CRD_GROUP, HUB_VERSION, meta["namespace"], CRD_PLURAL, meta["name"], body,
        )
