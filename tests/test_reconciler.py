"""
Reconciler tests against an in-memory store.

FakeStore.mark_ready() plays the kubelet between passes; everything else is
the real reconciler, strategy engine and conversion scheme.
"""

import pytest

from minicloneset.context import PassContext
from minicloneset.errors import ConflictError, ConversionError, PassCancelled
from minicloneset.models import V1ALPHA1
from minicloneset.reconciler import Reconciler, Result

from tests.factories import FakeStore, image_of, make_pod, minicloneset


def _reconciler(store, scheme) -> Reconciler:
    return Reconciler(store, scheme, scale_requeue=10, rollout_requeue=5)


def _converge(reconciler, store, ctx, identity, max_passes: int = 30) -> int:
    """Run passes (pods become ready between them) until one asks for no requeue."""
    for n in range(1, max_passes + 1):
        result = reconciler.reconcile(ctx, identity)
        store.mark_ready()
        if result.requeue_after is None:
            return n
    raise AssertionError("did not converge")


def _status(store, identity) -> int:
    return store.objects[identity]["status"]["availableReplicas"]


class TestFetch:
    def test_missing_resource_is_a_noop_success(self, scheme, ctx, identity) -> None:
        store = FakeStore()

        result = _reconciler(store, scheme).reconcile(ctx, identity)

        assert result == Result()
        assert store.operations() == 0

    def test_non_hub_stored_object_is_converted(self, scheme, ctx, identity) -> None:
        raw = {
            "apiVersion": V1ALPHA1,
            "kind": "MiniCloneSet",
            "metadata": {"name": "web", "namespace": "default", "uid": "0b6f7c1e-uid-web",
                         "resourceVersion": "1"},
            "spec": {"replicas": 2, "image": "app:v5", "updateStrategy": "RollingUpdate"},
        }
        store = FakeStore(raw)

        _reconciler(store, scheme).reconcile(ctx, identity)

        assert store.created == ["web-0", "web-1"]
        assert {image_of(p) for p in store.pods} == {"app:v5"}

    def test_undecodable_object_is_fatal(self, scheme, ctx, identity) -> None:
        raw = minicloneset()
        raw["spec"]["replicas"] = -3
        store = FakeStore(raw)

        with pytest.raises(ConversionError):
            _reconciler(store, scheme).reconcile(ctx, identity)
        assert store.operations() == 0


class TestConvergence:
    def test_from_zero_to_n_ready_pods(self, scheme, ctx, identity) -> None:
        store = FakeStore(minicloneset(replicas=3, image="app:v2"))
        reconciler = _reconciler(store, scheme)

        first = reconciler.reconcile(ctx, identity)
        assert first.requeue_after == 10
        assert store.created == ["web-0", "web-1", "web-2"]

        store.mark_ready()
        _converge(reconciler, store, ctx, identity)

        assert len(store.pods) == 3
        assert {image_of(p) for p in store.pods} == {"app:v2"}
        assert _status(store, identity) == 3

    def test_created_pods_are_owned(self, scheme, ctx, identity) -> None:
        store = FakeStore(minicloneset(replicas=1))

        _reconciler(store, scheme).reconcile(ctx, identity)

        [pod] = store.pods
        [ref] = pod.metadata.owner_references
        assert ref.uid == "0b6f7c1e-uid-web"
        assert ref.controller is True

    def test_status_tracks_measured_readiness(self, scheme, ctx, identity) -> None:
        store = FakeStore(minicloneset(replicas=2, image="app:v2", available=2))
        store.pods = [make_pod("web-0", "app:v2", ready=True), make_pod("web-1", "app:v2", ready=False)]

        result = _reconciler(store, scheme).reconcile(ctx, identity)

        assert result.requeue_after is None
        assert _status(store, identity) == 1

    def test_scale_down_removes_only_the_surplus(self, scheme, ctx, identity) -> None:
        store = FakeStore(minicloneset(replicas=2, image="app:v2"))
        store.pods = [make_pod(f"web-{i}", "app:v2", age=10 - i) for i in range(5)]

        _reconciler(store, scheme).reconcile(ctx, identity)

        assert store.deleted == ["web-0", "web-1", "web-2"]
        assert store.created == []


class TestIdempotence:
    def test_second_pass_without_changes_does_nothing(self, scheme, ctx, identity) -> None:
        store = FakeStore(minicloneset(replicas=2, image="app:v2"))
        reconciler = _reconciler(store, scheme)
        _converge(reconciler, store, ctx, identity)
        before = store.operations()

        result = reconciler.reconcile(ctx, identity)

        assert result.requeue_after is None
        assert store.operations() == before

    def test_partial_batch_is_finished_by_the_next_pass(self, scheme, ctx, identity) -> None:
        store = FakeStore(minicloneset(replicas=3))
        store.fail_create_after = 1
        reconciler = _reconciler(store, scheme)

        with pytest.raises(ConflictError):
            reconciler.reconcile(ctx, identity)
        assert store.created == ["web-0"]

        store.fail_create_after = None
        reconciler.reconcile(ctx, identity)

        assert store.created == ["web-0", "web-1", "web-2"]


class TestRollingUpdate:
    def test_scenario_scale_then_surge(self, scheme, ctx, identity) -> None:
        store = FakeStore(minicloneset(replicas=3, image="app:v2"))
        store.pods = [make_pod("web-0", "app:v1", age=2), make_pod("web-1", "app:v1", age=1)]
        reconciler = _reconciler(store, scheme)

        # Pass 1: 2 < 3, fill the gap with the new image.
        first = reconciler.reconcile(ctx, identity)
        assert first.requeue_after == 10
        assert store.created == ["web-2"]
        assert image_of(store.pods[-1]) == "app:v2"
        assert store.deleted == []

        # Pass 2: count matches, v1 pods remain: one replacement, nothing deleted.
        store.mark_ready()
        second = reconciler.reconcile(ctx, identity)
        assert second.requeue_after == 5
        assert store.created == ["web-2", "web-3"]
        assert store.deleted == []
        assert [p.metadata.name for p in store.pods if image_of(p) == "app:v1"] == ["web-0", "web-1"]

    def test_old_pod_is_kept_until_replacement_is_ready(self, scheme, ctx, identity) -> None:
        store = FakeStore(minicloneset(replicas=1, image="app:v2"))
        store.pods = [make_pod("web-0", "app:v1")]
        reconciler = _reconciler(store, scheme)

        reconciler.reconcile(ctx, identity)
        assert store.created == ["web-1"]

        # web-1 is still starting
        reconciler.reconcile(ctx, identity)
        assert store.deleted == []

        store.mark_ready()
        reconciler.reconcile(ctx, identity)
        assert store.deleted == ["web-0"]

    def test_rollout_converges_with_no_outdated_pods(self, scheme, ctx, identity) -> None:
        store = FakeStore(minicloneset(replicas=3, image="app:v2"))
        store.pods = [make_pod(f"web-{i}", "app:v1", age=3 - i) for i in range(3)]
        reconciler = _reconciler(store, scheme)

        _converge(reconciler, store, ctx, identity)

        assert len(store.pods) == 3
        assert {image_of(p) for p in store.pods} == {"app:v2"}
        assert _status(store, identity) == 3

    def test_never_drops_below_desired_during_rollout(self, scheme, ctx, identity) -> None:
        store = FakeStore(minicloneset(replicas=3, image="app:v2"))
        store.pods = [make_pod(f"web-{i}", "app:v1", age=3 - i) for i in range(3)]
        reconciler = _reconciler(store, scheme)

        for _ in range(20):
            result = reconciler.reconcile(ctx, identity)
            assert len(store.pods) >= 3
            store.mark_ready()
            if result.requeue_after is None:
                break


class TestRecreate:
    def test_deletes_everything_then_recreates(self, scheme, ctx, identity) -> None:
        store = FakeStore(minicloneset(replicas=2, image="app:v2", strategy="Recreate"))
        store.pods = [make_pod("web-0", "app:v1"), make_pod("web-1", "app:v2")]
        reconciler = _reconciler(store, scheme)

        first = reconciler.reconcile(ctx, identity)
        assert store.deleted == ["web-0", "web-1"]
        assert store.created == []
        assert store.pods == []
        assert first.requeue_after == 5

        reconciler.reconcile(ctx, identity)
        assert store.created == ["web-0", "web-1"]
        assert {image_of(p) for p in store.pods} == {"app:v2"}


class TestFailures:
    def test_stale_status_write_is_a_conflict(self, scheme, ctx, identity) -> None:
        store = FakeStore(minicloneset(replicas=1, image="app:v2"))
        store.pods = [make_pod("web-0", "app:v2")]
        original_get = store.get

        def stale_get(ctx, identity):
            raw = original_get(ctx, identity)
            raw["metadata"]["resourceVersion"] = "0"
            return raw

        store.get = stale_get

        with pytest.raises(ConflictError):
            _reconciler(store, scheme).reconcile(ctx, identity)

    def test_cancelled_pass_makes_no_calls(self, scheme, identity) -> None:
        store = FakeStore(minicloneset())
        ctx = PassContext()
        ctx.cancel()

        with pytest.raises(PassCancelled):
            _reconciler(store, scheme).reconcile(ctx, identity)
        assert store.operations() == 0
