from __future__ import annotations

import secrets
from threading import Thread

from . import db
from .deployments import DeploymentSpec, DeploymentStore
from .docker_ops import ObservedInstance, RuntimeAdapter, RuntimeAdapterError
from .ownership import group_by_owner, removal_order
from .settings import settings
from .triggers import Wakeup


def instance_name(deployment_name: str) -> str:
    """``<deployment>-<6 digits>``; collisions surface as create failures."""
    return f"{deployment_name}-{100000 + secrets.randbelow(900000)}"


class Reconciler:
    """Continuously reconciles desired deployments with the containers Docker reports.

    Each cycle starts from scratch: snapshot the store, list every container,
    group the labelled ones by owner, then create or remove the difference.
    Failed operations are logged and left for a later cycle.
    """

    def __init__(
        self,
        store: DeploymentStore,
        runtime: RuntimeAdapter,
        wakeup: Wakeup,
        resync_interval_s: float | None = None,
        owner_label: str | None = None,
    ):
        self.store = store
        self.runtime = runtime
        self.wakeup = wakeup
        interval = settings.resync_interval_s if resync_interval_s is None else resync_interval_s
        self.resync_interval_s = max(0.0, float(interval))
        self.owner_label = owner_label or settings.owner_label
        self._stop = False
        self._thr: Thread | None = None
        # Unmanaged container ids already journaled; only for log dedup.
        self._unmanaged_seen: frozenset[str] = frozenset()

    def start(self) -> None:
        if self._thr and self._thr.is_alive():
            return
        self._stop = False
        self._thr = Thread(target=self._loop, name="ddr-reconciler", daemon=True)
        self._thr.start()

    def stop(self) -> None:
        self._stop = True
        self.wakeup.notify()

    def join(self, timeout: float | None = None) -> None:
        if self._thr:
            self._thr.join(timeout)

    def _loop(self) -> None:
        db.log_event("INFO", "Reconciler started")
        # Converge whatever is already running before waiting for the first signal.
        self._safe_tick("startup")
        while not self._stop:
            signalled = self.wakeup.wait(self.resync_interval_s or None)
            if self._stop:
                break
            self._safe_tick("change" if signalled else "resync")
        db.log_event("INFO", "Reconciler stopped")

    def _safe_tick(self, reason: str) -> None:
        try:
            self.reconcile_once(reason)
        except Exception as e:
            db.log_event("ERROR", f"Reconcile cycle failed: {type(e).__name__}: {e}")

    def reconcile_once(self, reason: str = "manual") -> None:
        """Run one Listing -> Diffing -> Converging pass."""
        desired = self.store.list()

        try:
            observed = self.runtime.list_all()
        except RuntimeAdapterError as e:
            db.log_event("ERROR", f"Error reading actual state ({reason}): {e}")
            return

        by_owner, unmanaged = group_by_owner(observed, self.owner_label)
        current = frozenset(i.id for i in unmanaged)
        if settings.log_unmanaged:
            for inst in unmanaged:
                if inst.id in self._unmanaged_seen:
                    continue
                db.log_event(
                    "INFO",
                    f"Container {inst.short_id} {inst.name} {inst.image} not one of ours; ignoring",
                    instance=inst.id,
                )
        self._unmanaged_seen = current

        for dep in desired:
            world = by_owner.pop(dep.id, [])
            more = dep.replicas - len(world)
            if more > 0:
                for _ in range(more):
                    self._make_instance(dep)
            elif more < 0:
                for inst in removal_order(world)[:-more]:
                    self._remove_instance(inst, dep.id, "scale down")

        # Anything left has our label but no deployment: deleted deployments and
        # orphans from a previous process.
        for owner, orphans in by_owner.items():
            for inst in orphans:
                self._remove_instance(inst, owner, "no longer desired")

    def _make_instance(self, dep: DeploymentSpec) -> None:
        name = instance_name(dep.name)
        labels = {self.owner_label: dep.id}
        try:
            instance_id = self.runtime.create(dep.image, labels, name)
        except RuntimeAdapterError as e:
            db.log_event("ERROR", f"Error making container {name}: {e}", deployment_id=dep.id, instance=name)
            return

        try:
            self.runtime.start(instance_id)
        except RuntimeAdapterError as e:
            db.log_event("ERROR", f"Error starting container {name}: {e}", deployment_id=dep.id, instance=instance_id)
            # A created-but-stopped container would count as a replica forever.
            try:
                self.runtime.remove(instance_id, force=True)
            except RuntimeAdapterError as e2:
                db.log_event(
                    "ERROR",
                    f"Error removing unstarted container {name}: {e2}",
                    deployment_id=dep.id,
                    instance=instance_id,
                )
            return

        db.log_event("INFO", f"Started container {name} from image {dep.image}", deployment_id=dep.id, instance=instance_id)

    def _remove_instance(self, inst: ObservedInstance, owner: str, why: str) -> None:
        try:
            self.runtime.remove(inst.id, force=True)
        except RuntimeAdapterError as e:
            db.log_event("ERROR", f"Error deleting container {inst.name}: {e}", deployment_id=owner, instance=inst.id)
            return
        db.log_event("INFO", f"Deleted container {inst.name} ({why})", deployment_id=owner, instance=inst.id)
