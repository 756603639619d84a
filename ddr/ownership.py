from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from .docker_ops import ObservedInstance


def owner_of(instance: ObservedInstance, label: str) -> str | None:
    """Deployment id an instance belongs to, or None when it is unmanaged."""
    owner = instance.labels.get(label)
    return owner or None


def group_by_owner(
    instances: Iterable[ObservedInstance], label: str
) -> tuple[dict[str, list[ObservedInstance]], list[ObservedInstance]]:
    """Split instances into {deployment_id: [instances]} and the unmanaged rest."""
    by_owner: dict[str, list[ObservedInstance]] = defaultdict(list)
    unmanaged: list[ObservedInstance] = []
    for inst in instances:
        owner = owner_of(inst, label)
        if owner is None:
            unmanaged.append(inst)
            continue
        by_owner[owner].append(inst)
    return dict(by_owner), unmanaged


def removal_order(instances: list[ObservedInstance]) -> list[ObservedInstance]:
    # Non-running containers go first; otherwise keep the runtime's order.
    return sorted(instances, key=lambda i: i.state == "running")
