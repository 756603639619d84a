from __future__ import annotations

import uuid
from dataclasses import dataclass
from threading import Lock
from typing import Protocol


class DeploymentNotFound(KeyError):
    pass


class AlreadySubscribed(RuntimeError):
    """A second subscriber tried to attach to a DeploymentStore."""


class ChangeSignal(Protocol):
    def notify(self) -> None: ...


@dataclass(frozen=True)
class DeploymentSpec:
    id: str
    name: str
    image: str
    replicas: int

    def __str__(self) -> str:
        return f"{self.name} ({self.image}) * {self.replicas}"


def validate_replicas(replicas: int) -> None:
    if isinstance(replicas, bool) or not isinstance(replicas, int) or replicas < 0:
        raise ValueError("replicas must be a non-negative integer.")


class DeploymentStore:
    """In-memory desired state: deployment id -> DeploymentSpec.

    Every mutation notifies the single subscriber while still holding the lock,
    so the subscriber never observes a notification before the change itself.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._deps: dict[str, DeploymentSpec] = {}
        self._changed: ChangeSignal | None = None

    def subscribe(self, signal: ChangeSignal) -> None:
        with self._lock:
            if self._changed is not None:
                raise AlreadySubscribed("DeploymentStore supports exactly one subscriber.")
            self._changed = signal

    def list(self) -> list[DeploymentSpec]:
        with self._lock:
            return list(self._deps.values())

    def get(self, deployment_id: str) -> DeploymentSpec:
        with self._lock:
            dep = self._deps.get(deployment_id)
        if dep is None:
            raise DeploymentNotFound(deployment_id)
        return dep

    def create(self, name: str, image: str, replicas: int) -> DeploymentSpec:
        validate_replicas(replicas)
        dep = DeploymentSpec(id=str(uuid.uuid4()), name=name, image=image, replicas=replicas)
        with self._lock:
            self._deps[dep.id] = dep
            self._emit_changed()
        return dep

    def replace(self, deployment_id: str, name: str, image: str, replicas: int) -> DeploymentSpec:
        validate_replicas(replicas)
        dep = DeploymentSpec(id=deployment_id, name=name, image=image, replicas=replicas)
        with self._lock:
            if deployment_id not in self._deps:
                raise DeploymentNotFound(deployment_id)
            self._deps[deployment_id] = dep
            self._emit_changed()
        return dep

    def delete(self, deployment_id: str) -> None:
        with self._lock:
            if self._deps.pop(deployment_id, None) is None:
                raise DeploymentNotFound(deployment_id)
            self._emit_changed()

    def _emit_changed(self) -> None:
        # Caller holds self._lock.
        if self._changed is not None:
            self._changed.notify()
