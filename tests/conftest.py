import itertools
from dataclasses import replace
from threading import Lock

import pytest

from ddr import db
from ddr.docker_ops import ObservedInstance, RuntimeAdapterError
from ddr.settings import Settings


class FakeRuntime:
    """In-memory RuntimeAdapter that records every call."""

    def __init__(self, label: str = "owner"):
        self.label = label
        self.instances: dict[str, ObservedInstance] = {}
        self.created: list[tuple[str, dict, str]] = []
        self.started: list[str] = []
        self.removed: list[str] = []
        self.events: list[dict] = []
        self.fail_list = False
        self.fail_start = False
        self.fail_events = False
        self.fail_create_images: set[str] = set()
        self.fail_remove_ids: set[str] = set()
        self._seq = itertools.count(1)
        self._lock = Lock()

    def add(self, name: str, owner: str | None = None, state: str = "running", image: str = "nginx") -> ObservedInstance:
        labels = {self.label: owner} if owner is not None else {}
        inst = ObservedInstance(id=f"ext{next(self._seq):08d}", name=name, labels=labels, state=state, image=image)
        with self._lock:
            self.instances[inst.id] = inst
        return inst

    def owned(self, deployment_id: str) -> list[ObservedInstance]:
        with self._lock:
            return [i for i in self.instances.values() if i.labels.get(self.label) == deployment_id]

    def list_all(self) -> list[ObservedInstance]:
        if self.fail_list:
            raise RuntimeAdapterError("Cannot connect to the Docker daemon")
        with self._lock:
            return list(self.instances.values())

    def create(self, image: str, labels: dict, name: str) -> str:
        if image in self.fail_create_images:
            raise RuntimeAdapterError(f"pull access denied for {image}")
        inst = ObservedInstance(id=f"new{next(self._seq):08d}", name=name, labels=dict(labels), state="created", image=image)
        with self._lock:
            self.created.append((image, dict(labels), name))
            self.instances[inst.id] = inst
        return inst.id

    def start(self, instance_id: str) -> None:
        if self.fail_start:
            raise RuntimeAdapterError("port is already allocated")
        with self._lock:
            self.started.append(instance_id)
            self.instances[instance_id] = replace(self.instances[instance_id], state="running")

    def remove(self, instance_id: str, force: bool = True) -> None:
        if instance_id in self.fail_remove_ids:
            raise RuntimeAdapterError("removal already in progress")
        with self._lock:
            self.removed.append(instance_id)
            self.instances.pop(instance_id, None)

    def destroy_events(self):
        if self.fail_events:
            raise RuntimeAdapterError("event stream closed")
        return iter(list(self.events))


@pytest.fixture(autouse=True)
def journal(tmp_path, monkeypatch):
    """Point the event journal at a fresh sqlite file for every test."""
    monkeypatch.setattr(db, "settings", Settings(db_path=str(tmp_path / "events.db")))
    db.init_db()
    return db


@pytest.fixture
def runtime():
    return FakeRuntime()
