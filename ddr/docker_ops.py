from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Protocol

import docker
import requests
from docker.errors import DockerException, NotFound

from .settings import settings


class RuntimeAdapterError(Exception):
    """A container runtime call failed."""


@dataclass(frozen=True)
class ObservedInstance:
    id: str
    name: str
    labels: dict[str, str] = field(default_factory=dict)
    state: str = ""
    image: str = ""

    @property
    def short_id(self) -> str:
        return self.id[:10]


class RuntimeAdapter(Protocol):
    def list_all(self) -> list[ObservedInstance]: ...

    def create(self, image: str, labels: dict[str, str], name: str) -> str: ...

    def start(self, instance_id: str) -> None: ...

    def remove(self, instance_id: str, force: bool = True) -> None: ...

    def destroy_events(self) -> Iterator[dict[str, Any]]: ...


_RUNTIME_ERRORS = (DockerException, requests.exceptions.RequestException)


def _instance_from_summary(raw: dict[str, Any]) -> ObservedInstance:
    names = raw.get("Names") or []
    name = names[0].lstrip("/") if names else raw.get("Id", "")[:12]
    return ObservedInstance(
        id=raw["Id"],
        name=name,
        labels=dict(raw.get("Labels") or {}),
        state=raw.get("State", ""),
        image=raw.get("Image", ""),
    )


class DockerRuntime:
    """Docker Engine implementation of RuntimeAdapter.

    Every docker-py / transport error is re-raised as RuntimeAdapterError so the
    reconciler only has one failure type to handle.
    """

    def __init__(self, client: docker.DockerClient | None = None):
        self._client = client

    @property
    def client(self) -> docker.DockerClient:
        if self._client is None:
            try:
                self._client = docker.from_env(timeout=settings.docker_timeout_s)
            except DockerException as e:
                raise RuntimeAdapterError(f"Docker is not available: {e}") from e
        return self._client

    def list_all(self) -> list[ObservedInstance]:
        # Container summaries already carry labels; no per-container inspect
        # that could race with removals.
        try:
            raw = self.client.api.containers(all=True)
        except _RUNTIME_ERRORS as e:
            raise RuntimeAdapterError(f"listing containers failed: {e}") from e
        return [_instance_from_summary(c) for c in raw]

    def create(self, image: str, labels: dict[str, str], name: str) -> str:
        kwargs: dict[str, Any] = {"name": name, "labels": labels}
        if settings.container_platform:
            kwargs["platform"] = settings.container_platform
        try:
            container = self.client.containers.create(image, **kwargs)
        except _RUNTIME_ERRORS as e:
            raise RuntimeAdapterError(f"creating container {name} from {image} failed: {e}") from e
        return container.id

    def start(self, instance_id: str) -> None:
        try:
            self.client.api.start(instance_id)
        except _RUNTIME_ERRORS as e:
            raise RuntimeAdapterError(f"starting container {instance_id[:10]} failed: {e}") from e

    def remove(self, instance_id: str, force: bool = True) -> None:
        try:
            self.client.api.remove_container(instance_id, force=force)
        except NotFound:
            return
        except _RUNTIME_ERRORS as e:
            raise RuntimeAdapterError(f"removing container {instance_id[:10]} failed: {e}") from e

    def destroy_events(self) -> Iterator[dict[str, Any]]:
        """Decoded event stream pre-filtered to container destroy events.

        Callers still check each event; some daemons ignore the action filter.
        """
        try:
            return self.client.events(decode=True, filters={"type": "container", "event": "destroy"})
        except _RUNTIME_ERRORS as e:
            raise RuntimeAdapterError(f"subscribing to events failed: {e}") from e
