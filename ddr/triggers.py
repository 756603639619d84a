from __future__ import annotations

from threading import Condition, Event, Thread
from typing import Any

from . import db
from .docker_ops import RuntimeAdapter
from .settings import settings


class Wakeup:
    """Single-slot wakeup signal.

    Any number of notify() calls made while nobody is waiting collapse into one
    pending wakeup. Wakeups carry no payload.
    """

    def __init__(self) -> None:
        self._cond = Condition()
        self._pending = False

    def notify(self) -> None:
        with self._cond:
            self._pending = True
            self._cond.notify()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until a wakeup is pending and consume it.

        Returns False if the timeout elapsed first.
        """
        with self._cond:
            fired = self._cond.wait_for(lambda: self._pending, timeout)
            self._pending = False
            return bool(fired)


def is_destroy_event(event: dict[str, Any]) -> bool:
    # Older daemons only send "status"; newer ones send "Action" as well.
    if event.get("Type") != "container":
        return False
    return (event.get("Action") or event.get("status")) == "destroy"


class DestroyEventWatcher:
    """Forwards container destroy events from the runtime into a Wakeup.

    Stream errors are logged and the subscription is re-opened after
    ``settings.event_retry_s``; they never reach the reconciler.
    """

    def __init__(self, runtime: RuntimeAdapter, wakeup: Wakeup, retry_s: float | None = None):
        self.runtime = runtime
        self.wakeup = wakeup
        self.retry_s = max(0.0, float(settings.event_retry_s if retry_s is None else retry_s))
        self._stop = Event()
        self._stream: Any = None
        self._thr: Thread | None = None

    def start(self) -> None:
        if self._thr and self._thr.is_alive():
            return
        self._stop.clear()
        self._thr = Thread(target=self._loop, name="ddr-events", daemon=True)
        self._thr.start()

    def stop(self) -> None:
        self._stop.set()
        stream = self._stream
        if stream is not None and hasattr(stream, "close"):
            try:
                stream.close()
            except Exception as e:
                db.log_event("WARN", f"Closing event stream failed: {type(e).__name__}: {e}")

    def join(self, timeout: float | None = None) -> None:
        if self._thr:
            self._thr.join(timeout)

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                self._drain()
            except Exception as e:
                if self._stop.is_set():
                    break
                db.log_event("ERROR", f"Runtime event stream failed: {type(e).__name__}: {e}")
            self._stop.wait(self.retry_s)

    def _drain(self) -> None:
        self._stream = self.runtime.destroy_events()
        try:
            for event in self._stream:
                if self._stop.is_set():
                    return
                if not is_destroy_event(event):
                    continue
                actor = event.get("Actor") or {}
                attrs = actor.get("Attributes") or {}
                db.log_event(
                    "INFO",
                    f"Container destroyed: {attrs.get('name') or actor.get('ID') or event.get('id')}",
                    deployment_id=attrs.get(settings.owner_label),
                    instance=actor.get("ID") or event.get("id"),
                )
                self.wakeup.notify()
        finally:
            self._stream = None
