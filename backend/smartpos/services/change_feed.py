# Overview: Message-passing channel for "remote collection changed" notifications.

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Callable, Mapping

from .remote_store import RemoteStore, RemoteUnavailableError, WATCHED_TABLES

"""
Change feed semantics:

- A poller fingerprints each watched remote table; a changed fingerprint
  publishes ChangeEvent(table) to every subscription.
- Subscriptions are queues. Nothing runs on the poller thread except the
  publish; consumers call Subscription.dispatch_pending() from their own thread
  and the matching handler decides what to re-fetch.
- No ordering guarantee relative to local writes: an echo of our own write
  shows up as a change like any other.
"""

logger = logging.getLogger(__name__)

ChangeHandler = Callable[["ChangeEvent"], None]


@dataclass(frozen=True)
class ChangeEvent:
    table: str


class Subscription:
    def __init__(self, handlers: Mapping[str, ChangeHandler]):
        self.handlers = dict(handlers)
        self._queue: "queue.Queue[ChangeEvent]" = queue.Queue()
        self.active = True

    def deliver(self, event: ChangeEvent) -> None:
        if self.active and event.table in self.handlers:
            self._queue.put(event)

    def pending(self) -> int:
        return self._queue.qsize()

    def dispatch_pending(self) -> list[ChangeEvent]:
        """Run handlers for every queued event (duplicates per table collapse)."""
        seen: list[ChangeEvent] = []
        while True:
            try:
                event = self._queue.get_nowait()
            except queue.Empty:
                break
            if event not in seen:
                seen.append(event)
        for event in seen:
            self.handlers[event.table](event)
        return seen


class ChangeFeed:
    def __init__(self, remote: RemoteStore, *, interval: float = 5.0, tables=WATCHED_TABLES):
        self.remote = remote
        self.interval = interval
        self.tables = tuple(tables)
        self._subscriptions: list[Subscription] = []
        self._digests: dict[str, str] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def subscribe(self, handlers: Mapping[str, ChangeHandler]) -> Subscription:
        sub = Subscription(handlers)
        with self._lock:
            self._subscriptions.append(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        sub.active = False
        with self._lock:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)

    def publish(self, event: ChangeEvent) -> None:
        with self._lock:
            subs = list(self._subscriptions)
        for sub in subs:
            sub.deliver(event)

    def prime(self) -> None:
        """Record current fingerprints without publishing anything."""
        for table in self.tables:
            try:
                self._digests[table] = self.remote.table_digest(table)
            except RemoteUnavailableError:
                logger.warning("Change feed could not fingerprint %s", table, exc_info=True)

    def poll_once(self) -> list[ChangeEvent]:
        changed: list[ChangeEvent] = []
        for table in self.tables:
            try:
                digest = self.remote.table_digest(table)
            except RemoteUnavailableError:
                logger.warning("Change feed poll failed for %s", table, exc_info=True)
                continue
            previous = self._digests.get(table)
            self._digests[table] = digest
            if previous is not None and previous != digest:
                event = ChangeEvent(table)
                changed.append(event)
                self.publish(event)
        return changed

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self.prime()
        self._thread = threading.Thread(target=self._run, name="smartpos-change-feed", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.poll_once()
