"""List-then-watch loops feeding notifications to the wait session.

ResourceWatcher -- one kind in one namespace.  The initial list emits Add
                   events; every ``sync_period`` the watch stream times out
                   and a relist emits Update for present objects and Delete
                   for objects that vanished unseen.  410 Gone relists,
                   other API errors back off exponentially.
WatchGroup      -- runs watchers for every (namespace, kind) pair until the
                   stop event fires or one of them crashes.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import aiohttp
from kubernetes_asyncio import watch  # type: ignore[import-untyped]
from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

from kubewait.collector.client import ClusterClient
from kubewait.models.events import (
    EventType,
    ResourceKind,
    WatchEvent,
    make_event,
    object_name,
    object_resource_version,
)
from kubewait.observability.logging import get_logger

_BACKOFF_MIN_S = 1.0
_BACKOFF_MAX_S = 60.0

EventCallback = Callable[[WatchEvent], Awaitable[Any]]


class ResourceWatcher:
    """Watches one kind in one namespace and forwards every change."""

    def __init__(
        self,
        kind: ResourceKind,
        namespace: str,
        client: ClusterClient,
        on_event: EventCallback,
        sync_period: float = 90.0,
    ) -> None:
        self.kind = kind
        self.namespace = namespace
        self._client = client
        self._on_event = on_event
        self._sync_period = sync_period
        self._log = get_logger(f"collector.watcher.{kind.value}").bind(namespace=namespace)

        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._resource_version = ""
        self._listed_once = False
        # name -> last raw object seen, used to emit Delete after a relist
        self._known: dict[str, dict[str, Any]] = {}
        self._backoff_s = _BACKOFF_MIN_S
        self._consecutive_failures = 0

    @property
    def task(self) -> asyncio.Task[None] | None:
        return self._task

    async def start(self) -> None:
        """Start the watch loop as a background task; idempotent."""
        if self._task is not None:
            return
        self._running = True
        self._task = asyncio.create_task(self._run(), name=f"watch-{self.kind.value}-{self.namespace}")
        self._log.debug("watcher started")

    async def stop(self) -> None:
        self._running = False
        if self._task is None:
            return
        if not self._task.done():
            self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._log.debug("watcher stopped")

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        while self._running:
            try:
                if not self._resource_version:
                    await self._relist()
                await self._watch()
                if self._resource_version:
                    # Stream ended at the sync period; resync from a fresh list.
                    await self._relist()
            except ApiException as exc:
                await self._handle_api_exception(exc)
            except (aiohttp.ClientError, TimeoutError) as exc:
                self._consecutive_failures += 1
                self._log.warning("watch connection error", error=str(exc), failures=self._consecutive_failures)
                await self._backoff("connection")

    async def _relist(self) -> None:
        items, resource_version = await self._client.list_objects(self.kind, self.namespace)
        seen: dict[str, dict[str, Any]] = {}
        for raw in items:
            name = object_name(raw)
            if not name:
                continue
            seen[name] = raw
            event_type = EventType.UPDATE if self._listed_once and name in self._known else EventType.ADD
            await self._emit(event_type, raw)
        for name, raw in list(self._known.items()):
            if name not in seen:
                await self._emit(EventType.DELETE, raw)
        self._known = seen
        self._resource_version = resource_version
        self._listed_once = True
        self._reset_backoff()
        self._log.debug("relisted", count=len(seen), resource_version=resource_version)

    async def _watch(self) -> None:
        async with watch.Watch().stream(
            self._client.list_func(self.kind),
            self.namespace,
            resource_version=self._resource_version,
            timeout_seconds=max(1, int(self._sync_period)),
            allow_watch_bookmarks=True,
        ) as stream:
            async for event in stream:
                if not self._running:
                    return
                await self._handle_watch_event(event)
                if not self._resource_version:
                    return

    async def _handle_watch_event(self, event: dict[str, Any]) -> None:
        event_type = str(event.get("type", ""))
        raw = event.get("raw_object")
        if not isinstance(raw, dict):
            raw = self._client.to_raw(event.get("object"))

        if event_type == "ERROR":
            code = raw.get("code")
            if code == 410:
                self._log.info("watch expired, relisting", resource_version=self._resource_version)
                self._resource_version = ""
                return
            raise ApiException(status=code, reason=str(raw.get("message", "")))

        rv = object_resource_version(raw)
        if rv:
            self._resource_version = rv
        if event_type == "BOOKMARK":
            return

        name = object_name(raw)
        parsed = EventType.from_watch_type(event_type)
        if parsed is EventType.DELETE:
            self._known.pop(name, None)
        else:
            self._known[name] = raw
        await self._emit(parsed, raw)

    async def _emit(self, event_type: EventType, raw: dict[str, Any]) -> None:
        await self._on_event(make_event(self.kind, event_type, raw))

    # ------------------------------------------------------------------
    # Error handling
    # ------------------------------------------------------------------

    async def _handle_api_exception(self, exc: ApiException) -> None:
        if exc.status == 410:
            self._log.info("resource version gone, relisting")
            self._resource_version = ""
            return
        self._consecutive_failures += 1
        self._log.warning(
            "watch api error",
            status=exc.status,
            reason=exc.reason,
            failures=self._consecutive_failures,
        )
        await self._backoff(f"api_{exc.status}")

    async def _backoff(self, reason: str) -> None:
        self._log.debug("backing off", reason=reason, seconds=self._backoff_s)
        await asyncio.sleep(self._backoff_s)
        self._backoff_s = min(self._backoff_s * 2, _BACKOFF_MAX_S)

    def _reset_backoff(self) -> None:
        self._backoff_s = _BACKOFF_MIN_S
        self._consecutive_failures = 0


class WatchGroup:
    """Runs one watcher per (namespace, kind) until told to stop."""

    def __init__(
        self,
        client: ClusterClient,
        namespaces: list[str],
        kinds: set[ResourceKind],
        on_event: EventCallback,
        sync_period: float = 90.0,
    ) -> None:
        # Services first so their children exist before pod events arrive.
        order = [ResourceKind.SERVICE, ResourceKind.POD, ResourceKind.JOB]
        self.watchers = [
            ResourceWatcher(kind, namespace, client, on_event, sync_period)
            for kind in order
            if kind in kinds
            for namespace in namespaces
        ]
        self._log = get_logger("collector.group")

    async def run(self, stop: asyncio.Event) -> None:
        """Block until *stop* is set; re-raise the first watcher crash."""
        for watcher in self.watchers:
            await watcher.start()
        self._log.info("watching", watchers=len(self.watchers))

        stop_task = asyncio.create_task(stop.wait(), name="watch-stop")
        watch_tasks = [w.task for w in self.watchers if w.task is not None]
        try:
            await asyncio.wait([stop_task, *watch_tasks], return_when=asyncio.FIRST_COMPLETED)
        finally:
            stop_task.cancel()
            crashed = [t for t in watch_tasks if t.done() and not t.cancelled() and t.exception() is not None]
            for watcher in self.watchers:
                await watcher.stop()
        if crashed:
            raise crashed[0].exception()  # type: ignore[misc]
