"""State transitions driven by watch notifications.

``EventProcessor.process`` takes one notification, mutates the
``Waitables`` model and reports whether the notification concerned
anything being waited on.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, Protocol

import aiohttp
from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

from kubewait.conditions import DEFAULT_MIN_READY_SECONDS
from kubewait.errors import ListingError
from kubewait.models.events import (
    EventType,
    JobEvent,
    LastPodEvent,
    PodEvent,
    ServiceEvent,
    WatchEvent,
    object_meta,
    object_name,
    object_namespace,
    object_resource_version,
    object_uid,
)
from kubewait.observability.logging import get_logger
from kubewait.tracker.waitables import Waitables

_log = get_logger("tracker.processor")

# Failures of the list call itself; anything else is a bug and propagates.
_LISTING_ERRORS = (ApiException, aiohttp.ClientError, TimeoutError)


class PodLister(Protocol):
    """Point-in-time pod listing used to resolve a service's backing pods."""

    async def list_pods(self, namespace: str, selector: dict[str, str]) -> list[dict[str, Any]]: ...


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _service_selector(snapshot: dict[str, Any]) -> dict[str, str]:
    spec = snapshot.get("spec") if isinstance(snapshot, dict) else None
    selector = spec.get("selector") if isinstance(spec, dict) else None
    if not isinstance(selector, dict):
        return {}
    return {str(k): str(v) for k, v in selector.items()}


def _matches(snapshot: dict[str, Any], selector: dict[str, str]) -> bool:
    labels = object_meta(snapshot).get("labels") or {}
    return all(labels.get(key) == value for key, value in selector.items())


def _is_newer(recorded: dict[str, Any], listed: dict[str, Any]) -> bool:
    try:
        return int(object_resource_version(recorded)) > int(object_resource_version(listed))
    except ValueError:
        return False


class EventProcessor:
    """Applies pod, job and service notifications to a ``Waitables`` model."""

    def __init__(
        self,
        waitables: Waitables,
        lister: PodLister,
        min_ready_seconds: float = DEFAULT_MIN_READY_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._waitables = waitables
        self._lister = lister
        self._min_ready_seconds = min_ready_seconds
        self._clock = clock

    async def process(self, event: WatchEvent) -> bool:
        """Apply *event*; return True if it concerned a watched item.

        Raises ListingError when a service's backing pods cannot be listed.
        """
        match event:
            case PodEvent(event_type=EventType.ADD, snapshot=snapshot):
                return self.on_add_pod(snapshot)
            case PodEvent(event_type=EventType.UPDATE, snapshot=snapshot):
                return self.on_update_pod(snapshot)
            case PodEvent(event_type=EventType.DELETE, snapshot=snapshot):
                return self.on_delete_pod(snapshot)
            case JobEvent(event_type=EventType.ADD, snapshot=snapshot):
                return self.on_add_job(snapshot)
            case JobEvent(event_type=EventType.UPDATE, snapshot=snapshot):
                return self.on_update_job(snapshot)
            case JobEvent(event_type=EventType.DELETE, snapshot=snapshot):
                return self.on_delete_job(snapshot)
            case ServiceEvent(event_type=EventType.ADD, snapshot=snapshot):
                return await self.on_add_service(snapshot)
            case ServiceEvent(event_type=EventType.UPDATE, snapshot=snapshot):
                return await self.on_update_service(snapshot)
            case ServiceEvent(event_type=EventType.DELETE, snapshot=snapshot):
                return self.on_delete_service(snapshot)
            case _:
                raise TypeError(f"unexpected watch event {event!r}")

    # ------------------------------------------------------------------
    # Pods
    # ------------------------------------------------------------------

    def on_add_pod(self, snapshot: dict[str, Any]) -> bool:
        return self._apply_pod(EventType.ADD, snapshot)

    def on_update_pod(self, snapshot: dict[str, Any]) -> bool:
        return self._apply_pod(EventType.UPDATE, snapshot)

    def on_delete_pod(self, snapshot: dict[str, Any]) -> bool:
        return self._apply_pod(EventType.DELETE, snapshot)

    def _apply_pod(self, event_type: EventType, snapshot: dict[str, Any], record: bool = True) -> bool:
        w = self._waitables
        namespace, name = object_namespace(snapshot), object_name(snapshot)
        tracked_before = w.has_pod(namespace, name)

        if event_type is EventType.DELETE:
            w.unset_pod_ready(namespace, name)
            children = w.services.get_pods(namespace, name)
            for child in children:
                child.with_ready(False)
            if children:
                w.services.delete_pod(namespace, name)
        else:
            now = self._clock()
            w.set_pod_ready_from_pod(namespace, name, snapshot, self._min_ready_seconds, now)
            for child in w.services.get_pods(namespace, name):
                child.with_ready_from_pod(snapshot, self._min_ready_seconds, now)

        # Only pods that a tracked service may list later need a record.
        uid = object_uid(snapshot)
        if record and uid and w.services.in_namespace(namespace):
            w.last_pod_events[uid] = LastPodEvent(event_type, snapshot)

        return tracked_before or w.has_pod(namespace, name)

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def on_add_job(self, snapshot: dict[str, Any]) -> bool:
        return self._apply_job(snapshot)

    def on_update_job(self, snapshot: dict[str, Any]) -> bool:
        return self._apply_job(snapshot)

    def on_delete_job(self, snapshot: dict[str, Any]) -> bool:
        namespace, name = object_namespace(snapshot), object_name(snapshot)
        if not self._waitables.has_job(namespace, name):
            return False
        self._waitables.unset_job_complete(namespace, name)
        return True

    def _apply_job(self, snapshot: dict[str, Any]) -> bool:
        namespace, name = object_namespace(snapshot), object_name(snapshot)
        if not self._waitables.has_job(namespace, name):
            return False
        self._waitables.set_job_complete_from_job(namespace, name, snapshot)
        return True

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    async def on_add_service(self, snapshot: dict[str, Any]) -> bool:
        return await self._sync_service(snapshot)

    async def on_update_service(self, snapshot: dict[str, Any]) -> bool:
        return await self._sync_service(snapshot)

    def on_delete_service(self, snapshot: dict[str, Any]) -> bool:
        namespace, name = object_namespace(snapshot), object_name(snapshot)
        if not self._waitables.has_service(namespace, name):
            return False
        self._waitables.clear_service_children(namespace, name)
        return True

    async def _sync_service(self, snapshot: dict[str, Any]) -> bool:
        w = self._waitables
        namespace, name = object_namespace(snapshot), object_name(snapshot)
        if not w.has_service(namespace, name):
            return False

        selector = _service_selector(snapshot)
        try:
            pods = await self._lister.list_pods(namespace, selector)
        except ListingError:
            w.mark_service_sync_failed(namespace, name)
            raise
        except _LISTING_ERRORS as exc:
            w.mark_service_sync_failed(namespace, name)
            raise ListingError(namespace, name, exc) from exc

        svc = w.services.get(namespace, name)
        previous = set(svc.children) if svc is not None else set()
        w.set_service_children(namespace, name, pods, self._min_ready_seconds, self._clock())
        self._replay_pod_events(pods, previous)
        self._prune_pod_events(namespace, selector, pods)
        return True

    def _replay_pod_events(self, pods: list[dict[str, Any]], previous: set[str]) -> None:
        """Reconcile newly visible children with the last notification seen for them.

        A recorded Delete always wins, since a deleted uid never comes back.
        A recorded Add/Update wins only when its resourceVersion is newer
        than the listed object's.
        """
        for listed in pods:
            if object_name(listed) in previous:
                continue
            recorded = self._waitables.last_pod_events.get(object_uid(listed))
            if recorded is None:
                continue
            if recorded.event_type is EventType.DELETE or _is_newer(recorded.snapshot, listed):
                _log.debug(
                    "replaying pod event",
                    namespace=object_namespace(listed),
                    pod=object_name(listed),
                    event_type=recorded.event_type.value,
                )
                self._apply_pod(recorded.event_type, recorded.snapshot, record=False)

    def _prune_pod_events(self, namespace: str, selector: dict[str, str], pods: list[dict[str, Any]]) -> None:
        """Forget Delete records this list would have returned but no longer does.

        Records of pods outside *selector* are kept: another service may
        still list them.
        """
        listed = {object_uid(pod) for pod in pods}
        records = self._waitables.last_pod_events
        for uid, recorded in list(records.items()):
            if (
                recorded.event_type is EventType.DELETE
                and object_namespace(recorded.snapshot) == namespace
                and _matches(recorded.snapshot, selector)
                and uid not in listed
            ):
                del records[uid]
