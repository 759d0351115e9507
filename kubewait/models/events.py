"""Watch notification data structures and enumerations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from kubewait.errors import UnsupportedKindError


class ResourceKind(StrEnum):
    """Kinds of resources that can be waited on."""

    POD = "pod"
    JOB = "job"
    SERVICE = "service"

    @classmethod
    def parse(cls, value: str) -> ResourceKind:
        """Resolve a user-supplied kind string, accepting common aliases."""
        kind = _KIND_ALIASES.get(value.strip().lower())
        if kind is None:
            raise UnsupportedKindError(value)
        return kind


_KIND_ALIASES: dict[str, ResourceKind] = {
    "pod": ResourceKind.POD,
    "pods": ResourceKind.POD,
    "po": ResourceKind.POD,
    "job": ResourceKind.JOB,
    "jobs": ResourceKind.JOB,
    "service": ResourceKind.SERVICE,
    "services": ResourceKind.SERVICE,
    "svc": ResourceKind.SERVICE,
}


class EventType(StrEnum):
    """Type of change notification delivered by the watch substrate."""

    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"

    @classmethod
    def from_watch_type(cls, value: str) -> EventType:
        """Map a Kubernetes watch event type (ADDED, MODIFIED, DELETED)."""
        return _WATCH_TYPES[value]


_WATCH_TYPES: dict[str, EventType] = {
    "ADDED": EventType.ADD,
    "MODIFIED": EventType.UPDATE,
    "DELETED": EventType.DELETE,
}


@dataclass(frozen=True)
class PodEvent:
    """A change notification for a Pod."""

    event_type: EventType
    snapshot: dict[str, Any] = field(repr=False)
    kind: ResourceKind = field(default=ResourceKind.POD, init=False)


@dataclass(frozen=True)
class JobEvent:
    """A change notification for a Job."""

    event_type: EventType
    snapshot: dict[str, Any] = field(repr=False)
    kind: ResourceKind = field(default=ResourceKind.JOB, init=False)


@dataclass(frozen=True)
class ServiceEvent:
    """A change notification for a Service."""

    event_type: EventType
    snapshot: dict[str, Any] = field(repr=False)
    kind: ResourceKind = field(default=ResourceKind.SERVICE, init=False)


WatchEvent = PodEvent | JobEvent | ServiceEvent


def make_event(kind: ResourceKind, event_type: EventType, snapshot: dict[str, Any]) -> WatchEvent:
    """Build the notification variant matching *kind*."""
    match kind:
        case ResourceKind.POD:
            return PodEvent(event_type, snapshot)
        case ResourceKind.JOB:
            return JobEvent(event_type, snapshot)
        case ResourceKind.SERVICE:
            return ServiceEvent(event_type, snapshot)


@dataclass(frozen=True)
class LastPodEvent:
    """Most recent notification seen for a pod uid.

    Kept so that a pod which only becomes relevant after a service's
    children are listed can be reconciled against what the watch saw.
    """

    event_type: EventType
    snapshot: dict[str, Any] = field(repr=False)


def object_meta(snapshot: dict[str, Any]) -> dict[str, Any]:
    """Return the metadata mapping of a raw object, or an empty dict."""
    meta = snapshot.get("metadata") if isinstance(snapshot, dict) else None
    return meta if isinstance(meta, dict) else {}


def object_namespace(snapshot: dict[str, Any]) -> str:
    return str(object_meta(snapshot).get("namespace") or "")


def object_name(snapshot: dict[str, Any]) -> str:
    return str(object_meta(snapshot).get("name") or "")


def object_uid(snapshot: dict[str, Any]) -> str:
    return str(object_meta(snapshot).get("uid") or "")


def object_resource_version(snapshot: dict[str, Any]) -> str:
    return str(object_meta(snapshot).get("resourceVersion") or "")
