"""Core data structures for kubewait."""

from kubewait.models.config import KubeWaitConfig
from kubewait.models.events import (
    EventType,
    JobEvent,
    LastPodEvent,
    PodEvent,
    ResourceKind,
    ServiceEvent,
    WatchEvent,
    make_event,
)
from kubewait.models.items import (
    JobCollection,
    JobItem,
    PodCollection,
    PodItem,
    ServiceCollection,
    ServiceItem,
    ServicePolicy,
)

__all__ = [
    "EventType",
    "JobCollection",
    "JobEvent",
    "JobItem",
    "KubeWaitConfig",
    "LastPodEvent",
    "PodCollection",
    "PodEvent",
    "PodItem",
    "ResourceKind",
    "ServiceCollection",
    "ServiceEvent",
    "ServiceItem",
    "ServicePolicy",
    "WatchEvent",
    "make_event",
]
