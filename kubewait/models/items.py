"""Watched item records and their namespaced collections.

Every collection is a two-level mapping ``namespace -> name -> item``.
Service children are independent ``PodItem`` copies, never shared with
the top-level pod collection: one pod can be tracked directly and as the
child of several services, with readiness evaluated separately in each role.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, Generic, TypeVar

from kubewait.conditions import is_job_complete, pod_readiness


class ServicePolicy(StrEnum):
    """How many backing pods a service needs before it counts as available."""

    ALL_REQUIRED = "all-required"
    AT_LEAST_ONE = "at-least-one"


@dataclass
class PodItem:
    """A watched pod."""

    namespace: str
    name: str
    ready: bool = False

    def with_ready(self, ready: bool) -> PodItem:
        self.ready = ready
        return self

    def with_ready_from_pod(self, snapshot: dict[str, Any], min_ready_seconds: float, now: datetime) -> PodItem:
        self.ready = pod_readiness(snapshot, min_ready_seconds, now)
        return self

    def is_ready(self) -> bool:
        return self.ready


@dataclass
class JobItem:
    """A watched job."""

    namespace: str
    name: str
    complete: bool = False

    def with_complete(self, complete: bool) -> JobItem:
        self.complete = complete
        return self

    def with_complete_from_job(self, snapshot: dict[str, Any]) -> JobItem:
        self.complete = is_job_complete(snapshot)
        return self

    def is_complete(self) -> bool:
        return self.complete


@dataclass
class ServiceItem:
    """A watched service and the pods currently selected by it.

    ``sync_failed`` is set when the last attempt to list the backing pods
    failed; such a service is never available until a later list succeeds.
    """

    namespace: str
    name: str
    children: dict[str, PodItem] = field(default_factory=dict)
    sync_failed: bool = False

    def with_children(self, children: dict[str, PodItem]) -> ServiceItem:
        self.children = dict(children)
        self.sync_failed = False
        return self

    def get_pod(self, name: str) -> PodItem | None:
        return self.children.get(name)

    def delete_pod(self, namespace: str, name: str) -> bool:
        """Remove child *name* if it belongs to this service's namespace."""
        if namespace != self.namespace:
            return False
        return self.children.pop(name, None) is not None

    def is_available(self) -> bool:
        """At least one child, and every child ready."""
        if self.sync_failed or not self.children:
            return False
        return all(pod.ready for pod in self.children.values())

    def is_at_least_one_available(self) -> bool:
        if self.sync_failed or not self.children:
            return False
        return any(pod.ready for pod in self.children.values())

    def is_available_under(self, policy: ServicePolicy) -> bool:
        if policy is ServicePolicy.AT_LEAST_ONE:
            return self.is_at_least_one_available()
        return self.is_available()


ItemT = TypeVar("ItemT", PodItem, JobItem, ServiceItem)


class NamespacedCollection(Generic[ItemT]):
    """Base for ``namespace -> name -> item`` collections."""

    item_type: type[ItemT]

    def __init__(self) -> None:
        self._items: dict[str, dict[str, ItemT]] = {}

    def ensure_namespace(self, namespace: str) -> dict[str, ItemT]:
        return self._items.setdefault(namespace, {})

    def contains(self, namespace: str, name: str) -> bool:
        return name in self._items.get(namespace, {})

    def get(self, namespace: str, name: str) -> ItemT | None:
        return self._items.get(namespace, {}).get(name)

    def add(self, namespace: str, name: str) -> ItemT:
        """Insert a fresh item, or return the one already at this identity."""
        items = self.ensure_namespace(namespace)
        item = items.get(name)
        if item is None:
            item = self.item_type(namespace, name)
            items[name] = item
        return item

    def namespaces(self) -> set[str]:
        return set(self._items)

    def in_namespace(self, namespace: str) -> list[ItemT]:
        items = self._items.get(namespace, {})
        return [items[name] for name in sorted(items)]

    def total_count(self) -> int:
        return sum(len(items) for items in self._items.values())

    def __iter__(self) -> Iterator[ItemT]:
        for namespace in sorted(self._items):
            yield from self.in_namespace(namespace)

    def __len__(self) -> int:
        return self.total_count()


class PodCollection(NamespacedCollection[PodItem]):
    item_type = PodItem

    def are_all_ready(self) -> bool:
        return all(pod.ready for pod in self)


class JobCollection(NamespacedCollection[JobItem]):
    item_type = JobItem

    def are_all_complete(self) -> bool:
        return all(job.complete for job in self)


class ServiceCollection(NamespacedCollection[ServiceItem]):
    item_type = ServiceItem

    def contains_pod(self, namespace: str, name: str) -> bool:
        """True if any service in *namespace* has a child called *name*."""
        return any(name in svc.children for svc in self.in_namespace(namespace))

    def get_pods(self, namespace: str, name: str) -> list[PodItem]:
        """Every child copy of pod *name* across services in *namespace*."""
        pods = []
        for svc in self.in_namespace(namespace):
            pod = svc.get_pod(name)
            if pod is not None:
                pods.append(pod)
        return pods

    def delete_pod(self, namespace: str, name: str) -> int:
        """Remove pod *name* from every owning service; return how many held it."""
        return sum(1 for svc in self.in_namespace(namespace) if svc.delete_pod(namespace, name))

    def are_all_available(self, policy: ServicePolicy) -> bool:
        return all(svc.is_available_under(policy) for svc in self)
