"""In-memory model of every item being waited on."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from kubewait.models.events import LastPodEvent, ResourceKind, object_name
from kubewait.models.items import (
    JobCollection,
    JobItem,
    PodCollection,
    PodItem,
    ServiceCollection,
    ServiceItem,
    ServicePolicy,
)


class Waitables:
    """Owns the pod, job and service collections for one wait session.

    Not thread-safe; callers serialise access (see ``WaitSession``).
    """

    def __init__(self, policy: ServicePolicy = ServicePolicy.ALL_REQUIRED) -> None:
        self.policy = policy
        self.pods = PodCollection()
        self.jobs = JobCollection()
        self.services = ServiceCollection()
        # pod uid -> most recent notification for that pod
        self.last_pod_events: dict[str, LastPodEvent] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add_item(self, kind: ResourceKind | str, namespace: str, name: str) -> PodItem | JobItem | ServiceItem:
        """Start tracking *name*; raises UnsupportedKindError for unknown kinds."""
        resolved = kind if isinstance(kind, ResourceKind) else ResourceKind.parse(kind)
        match resolved:
            case ResourceKind.POD:
                return self.add_pod(namespace, name)
            case ResourceKind.JOB:
                return self.add_job(namespace, name)
            case ResourceKind.SERVICE:
                return self.add_service(namespace, name)

    def add_pod(self, namespace: str, name: str) -> PodItem:
        return self.pods.add(namespace, name)

    def add_job(self, namespace: str, name: str) -> JobItem:
        return self.jobs.add(namespace, name)

    def add_service(self, namespace: str, name: str) -> ServiceItem:
        return self.services.add(namespace, name)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_pod_direct(self, namespace: str, name: str) -> bool:
        return self.pods.contains(namespace, name)

    def has_pod(self, namespace: str, name: str) -> bool:
        """Tracked directly or as the child of any tracked service."""
        return self.has_pod_direct(namespace, name) or self.services.contains_pod(namespace, name)

    def has_job(self, namespace: str, name: str) -> bool:
        return self.jobs.contains(namespace, name)

    def has_service(self, namespace: str, name: str) -> bool:
        return self.services.contains(namespace, name)

    def has_pods(self) -> bool:
        return self.pods.total_count() > 0

    def has_jobs(self) -> bool:
        return self.jobs.total_count() > 0

    def has_services(self) -> bool:
        return self.services.total_count() > 0

    def watched_kinds(self) -> set[ResourceKind]:
        """Kinds whose notifications can be relevant."""
        kinds: set[ResourceKind] = set()
        if self.has_services():
            kinds.update((ResourceKind.SERVICE, ResourceKind.POD))
        if self.has_pods():
            kinds.add(ResourceKind.POD)
        if self.has_jobs():
            kinds.add(ResourceKind.JOB)
        return kinds

    def total_count(self) -> int:
        return self.pods.total_count() + self.jobs.total_count() + self.services.total_count()

    def all_namespaces(self) -> set[str]:
        return self.services.namespaces() | self.pods.namespaces() | self.jobs.namespaces()

    def is_done(self) -> bool:
        """True when every pod is ready, every job complete and every service available."""
        return (
            self.pods.are_all_ready()
            and self.jobs.are_all_complete()
            and self.services.are_all_available(self.policy)
        )

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def set_pod_ready_from_pod(
        self,
        namespace: str,
        name: str,
        snapshot: dict[str, Any],
        min_ready_seconds: float,
        now: datetime,
    ) -> None:
        pod = self.pods.get(namespace, name)
        if pod is not None:
            pod.with_ready_from_pod(snapshot, min_ready_seconds, now)

    def unset_pod_ready(self, namespace: str, name: str) -> None:
        pod = self.pods.get(namespace, name)
        if pod is not None:
            pod.with_ready(False)

    def set_job_complete_from_job(self, namespace: str, name: str, snapshot: dict[str, Any]) -> None:
        job = self.jobs.get(namespace, name)
        if job is not None:
            job.with_complete_from_job(snapshot)

    def unset_job_complete(self, namespace: str, name: str) -> None:
        job = self.jobs.get(namespace, name)
        if job is not None:
            job.with_complete(False)

    def set_service_children(
        self,
        namespace: str,
        name: str,
        pods: list[dict[str, Any]],
        min_ready_seconds: float,
        now: datetime,
    ) -> ServiceItem | None:
        """Replace a service's children wholesale with fresh items built from *pods*."""
        svc = self.services.get(namespace, name)
        if svc is None:
            return None
        children: dict[str, PodItem] = {}
        for snapshot in pods:
            pod_name = object_name(snapshot)
            if not pod_name:
                continue
            children[pod_name] = PodItem(namespace, pod_name).with_ready_from_pod(snapshot, min_ready_seconds, now)
        return svc.with_children(children)

    def clear_service_children(self, namespace: str, name: str) -> None:
        svc = self.services.get(namespace, name)
        if svc is not None:
            svc.with_children({})

    def mark_service_sync_failed(self, namespace: str, name: str) -> None:
        svc = self.services.get(namespace, name)
        if svc is not None:
            svc.sync_failed = True
