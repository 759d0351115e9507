"""Cluster access through kubernetes-asyncio.

The client is built explicitly from a ``KubeConfig`` and passed to whoever
needs it; nothing is cached at module level.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]
from kubernetes_asyncio import config as k8s_config  # type: ignore[import-untyped]

from kubewait.models.config import KubeConfig
from kubewait.models.events import ResourceKind
from kubewait.observability.logging import get_logger

_log = get_logger("collector.client")


def format_label_selector(selector: dict[str, str]) -> str:
    """``{"app": "db", "tier": "x"}`` -> ``app=db,tier=x``; empty selects everything."""
    return ",".join(f"{key}={value}" for key, value in sorted(selector.items()))


class ClusterClient:
    """Namespaced list calls for pods, jobs and services.

    Returned objects are raw camelCase dicts, the same shape a watch
    stream delivers in ``raw_object``.
    """

    def __init__(self, api_client: Any) -> None:
        self._api_client = api_client
        self.core_v1 = k8s_client.CoreV1Api(api_client)
        self.batch_v1 = k8s_client.BatchV1Api(api_client)

    def list_func(self, kind: ResourceKind) -> Callable[..., Awaitable[Any]]:
        """The namespaced list call for *kind*, usable with ``watch.Watch().stream``."""
        match kind:
            case ResourceKind.POD:
                return self.core_v1.list_namespaced_pod
            case ResourceKind.SERVICE:
                return self.core_v1.list_namespaced_service
            case ResourceKind.JOB:
                return self.batch_v1.list_namespaced_job

    def to_raw(self, obj: Any) -> dict[str, Any]:
        """Serialise a deserialised API object back to its wire dict."""
        if isinstance(obj, dict):
            return obj
        return self._api_client.sanitize_for_serialization(obj)

    async def list_objects(
        self,
        kind: ResourceKind,
        namespace: str,
        label_selector: str = "",
    ) -> tuple[list[dict[str, Any]], str]:
        """List *kind* in *namespace*; return raw objects and the list resourceVersion."""
        kwargs: dict[str, Any] = {}
        if label_selector:
            kwargs["label_selector"] = label_selector
        result = await self.list_func(kind)(namespace, **kwargs)
        items = [self.to_raw(item) for item in (result.items or [])]
        metadata = getattr(result, "metadata", None)
        resource_version = str(getattr(metadata, "resource_version", "") or "")
        return items, resource_version

    async def list_pods(self, namespace: str, selector: dict[str, str]) -> list[dict[str, Any]]:
        """Pods in *namespace* matching *selector*."""
        pods, _ = await self.list_objects(ResourceKind.POD, namespace, format_label_selector(selector))
        return pods

    async def close(self) -> None:
        await self._api_client.close()


async def connect(kube: KubeConfig) -> ClusterClient:
    """Build a client from in-cluster credentials, falling back to kubeconfig.

    An explicit kubeconfig path or context always uses kubeconfig.
    """
    configuration = k8s_client.Configuration()
    if not kube.kubeconfig and not kube.context:
        try:
            k8s_config.load_incluster_config(client_configuration=configuration)
            _log.info("k8s client configured from in-cluster service account")
            return ClusterClient(k8s_client.ApiClient(configuration=configuration))
        except k8s_config.ConfigException:
            pass

    await k8s_config.load_kube_config(
        config_file=kube.kubeconfig or None,
        context=kube.context or None,
        client_configuration=configuration,
    )
    _log.info("k8s client configured from kubeconfig", context=kube.context or "<current>")
    return ClusterClient(k8s_client.ApiClient(configuration=configuration))
