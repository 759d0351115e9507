"""End-to-end wait runs with the watch substrate replaced by scripted events.

WatchGroup is patched with ScriptedGroup, which feeds a fixed list of
notifications into the session callback and then blocks until the session
signals done, exactly as the real group does.  The cluster client is a
fake returned by the injected client factory.
"""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import patch

import pytest
from kubernetes_asyncio.client.exceptions import ApiException

from kubewait.app import EXIT_ERROR, EXIT_OK, EXIT_TIMEOUT, WaitApp, main
from kubewait.errors import WaitTimeoutError
from kubewait.models.config import KubeWaitConfig, OutputConfig, ReadinessConfig
from kubewait.models.events import EventType, JobEvent, PodEvent, ResourceKind, ServiceEvent, WatchEvent
from kubewait.models.items import ServicePolicy
from kubewait.targets import parse_targets

from ..factories import FakeLister, make_job, make_pod, make_service


class FakeClient(FakeLister):
    def __init__(self, pods: list[dict[str, Any]] | None = None) -> None:
        super().__init__(pods)
        self.closed = False

    async def close(self) -> None:
        self.closed = True


class ScriptedGroup:
    """Stands in for WatchGroup; class attribute ``script`` is replayed on run."""

    script: list[WatchEvent] = []
    instances: list[ScriptedGroup] = []

    def __init__(self, client, namespaces, kinds, on_event, sync_period=90.0) -> None:
        self.client = client
        self.namespaces = namespaces
        self.kinds = kinds
        self.on_event = on_event
        self.sync_period = sync_period
        ScriptedGroup.instances.append(self)

    async def run(self, stop: asyncio.Event) -> None:
        for event in self.script:
            await self.on_event(event)
            await asyncio.sleep(0)
        await stop.wait()


def _config(
    timeout: float = 5.0,
    policy: ServicePolicy = ServicePolicy.ALL_REQUIRED,
    tree: bool = False,
    fail_on_list_error: bool = False,
) -> KubeWaitConfig:
    return KubeWaitConfig(
        timeout_seconds=timeout,
        readiness=ReadinessConfig(
            service_policy=policy,
            min_ready_seconds=0,
            fail_on_list_error=fail_on_list_error,
        ),
        output=OutputConfig(print_tree=tree, collapse_tree=True, print_interval_seconds=0.01),
    )


async def _run(
    args: list[str],
    script: list[WatchEvent],
    config: KubeWaitConfig | None = None,
    client: FakeClient | None = None,
) -> tuple[int, list[str], WaitApp, FakeClient]:
    output: list[str] = []
    fake = client or FakeClient()

    async def factory(_kube):
        return fake

    ScriptedGroup.script = script
    ScriptedGroup.instances = []
    cfg = config or _config()
    app = WaitApp(cfg, parse_targets(args, cfg.kube.namespace), output.append, client_factory=factory)
    with patch("kubewait.app.WatchGroup", ScriptedGroup):
        code = await app.run()
    return code, output, app, fake


# ---------------------------------------------------------------------------
# Successful runs
# ---------------------------------------------------------------------------


class TestCompletes:
    async def test_pod_and_job(self) -> None:
        script = [
            PodEvent(EventType.ADD, make_pod("web-0", ready=False)),
            JobEvent(EventType.ADD, make_job("migrate", complete=True)),
            PodEvent(EventType.UPDATE, make_pod("web-0", ready=True, resource_version="2")),
        ]
        code, output, app, client = await _run(["web-0", "job,migrate"], script)
        assert code == EXIT_OK
        assert output[-1] == "Waiting for: "
        assert app.session is not None and app.session.succeeded
        assert client.closed

    async def test_service_via_listing(self) -> None:
        client = FakeClient([make_pod("web-0", ready=True), make_pod("web-1", ready=True)])
        script = [ServiceEvent(EventType.ADD, make_service("web"))]
        code, output, _, _ = await _run(["svc,web"], script, client=client)
        assert code == EXIT_OK
        assert client.calls == [("default", {"app": "web"})]
        assert output[-1] == "Waiting for: "

    async def test_at_least_one_policy(self) -> None:
        client = FakeClient([make_pod("web-0", ready=True), make_pod("web-1", ready=False)])
        script = [ServiceEvent(EventType.ADD, make_service("web"))]
        code, _, _, _ = await _run(
            ["svc,web"], script, config=_config(policy=ServicePolicy.AT_LEAST_ONE), client=client
        )
        assert code == EXIT_OK

    async def test_final_tree_printed(self) -> None:
        script = [PodEvent(EventType.ADD, make_pod("web-0", ready=True))]
        code, output, _, _ = await _run(["web-0"], script, config=_config(tree=True))
        assert code == EXIT_OK
        lines = output[-1].splitlines()
        assert lines[0] == "wait status"
        assert lines[1].endswith("✅ namespace/default")

    async def test_watched_kinds_and_namespaces(self) -> None:
        script = [
            PodEvent(EventType.ADD, make_pod("a", "ns1", ready=True)),
            JobEvent(EventType.ADD, make_job("j", "ns2", complete=True)),
        ]
        code, _, _, _ = await _run(["ns1,pod,a", "ns2,job,j"], script)
        assert code == EXIT_OK
        group = ScriptedGroup.instances[0]
        assert group.namespaces == ["ns1", "ns2"]
        assert group.kinds == {ResourceKind.POD, ResourceKind.JOB}

    async def test_main_installs_and_removes_signal_handlers(self) -> None:
        output: list[str] = []
        fake = FakeClient()

        async def factory(_kube):
            return fake

        ScriptedGroup.script = [PodEvent(EventType.ADD, make_pod("web-0", ready=True))]
        with patch("kubewait.app.WatchGroup", ScriptedGroup):
            code = await main(_config(), parse_targets(["web-0"], "default"), output.append, factory)
        assert code == EXIT_OK
        assert output


# ---------------------------------------------------------------------------
# Unsuccessful runs
# ---------------------------------------------------------------------------


class TestDoesNotComplete:
    async def test_timeout(self) -> None:
        script = [PodEvent(EventType.ADD, make_pod("web-0", ready=False))]
        code, output, app, client = await _run(["web-0"], script, config=_config(timeout=0.1))
        assert code == EXIT_TIMEOUT
        assert output[-1] == "Waiting for: default/pod/web-0"
        assert isinstance(app.session.error, WaitTimeoutError)
        assert client.closed

    async def test_listing_error_fails_when_configured(self) -> None:
        client = FakeClient()
        client.error = ApiException(status=403, reason="Forbidden")
        script = [ServiceEvent(EventType.ADD, make_service("web"))]
        code, output, _, _ = await _run(
            ["svc,web"], script, config=_config(fail_on_list_error=True), client=client
        )
        assert code == EXIT_ERROR
        assert output[-1] == "Waiting for: default/service/web"

    async def test_listing_error_retried_on_next_update(self) -> None:
        client = FakeClient([make_pod("web-0", ready=True)])
        client.error = ApiException(status=403, reason="Forbidden")

        class RecoveringGroup(ScriptedGroup):
            async def run(self, stop: asyncio.Event) -> None:
                await self.on_event(ServiceEvent(EventType.ADD, make_service("web")))
                client.error = None
                await self.on_event(ServiceEvent(EventType.UPDATE, make_service("web")))
                await stop.wait()

        output: list[str] = []

        async def factory(_kube):
            return client

        app = WaitApp(_config(), parse_targets(["svc,web"], "default"), output.append, client_factory=factory)
        with patch("kubewait.app.WatchGroup", RecoveringGroup):
            code = await app.run()
        assert code == EXIT_OK
        assert len(client.calls) == 2

    async def test_interrupt(self) -> None:
        output: list[str] = []

        async def factory(_kube):
            return FakeClient()

        app = WaitApp(_config(), parse_targets(["web-0"], "default"), output.append, client_factory=factory)

        class InterruptedGroup(ScriptedGroup):
            async def run(self, stop: asyncio.Event) -> None:
                app.interrupt()
                await stop.wait()

        with patch("kubewait.app.WatchGroup", InterruptedGroup):
            code = await app.run()
        assert code == EXIT_ERROR
        assert output[-1] == "Waiting for: default/pod/web-0"

    async def test_crashed_watcher_propagates(self) -> None:
        class CrashingGroup(ScriptedGroup):
            async def run(self, stop: asyncio.Event) -> None:
                raise RuntimeError("watch crashed")

        output: list[str] = []
        fake = FakeClient()

        async def factory(_kube):
            return fake

        app = WaitApp(_config(), parse_targets(["web-0"], "default"), output.append, client_factory=factory)
        with patch("kubewait.app.WatchGroup", CrashingGroup):
            with pytest.raises(RuntimeError, match="watch crashed"):
                await app.run()
        assert fake.closed
        assert output
