"""Application wiring for one wait run.

Startup order: K8s client -> waitables (targets registered) -> processor
              -> status printer -> session -> watch group

The run ends when every item is done, the timeout elapses, a watcher or
the session fails, or SIGINT/SIGTERM arrives.  Shutdown stops the watchers,
then the printer (which always prints the final status), then the client.
"""

from __future__ import annotations

import asyncio
import signal
from collections.abc import Awaitable, Callable

from kubewait.collector import ClusterClient, WatchGroup, connect
from kubewait.errors import NoTargetsError, WaitTimeoutError
from kubewait.models.config import KubeConfig, KubeWaitConfig
from kubewait.observability.logging import get_logger
from kubewait.targets import Target, target_namespaces
from kubewait.tracker import EventProcessor, StatusPrinter, Waitables, WaitSession, render_status

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_TIMEOUT = 2

ClientFactory = Callable[[KubeConfig], Awaitable[ClusterClient]]


class WaitApp:
    """Owns the components of a wait run and their lifecycle.

    ``stop()`` is safe to call on an app that never started or already
    stopped.
    """

    def __init__(
        self,
        config: KubeWaitConfig,
        targets: list[Target],
        sink: Callable[[str], None],
        client_factory: ClientFactory = connect,
    ) -> None:
        self.config = config
        self.targets = targets
        self._sink = sink
        self._client_factory = client_factory
        self._log = get_logger("app")

        self.client: ClusterClient | None = None
        self.waitables: Waitables | None = None
        self.printer: StatusPrinter | None = None
        self.session: WaitSession | None = None
        self.group: WatchGroup | None = None
        self._interrupted = False

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Build every component; raises NoTargetsError on an empty item set."""
        cfg = self.config
        waitables = Waitables(policy=cfg.readiness.service_policy)
        for target in self.targets:
            waitables.add_item(target.kind, target.namespace, target.name)
        if waitables.total_count() < 1:
            raise NoTargetsError("not enough arguments")
        self.waitables = waitables

        namespaces = target_namespaces(self.targets)
        self._log.info("starting", namespaces=namespaces, items=waitables.total_count())

        self.client = await self._client_factory(cfg.kube)

        processor = EventProcessor(
            waitables,
            lister=self.client,
            min_ready_seconds=cfg.readiness.min_ready_seconds,
        )
        self.printer = StatusPrinter(
            render=lambda: render_status(waitables, cfg.output.print_tree, cfg.output.collapse_tree),
            sink=self._sink,
            interval=cfg.output.print_interval_seconds,
        )
        self.session = WaitSession(
            waitables,
            processor,
            self.printer,
            fail_on_list_error=cfg.readiness.fail_on_list_error,
        )
        self.group = WatchGroup(
            self.client,
            namespaces,
            waitables.watched_kinds(),
            on_event=self.session.handle,
            sync_period=cfg.watch.sync_period_seconds,
        )
        await self.printer.start()
        self.session.request_print()

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self) -> int:
        """Start, wait, stop; return the process exit code."""
        try:
            await self.start()
            return await self._wait()
        finally:
            await self.stop()

    async def _wait(self) -> int:
        assert self.session is not None
        assert self.group is not None
        timeout = self.config.timeout_seconds or None
        try:
            await asyncio.wait_for(self.group.run(self.session.done), timeout=timeout)
        except TimeoutError:
            err = WaitTimeoutError(self.config.timeout_seconds)
            self._log.error("wait timed out", timeout_seconds=self.config.timeout_seconds)
            self.session.fail(err)
            return EXIT_TIMEOUT

        if self._interrupted:
            self._log.warning("interrupted before all items were done")
            return EXIT_ERROR
        if self.session.error is not None:
            self._log.error("wait failed", error=str(self.session.error))
            return EXIT_ERROR
        self._log.info("done", events=self.session.events_handled)
        return EXIT_OK

    def interrupt(self) -> None:
        """Stop waiting early (signal handler)."""
        self._interrupted = True
        if self.session is not None:
            self.session.done.set()

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Stop the printer (final status print) and close the client."""
        if self.printer is not None:
            await self.printer.stop()
            self.printer = None
        if self.client is not None:
            try:
                await self.client.close()
            except Exception as exc:
                self._log.debug("k8s client close raised (non-fatal)", error=str(exc))
            self.client = None


async def main(
    config: KubeWaitConfig,
    targets: list[Target],
    sink: Callable[[str], None],
    client_factory: ClientFactory = connect,
) -> int:
    """Run one wait, honouring SIGINT/SIGTERM; return the exit code."""
    app = WaitApp(config, targets, sink, client_factory)
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, app.interrupt)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops
            break
    try:
        return await app.run()
    finally:
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.remove_signal_handler(sig)
            except NotImplementedError:
                break
