"""Debounced status printing.

A burst of relevant events should produce one status print, not one per
event, while the final state must always be shown.  ``request()`` only
bumps a counter; a background task prints at most once per interval when
the counter is non-zero, and ``stop()`` always performs one last print.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from kubewait.observability.logging import get_logger

_log = get_logger("tracker.printer")

DEFAULT_PRINT_INTERVAL = 0.25


class StatusPrinter:
    """Prints ``render()`` through ``sink`` at a bounded rate.

    Args:
        render:   Produces the current status text.
        sink:     Receives each rendered status (e.g. ``click.echo``).
        interval: Minimum seconds between two periodic prints.
    """

    def __init__(
        self,
        render: Callable[[], str],
        sink: Callable[[str], None],
        interval: float = DEFAULT_PRINT_INTERVAL,
    ) -> None:
        self._render = render
        self._sink = sink
        self._interval = interval
        self._pending = 0
        self._prints = 0
        self._stopping = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._stopped = False

    @property
    def pending(self) -> int:
        return self._pending

    @property
    def prints(self) -> int:
        """Number of statuses printed so far."""
        return self._prints

    def request(self) -> None:
        """Ask for a status print at the next tick."""
        self._pending += 1

    async def start(self) -> None:
        """Launch the tick loop; a second call is a no-op."""
        if self._task is not None or self._stopped:
            return
        self._task = asyncio.create_task(self._run(), name="status-printer")

    async def stop(self) -> None:
        """Stop ticking and print the final status exactly once."""
        if self._stopped:
            return
        self._stopped = True
        self._stopping.set()
        if self._task is not None:
            await self._task
            self._task = None
        self._print()

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self._interval)
            except TimeoutError:
                self._tick()

    def _tick(self) -> None:
        if self._pending > 0:
            self._pending = 0
            self._print()

    def _print(self) -> None:
        self._pending = 0
        try:
            text = self._render()
        except Exception as exc:
            _log.error("status render failed", error=str(exc))
            return
        self._sink(text)
        self._prints += 1
