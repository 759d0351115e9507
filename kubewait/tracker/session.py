"""Serialised event handling for one wait session.

Watch callbacks for different kinds may interleave; every notification is
handled under one lock so model mutation, relevance, the done check and
the print request happen as a unit.  A service's child replacement awaits
a list call and is therefore never observed half-written by another event.
"""

from __future__ import annotations

import asyncio

from kubewait.errors import ListingError
from kubewait.models.events import WatchEvent, object_name, object_namespace
from kubewait.observability.logging import get_logger
from kubewait.tracker.printer import StatusPrinter
from kubewait.tracker.processor import EventProcessor
from kubewait.tracker.waitables import Waitables

_log = get_logger("tracker.session")


class WaitSession:
    """Feeds notifications to the processor and raises ``done`` when finished.

    ``done`` is the cooperative cancellation signal handed to the watch
    substrate.  It is set either when every item is satisfied or when the
    session fails; ``error`` tells the two apart.
    """

    def __init__(
        self,
        waitables: Waitables,
        processor: EventProcessor,
        printer: StatusPrinter,
        fail_on_list_error: bool = False,
    ) -> None:
        self.waitables = waitables
        self._processor = processor
        self._printer = printer
        self._fail_on_list_error = fail_on_list_error
        self._lock = asyncio.Lock()
        self.done = asyncio.Event()
        self.error: BaseException | None = None
        self.events_handled = 0

    @property
    def succeeded(self) -> bool:
        return self.done.is_set() and self.error is None

    async def handle(self, event: WatchEvent) -> bool:
        """Process one notification; return its relevance."""
        async with self._lock:
            self.events_handled += 1
            try:
                relevant = await self._processor.process(event)
            except ListingError as exc:
                _log.error(
                    "service pod listing failed",
                    namespace=exc.namespace,
                    service=exc.service,
                    error=str(exc.cause),
                )
                self._printer.request()
                if self._fail_on_list_error:
                    self.fail(exc)
                return True

            if relevant:
                _log.debug(
                    "relevant event",
                    kind=event.kind.value,
                    event_type=event.event_type.value,
                    namespace=object_namespace(event.snapshot),
                    name=object_name(event.snapshot),
                )
                self._printer.request()
                if self.waitables.is_done() and not self.done.is_set():
                    _log.info("all items done", items=self.waitables.total_count())
                    self.done.set()
            return relevant

    def request_print(self) -> None:
        self._printer.request()

    def fail(self, exc: BaseException) -> None:
        """Record a fatal error and release anyone waiting on ``done``."""
        if self.error is None:
            self.error = exc
        self.done.set()

    async def wait(self) -> None:
        await self.done.wait()
