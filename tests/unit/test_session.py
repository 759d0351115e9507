"""Unit tests for WaitSession event handling."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest
from kubernetes_asyncio.client.exceptions import ApiException

from kubewait.errors import ListingError
from kubewait.models.events import EventType, JobEvent, PodEvent, ServiceEvent
from kubewait.tracker.processor import EventProcessor
from kubewait.tracker.session import WaitSession
from kubewait.tracker.waitables import Waitables

from ..factories import FakeLister, fixed_clock, make_job, make_pod, make_service


def _session(
    waitables: Waitables,
    lister: FakeLister | None = None,
    fail_on_list_error: bool = False,
) -> tuple[WaitSession, MagicMock]:
    printer = MagicMock()
    processor = EventProcessor(waitables, lister or FakeLister(), min_ready_seconds=0, clock=fixed_clock)
    return WaitSession(waitables, processor, printer, fail_on_list_error=fail_on_list_error), printer


# ---------------------------------------------------------------------------
# Done signal
# ---------------------------------------------------------------------------


class TestDoneSignal:
    async def test_done_set_when_last_item_satisfied(self) -> None:
        w = Waitables()
        w.add_pod("default", "a")
        w.add_job("default", "j")
        session, printer = _session(w)

        await session.handle(PodEvent(EventType.ADD, make_pod("a", ready=True)))
        assert not session.done.is_set()
        await session.handle(JobEvent(EventType.UPDATE, make_job("j", complete=True)))
        assert session.done.is_set()
        assert session.succeeded
        assert printer.request.call_count == 2
        assert session.events_handled == 2

    async def test_irrelevant_event_requests_nothing(self) -> None:
        w = Waitables()
        w.add_pod("default", "a")
        session, printer = _session(w)
        assert await session.handle(PodEvent(EventType.ADD, make_pod("other", ready=True))) is False
        printer.request.assert_not_called()
        assert not session.done.is_set()

    async def test_wait_returns_after_done(self) -> None:
        w = Waitables()
        w.add_pod("default", "a")
        session, _ = _session(w)
        waiter = asyncio.create_task(session.wait())
        await asyncio.sleep(0)
        assert not waiter.done()
        await session.handle(PodEvent(EventType.ADD, make_pod("a", ready=True)))
        await asyncio.wait_for(waiter, timeout=1)

    async def test_concurrent_events_are_serialised(self) -> None:
        w = Waitables()
        w.add_service("default", "web")
        w.add_pod("default", "a")
        session, _ = _session(w, FakeLister([make_pod("web-0", ready=True)]))
        await asyncio.gather(
            session.handle(ServiceEvent(EventType.ADD, make_service("web"))),
            session.handle(PodEvent(EventType.ADD, make_pod("a", ready=True))),
        )
        assert session.done.is_set()
        assert session.events_handled == 2


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    async def test_listing_error_logged_and_continues(self) -> None:
        w = Waitables()
        w.add_service("default", "web")
        lister = FakeLister()
        lister.error = ApiException(status=403, reason="Forbidden")
        session, printer = _session(w, lister)

        assert await session.handle(ServiceEvent(EventType.ADD, make_service("web"))) is True
        printer.request.assert_called_once()
        assert not session.done.is_set()
        assert session.error is None

    async def test_listing_error_fails_when_configured(self) -> None:
        w = Waitables()
        w.add_service("default", "web")
        lister = FakeLister()
        lister.error = ApiException(status=403, reason="Forbidden")
        session, _ = _session(w, lister, fail_on_list_error=True)

        await session.handle(ServiceEvent(EventType.ADD, make_service("web")))
        assert session.done.is_set()
        assert isinstance(session.error, ListingError)
        assert not session.succeeded

    async def test_fail_keeps_first_error(self) -> None:
        session, _ = _session(Waitables())
        first = RuntimeError("first")
        session.fail(first)
        session.fail(RuntimeError("second"))
        assert session.error is first
        assert session.done.is_set()

    async def test_processor_type_error_propagates(self) -> None:
        session, _ = _session(Waitables())
        with pytest.raises(TypeError):
            await session.handle(object())  # type: ignore[arg-type]

    async def test_request_print_forwards(self) -> None:
        session, printer = _session(Waitables())
        session.request_print()
        printer.request.assert_called_once()
