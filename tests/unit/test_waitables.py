"""Unit tests for the Waitables model."""

from __future__ import annotations

import pytest

from kubewait.errors import UnsupportedKindError
from kubewait.models.events import ResourceKind
from kubewait.models.items import JobItem, PodItem, ServiceItem, ServicePolicy
from kubewait.tracker.waitables import Waitables

from ..factories import NOW, make_job, make_pod

# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


class TestAddItem:
    def test_dispatches_on_kind(self) -> None:
        w = Waitables()
        assert isinstance(w.add_item(ResourceKind.POD, "ns", "a"), PodItem)
        assert isinstance(w.add_item("jobs", "ns", "b"), JobItem)
        assert isinstance(w.add_item("svc", "ns", "c"), ServiceItem)
        assert w.total_count() == 3

    def test_unknown_kind_names_the_kind(self) -> None:
        w = Waitables()
        with pytest.raises(UnsupportedKindError, match="deployment"):
            w.add_item("deployment", "ns", "x")
        assert w.total_count() == 0

    def test_duplicate_registration_keeps_state(self) -> None:
        w = Waitables()
        w.add_pod("ns", "a").with_ready(True)
        w.add_pod("ns", "a")
        assert w.pods.get("ns", "a").ready is True
        assert w.total_count() == 1


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class TestQueries:
    def test_has_pod_includes_service_children(self) -> None:
        w = Waitables()
        w.add_service("ns", "db")
        w.set_service_children("ns", "db", [make_pod("db-0", "ns")], 0, NOW)
        assert w.has_pod("ns", "db-0")
        assert not w.has_pod_direct("ns", "db-0")
        assert not w.has_pod("other", "db-0")

    def test_watched_kinds(self) -> None:
        w = Waitables()
        assert w.watched_kinds() == set()
        w.add_service("ns", "db")
        assert w.watched_kinds() == {ResourceKind.SERVICE, ResourceKind.POD}
        w.add_job("ns", "j")
        assert ResourceKind.JOB in w.watched_kinds()

    def test_all_namespaces(self) -> None:
        w = Waitables()
        w.add_pod("a", "p")
        w.add_job("b", "j")
        w.add_service("c", "s")
        assert w.all_namespaces() == {"a", "b", "c"}


# ---------------------------------------------------------------------------
# Done evaluation
# ---------------------------------------------------------------------------


class TestIsDone:
    def test_empty_is_done(self) -> None:
        assert Waitables().is_done()

    def test_pod_and_job(self) -> None:
        w = Waitables()
        w.add_pod("ns", "a")
        w.add_job("ns", "j")
        assert not w.is_done()
        w.set_pod_ready_from_pod("ns", "a", make_pod("a", "ns", ready=True), 0, NOW)
        assert not w.is_done()
        w.set_job_complete_from_job("ns", "j", make_job("j", "ns", complete=True))
        assert w.is_done()

    def test_service_without_children_blocks(self) -> None:
        w = Waitables()
        w.add_service("ns", "db")
        assert not w.is_done()

    def test_policy_at_least_one(self) -> None:
        pods = [make_pod("db-0", "ns", ready=True), make_pod("db-1", "ns", ready=False)]
        strict = Waitables(ServicePolicy.ALL_REQUIRED)
        strict.add_service("ns", "db")
        strict.set_service_children("ns", "db", pods, 0, NOW)
        lenient = Waitables(ServicePolicy.AT_LEAST_ONE)
        lenient.add_service("ns", "db")
        lenient.set_service_children("ns", "db", pods, 0, NOW)
        assert not strict.is_done()
        assert lenient.is_done()

    def test_unset_reverts(self) -> None:
        w = Waitables()
        w.add_job("ns", "j")
        w.set_job_complete_from_job("ns", "j", make_job("j", "ns", complete=True))
        assert w.is_done()
        w.unset_job_complete("ns", "j")
        assert not w.is_done()


# ---------------------------------------------------------------------------
# Service children
# ---------------------------------------------------------------------------


class TestServiceChildren:
    def test_replaced_wholesale(self) -> None:
        w = Waitables()
        w.add_service("ns", "db")
        w.set_service_children("ns", "db", [make_pod("a", "ns"), make_pod("b", "ns")], 0, NOW)
        w.set_service_children("ns", "db", [make_pod("c", "ns", ready=True)], 0, NOW)
        assert sorted(w.services.get("ns", "db").children) == ["c"]

    def test_untracked_service_ignored(self) -> None:
        w = Waitables()
        assert w.set_service_children("ns", "nope", [make_pod("a", "ns")], 0, NOW) is None

    def test_clear_and_sync_failed(self) -> None:
        w = Waitables()
        w.add_service("ns", "db")
        w.set_service_children("ns", "db", [make_pod("a", "ns", ready=True)], 0, NOW)
        w.clear_service_children("ns", "db")
        assert w.services.get("ns", "db").children == {}
        w.mark_service_sync_failed("ns", "db")
        assert w.services.get("ns", "db").sync_failed
