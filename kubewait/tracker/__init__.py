"""Readiness tracking engine.

Submodules:
    waitables -- In-memory model of watched pods, jobs and services.
    processor -- Applies add/update/delete notifications to the model.
    render    -- Flat and tree status output.
    printer   -- Debounced, rate-bounded status printing.
    session   -- Lock-serialised event handling and the done signal.
"""

from kubewait.tracker.printer import StatusPrinter
from kubewait.tracker.processor import EventProcessor, PodLister
from kubewait.tracker.render import render_flat_status, render_status, render_tree_status
from kubewait.tracker.session import WaitSession
from kubewait.tracker.waitables import Waitables

__all__ = [
    "EventProcessor",
    "PodLister",
    "StatusPrinter",
    "WaitSession",
    "Waitables",
    "render_flat_status",
    "render_status",
    "render_tree_status",
]
