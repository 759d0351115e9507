"""Human-readable status output.

Two forms are produced from a ``Waitables`` snapshot:

* flat   -- ``Waiting for: ns/kind/name, ...`` listing every unsatisfied item.
* tree   -- namespace -> service -> pod hierarchy with a status marker per
            node.  Branch markers are derived bottom-up from their children
            and, when collapsing, a finished branch drops its children.
"""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from enum import StrEnum

from rich.console import Console
from rich.text import Text
from rich.tree import Tree

from kubewait.models.items import ServiceItem, ServicePolicy
from kubewait.tracker.waitables import Waitables

_RENDER_WIDTH = 240


class TreeStatus(StrEnum):
    """Marker shown in front of every tree node."""

    DONE = "✅"
    IGNORED = "☑️"
    NOT_DONE = "❌"
    UNKNOWN = "❔"


@dataclass
class StatusNode:
    """One line of the status tree."""

    label: str
    status: TreeStatus = TreeStatus.UNKNOWN
    children: list[StatusNode] = field(default_factory=list)

    def add_branch(self, label: str) -> StatusNode:
        node = StatusNode(label)
        self.children.append(node)
        return node

    def add_leaf(self, status: TreeStatus, label: str) -> StatusNode:
        node = StatusNode(label, status)
        self.children.append(node)
        return node


def render_flat_status(waitables: Waitables) -> str:
    """``Waiting for: <tokens>``; the list is empty once everything is done."""
    tokens = [f"{s.namespace}/service/{s.name}" for s in waitables.services if not s.is_available_under(waitables.policy)]
    tokens += [f"{p.namespace}/pod/{p.name}" for p in waitables.pods if not p.is_ready()]
    tokens += [f"{j.namespace}/job/{j.name}" for j in waitables.jobs if not j.is_complete()]
    return f"Waiting for: {', '.join(tokens)}"


def _service_label(svc: ServiceItem, available: bool) -> str:
    if svc.sync_failed:
        return f"service/{svc.name}: Unknown"
    return f"service/{svc.name}: {'Available' if available else 'Unavailable'}"


def build_status_tree(waitables: Waitables, collapse: bool = True) -> StatusNode:
    """Build the status tree and resolve branch markers."""
    policy = waitables.policy
    root = StatusNode("wait status")
    branches = {ns: root.add_branch(f"namespace/{ns}") for ns in sorted(waitables.all_namespaces())}

    for svc in waitables.services:
        if svc.sync_failed:
            # Children are stale after a failed list; they must not resolve the branch.
            branches[svc.namespace].add_leaf(TreeStatus.UNKNOWN, _service_label(svc, False))
            continue
        available = svc.is_available_under(policy)
        svc_branch = branches[svc.namespace].add_branch(_service_label(svc, available))
        for pod_name in sorted(svc.children):
            pod = svc.children[pod_name]
            if pod.is_ready():
                svc_branch.add_leaf(TreeStatus.DONE, f"pod/{pod_name}: Ready")
            elif policy is ServicePolicy.AT_LEAST_ONE and available:
                svc_branch.add_leaf(TreeStatus.IGNORED, f"pod/{pod_name}: Ignored")
            else:
                svc_branch.add_leaf(TreeStatus.NOT_DONE, f"pod/{pod_name}: NotReady")

    for pod in waitables.pods:
        if pod.is_ready():
            branches[pod.namespace].add_leaf(TreeStatus.DONE, f"pod/{pod.name}: Ready")
        else:
            branches[pod.namespace].add_leaf(TreeStatus.NOT_DONE, f"pod/{pod.name}: NotReady")

    for job in waitables.jobs:
        if job.is_complete():
            branches[job.namespace].add_leaf(TreeStatus.DONE, f"job/{job.name}: Complete")
        else:
            branches[job.namespace].add_leaf(TreeStatus.NOT_DONE, f"job/{job.name}: NotComplete")

    for branch in root.children:
        propagate_status(branch, collapse)
    return root


def propagate_status(node: StatusNode, collapse: bool) -> TreeStatus:
    """Resolve an unknown branch from its children.

    Not-done wins over unknown, unknown wins over done.  Ignored children
    count as done.  Leaves and branches without children keep their marker.
    """
    if not node.children or node.status is not TreeStatus.UNKNOWN:
        return node.status

    statuses = {propagate_status(child, collapse) for child in node.children}
    if TreeStatus.NOT_DONE in statuses:
        node.status = TreeStatus.NOT_DONE
    elif TreeStatus.UNKNOWN in statuses:
        node.status = TreeStatus.UNKNOWN
    else:
        node.status = TreeStatus.DONE
        if collapse:
            node.children = []
    return node.status


def _to_rich(node: StatusNode, tree: Tree) -> None:
    for child in node.children:
        _to_rich(child, tree.add(Text(f"{child.status.value} {child.label}")))


def format_status_tree(root: StatusNode) -> str:
    """Draw *root* with rich tree guides, without colour or trailing spaces."""
    tree = Tree(Text(root.label))
    _to_rich(root, tree)
    buffer = io.StringIO()
    console = Console(file=buffer, width=_RENDER_WIDTH, color_system=None, force_terminal=False, emoji=False)
    console.print(tree, soft_wrap=True)
    lines = [line.rstrip() for line in buffer.getvalue().splitlines()]
    return "\n".join(lines)


def render_tree_status(waitables: Waitables, collapse: bool = True) -> str:
    return format_status_tree(build_status_tree(waitables, collapse))


def render_status(waitables: Waitables, tree: bool = True, collapse: bool = True) -> str:
    """Render in the configured form."""
    if tree:
        return render_tree_status(waitables, collapse)
    return render_flat_status(waitables)
