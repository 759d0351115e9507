"""Collector package for kubewait.

Provides the Kubernetes list and watch calls that feed notifications into
the wait session.

Submodules
----------
client  -- ClusterClient: namespaced list calls, raw-dict conversion, connect().
watcher -- ResourceWatcher: list-then-watch with resync, 410 relist, back-off;
           WatchGroup: runs watchers until the session's done signal fires.
"""

from kubewait.collector.client import ClusterClient, connect
from kubewait.collector.watcher import ResourceWatcher, WatchGroup

__all__ = ["ClusterClient", "ResourceWatcher", "WatchGroup", "connect"]
