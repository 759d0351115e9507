"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field

from kubewait.conditions import DEFAULT_MIN_READY_SECONDS
from kubewait.models.items import ServicePolicy


@dataclass
class KubeConfig:
    """Cluster connection configuration."""

    namespace: str = "default"
    kubeconfig: str = ""
    context: str = ""


@dataclass
class WatchConfig:
    """Watch substrate configuration."""

    sync_period_seconds: float = 90.0


@dataclass
class ReadinessConfig:
    """Completion rules."""

    service_policy: ServicePolicy = ServicePolicy.ALL_REQUIRED
    min_ready_seconds: float = DEFAULT_MIN_READY_SECONDS
    fail_on_list_error: bool = False


@dataclass
class OutputConfig:
    """Status output configuration."""

    print_tree: bool = True
    collapse_tree: bool = True
    print_interval_seconds: float = 0.25


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"
    format: str = "console"


@dataclass
class KubeWaitConfig:
    """Top-level kubewait configuration."""

    timeout_seconds: float = 600.0
    kube: KubeConfig = field(default_factory=KubeConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)
    readiness: ReadinessConfig = field(default_factory=ReadinessConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    log: LogConfig = field(default_factory=LogConfig)
