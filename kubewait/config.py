"""Configuration loading from environment variables and CLI overrides."""

from __future__ import annotations

import os
import re
from typing import Any

from kubewait.errors import ConfigError
from kubewait.models.config import (
    KubeConfig,
    KubeWaitConfig,
    LogConfig,
    OutputConfig,
    ReadinessConfig,
    WatchConfig,
)
from kubewait.models.items import ServicePolicy

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"KUBEWAIT_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_float(key: str, default: float, min_val: float | None = None) -> float:
    raw = _env(key, str(default))
    try:
        val = float(raw)
    except ValueError as exc:
        raise ConfigError(f"Invalid number for KUBEWAIT_{key}: {raw}") from exc
    if min_val is not None:
        val = max(val, min_val)
    return val


def parse_duration(value: str | float | int) -> float:
    """Parse a Go-style duration (``1h30m``, ``250ms``, ``10s``) or bare seconds."""
    if isinstance(value, int | float):
        seconds = float(value)
    else:
        text = value.strip()
        try:
            seconds = float(text)
        except ValueError:
            parts = _DURATION_PART.findall(text)
            if not parts or "".join(n + u for n, u in parts) != text:
                raise ConfigError(f"Invalid duration: {value!r}") from None
            seconds = sum(float(n) * _DURATION_UNITS[u] for n, u in parts)
    if seconds < 0:
        raise ConfigError(f"Duration must not be negative: {value!r}")
    return seconds


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ConfigError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_log_format(value: str) -> str:
    valid = {"console", "json"}
    if value.lower() not in valid:
        raise ConfigError(f"Invalid log format: {value}. Must be one of {valid}")
    return value.lower()


def _policy(only_one: bool) -> ServicePolicy:
    return ServicePolicy.AT_LEAST_ONE if only_one else ServicePolicy.ALL_REQUIRED


def load_config(**overrides: Any) -> KubeWaitConfig:
    """Load configuration from KUBEWAIT_* environment variables.

    Keyword overrides (as collected from command-line flags) win over the
    environment; an override of ``None`` means "not given".
    """
    given = {k: v for k, v in overrides.items() if v is not None}

    def pick(key: str, env_value: Any) -> Any:
        return given.get(key, env_value)

    config = KubeWaitConfig(
        timeout_seconds=parse_duration(pick("timeout", _env("TIMEOUT", "600s"))),
        kube=KubeConfig(
            namespace=pick("namespace", _env("NAMESPACE", "")) or "default",
            kubeconfig=pick("kubeconfig", _env("KUBECONFIG", "")),
            context=pick("context", _env("CONTEXT", "")),
        ),
        watch=WatchConfig(
            sync_period_seconds=parse_duration(pick("sync_period", _env("SYNC_PERIOD", "90s"))),
        ),
        readiness=ReadinessConfig(
            service_policy=_policy(pick("only_one_per_service", _env_bool("ONLY_ONE_PER_SERVICE", False))),
            min_ready_seconds=float(pick("min_ready_seconds", _env_float("MIN_READY_SECONDS", 2, min_val=0))),
            fail_on_list_error=pick("fail_on_list_error", _env_bool("FAIL_ON_LIST_ERROR", False)),
        ),
        output=OutputConfig(
            print_tree=pick("print_tree", _env_bool("PRINT_TREE", True)),
            collapse_tree=pick("collapse_tree", _env_bool("PRINT_COLLAPSED_TREE", True)),
            print_interval_seconds=parse_duration(pick("print_interval", _env("PRINT_INTERVAL", "250ms"))),
        ),
        log=LogConfig(
            level=_validate_log_level(pick("log_level", _env("LOG_LEVEL", "info"))),
            format=_validate_log_format(pick("log_format", _env("LOG_FORMAT", "console"))),
        ),
    )
    if config.output.print_interval_seconds <= 0:
        raise ConfigError("Print interval must be positive")
    if config.watch.sync_period_seconds <= 0:
        raise ConfigError("Sync period must be positive")
    if config.readiness.min_ready_seconds < 0:
        raise ConfigError("Minimum ready seconds must not be negative")
    return config
