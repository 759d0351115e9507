"""Readiness predicates over raw Pod and Job objects.

Objects are the camelCase dicts produced by the API server (watch
``raw_object`` or ``ApiClient.sanitize_for_serialization``).
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

DEFAULT_MIN_READY_SECONDS = 2

_CONDITION_TRUE = "True"
_CONDITION_FALSE = "False"


def _conditions(snapshot: dict[str, Any]) -> list[dict[str, Any]]:
    status = snapshot.get("status") if isinstance(snapshot, dict) else None
    if not isinstance(status, dict):
        return []
    conditions = status.get("conditions") or []
    return [c for c in conditions if isinstance(c, dict)]


def find_condition(conditions: list[dict[str, Any]], condition_type: str) -> dict[str, Any] | None:
    """Return the first condition of *condition_type*, or None."""
    for condition in conditions:
        if condition.get("type") == condition_type:
            return condition
    return None


def is_condition_present_and_equal(conditions: list[dict[str, Any]], condition_type: str, status: str) -> bool:
    """True when *condition_type* is present and its status equals *status*."""
    condition = find_condition(conditions, condition_type)
    return condition is not None and condition.get("status") == status


def is_condition_true(conditions: list[dict[str, Any]], condition_type: str) -> bool:
    return is_condition_present_and_equal(conditions, condition_type, _CONDITION_TRUE)


def is_condition_false(conditions: list[dict[str, Any]], condition_type: str) -> bool:
    return is_condition_present_and_equal(conditions, condition_type, _CONDITION_FALSE)


def _parse_timestamp(value: object) -> datetime | None:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def is_pod_ready(snapshot: dict[str, Any]) -> bool:
    """True when the pod's Ready condition is True."""
    return is_condition_true(_conditions(snapshot), "Ready")


def is_pod_available(snapshot: dict[str, Any], min_ready_seconds: float, now: datetime) -> bool:
    """True when the pod is ready and has been for longer than *min_ready_seconds*."""
    conditions = _conditions(snapshot)
    ready = find_condition(conditions, "Ready")
    if ready is None or ready.get("status") != _CONDITION_TRUE:
        return False
    if min_ready_seconds <= 0:
        return True
    since = _parse_timestamp(ready.get("lastTransitionTime"))
    if since is None:
        return False
    return since + timedelta(seconds=min_ready_seconds) < now


def pod_readiness(snapshot: dict[str, Any], min_ready_seconds: float, now: datetime) -> bool:
    """Completion predicate for a pod."""
    return is_pod_ready(snapshot) and is_pod_available(snapshot, min_ready_seconds, now)


def is_job_complete(snapshot: dict[str, Any]) -> bool:
    """Completion predicate for a job: its Complete condition is True."""
    return is_condition_true(_conditions(snapshot), "Complete")
