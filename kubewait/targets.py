"""Parsing of ``[NAMESPACE,][KIND,]NAME`` watch arguments."""

from __future__ import annotations

from dataclasses import dataclass

from kubewait.errors import InvalidTargetError, NoTargetsError, UnsupportedKindError
from kubewait.models.events import ResourceKind
from kubewait.observability.logging import get_logger

_log = get_logger("targets")


@dataclass(frozen=True)
class Target:
    """A (namespace, kind, name) item to wait for."""

    namespace: str
    kind: ResourceKind
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.kind}/{self.name}"


def parse_target(arg: str, default_namespace: str) -> Target:
    """Parse one argument.

    ``name`` is a pod in *default_namespace*, ``kind,name`` is looked up in
    *default_namespace*, and ``namespace,kind,name`` is fully qualified.
    """
    parts = [part.strip() for part in arg.split(",")]
    if any(not part for part in parts):
        raise InvalidTargetError(f"illegal argument '{arg}'", [arg])

    match parts:
        case [name]:
            return Target(default_namespace, ResourceKind.POD, name)
        case [kind, name]:
            return Target(default_namespace, ResourceKind.parse(kind), name)
        case [namespace, kind, name]:
            return Target(namespace, ResourceKind.parse(kind), name)
        case _:
            raise InvalidTargetError(f"illegal argument '{arg}'", [arg])


def parse_targets(args: list[str] | tuple[str, ...], default_namespace: str) -> list[Target]:
    """Parse every argument, reporting all illegal ones together.

    Each bad argument is logged as it is seen; once the whole batch has been
    read a single InvalidTargetError lists them.
    """
    if not args:
        raise NoTargetsError("command needs one or more arguments to wait for")

    targets: list[Target] = []
    illegal: list[str] = []
    for arg in args:
        try:
            target = parse_target(arg, default_namespace)
        except UnsupportedKindError as exc:
            _log.error("illegal argument", argument=arg, error=str(exc))
            illegal.append(arg)
            continue
        except InvalidTargetError:
            _log.error("illegal argument", argument=arg)
            illegal.append(arg)
            continue
        if target not in targets:
            targets.append(target)

    if illegal:
        raise InvalidTargetError("illegal argument provided: " + ", ".join(illegal), illegal)
    return targets


def target_namespaces(targets: list[Target]) -> list[str]:
    """Namespaces to watch, in first-seen order."""
    namespaces: list[str] = []
    for target in targets:
        if target.namespace not in namespaces:
            namespaces.append(target.namespace)
    return namespaces
