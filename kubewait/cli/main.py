"""``kubewait`` command.

    kubewait [OPTIONS] [NAMESPACE,][KIND,]NAME ...

NAMESPACE defaults to --namespace and KIND defaults to pod.  Supported
kinds are pod, job and service (aliases po, svc).
"""

from __future__ import annotations

import asyncio
import sys

import click

from kubewait import __version__
from kubewait.app import EXIT_ERROR, main
from kubewait.config import load_config
from kubewait.errors import ConfigError, KubeWaitError
from kubewait.observability.logging import get_logger, setup_logging
from kubewait.targets import parse_targets


def _status_sink(text: str) -> None:
    click.echo(text)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("items", nargs=-1)
@click.option("-n", "--namespace", default=None, help="Namespace for items that do not name one.")
@click.option("--kubeconfig", default=None, help="Path to the kubeconfig file.")
@click.option("--context", default=None, help="Kubeconfig context to use.")
@click.option(
    "-t",
    "--timeout",
    default=None,
    help="How long to wait before giving up, e.g. 30s, 5m, 1h. Zero means never. Default 10m.",
)
@click.option("--sync-period", default=None, help="Interval between full relists of watched resources. Default 90s.")
@click.option(
    "--only-one-per-service-required",
    "only_one_per_service",
    is_flag=True,
    default=None,
    help="A service is ready when at least one of its pods is ready, instead of all of them.",
)
@click.option("--print-tree/--no-tree", "print_tree", default=None, help="Print the status as a tree.")
@click.option(
    "--print-collapsed-tree/--no-collapse",
    "collapse_tree",
    default=None,
    help="Collapse finished subtrees of the status tree.",
)
@click.option("--min-ready-seconds", type=float, default=None, help="Seconds a pod must have been Ready. Default 2.")
@click.option(
    "--fail-on-list-error",
    is_flag=True,
    default=None,
    help="Exit when listing a service's pods fails instead of retrying on the next update.",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
)
@click.option("--log-format", type=click.Choice(["console", "json"], case_sensitive=False), default=None)
@click.version_option(__version__, "-v", "--version", prog_name="kubewait")
def cli(items: tuple[str, ...], **options: object) -> None:
    """Wait until pods are Ready, jobs are Complete and services have ready pods."""
    try:
        config = load_config(**options)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    setup_logging(config.log.level, config.log.format)
    log = get_logger("cli")

    try:
        targets = parse_targets(list(items), config.kube.namespace)
    except KubeWaitError as exc:
        raise click.ClickException(str(exc)) from exc

    try:
        code = asyncio.run(main(config, targets, _status_sink))
    except KubeWaitError as exc:
        log.error("wait failed", error=str(exc))
        code = EXIT_ERROR
    except Exception as exc:
        log.critical("fatal error", error=str(exc), exc_info=True)
        code = EXIT_ERROR
    sys.exit(code)
