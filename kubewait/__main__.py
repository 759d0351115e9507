"""Entry point for `python -m kubewait`.

Usage:
    python -m kubewait pod-a svc,db
    uv run python -m kubewait --no-tree jobs,migrate
"""

from __future__ import annotations

from kubewait.cli import cli

cli()
