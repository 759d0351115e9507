"""kubewait command-line interface.

Exposes:
    cli -- Click command entry point (registered as ``kubewait`` script).
"""

from kubewait.cli.main import cli

__all__ = ["cli"]
