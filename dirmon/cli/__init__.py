"""dirmon command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``dirmon`` script).
"""

from dirmon.cli.main import cli

__all__ = ["cli"]
