"""CLI commands for Trador.

This package provides the command-line interface for Trador, including
the engine runner, portfolio views and watchlist management.
"""

from trador.cli.main import cli, main

__all__ = ["cli", "main"]
