"""CLI application setup using Typer.

Provides the command-line interface for Clixen operations.
"""

from src.cli.main import app

__all__ = ["app"]
