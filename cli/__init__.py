"""CLI package for team-cli

This package provides the command-line interface for configuring the
TEAM server and managing the login token.
"""

from cli.main import main

__all__ = [
    "main",
]
