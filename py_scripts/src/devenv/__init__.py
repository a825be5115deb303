"""Local development environment CLI: database, migrations and protos."""

from .cli import cli

__all__ = ["cli", "main"]


def main() -> None:
    """Entry point for the devenv CLI."""
    cli()
