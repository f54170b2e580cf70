"""Command-line interface for jpyc-relay."""

from jpyc_relay.cli.commands import app

__all__ = ["app"]
