"""Command-line interface for twmt-search."""
from twmt_search.cli.main import main

__all__ = ["main"]
