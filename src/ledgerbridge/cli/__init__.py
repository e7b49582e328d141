"""Command-line interface for ledgerbridge."""

from .main import app, main

__all__ = ["app", "main"]
