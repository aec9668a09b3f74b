"""Command line interface for eventmodel."""

from .app import app

__all__ = ["app"]
