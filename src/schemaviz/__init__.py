"""Editing session and command line interface for SchemaViz."""

from schemaviz.session import EditingSession, ImportReport

__all__ = ["EditingSession", "ImportReport"]
