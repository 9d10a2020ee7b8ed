"""Tk-facing adapters."""

from .window import TkWindowGeometry, parse_geometry

__all__ = ["TkWindowGeometry", "parse_geometry"]
