"""Conflicts, constraint tables, heuristics, corridor and mutex reasoning for cooperative conflict-based search."""

__version__ = "0.1.0"