"""Branching story trees with votes, comments and consistent aggregates."""

__version__ = "0.1.0"
