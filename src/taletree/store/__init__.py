# src/taletree/store/__init__.py
"""Node store implementations."""

from .base import ChangeSet, NodeStore
from .memory import MemoryNodeStore
from .sql import SqlNodeStore

__all__ = ["ChangeSet", "MemoryNodeStore", "NodeStore", "SqlNodeStore"]
