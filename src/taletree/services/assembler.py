"""Rebuild reading order from a flat set of units.

Units are stored unordered; the assembler indexes them by parent and walks
depth-first from the root with an explicit stack, visiting siblings oldest
first. Anything that cannot be reached from the root is reported as a
``StructuralAnomaly`` and left out, so one bad pointer never breaks a read.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum

from taletree.records import ContentUnit
from taletree.store.base import unit_key

logger = logging.getLogger(__name__)


class AnomalyKind(str, Enum):
    ORPHAN = "orphan"  # parent_id points at a unit that does not exist in the tree
    EXTRA_ROOT = "extra_root"  # a second unit with parent_id = NULL
    MISSING_ROOT = "missing_root"  # no root unit at all
    UNREACHABLE = "unreachable"  # below an orphan or extra root, or on a cycle


@dataclass(frozen=True, slots=True)
class StructuralAnomaly:
    kind: AnomalyKind
    unit_id: str | None
    parent_id: str | None
    detail: str


@dataclass(frozen=True, slots=True)
class TraversalEntry:
    unit: ContentUnit
    depth: int
    position: int


@dataclass(frozen=True)
class TreeTraversal:
    """Depth-first reading order of one tree plus any anomalies found."""

    tree_id: str
    entries: tuple[TraversalEntry, ...]
    anomalies: tuple[StructuralAnomaly, ...] = ()

    def __iter__(self) -> Iterator[TraversalEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def unit_ids(self) -> list[str]:
        return [entry.unit.id for entry in self.entries]

    def after(self, unit_id: str | None = None, limit: int | None = None) -> list[TraversalEntry]:
        """Resume the walk after ``unit_id`` (from the start when None).

        Raises:
            KeyError: If ``unit_id`` is not part of this traversal.
        """
        start = 0
        if unit_id is not None:
            for entry in self.entries:
                if entry.unit.id == unit_id:
                    start = entry.position + 1
                    break
            else:
                raise KeyError(unit_id)
        end = None if limit is None else start + limit
        return list(self.entries[start:end])


class TreeAssembler:
    """Builds deterministic traversals from unordered units."""

    def assemble(
        self,
        tree_id: str,
        units: Iterable[ContentUnit],
        root_unit_id: str | None = None,
    ) -> TreeTraversal:
        """Index ``units`` and walk them depth-first from the root.

        Args:
            tree_id: Tree being assembled; used for diagnostics.
            units: Every unit of the tree, in any order. Consumed once.
            root_unit_id: The tree's recorded root. When omitted the oldest
                parentless unit is taken as root.
        """
        by_id: dict[str, ContentUnit] = {}
        for unit in units:
            by_id.setdefault(unit.id, unit)

        anomalies: list[StructuralAnomaly] = []
        reported: set[str] = set()

        roots = sorted((u for u in by_id.values() if u.parent_id is None), key=unit_key)
        root: ContentUnit | None = None
        if root_unit_id is not None and root_unit_id in by_id and by_id[root_unit_id].is_root:
            root = by_id[root_unit_id]
        elif roots:
            root = roots[0]

        for extra in roots:
            if root is not None and extra.id == root.id:
                continue
            anomalies.append(
                StructuralAnomaly(
                    AnomalyKind.EXTRA_ROOT,
                    extra.id,
                    None,
                    f"Unit {extra.id} has no parent but is not the story root",
                )
            )
            reported.add(extra.id)

        if root is None and by_id:
            anomalies.append(
                StructuralAnomaly(
                    AnomalyKind.MISSING_ROOT,
                    root_unit_id,
                    None,
                    f"Story {tree_id} has no root unit",
                )
            )

        children: defaultdict[str, list[ContentUnit]] = defaultdict(list)
        for unit in by_id.values():
            if unit.parent_id is None:
                continue
            if unit.parent_id not in by_id:
                anomalies.append(
                    StructuralAnomaly(
                        AnomalyKind.ORPHAN,
                        unit.id,
                        unit.parent_id,
                        f"Unit {unit.id} points at missing parent {unit.parent_id}",
                    )
                )
                reported.add(unit.id)
                continue
            children[unit.parent_id].append(unit)
        for siblings in children.values():
            siblings.sort(key=unit_key)

        entries: list[TraversalEntry] = []
        visited: set[str] = set()
        if root is not None:
            stack: list[tuple[ContentUnit, int]] = [(root, 0)]
            while stack:
                unit, depth = stack.pop()
                if unit.id in visited:
                    continue
                visited.add(unit.id)
                entries.append(TraversalEntry(unit=unit, depth=depth, position=len(entries)))
                # Reversed so the oldest sibling is popped first.
                for child in reversed(children.get(unit.id, ())):
                    if child.id not in visited:
                        stack.append((child, depth + 1))

        for unit in sorted(by_id.values(), key=unit_key):
            if unit.id in visited or unit.id in reported:
                continue
            anomalies.append(
                StructuralAnomaly(
                    AnomalyKind.UNREACHABLE,
                    unit.id,
                    unit.parent_id,
                    f"Unit {unit.id} is not reachable from the story root",
                )
            )

        for anomaly in anomalies:
            logger.warning("Structural anomaly in story %s: %s", tree_id, anomaly.detail)

        return TreeTraversal(tree_id=tree_id, entries=tuple(entries), anomalies=tuple(anomalies))
