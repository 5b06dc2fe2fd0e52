"""Tests for depth-first tree assembly and anomaly reporting."""

from __future__ import annotations

import random

import pytest

from taletree.db.time import utcnow
from taletree.records import ContentUnit
from taletree.services.assembler import AnomalyKind, TreeAssembler

TREE = "tree"


def unit(unit_id: str, parent_id: str | None, seq: int) -> ContentUnit:
    now = utcnow()
    return ContentUnit(
        id=unit_id,
        tree_id=TREE,
        parent_id=parent_id,
        author_id="author",
        body=unit_id,
        sequence_key=seq,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture()
def assembler() -> TreeAssembler:
    return TreeAssembler()


@pytest.fixture()
def well_formed() -> list[ContentUnit]:
    #      root
    #     /    \
    #    a      b
    #   / \     |
    #  a1  a2   b1
    return [
        unit("root", None, 1),
        unit("a", "root", 2),
        unit("b", "root", 3),
        unit("a1", "a", 4),
        unit("b1", "b", 5),
        unit("a2", "a", 6),
    ]


def test_depth_first_with_oldest_sibling_first(assembler, well_formed) -> None:
    traversal = assembler.assemble(TREE, well_formed, root_unit_id="root")

    assert traversal.unit_ids == ["root", "a", "a1", "a2", "b", "b1"]
    assert [entry.depth for entry in traversal] == [0, 1, 2, 2, 1, 2]
    assert [entry.position for entry in traversal] == list(range(6))
    assert traversal.anomalies == ()


def test_input_order_does_not_matter(assembler, well_formed) -> None:
    expected = assembler.assemble(TREE, well_formed).unit_ids
    shuffled = list(well_formed)
    random.Random(7).shuffle(shuffled)

    assert assembler.assemble(TREE, shuffled).unit_ids == expected
    assert assembler.assemble(TREE, reversed(well_formed)).unit_ids == expected


def test_equal_sequence_keys_fall_back_to_id(assembler) -> None:
    units = [unit("root", None, 1), unit("y", "root", 5), unit("x", "root", 5)]

    assert assembler.assemble(TREE, units).unit_ids == ["root", "x", "y"]


def test_orphan_is_reported_and_skipped(assembler, well_formed) -> None:
    units = well_formed + [unit("lost", "ghost", 7), unit("lost-child", "lost", 8)]

    traversal = assembler.assemble(TREE, units, root_unit_id="root")

    assert traversal.unit_ids == ["root", "a", "a1", "a2", "b", "b1"]
    kinds = {a.unit_id: a.kind for a in traversal.anomalies}
    assert kinds == {"lost": AnomalyKind.ORPHAN, "lost-child": AnomalyKind.UNREACHABLE}


def test_second_root_is_reported(assembler, well_formed) -> None:
    units = well_formed + [unit("imposter", None, 9), unit("under-imposter", "imposter", 10)]

    traversal = assembler.assemble(TREE, units, root_unit_id="root")

    assert traversal.unit_ids[0] == "root"
    assert "imposter" not in traversal.unit_ids
    kinds = {a.unit_id: a.kind for a in traversal.anomalies}
    assert kinds == {
        "imposter": AnomalyKind.EXTRA_ROOT,
        "under-imposter": AnomalyKind.UNREACHABLE,
    }


def test_recorded_root_wins_over_older_parentless_unit(assembler) -> None:
    units = [unit("older", None, 1), unit("real", None, 2), unit("kid", "real", 3)]

    traversal = assembler.assemble(TREE, units, root_unit_id="real")

    assert traversal.unit_ids == ["real", "kid"]
    assert [a.kind for a in traversal.anomalies] == [AnomalyKind.EXTRA_ROOT]


def test_missing_root(assembler) -> None:
    units = [unit("a", "gone", 2), unit("b", "a", 3)]

    traversal = assembler.assemble(TREE, units, root_unit_id="gone")

    assert len(traversal) == 0
    kinds = sorted(a.kind.value for a in traversal.anomalies)
    assert kinds == ["missing_root", "orphan", "unreachable"]


def test_cycle_does_not_hang(assembler) -> None:
    units = [unit("root", None, 1), unit("x", "y", 2), unit("y", "x", 3)]

    traversal = assembler.assemble(TREE, units)

    assert traversal.unit_ids == ["root"]
    assert {a.unit_id for a in traversal.anomalies} == {"x", "y"}
    assert all(a.kind is AnomalyKind.UNREACHABLE for a in traversal.anomalies)


def test_empty_tree(assembler) -> None:
    traversal = assembler.assemble(TREE, [])

    assert len(traversal) == 0
    assert traversal.anomalies == ()


def test_deep_chain_is_not_recursive(assembler) -> None:
    depth = 5_000
    units = [unit("u0", None, 0)]
    units += [unit(f"u{i}", f"u{i - 1}", i) for i in range(1, depth)]

    traversal = assembler.assemble(TREE, units)

    assert len(traversal) == depth
    assert traversal.entries[-1].depth == depth - 1


def test_resume_after_cursor(assembler, well_formed) -> None:
    traversal = assembler.assemble(TREE, well_formed)

    assert [e.unit.id for e in traversal.after(limit=2)] == ["root", "a"]
    assert [e.unit.id for e in traversal.after("a", limit=2)] == ["a1", "a2"]
    assert [e.unit.id for e in traversal.after("a2")] == ["b", "b1"]
    assert traversal.after("b1") == []

    with pytest.raises(KeyError):
        traversal.after("nope")
