"""Contract tests run against every NodeStore implementation."""

from __future__ import annotations

from dataclasses import replace

import pytest

from taletree.core.errors import ConflictError
from taletree.db.time import utcnow
from taletree.records import (
    Comment,
    ContentUnit,
    TreeRoot,
    VoteDirection,
    VoteRecord,
    VoteTally,
    new_id,
)
from taletree.store.base import ChangeSet, NodeStore


def _tree_with_root(seq: int = 1) -> tuple[TreeRoot, ContentUnit]:
    now = utcnow()
    tree_id, root_id = new_id(), new_id()
    root = ContentUnit(
        id=root_id,
        tree_id=tree_id,
        parent_id=None,
        author_id="author",
        body="root",
        sequence_key=seq,
        created_at=now,
        updated_at=now,
    )
    tree = TreeRoot(
        id=tree_id,
        author_id="author",
        root_unit_id=root_id,
        created_at=now,
        updated_at=now,
        branch_count=1,
    )
    return tree, root


def _child(parent: ContentUnit, seq: int, body: str = "child") -> ContentUnit:
    now = utcnow()
    return ContentUnit(
        id=new_id(),
        tree_id=parent.tree_id,
        parent_id=parent.id,
        author_id="author",
        body=body,
        sequence_key=seq,
        created_at=now,
        updated_at=now,
    )


def _comment(unit: ContentUnit, seq: int, body: str) -> Comment:
    return Comment(
        id=new_id(),
        unit_id=unit.id,
        tree_id=unit.tree_id,
        author_id="reader",
        body=body,
        sequence_key=seq,
        created_at=utcnow(),
    )


@pytest.fixture()
def seeded(store: NodeStore) -> tuple[TreeRoot, ContentUnit]:
    tree, root = _tree_with_root()
    store.commit(ChangeSet(new_trees=[tree], new_units=[root]))
    return tree, root


def test_commit_inserts_tree_and_root(store: NodeStore, seeded) -> None:
    tree, root = seeded

    stored_tree = store.get_tree(tree.id)
    stored_root = store.get_unit(root.id)

    assert stored_tree is not None
    assert stored_tree.root_unit_id == root.id
    assert stored_tree.branch_count == 1
    assert stored_tree.version == 1
    assert stored_root is not None
    assert stored_root.parent_id is None
    assert stored_root.tally == VoteTally()
    assert stored_root.version == 1


def test_missing_records_read_as_none(store: NodeStore) -> None:
    assert store.get_tree("missing") is None
    assert store.get_unit("missing") is None
    assert store.get_comment("missing") is None
    assert store.get_vote("missing", "voter") is None


def test_update_bumps_version(store: NodeStore, seeded) -> None:
    _, root = seeded

    store.commit(ChangeSet(unit_updates=[replace(root, tally=VoteTally(up=1))]))

    stored = store.get_unit(root.id)
    assert stored.tally.up == 1
    assert stored.version == 2


def test_stale_update_is_rejected(store: NodeStore, seeded) -> None:
    _, root = seeded
    store.commit(ChangeSet(unit_updates=[replace(root, tally=VoteTally(up=1))]))

    with pytest.raises(ConflictError) as excinfo:
        store.commit(ChangeSet(unit_updates=[replace(root, tally=VoteTally(up=7))]))

    assert excinfo.value.record_id == root.id
    stored = store.get_unit(root.id)
    assert stored.tally.up == 1
    assert stored.version == 2


def test_rejected_changeset_writes_nothing(store: NodeStore, seeded) -> None:
    tree, root = seeded
    store.commit(ChangeSet(tree_updates=[replace(tree, title="moved on")]))
    child = _child(root, seq=10)

    with pytest.raises(ConflictError):
        store.commit(
            ChangeSet(
                new_units=[child],
                unit_updates=[replace(root, comment_count=3)],
                tree_updates=[replace(tree, branch_count=2)],
            )
        )

    assert store.get_unit(child.id) is None
    assert store.get_unit(root.id).comment_count == 0
    assert store.get_tree(tree.id).branch_count == 1


def test_sibling_sequence_collision_is_a_conflict(store: NodeStore, seeded) -> None:
    _, root = seeded
    first = _child(root, seq=10)
    store.commit(ChangeSet(new_units=[first]))

    clash = _child(root, seq=10)
    with pytest.raises(ConflictError):
        store.commit(ChangeSet(new_units=[clash]))

    assert store.get_unit(clash.id) is None
    assert [unit.id for unit in store.children_of(root.id)] == [first.id]


def test_same_sequence_under_different_parents_is_allowed(store: NodeStore, seeded) -> None:
    _, root = seeded
    a = _child(root, seq=10)
    store.commit(ChangeSet(new_units=[a]))
    b = _child(a, seq=10)

    store.commit(ChangeSet(new_units=[b]))

    assert store.get_unit(b.id) is not None


def test_children_are_ordered_by_sequence(store: NodeStore, seeded) -> None:
    _, root = seeded
    late = _child(root, seq=30, body="late")
    early = _child(root, seq=10, body="early")
    middle = _child(root, seq=20, body="middle")
    for unit in (late, early, middle):
        store.commit(ChangeSet(new_units=[unit]))

    bodies = [unit.body for unit in store.children_of(root.id)]

    assert bodies == ["early", "middle", "late"]


def test_units_in_tree_pages_through_everything(store: NodeStore, seeded) -> None:
    tree, root = seeded
    children = [_child(root, seq=10 + i) for i in range(5)]
    store.commit(ChangeSet(new_units=children))
    other_tree, other_root = _tree_with_root(seq=2)
    store.commit(ChangeSet(new_trees=[other_tree], new_units=[other_root]))

    units = store.units_in_tree(tree.id)
    first_pass = [unit.id for unit in units]
    second_pass = [unit.id for unit in units]

    assert first_pass == [root.id] + [child.id for child in children]
    assert second_pass == first_pass


def test_units_in_tree_orders_out_of_order_inserts(store: NodeStore, seeded) -> None:
    tree, root = seeded
    children = {seq: _child(root, seq=seq) for seq in (30, 10, 50, 20, 40)}
    for unit in children.values():
        store.commit(ChangeSet(new_units=[unit]))

    ordered = [unit.sequence_key for unit in store.units_in_tree(tree.id)]
    resumed = store._unit_page(tree.id, (children[20].sequence_key, children[20].id), 2)

    assert ordered == [1, 10, 20, 30, 40, 50]
    assert [unit.id for unit in resumed] == [children[30].id, children[40].id]


def test_units_in_tree_sees_later_commits_on_restart(store: NodeStore, seeded) -> None:
    tree, root = seeded
    units = store.units_in_tree(tree.id)
    assert len(list(units)) == 1

    store.commit(ChangeSet(new_units=[_child(root, seq=10)]))

    assert len(list(units)) == 2


def test_comments_are_ordered_and_restartable(store: NodeStore, seeded) -> None:
    _, root = seeded
    comments = [_comment(root, seq=i, body=f"c{i}") for i in range(1, 6)]
    for comment in comments:
        store.commit(ChangeSet(new_comments=[comment]))

    thread = store.comments_for(root.id)

    assert [c.body for c in thread] == ["c1", "c2", "c3", "c4", "c5"]
    assert [c.body for c in thread] == ["c1", "c2", "c3", "c4", "c5"]
    assert store.get_comment(comments[0].id).body == "c1"


def test_duplicate_comment_sequence_is_a_conflict(store: NodeStore, seeded) -> None:
    _, root = seeded
    store.commit(ChangeSet(new_comments=[_comment(root, seq=5, body="first")]))

    with pytest.raises(ConflictError):
        store.commit(ChangeSet(new_comments=[_comment(root, seq=5, body="second")]))

    assert [c.body for c in store.comments_for(root.id)] == ["first"]


def test_vote_records_put_and_delete(store: NodeStore, seeded) -> None:
    _, root = seeded
    store.commit(
        ChangeSet(
            vote_puts=[
                VoteRecord(root.id, "zoe", VoteDirection.DOWN),
                VoteRecord(root.id, "amy", VoteDirection.UP),
            ]
        )
    )

    assert store.get_vote(root.id, "amy").direction is VoteDirection.UP
    assert [v.voter_id for v in store.votes_for(root.id)] == ["amy", "zoe"]

    store.commit(
        ChangeSet(
            vote_deletes=[(root.id, "zoe")],
            vote_puts=[VoteRecord(root.id, "amy", VoteDirection.DOWN)],
        )
    )

    assert store.get_vote(root.id, "zoe") is None
    assert store.get_vote(root.id, "amy").direction is VoteDirection.DOWN
    assert len(store.votes_for(root.id)) == 1


def test_tree_metadata_round_trips(store: NodeStore) -> None:
    tree, root = _tree_with_root()
    tree = replace(tree, title="Title", category="fantasy", tags=("a", "b"), excerpt="root")
    store.commit(ChangeSet(new_trees=[tree], new_units=[root]))

    stored = store.get_tree(tree.id)

    assert stored.title == "Title"
    assert stored.category == "fantasy"
    assert stored.tags == ("a", "b")
    assert stored.excerpt == "root"
    assert stored.is_locked is False
    assert stored.canonical_unit_id is None
