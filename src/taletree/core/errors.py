"""Exception hierarchy for taletree.

Every module imports from here. The hierarchy is:

    TaletreeError
    ├── NotFoundError
    │   ├── TreeNotFoundError
    │   ├── UnitNotFoundError
    │   ├── ParentNotFoundError
    │   └── CommentNotFoundError
    ├── ConflictError(kind, record_id)
    ├── WriteFailedError(attempts)
    │   └── VoteFailedError
    ├── ValidationError
    │   └── EmptyContentError
    ├── TreeLockedError
    └── PermissionDeniedError

ConflictError is raised by stores when a versioned write loses a race. It is
absorbed by the transaction runner and only reaches callers wrapped in a
WriteFailedError once the retry budget is spent.
"""

from __future__ import annotations


class TaletreeError(Exception):
    """Base exception for all taletree errors."""


# ─── Lookup Errors ────────────────────────────────────────────


class NotFoundError(TaletreeError):
    """A referenced record does not exist."""

    def __init__(self, record_id: str, message: str | None = None) -> None:
        self.record_id = record_id
        super().__init__(message or f"{record_id} not found")


class TreeNotFoundError(NotFoundError):
    """No story tree with the given id."""

    def __init__(self, tree_id: str) -> None:
        super().__init__(tree_id, f"Story {tree_id} not found")


class UnitNotFoundError(NotFoundError):
    """No content unit with the given id."""

    def __init__(self, unit_id: str) -> None:
        super().__init__(unit_id, f"Unit {unit_id} not found")


class ParentNotFoundError(NotFoundError):
    """The parent named for a new branch is absent from the tree."""

    def __init__(self, unit_id: str) -> None:
        super().__init__(unit_id, f"Parent unit {unit_id} not found")


class CommentNotFoundError(NotFoundError):
    """A reply targets a comment that is not on the unit."""

    def __init__(self, comment_id: str) -> None:
        super().__init__(comment_id, f"Comment {comment_id} not found")


# ─── Concurrency Errors ───────────────────────────────────────


class ConflictError(TaletreeError):
    """Stored version moved since the caller read it."""

    def __init__(self, kind: str, record_id: str) -> None:
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"Version conflict on {kind} {record_id}")


class WriteFailedError(TaletreeError):
    """Retries exhausted; the caller should try again later."""

    def __init__(self, attempts: int, message: str | None = None) -> None:
        self.attempts = attempts
        super().__init__(message or f"Write failed after {attempts} attempts, try again")


class VoteFailedError(WriteFailedError):
    """A vote could not be committed within the retry budget."""

    def __init__(self, attempts: int) -> None:
        super().__init__(attempts, f"Vote failed after {attempts} attempts, try again")


# ─── Input Errors ─────────────────────────────────────────────


class ValidationError(TaletreeError):
    """Caller input rejected before any write."""


class EmptyContentError(ValidationError):
    """Body is empty or whitespace only."""

    def __init__(self, what: str = "Content") -> None:
        super().__init__(f"{what} cannot be empty")


# ─── State Errors ─────────────────────────────────────────────


class TreeLockedError(TaletreeError):
    """The story is locked and accepts no new branches."""

    def __init__(self, tree_id: str) -> None:
        self.tree_id = tree_id
        super().__init__(f"Story {tree_id} is locked")


class PermissionDeniedError(TaletreeError):
    """The caller may not perform this operation on the story."""
