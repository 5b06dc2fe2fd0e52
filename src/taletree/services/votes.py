"""Vote ledger: per-unit vote records with toggle semantics."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, replace

from taletree.core.errors import UnitNotFoundError, ValidationError, VoteFailedError
from taletree.records import VoteDirection, VoteRecord, VoteTally
from taletree.services.transactions import RetryPolicy, Transaction, run_transaction
from taletree.store.base import NodeStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class VoteOutcome:
    """Result of a cast: the unit's new tally and the voter's standing vote."""

    unit_id: str
    tally: VoteTally
    direction: VoteDirection | None


def apply_vote(
    tally: VoteTally,
    prior: VoteDirection | None,
    direction: VoteDirection,
) -> tuple[VoteTally, VoteDirection | None]:
    """Compute the toggle transition for one cast.

    Casting the vote already held withdraws it. Casting the opposite vote
    moves it. Every decrement is floored at zero.

    Returns:
        The new tally and the voter's resulting vote (None when withdrawn).
    """
    if prior is direction:
        return tally.bump(direction, -1), None
    if prior is not None:
        tally = tally.bump(prior, -1)
    return tally.bump(direction, 1), direction


class VoteLedger:
    """Service handling vote casting and lookup."""

    def __init__(
        self,
        store: NodeStore,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store = store
        self._policy = policy
        self._sleep = sleep

    def cast_vote(
        self,
        unit_id: str,
        voter_id: str,
        direction: VoteDirection | str,
    ) -> VoteOutcome:
        """Toggle a voter's vote on a unit.

        The tally and the vote record are committed together, conditional on
        the unit version read at the start of the attempt.

        Raises:
            UnitNotFoundError: If the unit does not exist.
            ValidationError: If the voter id is blank or the direction unknown.
            VoteFailedError: If every attempt lost a race.
        """
        if not voter_id or not voter_id.strip():
            raise ValidationError("Voter id is required to vote")
        try:
            wanted = VoteDirection(direction)
        except ValueError as err:
            raise ValidationError(f"Unknown vote direction: {direction!r}") from err

        def work(txn: Transaction) -> VoteOutcome:
            unit = txn.read_unit(unit_id)
            prior_record = txn.read_vote(unit_id, voter_id)
            prior = prior_record.direction if prior_record is not None else None
            tally, current = apply_vote(unit.tally, prior, wanted)
            txn.update_unit(unit, lambda u: replace(u, tally=tally))
            if current is None:
                txn.delete_vote(unit_id, voter_id)
            else:
                txn.put_vote(VoteRecord(unit_id=unit_id, voter_id=voter_id, direction=current))
            return VoteOutcome(unit_id=unit_id, tally=tally, direction=current)

        outcome = run_transaction(
            self._store,
            work,
            policy=self._policy,
            on_exhausted=VoteFailedError,
            sleep=self._sleep,
            label="cast_vote",
        )
        logger.info(
            "Vote on unit %s by %s now %s (up=%d down=%d)",
            unit_id,
            voter_id,
            outcome.direction.value if outcome.direction else "withdrawn",
            outcome.tally.up,
            outcome.tally.down,
        )
        return outcome

    def get_vote(self, unit_id: str, voter_id: str) -> VoteDirection | None:
        """Return the voter's standing vote on a unit, if any."""
        if self._store.get_unit(unit_id) is None:
            raise UnitNotFoundError(unit_id)
        record = self._store.get_vote(unit_id, voter_id)
        return record.direction if record is not None else None

    def votes_for(self, unit_id: str) -> list[VoteRecord]:
        """Return the unit's full vote set."""
        if self._store.get_unit(unit_id) is None:
            raise UnitNotFoundError(unit_id)
        return self._store.votes_for(unit_id)
