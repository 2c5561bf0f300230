"""
Composition aggregation.

Folds game outcomes into per-fingerprint running statistics. The aggregator is
the only writer of CompositionRecords; storage is delegated to a RecordStore
that must apply save_record atomically.
"""

import asyncio
import logging
import weakref
from datetime import datetime, timezone
from typing import List, Optional, Protocol, Sequence, Tuple

from tftmeta.constants import PlacementConstants
from tftmeta.data_models.composition import (
    CompositionFingerprint, CompositionRecord, GameOutcome, PartitionKey,
    TraitObservation, UnitObservation
)
from tftmeta.utils.exceptions import CompositionNotFoundError, InvalidOutcomeError

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    """Persistence collaborator for composition records."""

    async def load_record(self, partition: PartitionKey,
                          fingerprint: CompositionFingerprint) -> Optional[CompositionRecord]:
        ...

    async def save_record(self, record: CompositionRecord,
                          game: Optional[GameOutcome] = None) -> CompositionRecord:
        """
        Persist atomically; raise ConsistencyError if record.version is stale.

        When game is given its (match_id, participant_id) row is written in the
        same transaction; DuplicateGameError if that row already exists.
        """
        ...

    async def list_records(self, patch: str, region: str) -> List[CompositionRecord]:
        """Consistent snapshot of every record for (patch, region)."""
        ...

    async def partition_total(self, partition: PartitionKey) -> int:
        ...


def validate_outcome(outcome: GameOutcome) -> None:
    if not PlacementConstants.FIRST <= outcome.placement <= PlacementConstants.LAST:
        raise InvalidOutcomeError(
            "placement",
            f"placement must be between {PlacementConstants.FIRST} and "
            f"{PlacementConstants.LAST} (got {outcome.placement})"
        )
    if not outcome.match_id:
        raise InvalidOutcomeError("match_id", "match_id is required")


def apply_outcome(record: CompositionRecord, outcome: GameOutcome,
                  observed_at: datetime) -> CompositionRecord:
    """Pure fold of one outcome into a copy of the record."""
    updated = record.copy()
    updated.games += 1
    if outcome.is_win:
        updated.wins += 1
    if outcome.is_top4:
        updated.top4s += 1
    updated.placement_sum += outcome.placement
    updated.placement_counts[outcome.placement - 1] += 1

    if updated.first_seen is None or observed_at < updated.first_seen:
        updated.first_seen = observed_at
    if updated.last_seen is None or observed_at > updated.last_seen:
        updated.last_seen = observed_at
    return updated


class CompositionAggregator:
    """Owns composition records; merge is the single mutation entry point."""

    def __init__(self, store: RecordStore):
        self.store = store
        # One lock per (partition, fingerprint); entries vanish once no merge holds them
        self._locks: "weakref.WeakValueDictionary[Tuple[PartitionKey, str], asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, partition: PartitionKey, fingerprint: CompositionFingerprint) -> asyncio.Lock:
        key = (partition, fingerprint.key)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def merge(
        self,
        partition: PartitionKey,
        fingerprint: CompositionFingerprint,
        outcome: GameOutcome,
        traits: Sequence[TraitObservation] = (),
        units: Sequence[UnitObservation] = (),
        record_game: bool = False,
    ) -> CompositionRecord:
        """
        Fold one game outcome into its composition record.

        With record_game the outcome is deduplicated by (match_id, participant_id)
        in the same store write that updates the record, so an outcome is either
        counted and remembered or neither. Otherwise the caller deduplicates.
        Trait/unit summaries are taken from the first observed board.

        Raises:
            InvalidOutcomeError: placement out of range or mismatched fingerprint
            DuplicateGameError: record_game is set and the outcome was already counted
            ConsistencyError: the store rejected a concurrent write; retry the merge
        """
        validate_outcome(outcome)
        if outcome.fingerprint != fingerprint:
            raise InvalidOutcomeError(
                "fingerprint", f"outcome belongs to '{outcome.fingerprint}', not '{fingerprint}'"
            )

        observed_at = outcome.game_datetime or datetime.now(timezone.utc)

        async with self._lock_for(partition, fingerprint):
            record = await self.store.load_record(partition, fingerprint)
            if record is None:
                record = CompositionRecord(
                    fingerprint=fingerprint,
                    partition=partition,
                    traits=list(traits),
                    units=list(units),
                )
                logger.debug(f"First observation of {fingerprint} in {partition}")

            updated = apply_outcome(record, outcome, observed_at)
            saved = await self.store.save_record(updated, game=outcome if record_game else None)

        return saved.copy()

    async def get(self, partition: PartitionKey,
                  fingerprint: CompositionFingerprint) -> CompositionRecord:
        """Look up a record; fingerprints with no games are not found, never zero-valued."""
        record = await self.store.load_record(partition, fingerprint)
        if record is None or record.games == 0:
            raise CompositionNotFoundError(fingerprint.key, str(partition))
        return record.copy()

    async def partition_total(self, partition: PartitionKey) -> int:
        return await self.store.partition_total(partition)
