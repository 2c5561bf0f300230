"""
Ingestion service - turns raw match payloads into composition statistics.

Each participant goes through the board gate, is fingerprinted, deduplicated
by (match_id, participant_id) and then merged into its composition record.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from tftmeta.constants import TraitStyle
from tftmeta.data_models.composition import (
    CompositionRecord, GameOutcome, PartitionKey, TraitObservation, UnitObservation
)
from tftmeta.operations.aggregator import CompositionAggregator, validate_outcome
from tftmeta.operations.fingerprint import extract, validate_board
from tftmeta.services.base import BaseService
from tftmeta.utils.exceptions import DuplicateGameError, InvalidBoardError, InvalidOutcomeError
from tftmeta.utils.logger import setup_logger

logger = setup_logger(__name__)


def rarity_to_cost(rarity: int) -> int:
    """Provider rarity codes skip values; map them onto gold cost."""
    match rarity:
        case 0:
            return 1
        case 1:
            return 2
        case 2:
            return 3
        case 4:
            return 4
        case 6:
            return 5
    return rarity + 1


def _trait_style(value) -> TraitStyle:
    try:
        return TraitStyle(int(value or 0))
    except ValueError:
        return TraitStyle.NONE


def parse_trait(data: Dict[str, Any]) -> TraitObservation:
    """Accepts both provider keys (num_units, tier_total) and normalized ones."""
    count = data.get('count', data.get('num_units'))
    if count is None:
        raise InvalidOutcomeError('traits', f"trait '{data.get('name')}' has no unit count")
    return TraitObservation(
        name=data['name'],
        count=int(count),
        style=_trait_style(data.get('style')),
        tier_total=int(data.get('tier_total') or 0),
    )


def parse_unit(data: Dict[str, Any]) -> UnitObservation:
    champion = data.get('champion') or data.get('character_id')
    if not champion:
        raise InvalidOutcomeError('units', "unit has no champion id")

    if 'cost' in data:
        cost = int(data['cost'])
    else:
        cost = rarity_to_cost(int(data.get('rarity') or 0))

    items = data.get('items')
    if items is None:
        items = data.get('itemNames') or ()
    return UnitObservation(
        champion=champion,
        cost=cost,
        items=tuple(str(i) for i in items),
        tier=int(data.get('tier') or 1),
    )


def parse_board(payload: Dict[str, Any]) -> Tuple[List[TraitObservation], List[UnitObservation]]:
    traits = [parse_trait(t) for t in payload.get('traits') or []]
    units = [parse_unit(u) for u in payload.get('units') or []]
    return traits, units


def _game_datetime(value) -> Optional[datetime]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    # Provider timestamps are epoch milliseconds
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)


@dataclass(frozen=True)
class IngestionResult:
    """Per-call tally of participant outcomes."""
    accepted: int = 0
    rejected: int = 0
    duplicate: int = 0

    @property
    def total(self) -> int:
        return self.accepted + self.rejected + self.duplicate

    def __add__(self, other: "IngestionResult") -> "IngestionResult":
        return IngestionResult(
            accepted=self.accepted + other.accepted,
            rejected=self.rejected + other.rejected,
            duplicate=self.duplicate + other.duplicate,
        )


class IngestionService(BaseService):
    """Feeds participant boards into the composition aggregator."""

    def __init__(self, store, meta_service=None):
        super().__init__(store)
        self.aggregator = CompositionAggregator(store)
        self.meta_service = meta_service

    async def ingest_participant(
        self,
        payload: Dict[str, Any],
        partition: PartitionKey,
        match_id: Optional[str] = None,
        participant_id: Optional[int] = None,
        game_datetime=None,
    ) -> Optional[CompositionRecord]:
        """
        Ingest one participant's final board.

        Returns the updated record, or None if this participant was already ingested.

        Raises:
            InvalidBoardError: the board fails the data-quality gate
            InvalidOutcomeError: placement or identifiers are missing or out of range
            TransactionError: the merge kept conflicting with concurrent writers
        """
        traits, units = parse_board(payload)
        validate_board(traits, units)
        fingerprint = extract(traits, units)

        placement = payload.get('placement')
        if placement is None:
            raise InvalidOutcomeError('placement', "placement is required")

        outcome = GameOutcome(
            fingerprint=fingerprint,
            placement=int(placement),
            match_id=match_id or payload.get('match_id') or '',
            participant_id=int(participant_id if participant_id is not None else payload.get('participant_id') or 0),
            puuid=payload.get('puuid'),
            level=int(payload.get('level') or 0),
            gold_left=int(payload.get('gold_left') or 0),
            total_damage=int(payload.get('total_damage', payload.get('total_damage_to_players')) or 0),
            game_datetime=_game_datetime(game_datetime if game_datetime is not None else payload.get('game_datetime')),
        )
        validate_outcome(outcome)

        try:
            return await self.execute_with_retry(
                lambda: self.aggregator.merge(partition, fingerprint, outcome, traits, units, record_game=True),
                f"merge {fingerprint} in {partition}",
            )
        except DuplicateGameError:
            logger.debug(f"Skipping duplicate participant {outcome.match_id}/{outcome.participant_id}")
            return None

    async def ingest_match(self, match: Dict[str, Any], partition: PartitionKey) -> IngestionResult:
        """
        Ingest every participant of a match payload.

        Accepts the provider shape ({"metadata": {...}, "info": {...}}) or a flat
        dict with match_id, game_datetime and participants.
        """
        metadata = match.get('metadata') or {}
        info = match.get('info') or match
        match_id = metadata.get('match_id') or match.get('match_id')
        if not match_id:
            raise InvalidOutcomeError('match_id', "match_id is required")
        game_datetime = info.get('game_datetime')

        accepted = rejected = duplicate = 0
        for index, participant in enumerate(info.get('participants') or []):
            participant_id = participant.get('participant_id', index)
            try:
                record = await self.ingest_participant(
                    participant, partition, match_id, participant_id, game_datetime
                )
            except (InvalidBoardError, InvalidOutcomeError) as e:
                logger.warning(f"Rejected participant {match_id}/{participant_id}: {e}")
                rejected += 1
                continue

            if record is None:
                duplicate += 1
            else:
                accepted += 1

        result = IngestionResult(accepted=accepted, rejected=rejected, duplicate=duplicate)
        logger.info(
            f"Ingested match {match_id} into {partition}: "
            f"{result.accepted} accepted, {result.rejected} rejected, {result.duplicate} duplicate"
        )

        if result.accepted and self.meta_service is not None:
            await self.meta_service.invalidate_partition(partition)
        return result

    async def ingest_matches(self, matches: List[Dict[str, Any]], partition: PartitionKey) -> IngestionResult:
        total = IngestionResult()
        for match in matches:
            total = total + await self.ingest_match(match, partition)
        return total
