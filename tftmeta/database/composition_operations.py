"""
SQL-backed composition storage.

Implements the aggregator's RecordStore on top of the Database class. Game rows
are written with the record they count and back ingestion dedup, recent games
and filter options.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from tftmeta.constants import RankTier, Region, TraitStyle
from tftmeta.data_models.composition import (
    CompositionFingerprint, CompositionRecord, GameOutcome, PartitionKey,
    TraitObservation, UnitObservation
)
from tftmeta.data_models.meta import RecentGame
from tftmeta.database.models import CompositionGame, TeamComposition
from tftmeta.operations.query_filters import latest_patch
from tftmeta.utils.exceptions import ConsistencyError, DuplicateGameError
from tftmeta.utils.logger import setup_logger

logger = setup_logger(__name__)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _trait_to_json(trait: TraitObservation) -> Dict[str, Any]:
    return {"name": trait.name, "count": trait.count, "style": int(trait.style), "tier_total": trait.tier_total}


def _unit_to_json(unit: UnitObservation) -> Dict[str, Any]:
    return {"champion": unit.champion, "cost": unit.cost, "items": list(unit.items), "tier": unit.tier}


def _trait_from_json(data: Dict[str, Any]) -> TraitObservation:
    return TraitObservation(
        name=data["name"],
        count=data.get("count", 0),
        style=TraitStyle(data.get("style", 0)),
        tier_total=data.get("tier_total", 0),
    )


def _unit_from_json(data: Dict[str, Any]) -> UnitObservation:
    return UnitObservation(
        champion=data["champion"],
        cost=data.get("cost", 0),
        items=tuple(data.get("items") or ()),
        tier=data.get("tier", 1),
    )


def _epoch_ms(value: Optional[datetime]) -> Optional[int]:
    return int(value.timestamp() * 1000) if value else None


def _from_epoch_ms(value: Optional[int]) -> Optional[datetime]:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc) if value else None


class CompositionOperations:
    """Persistence collaborator for composition records and game rows."""

    def __init__(self, database):
        self.db = database

    def _partition_clause(self, partition: PartitionKey):
        return (
            TeamComposition.patch_version == partition.patch,
            TeamComposition.region == partition.region.value,
            TeamComposition.tier == partition.rank_tier.value,
        )

    @staticmethod
    def _to_record(row: TeamComposition) -> CompositionRecord:
        counts = list(row.placement_counts or [])
        return CompositionRecord(
            fingerprint=CompositionFingerprint.from_key(row.comp_key),
            partition=PartitionKey(row.patch_version, Region(row.region), RankTier(row.tier)),
            traits=[_trait_from_json(t) for t in row.traits or []],
            units=[_unit_from_json(u) for u in row.units or []],
            games=row.total_games,
            wins=row.total_wins,
            top4s=row.total_top4,
            placement_sum=row.placement_sum,
            placement_counts=counts + [0] * (8 - len(counts)),
            first_seen=_aware(row.first_seen),
            last_seen=_aware(row.last_seen),
            version=row.version_id,
        )

    @staticmethod
    def _copy_into(row: TeamComposition, record: CompositionRecord):
        row.total_games = record.games
        row.total_wins = record.wins
        row.total_top4 = record.top4s
        row.placement_sum = record.placement_sum
        row.placement_counts = list(record.placement_counts)
        row.first_seen = record.first_seen
        row.last_seen = record.last_seen

    async def load_record(self, partition: PartitionKey,
                          fingerprint: CompositionFingerprint) -> Optional[CompositionRecord]:
        async with self.db.get_session() as session:
            row = await session.scalar(
                select(TeamComposition).where(
                    *self._partition_clause(partition),
                    TeamComposition.comp_hash == fingerprint.comp_hash,
                )
            )
            return self._to_record(row) if row else None

    @staticmethod
    def _game_row(partition: PartitionKey, outcome: GameOutcome) -> CompositionGame:
        return CompositionGame(
            match_id=outcome.match_id,
            participant_id=outcome.participant_id,
            comp_hash=outcome.fingerprint.comp_hash,
            patch_version=partition.patch,
            region=partition.region.value,
            tier=partition.rank_tier.value,
            puuid=outcome.puuid,
            placement=outcome.placement,
            level=outcome.level,
            gold_left=outcome.gold_left,
            total_damage=outcome.total_damage,
            game_datetime=_epoch_ms(outcome.game_datetime),
        )

    async def save_record(self, record: CompositionRecord,
                          game: Optional[GameOutcome] = None) -> CompositionRecord:
        """
        Atomically write a record, and the game row it counts when given.

        version 0 inserts; any other version must match the stored row. The
        game row and the record commit together or not at all.

        Raises:
            DuplicateGameError: the game's (match_id, participant_id) is already stored
            ConsistencyError: the row changed (or appeared) since it was loaded
        """
        try:
            async with self.db.transaction() as session:
                if game is not None:
                    existing = await session.scalar(
                        select(CompositionGame.id).where(
                            CompositionGame.match_id == game.match_id,
                            CompositionGame.participant_id == game.participant_id,
                        )
                    )
                    if existing is not None:
                        logger.debug(f"Game {game.match_id}/{game.participant_id} already stored")
                        raise DuplicateGameError(game.match_id, game.participant_id)
                    session.add(self._game_row(record.partition, game))

                row = await session.scalar(
                    select(TeamComposition).where(
                        *self._partition_clause(record.partition),
                        TeamComposition.comp_hash == record.fingerprint.comp_hash,
                    )
                )

                if record.version == 0:
                    if row is not None:
                        raise ConsistencyError("composition insert", f"{record.fingerprint} already exists")
                    row = TeamComposition(
                        comp_hash=record.fingerprint.comp_hash,
                        comp_key=record.fingerprint.key,
                        patch_version=record.partition.patch,
                        region=record.partition.region.value,
                        tier=record.partition.rank_tier.value,
                        traits=[_trait_to_json(t) for t in record.traits],
                        units=[_unit_to_json(u) for u in record.units],
                    )
                    self._copy_into(row, record)
                    session.add(row)
                else:
                    if row is None or row.version_id != record.version:
                        raise ConsistencyError(
                            "composition update",
                            f"{record.fingerprint} version {record.version} is stale"
                        )
                    self._copy_into(row, record)

                await session.flush()
                saved = self._to_record(row)
        except (IntegrityError, StaleDataError) as e:
            raise ConsistencyError("composition save", str(e)) from e

        return saved

    async def list_records(self, patch: str, region: str) -> List[CompositionRecord]:
        async with self.db.get_session() as session:
            result = await session.execute(
                select(TeamComposition)
                .where(TeamComposition.patch_version == patch, TeamComposition.region == region)
                .order_by(TeamComposition.tier, TeamComposition.comp_hash)
            )
            return [self._to_record(row) for row in result.scalars().all()]

    async def partition_total(self, partition: PartitionKey) -> int:
        async with self.db.get_session() as session:
            total = await session.scalar(
                select(func.coalesce(func.sum(TeamComposition.total_games), 0))
                .where(*self._partition_clause(partition))
            )
            return int(total or 0)

    async def recent_games(self, partition: PartitionKey, fingerprint: CompositionFingerprint,
                           limit: int = 20) -> List[RecentGame]:
        async with self.db.get_session() as session:
            result = await session.execute(
                select(CompositionGame)
                .where(
                    CompositionGame.patch_version == partition.patch,
                    CompositionGame.region == partition.region.value,
                    CompositionGame.tier == partition.rank_tier.value,
                    CompositionGame.comp_hash == fingerprint.comp_hash,
                )
                .order_by(CompositionGame.game_datetime.desc(), CompositionGame.id.desc())
                .limit(limit)
            )
            return [
                RecentGame(
                    match_id=row.match_id,
                    participant_id=row.participant_id,
                    puuid=row.puuid,
                    placement=row.placement,
                    level=row.level or 0,
                    gold_left=row.gold_left or 0,
                    total_damage=row.total_damage or 0,
                    game_datetime=_from_epoch_ms(row.game_datetime),
                )
                for row in result.scalars().all()
            ]

    async def distinct_values(self) -> Dict[str, List[str]]:
        """Patches, regions, tiers, traits and champions present in stored records."""
        async with self.db.get_session() as session:
            result = await session.execute(
                select(TeamComposition.patch_version, TeamComposition.region,
                       TeamComposition.tier, TeamComposition.traits, TeamComposition.units)
            )
            patches, regions, tiers, traits, champions = set(), set(), set(), set(), set()
            for patch, region, tier, trait_rows, unit_rows in result:
                patches.add(patch)
                regions.add(region)
                tiers.add(tier)
                traits.update(t["name"] for t in trait_rows or [])
                champions.update(u["champion"] for u in unit_rows or [])

        return {
            "patches": sorted(patches),
            "regions": sorted(regions),
            "tiers": sorted(tiers, key=lambda t: RankTier(t).weight, reverse=True),
            "traits": sorted(traits),
            "champions": sorted(champions),
        }

    async def latest_patch(self) -> Optional[str]:
        async with self.db.get_session() as session:
            result = await session.execute(select(TeamComposition.patch_version).distinct())
            return latest_patch(row[0] for row in result)
