"""
In-process record store with the same atomicity contract as the SQL store.
Used for ad-hoc batch runs and tests.
"""

import asyncio
from typing import Dict, List, Optional, Tuple

from tftmeta.constants import RankTier
from tftmeta.data_models.composition import (
    CompositionFingerprint, CompositionRecord, GameOutcome, PartitionKey
)
from tftmeta.data_models.meta import RecentGame
from tftmeta.operations.query_filters import latest_patch
from tftmeta.utils.exceptions import ConsistencyError, DuplicateGameError


class InMemoryRecordStore:
    """Dictionary-backed RecordStore with version-checked writes."""

    def __init__(self):
        self._records: Dict[Tuple[PartitionKey, str], CompositionRecord] = {}
        self._games: Dict[Tuple[str, int], Tuple[PartitionKey, GameOutcome]] = {}
        self._write_lock = asyncio.Lock()

    async def load_record(self, partition: PartitionKey,
                          fingerprint: CompositionFingerprint) -> Optional[CompositionRecord]:
        record = self._records.get((partition, fingerprint.key))
        return record.copy() if record else None

    async def save_record(self, record: CompositionRecord,
                          game: Optional[GameOutcome] = None) -> CompositionRecord:
        key = (record.partition, record.fingerprint.key)
        async with self._write_lock:
            if game is not None and (game.match_id, game.participant_id) in self._games:
                raise DuplicateGameError(game.match_id, game.participant_id)
            current = self._records.get(key)
            current_version = current.version if current else 0
            if record.version != current_version:
                raise ConsistencyError(
                    "composition save",
                    f"{record.fingerprint} expected version {record.version}, found {current_version}"
                )
            saved = record.copy()
            saved.version = current_version + 1
            self._records[key] = saved
            if game is not None:
                self._games[(game.match_id, game.participant_id)] = (record.partition, game)
        return saved.copy()

    async def list_records(self, patch: str, region: str) -> List[CompositionRecord]:
        # Copying under the write lock gives callers one consistent view
        async with self._write_lock:
            return [
                record.copy()
                for (partition, _), record in sorted(
                    self._records.items(), key=lambda item: (str(item[0][0]), item[0][1])
                )
                if partition.patch == patch and partition.region.value == region
            ]

    async def partition_total(self, partition: PartitionKey) -> int:
        return sum(
            record.games for (p, _), record in self._records.items() if p == partition
        )

    async def recent_games(self, partition: PartitionKey, fingerprint: CompositionFingerprint,
                           limit: int = 20) -> List[RecentGame]:
        matching = [
            outcome for p, outcome in self._games.values()
            if p == partition and outcome.fingerprint == fingerprint
        ]
        matching.sort(key=lambda o: o.game_datetime.timestamp() if o.game_datetime else 0.0, reverse=True)
        return [
            RecentGame(
                match_id=o.match_id,
                participant_id=o.participant_id,
                puuid=o.puuid,
                placement=o.placement,
                level=o.level,
                gold_left=o.gold_left,
                total_damage=o.total_damage,
                game_datetime=o.game_datetime,
            )
            for o in matching[:limit]
        ]

    async def distinct_values(self) -> Dict[str, List[str]]:
        patches, regions, tiers, traits, champions = set(), set(), set(), set(), set()
        for (partition, _), record in self._records.items():
            patches.add(partition.patch)
            regions.add(partition.region.value)
            tiers.add(partition.rank_tier.value)
            traits.update(record.trait_names)
            champions.update(record.champion_names)

        return {
            "patches": sorted(patches),
            "regions": sorted(regions),
            "tiers": sorted(tiers, key=lambda t: RankTier(t).weight, reverse=True),
            "traits": sorted(traits),
            "champions": sorted(champions),
        }

    async def latest_patch(self) -> Optional[str]:
        return latest_patch(partition.patch for partition, _ in self._records)
