"""
Meta snapshot assembly.

Builds a ranked, read-only report for a (patch, region) pair, optionally
narrowed to one rank tier, from a single consistent read of its records.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from tftmeta.config import Config
from tftmeta.constants import RankTier, Region, TierRank
from tftmeta.data_models.composition import CompositionRecord
from tftmeta.data_models.meta import ChampionMeta, CompositionView, MetaSnapshot, TraitMeta
from tftmeta.operations.tier_classifier import classify_view, is_ranked

logger = logging.getLogger(__name__)


def ranking_key(view: CompositionView):
    """Win rate desc, then games desc, then fingerprint for a stable order."""
    return (-view.win_rate, -view.total_games, view.fingerprint)


def combine_rank_tiers(records: Iterable[CompositionRecord]) -> List[CompositionRecord]:
    """
    Merge records of the same fingerprint across rank tiers into one record.

    Summaries come from the record with the most games (highest rank tier on ties).
    """
    grouped: Dict[str, List[CompositionRecord]] = defaultdict(list)
    for record in records:
        grouped[record.fingerprint.key].append(record)

    combined = []
    for key in sorted(grouped):
        group = grouped[key]
        if len(group) == 1:
            combined.append(group[0].copy())
            continue

        representative = max(group, key=lambda r: (r.games, r.partition.rank_tier.weight))
        merged = representative.copy()
        merged.games = sum(r.games for r in group)
        merged.wins = sum(r.wins for r in group)
        merged.top4s = sum(r.top4s for r in group)
        merged.placement_sum = sum(r.placement_sum for r in group)
        merged.placement_counts = [sum(counts) for counts in zip(*(r.placement_counts for r in group))]
        first_seen = [r.first_seen for r in group if r.first_seen is not None]
        last_seen = [r.last_seen for r in group if r.last_seen is not None]
        merged.first_seen = min(first_seen) if first_seen else None
        merged.last_seen = max(last_seen) if last_seen else None
        combined.append(merged)
    return combined


@dataclass
class _RollUp:
    games: int = 0
    wins: int = 0
    weighted_value: float = 0.0
    cost: int = 0


def trait_rollups(records: Iterable[CompositionRecord], total_games: int, top_n: int) -> List[TraitMeta]:
    rollups: Dict[str, _RollUp] = defaultdict(_RollUp)
    for record in records:
        counts: Dict[str, int] = {}
        for trait in record.traits:
            counts[trait.name] = max(trait.count, counts.get(trait.name, 0))
        for name, count in counts.items():
            rollup = rollups[name]
            rollup.games += record.games
            rollup.wins += record.wins
            rollup.weighted_value += count * record.games

    traits = [
        TraitMeta(
            name=name,
            play_rate=rollup.games / total_games * 100 if total_games else 0.0,
            win_rate=rollup.wins / rollup.games * 100 if rollup.games else 0.0,
            avg_count=rollup.weighted_value / rollup.games if rollup.games else 0.0,
            total_games=rollup.games,
        )
        for name, rollup in rollups.items()
    ]
    traits.sort(key=lambda t: (-t.play_rate, -t.total_games, t.name))
    return traits[:top_n]


def champion_rollups(records: Iterable[CompositionRecord], total_games: int, top_n: int) -> List[ChampionMeta]:
    rollups: Dict[str, _RollUp] = defaultdict(_RollUp)
    for record in records:
        # Duplicate copies on one board count once, at their best star level
        best: Dict[str, tuple] = {}
        for unit in record.units:
            tier, cost = best.get(unit.champion, (0, 0))
            best[unit.champion] = (max(tier, unit.tier), max(cost, unit.cost))
        for name, (tier, cost) in best.items():
            rollup = rollups[name]
            rollup.games += record.games
            rollup.wins += record.wins
            rollup.weighted_value += tier * record.games
            rollup.cost = max(rollup.cost, cost)

    champions = [
        ChampionMeta(
            name=name,
            play_rate=rollup.games / total_games * 100 if total_games else 0.0,
            win_rate=rollup.wins / rollup.games * 100 if rollup.games else 0.0,
            avg_tier=rollup.weighted_value / rollup.games if rollup.games else 0.0,
            cost=rollup.cost,
            total_games=rollup.games,
        )
        for name, rollup in rollups.items()
    ]
    champions.sort(key=lambda c: (-c.play_rate, -c.total_games, c.name))
    return champions[:top_n]


def build_snapshot(
    records: Iterable[CompositionRecord],
    patch: str,
    region: Region,
    rank_tier: Optional[RankTier] = None,
    top_n: int = 10,
    generated_at: Optional[datetime] = None,
) -> MetaSnapshot:
    """
    Classify, bucket and roll up a partition's records.

    Identical records always produce an identical snapshot apart from generated_at.
    """
    selected = [
        r for r in records
        if r.partition.patch == patch and r.partition.region == region
        and (rank_tier is None or r.partition.rank_tier == rank_tier)
        and r.games > 0
    ]
    if rank_tier is None:
        selected = combine_rank_tiers(selected)

    total_games = sum(r.games for r in selected)

    buckets: Dict[TierRank, List[CompositionView]] = {TierRank.S: [], TierRank.A: [], TierRank.B: []}
    for record in selected:
        view = classify_view(record, total_games, rank_tier)
        if not is_ranked(view.sample_size):
            continue
        if view.tier_rank in buckets:
            buckets[view.tier_rank].append(view)

    for views in buckets.values():
        views.sort(key=ranking_key)

    return MetaSnapshot(
        patch=patch,
        region=region,
        rank_tier=rank_tier,
        total_games=total_games,
        s_tier=tuple(buckets[TierRank.S]),
        a_tier=tuple(buckets[TierRank.A]),
        b_tier=tuple(buckets[TierRank.B]),
        top_traits=tuple(trait_rollups(selected, total_games, top_n)),
        top_champions=tuple(champion_rollups(selected, total_games, top_n)),
        generated_at=generated_at or datetime.now(timezone.utc),
    )


class SnapshotBuilder:
    """Builds meta snapshots from a record store."""

    def __init__(self, store, top_n: Optional[int] = None):
        self.store = store
        self.top_n = top_n or Config.SNAPSHOT_TOP_N

    async def build(self, patch: str, region: Region,
                    rank_tier: Optional[RankTier] = None) -> MetaSnapshot:
        # One list_records call is the snapshot read; nothing else touches the store
        records = await self.store.list_records(patch, region.value)
        snapshot = build_snapshot(records, patch, region, rank_tier, self.top_n)
        logger.info(
            f"Built meta snapshot for {patch}/{region.value}/{rank_tier.value if rank_tier else 'ALL'}: "
            f"{snapshot.total_games} games, S={len(snapshot.s_tier)} "
            f"A={len(snapshot.a_tier)} B={len(snapshot.b_tier)}"
        )
        return snapshot
