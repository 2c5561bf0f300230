"""
Tier classification.

Tier labels are a pure function of a record's current aggregate and its
partition total; they are recomputed on every read and never stored.
"""

from typing import Optional, Tuple

from tftmeta.constants import RankTier, SampleSize, TierRank, TierThresholds
from tftmeta.data_models.composition import CompositionRecord
from tftmeta.data_models.meta import CompositionView
from tftmeta.operations.fingerprint import composition_name, fingerprint_name


def confidence(games: int) -> SampleSize:
    return SampleSize.from_games(games)


def is_ranked(sample_size: SampleSize) -> bool:
    """Low-confidence compositions stay out of ranked lists but remain retrievable."""
    return sample_size is not SampleSize.LOW


def tier_for(win_rate: float, pick_rate: float, games: int) -> TierRank:
    """First matching tier wins; rates are percentages."""
    for tier, (min_win, min_pick, min_games) in (
        (TierRank.S, TierThresholds.S),
        (TierRank.A, TierThresholds.A),
        (TierRank.B, TierThresholds.B),
    ):
        if win_rate >= min_win and pick_rate >= min_pick and games >= min_games:
            return tier
    return TierRank.C


def classify(record: CompositionRecord, partition_total_games: int) -> Tuple[TierRank, SampleSize]:
    pick_rate = record.pick_rate(partition_total_games)
    return (
        tier_for(record.win_rate, pick_rate, record.games),
        confidence(record.games),
    )


def classify_view(record: CompositionRecord, partition_total_games: int,
                  rank_tier: Optional[RankTier] = None) -> CompositionView:
    """Classify a record and project it into a read-only view."""
    tier_rank, sample_size = classify(record, partition_total_games)
    return CompositionView(
        fingerprint=record.fingerprint.key,
        name=composition_name(record.traits) if record.traits else fingerprint_name(record.fingerprint),
        patch=record.partition.patch,
        region=record.partition.region,
        rank_tier=rank_tier,
        traits=tuple(record.traits),
        units=tuple(record.units),
        total_games=record.games,
        total_wins=record.wins,
        total_top4=record.top4s,
        avg_placement=record.avg_placement,
        win_rate=record.win_rate,
        top4_rate=record.top4_rate,
        pick_rate=record.pick_rate(partition_total_games),
        tier_rank=tier_rank,
        sample_size=sample_size,
        first_seen=record.first_seen,
        last_seen=record.last_seen,
    )
