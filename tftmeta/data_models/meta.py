"""
Meta report data models.

Provides immutable data transfer objects handed to the API/response layer.
Collections are tuples so cached instances can be shared between readers.
Each cached type can be rebuilt from its JSON form with from_dict.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from tftmeta.constants import RankTier, Region, SampleSize, TierRank, TraitStyle
from tftmeta.data_models.composition import TraitObservation, UnitObservation


def _datetime(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _trait(data: Dict[str, Any]) -> TraitObservation:
    return TraitObservation(
        name=data['name'],
        count=data['count'],
        style=TraitStyle(data.get('style', 0)),
        tier_total=data.get('tier_total', 0),
    )


def _unit(data: Dict[str, Any]) -> UnitObservation:
    return UnitObservation(
        champion=data['champion'],
        cost=data['cost'],
        items=tuple(data.get('items') or ()),
        tier=data.get('tier', 1),
    )


@dataclass(frozen=True)
class CompositionView:
    """Classified, read-only projection of a composition record."""
    fingerprint: str
    name: str
    patch: str
    region: Region
    rank_tier: Optional[RankTier]
    traits: Tuple[TraitObservation, ...]
    units: Tuple[UnitObservation, ...]
    total_games: int
    total_wins: int
    total_top4: int
    avg_placement: float
    win_rate: float
    top4_rate: float
    pick_rate: float
    tier_rank: TierRank
    sample_size: SampleSize
    first_seen: Optional[datetime] = None
    last_seen: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompositionView":
        return cls(
            fingerprint=data['fingerprint'],
            name=data['name'],
            patch=data['patch'],
            region=Region(data['region']),
            rank_tier=RankTier(data['rank_tier']) if data.get('rank_tier') else None,
            traits=tuple(_trait(t) for t in data['traits']),
            units=tuple(_unit(u) for u in data['units']),
            total_games=data['total_games'],
            total_wins=data['total_wins'],
            total_top4=data['total_top4'],
            avg_placement=data['avg_placement'],
            win_rate=data['win_rate'],
            top4_rate=data['top4_rate'],
            pick_rate=data['pick_rate'],
            tier_rank=TierRank(data['tier_rank']),
            sample_size=SampleSize(data['sample_size']),
            first_seen=_datetime(data.get('first_seen')),
            last_seen=_datetime(data.get('last_seen')),
        )


@dataclass(frozen=True)
class TraitMeta:
    """Trait roll-up across all compositions of a partition."""
    name: str
    play_rate: float
    win_rate: float
    avg_count: float
    total_games: int


@dataclass(frozen=True)
class ChampionMeta:
    """Champion roll-up across all compositions of a partition."""
    name: str
    play_rate: float
    win_rate: float
    avg_tier: float
    cost: int
    total_games: int


@dataclass(frozen=True)
class MetaSnapshot:
    """Point-in-time ranked meta report; only generated_at varies between identical builds."""
    patch: str
    region: Region
    rank_tier: Optional[RankTier]
    total_games: int
    s_tier: Tuple[CompositionView, ...]
    a_tier: Tuple[CompositionView, ...]
    b_tier: Tuple[CompositionView, ...]
    top_traits: Tuple[TraitMeta, ...]
    top_champions: Tuple[ChampionMeta, ...]
    generated_at: datetime

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MetaSnapshot":
        return cls(
            patch=data['patch'],
            region=Region(data['region']),
            rank_tier=RankTier(data['rank_tier']) if data.get('rank_tier') else None,
            total_games=data['total_games'],
            s_tier=tuple(CompositionView.from_dict(v) for v in data['s_tier']),
            a_tier=tuple(CompositionView.from_dict(v) for v in data['a_tier']),
            b_tier=tuple(CompositionView.from_dict(v) for v in data['b_tier']),
            top_traits=tuple(TraitMeta(**t) for t in data['top_traits']),
            top_champions=tuple(ChampionMeta(**c) for c in data['top_champions']),
            generated_at=datetime.fromisoformat(data['generated_at']),
        )


@dataclass(frozen=True)
class PlacementDistribution:
    """Count of finishes per placement, index 0 is first place."""
    counts: Tuple[int, ...]

    @property
    def total(self) -> int:
        return sum(self.counts)

    @property
    def top_placements(self) -> int:
        return sum(self.counts[:4])

    @property
    def top4_rate(self) -> float:
        total = self.total
        if total == 0:
            return 0.0
        return self.top_placements / total * 100


@dataclass(frozen=True)
class RecentGame:
    """One stored participant result for a composition."""
    match_id: str
    participant_id: int
    puuid: Optional[str]
    placement: int
    level: int
    gold_left: int
    total_damage: int
    game_datetime: Optional[datetime]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecentGame":
        return cls(**{**data, 'game_datetime': _datetime(data.get('game_datetime'))})


@dataclass(frozen=True)
class CompositionDetail:
    """Direct lookup result: the composition plus its supporting data."""
    composition: CompositionView
    placement_distribution: PlacementDistribution
    recent_games: Tuple[RecentGame, ...]
    similar_comps: Tuple[CompositionView, ...]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompositionDetail":
        return cls(
            composition=CompositionView.from_dict(data['composition']),
            placement_distribution=PlacementDistribution(tuple(data['placement_distribution']['counts'])),
            recent_games=tuple(RecentGame.from_dict(g) for g in data['recent_games']),
            similar_comps=tuple(CompositionView.from_dict(v) for v in data['similar_comps']),
        )


@dataclass(frozen=True)
class FilterOptions:
    """Values available for each filter dimension."""
    patches: Tuple[str, ...]
    regions: Tuple[str, ...]
    tiers: Tuple[str, ...]
    traits: Tuple[str, ...]
    champions: Tuple[str, ...]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FilterOptions":
        return cls(**{name: tuple(values) for name, values in data.items()})
