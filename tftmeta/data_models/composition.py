"""
Composition data models: board observations, fingerprints, partitions,
game outcomes and the per-fingerprint running aggregate.

Observations, fingerprints and outcomes are immutable. CompositionRecord is
the only mutable type and is owned by the aggregator.
"""

import hashlib
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from tftmeta.constants import (
    FingerprintConstants, PlacementConstants, Region, RankTier, TraitStyle
)


@dataclass(frozen=True)
class TraitObservation:
    """One trait on a final board."""
    name: str
    count: int
    style: TraitStyle = TraitStyle.NONE
    tier_total: int = 0


@dataclass(frozen=True)
class UnitObservation:
    """One unit on a final board."""
    champion: str
    cost: int
    items: Tuple[str, ...] = ()
    tier: int = 1

    @property
    def item_count(self) -> int:
        return len(self.items)


_KEY_SEPARATORS = ('+', '/', ',')
_ESCAPED = re.compile(r'\\(.)')


def _escape(name: str) -> str:
    escaped = name.replace('\\', '\\\\')
    for sep in _KEY_SEPARATORS:
        escaped = escaped.replace(sep, '\\' + sep)
    return escaped


def _unescape(part: str) -> str:
    return _ESCAPED.sub(r'\1', part)


def _split_unescaped(text: str, sep: str) -> List[str]:
    """Split on separators not preceded by a backslash, keeping escapes intact."""
    parts, current, escaped = [], [], False
    for ch in text:
        if escaped:
            current.append('\\' + ch)
            escaped = False
        elif ch == '\\':
            escaped = True
        elif ch == sep:
            parts.append(''.join(current))
            current = []
        else:
            current.append(ch)
    if escaped:
        current.append('\\')
    parts.append(''.join(current))
    return parts


@dataclass(frozen=True)
class CompositionFingerprint:
    """Canonical identity of a composition archetype."""
    main_traits: Tuple[str, ...]
    carry_units: Tuple[str, ...]

    @classmethod
    def flex(cls) -> "CompositionFingerprint":
        return cls(main_traits=(), carry_units=())

    @property
    def is_flex(self) -> bool:
        return not self.main_traits

    @property
    def key(self) -> str:
        """
        Stable serialization; equal sets always produce the same key.

        Separator characters inside names are backslash-escaped, so distinct
        fingerprints never share a key.
        """
        if self.is_flex:
            return FingerprintConstants.FLEX_KEY
        traits = '+'.join(_escape(t) for t in self.main_traits)
        carries = ','.join(_escape(c) for c in self.carry_units)
        return f"{traits}/{carries}"

    @property
    def comp_hash(self) -> str:
        return hashlib.sha1(self.key.encode('utf-8')).hexdigest()

    @classmethod
    def from_key(cls, key: str) -> "CompositionFingerprint":
        if key == FingerprintConstants.FLEX_KEY:
            return cls.flex()
        traits, *carries = _split_unescaped(key, '/')
        return cls(
            main_traits=tuple(_unescape(t) for t in _split_unescaped(traits, '+') if t),
            carry_units=tuple(_unescape(c) for c in _split_unescaped('/'.join(carries), ',') if c),
        )

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class PartitionKey:
    """(patch, region, rank tier) scope statistics are aggregated over."""
    patch: str
    region: Region
    rank_tier: RankTier

    def __str__(self) -> str:
        return f"{self.patch}/{self.region.value}/{self.rank_tier.value}"


@dataclass(frozen=True)
class GameOutcome:
    """A single participant's result, folded into a record and then dropped."""
    fingerprint: CompositionFingerprint
    placement: int
    match_id: str
    participant_id: int = 0
    puuid: Optional[str] = None
    level: int = 0
    gold_left: int = 0
    total_damage: int = 0
    game_datetime: Optional[datetime] = None

    @property
    def is_win(self) -> bool:
        return self.placement == PlacementConstants.FIRST

    @property
    def is_top4(self) -> bool:
        return self.placement <= PlacementConstants.TOP4_CUTOFF


def _empty_distribution() -> List[int]:
    return [0] * PlacementConstants.LAST


@dataclass
class CompositionRecord:
    """
    Running statistics for one fingerprint within one partition.

    Rates are percentages (0-100) derived from the running aggregate on every
    read; nothing derived is stored.
    """
    fingerprint: CompositionFingerprint
    partition: PartitionKey
    traits: List[TraitObservation] = field(default_factory=list)
    units: List[UnitObservation] = field(default_factory=list)
    games: int = 0
    wins: int = 0
    top4s: int = 0
    placement_sum: int = 0
    placement_counts: List[int] = field(default_factory=_empty_distribution)
    first_seen: Optional[datetime] = None
    last_seen: Optional[datetime] = None
    version: int = 0

    @property
    def win_rate(self) -> float:
        return self.wins / self.games * 100 if self.games else 0.0

    @property
    def top4_rate(self) -> float:
        return self.top4s / self.games * 100 if self.games else 0.0

    @property
    def avg_placement(self) -> float:
        return self.placement_sum / self.games if self.games else 0.0

    def pick_rate(self, partition_total_games: int) -> float:
        if partition_total_games <= 0:
            return 0.0
        return self.games / partition_total_games * 100

    @property
    def trait_names(self) -> List[str]:
        return [t.name for t in self.traits]

    @property
    def champion_names(self) -> List[str]:
        return [u.champion for u in self.units]

    def copy(self) -> "CompositionRecord":
        """Detached copy so readers never share mutable state with the owner."""
        return CompositionRecord(
            fingerprint=self.fingerprint,
            partition=self.partition,
            traits=list(self.traits),
            units=list(self.units),
            games=self.games,
            wins=self.wins,
            top4s=self.top4s,
            placement_sum=self.placement_sum,
            placement_counts=list(self.placement_counts),
            first_seen=self.first_seen,
            last_seen=self.last_seen,
            version=self.version,
        )
