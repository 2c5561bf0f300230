"""
Engine-wide constants and closed enumerations for the composition meta engine.

Each small lookup (region cluster, rank tier weight, tier colour, sample-size
floor) is a `match` over a fixed Enum rather than a runtime dictionary.
"""

from enum import Enum
from typing import Optional


class FingerprintConstants:
    """Constants related to composition fingerprinting."""

    # A trait counts as a "main trait" at this many units
    MAIN_TRAIT_MIN_COUNT = 3
    MAX_MAIN_TRAITS = 2

    # Carry units: cost >= 4, or cost >= 3 holding >= 2 items
    CARRY_MIN_COST = 4
    ITEMIZED_CARRY_MIN_COST = 3
    ITEMIZED_CARRY_MIN_ITEMS = 2

    # Data-quality gate for a board
    MIN_TRAITS = 2
    MIN_UNITS = 6

    FLEX_KEY = "flex"
    FLEX_NAME = "Flex Comp"


class PlacementConstants:
    """Constants for lobby placements."""

    FIRST = 1
    TOP4_CUTOFF = 4
    LAST = 8


class TierThresholds:
    """Tier boundaries as (min win rate %, min pick rate %, min games)."""

    S = (25.0, 5.0, 500)
    A = (20.0, 3.0, 300)
    B = (15.0, 1.0, 100)


class PaginationConstants:
    """Constants for paginated composition lists."""

    DEFAULT_LIMIT = 50
    MIN_LIMIT = 1
    MAX_LIMIT = 100
    DEFAULT_MIN_GAMES = 100


class Region(str, Enum):
    BR1 = "br1"
    EUN1 = "eun1"
    EUW1 = "euw1"
    JP1 = "jp1"
    KR = "kr"
    LA1 = "la1"
    LA2 = "la2"
    NA1 = "na1"
    OC1 = "oc1"
    RU = "ru"
    SG2 = "sg2"
    TR1 = "tr1"
    TW2 = "tw2"
    VN2 = "vn2"

    @property
    def cluster(self) -> str:
        """Routing cluster for match data of this platform."""
        match self:
            case Region.BR1 | Region.LA1 | Region.LA2 | Region.NA1 | Region.OC1:
                return "americas"
            case Region.EUN1 | Region.EUW1 | Region.TR1 | Region.RU:
                return "europe"
            case Region.JP1 | Region.KR | Region.SG2 | Region.TW2 | Region.VN2:
                return "asia"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Region"]:
        if not value:
            return None
        try:
            return cls(value.lower())
        except ValueError:
            return None


class RankTier(str, Enum):
    IRON = "IRON"
    BRONZE = "BRONZE"
    SILVER = "SILVER"
    GOLD = "GOLD"
    PLATINUM = "PLATINUM"
    EMERALD = "EMERALD"
    DIAMOND = "DIAMOND"
    MASTER = "MASTER"
    GRANDMASTER = "GRANDMASTER"
    CHALLENGER = "CHALLENGER"

    @property
    def weight(self) -> int:
        match self:
            case RankTier.IRON:
                return 1
            case RankTier.BRONZE:
                return 2
            case RankTier.SILVER:
                return 3
            case RankTier.GOLD:
                return 4
            case RankTier.PLATINUM:
                return 5
            case RankTier.EMERALD:
                return 6
            case RankTier.DIAMOND:
                return 7
            case RankTier.MASTER:
                return 8
            case RankTier.GRANDMASTER:
                return 9
            case RankTier.CHALLENGER:
                return 10

    @property
    def is_high_elo(self) -> bool:
        return self in (RankTier.MASTER, RankTier.GRANDMASTER, RankTier.CHALLENGER)

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["RankTier"]:
        if not value:
            return None
        try:
            return cls(value.upper())
        except ValueError:
            return None


class TierRank(str, Enum):
    """Meta tier a composition is classified into."""
    S = "S"
    A = "A"
    B = "B"
    C = "C"

    @property
    def color(self) -> str:
        match self:
            case TierRank.S:
                return "#ef4444"
            case TierRank.A:
                return "#f97316"
            case TierRank.B:
                return "#eab308"
            case TierRank.C:
                return "#22c55e"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["TierRank"]:
        if not value:
            return None
        try:
            return cls(value.upper())
        except ValueError:
            return None


class SampleSize(str, Enum):
    """Sample-size confidence label."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def min_games(self) -> int:
        match self:
            case SampleSize.HIGH:
                return 1000
            case SampleSize.MEDIUM:
                return 100
            case SampleSize.LOW:
                return 10

    @classmethod
    def from_games(cls, games: int) -> "SampleSize":
        if games >= cls.HIGH.min_games:
            return cls.HIGH
        if games >= cls.MEDIUM.min_games:
            return cls.MEDIUM
        return cls.LOW


class TraitStyle(int, Enum):
    NONE = 0
    BRONZE = 1
    SILVER = 2
    GOLD = 3
    CHROMATIC = 4

    @property
    def is_active(self) -> bool:
        return self is not TraitStyle.NONE


class SortField(str, Enum):
    WIN_RATE = "win_rate"
    PICK_RATE = "pick_rate"
    AVG_PLACEMENT = "avg_placement"
    TOP4_RATE = "top4_rate"
    TOTAL_GAMES = "total_games"
    LAST_UPDATED = "last_updated"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class CacheKeyPrefix(str, Enum):
    """One fixed prefix per cached artifact kind."""
    COMPOSITION = "comp"
    LEADERBOARD = "leaderboard"
    PLAYER = "player"
    META = "meta"
    FILTER_OPTIONS = "filters"
    COMPOSITION_DETAIL = "comp_detail"
