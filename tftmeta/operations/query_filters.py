"""
Query/filter contract shared by composition lists and meta snapshots.

An all-empty QueryFilters is valid: apply_defaults fills every field.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional, Tuple

from tftmeta.config import Config
from tftmeta.constants import (
    PaginationConstants, RankTier, Region, SortField, SortOrder, TierRank
)
from tftmeta.data_models.composition import CompositionRecord
from tftmeta.data_models.meta import CompositionView
from tftmeta.operations.tier_classifier import classify_view
from tftmeta.utils.exceptions import FieldError, FilterValidationError


@dataclass(frozen=True)
class QueryFilters:
    patch: Optional[str] = None
    region: Optional[str] = None
    tier: Optional[str] = None
    tier_rank: Optional[str] = None
    sort_by: Optional[str] = None
    order: Optional[str] = None
    limit: Optional[int] = None
    offset: Optional[int] = None
    min_games: Optional[int] = None
    traits: Tuple[str, ...] = field(default_factory=tuple)
    champions: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_params(cls, params: Dict[str, Any]) -> "QueryFilters":
        """Build filters from raw query parameters; bad integers surface in validate()."""
        def _int(name):
            value = params.get(name)
            if value is None or value == '':
                return None
            try:
                return int(value)
            except (TypeError, ValueError):
                return value

        def _list(name):
            value = params.get(name) or ()
            if isinstance(value, str):
                value = value.split(',')
            return tuple(v.strip() for v in value if v and v.strip())

        return cls(
            patch=params.get('patch') or None,
            region=params.get('region') or None,
            tier=params.get('tier') or None,
            tier_rank=params.get('tier_rank') or None,
            sort_by=params.get('sort') or params.get('sort_by') or None,
            order=params.get('order') or None,
            limit=_int('limit'),
            offset=_int('offset'),
            min_games=_int('min_games'),
            traits=_list('traits'),
            champions=_list('champions'),
        )

    @property
    def page(self) -> int:
        return (self.offset or 0) // (self.limit or PaginationConstants.DEFAULT_LIMIT) + 1

    def to_query_params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if self.patch:
            params['patch_version'] = self.patch
        if self.region:
            params['region'] = self.region
        if self.tier:
            params['tier'] = self.tier
        if self.tier_rank:
            params['tier_rank'] = self.tier_rank
        if self.min_games:
            params['min_games'] = self.min_games
        return params


def latest_patch(patches: Iterable[str]) -> Optional[str]:
    """Highest patch by numeric components, letter suffixes after the bare patch."""
    def _key(patch: str):
        parts = []
        for piece in patch.split('.'):
            digits = ''.join(ch for ch in piece if ch.isdigit())
            suffix = piece[len(digits):] if piece.startswith(digits) else piece
            parts.append((int(digits) if digits else -1, suffix))
        return parts

    candidates = [p for p in patches if p]
    if not candidates:
        return None
    return max(candidates, key=_key)


def apply_defaults(filters: QueryFilters, latest_known_patch: Optional[str] = None,
                   default_region: Optional[str] = None) -> QueryFilters:
    """Fill unset fields; the page size is clamped into its hard bounds."""
    limit = filters.limit if isinstance(filters.limit, int) and filters.limit else PaginationConstants.DEFAULT_LIMIT
    limit = max(PaginationConstants.MIN_LIMIT, min(PaginationConstants.MAX_LIMIT, limit))

    return replace(
        filters,
        patch=filters.patch or latest_known_patch or latest_patch(Config.get_known_patches()) or Config.DEFAULT_PATCH,
        region=filters.region or default_region or Config.DEFAULT_REGION,
        tier=filters.tier or Config.DEFAULT_TIER,
        sort_by=filters.sort_by or SortField.WIN_RATE.value,
        order=filters.order or SortOrder.DESC.value,
        limit=limit,
        offset=filters.offset if filters.offset is not None else 0,
        min_games=filters.min_games if filters.min_games is not None else PaginationConstants.DEFAULT_MIN_GAMES,
    )


def _enum_values(enum_cls) -> str:
    return ", ".join(member.value for member in enum_cls)


def validate(filters: QueryFilters) -> List[FieldError]:
    """Per-field validation; an empty list means the filters are valid."""
    errors: List[FieldError] = []

    if filters.sort_by is not None and filters.sort_by not in {f.value for f in SortField}:
        errors.append(FieldError(
            "sort_by", f"must be one of: {_enum_values(SortField)}", "oneof", str(filters.sort_by)
        ))
    if filters.order is not None and filters.order not in {o.value for o in SortOrder}:
        errors.append(FieldError(
            "order", f"must be one of: {_enum_values(SortOrder)}", "oneof", str(filters.order)
        ))

    if filters.limit is not None:
        if not isinstance(filters.limit, int) or isinstance(filters.limit, bool):
            errors.append(FieldError("limit", "must be an integer", "int", str(filters.limit)))
        elif not PaginationConstants.MIN_LIMIT <= filters.limit <= PaginationConstants.MAX_LIMIT:
            errors.append(FieldError(
                "limit",
                f"must be between {PaginationConstants.MIN_LIMIT} and {PaginationConstants.MAX_LIMIT}",
                "range", str(filters.limit)
            ))

    if filters.offset is not None:
        if not isinstance(filters.offset, int) or isinstance(filters.offset, bool):
            errors.append(FieldError("offset", "must be an integer", "int", str(filters.offset)))
        elif filters.offset < 0:
            errors.append(FieldError("offset", "must be at least 0", "min", str(filters.offset)))

    if filters.min_games is not None:
        if not isinstance(filters.min_games, int) or isinstance(filters.min_games, bool):
            errors.append(FieldError("min_games", "must be an integer", "int", str(filters.min_games)))
        elif filters.min_games < 1:
            errors.append(FieldError("min_games", "must be at least 1", "min", str(filters.min_games)))

    if filters.region is not None and Region.parse(filters.region) is None:
        errors.append(FieldError(
            "region", f"must be one of: {_enum_values(Region)}", "oneof", filters.region
        ))
    if filters.tier is not None and RankTier.parse(filters.tier) is None:
        errors.append(FieldError(
            "tier", f"must be one of: {_enum_values(RankTier)}", "oneof", filters.tier
        ))
    if filters.tier_rank is not None and TierRank.parse(filters.tier_rank) is None:
        errors.append(FieldError(
            "tier_rank", f"must be one of: {_enum_values(TierRank)}", "oneof", filters.tier_rank
        ))

    return errors


def resolve(filters: QueryFilters, latest_known_patch: Optional[str] = None,
            default_region: Optional[str] = None) -> QueryFilters:
    """Validate caller input, then apply defaults. Raises FilterValidationError."""
    errors = validate(filters)
    if errors:
        raise FilterValidationError(errors)
    return apply_defaults(filters, latest_known_patch, default_region)


def _sort_value(view: CompositionView, sort_field: SortField):
    match sort_field:
        case SortField.WIN_RATE:
            return view.win_rate
        case SortField.PICK_RATE:
            return view.pick_rate
        case SortField.AVG_PLACEMENT:
            return view.avg_placement
        case SortField.TOP4_RATE:
            return view.top4_rate
        case SortField.TOTAL_GAMES:
            return view.total_games
        case SortField.LAST_UPDATED:
            return view.last_seen.timestamp() if view.last_seen else 0.0


def select_compositions(records: Iterable[CompositionRecord], filters: QueryFilters,
                        partition_total: int) -> Tuple[List[CompositionView], int]:
    """
    Filter, sort and page records for a resolved QueryFilters.

    Returns the page of views and the number of matching compositions.
    """
    sort_field = SortField(filters.sort_by)
    descending = SortOrder(filters.order) is SortOrder.DESC
    rank_tier = RankTier.parse(filters.tier)
    wanted_rank = TierRank.parse(filters.tier_rank)
    wanted_traits = set(filters.traits)
    wanted_champions = set(filters.champions)

    views = []
    for record in records:
        if record.games < (filters.min_games or 1):
            continue
        if wanted_traits and not wanted_traits.issubset(record.trait_names):
            continue
        if wanted_champions and not wanted_champions.issubset(record.champion_names):
            continue
        view = classify_view(record, partition_total, rank_tier)
        if wanted_rank is not None and view.tier_rank is not wanted_rank:
            continue
        views.append(view)

    # Stable tie-break first, then the primary key in the requested direction
    views.sort(key=lambda v: (-v.total_games, v.fingerprint))
    views.sort(key=lambda v: _sort_value(v, sort_field), reverse=descending)

    total = len(views)
    offset = filters.offset or 0
    limit = filters.limit or PaginationConstants.DEFAULT_LIMIT
    return views[offset:offset + limit], total
