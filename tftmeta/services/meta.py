"""
Meta service - read side of the engine.

Serves meta snapshots, filtered composition lists, composition detail and
filter options, caching each artifact kind under its own key prefix.
"""

from typing import Optional, Tuple

from tftmeta.config import Config
from tftmeta.constants import CacheKeyPrefix, RankTier, Region
from tftmeta.data_models.composition import CompositionFingerprint, PartitionKey
from tftmeta.data_models.meta import (
    CompositionDetail, CompositionView, FilterOptions, MetaSnapshot, PlacementDistribution
)
from tftmeta.data_models.response import PaginatedResponse, PaginationMeta
from tftmeta.operations.aggregator import CompositionAggregator
from tftmeta.operations.query_filters import QueryFilters, resolve, select_compositions
from tftmeta.operations.snapshot_builder import SnapshotBuilder, ranking_key
from tftmeta.operations.tier_classifier import classify_view
from tftmeta.services.base import BaseService
from tftmeta.services.cache import MetaCache
from tftmeta.utils.exceptions import FilterValidationError
from tftmeta.utils.logger import setup_logger
from tftmeta.utils.redis_utils import CacheKey

logger = setup_logger(__name__)

SIMILAR_COMPS_LIMIT = 5


def _decode_page(data) -> Tuple[Tuple[CompositionView, ...], int]:
    views, total = data
    return tuple(CompositionView.from_dict(v) for v in views), total


class MetaService(BaseService):
    """Read-only queries over composition records."""

    def __init__(self, store, cache: Optional[MetaCache] = None):
        super().__init__(store)
        self.cache = cache if cache is not None else MetaCache()
        self.aggregator = CompositionAggregator(store)
        self.snapshot_builder = SnapshotBuilder(store)

    async def _resolve(self, filters: QueryFilters) -> QueryFilters:
        return resolve(filters, latest_known_patch=await self.store.latest_patch())

    async def get_snapshot(self, patch: Optional[str] = None, region: Optional[str] = None,
                           rank_tier: Optional[str] = None) -> MetaSnapshot:
        """
        Ranked meta report for a (patch, region); rank_tier None covers every tier.

        Raises:
            FilterValidationError: unknown region or rank tier
        """
        resolved = await self._resolve(QueryFilters(patch=patch, region=region, tier=rank_tier))
        region_enum = Region.parse(resolved.region)
        tier_enum = RankTier.parse(rank_tier)

        key = CacheKey.of(CacheKeyPrefix.META, resolved.patch, region_enum.value,
                          tier_enum.value if tier_enum else 'ALL')
        cached = await self.cache.get(key, decode=MetaSnapshot.from_dict)
        if cached is not None:
            return cached

        snapshot = await self.snapshot_builder.build(resolved.patch, region_enum, tier_enum)
        await self.cache.set(key, snapshot)
        return snapshot

    async def list_compositions(self, filters: QueryFilters) -> PaginatedResponse[CompositionView]:
        """Filtered, sorted page of compositions wrapped in a response envelope."""
        try:
            resolved = await self._resolve(filters)
        except FilterValidationError as e:
            logger.info(f"Rejected composition query: {e}")
            return PaginatedResponse.from_exception(e)

        partition = PartitionKey(resolved.patch, Region.parse(resolved.region), RankTier.parse(resolved.tier))
        key = CacheKey.of(
            CacheKeyPrefix.COMPOSITION,
            partition.patch, partition.region.value, partition.rank_tier.value, resolved.tier_rank or '',
            resolved.sort_by, resolved.order, resolved.limit, resolved.offset, resolved.min_games,
            '+'.join(sorted(resolved.traits)), '+'.join(sorted(resolved.champions)),
        )
        cached = await self.cache.get(key, decode=_decode_page)
        if cached is None:
            records = [
                r for r in await self.store.list_records(partition.patch, partition.region.value)
                if r.partition == partition
            ]
            # Pick rates use the same read as the records themselves
            partition_total = sum(r.games for r in records)
            views, total = select_compositions(records, resolved, partition_total)
            cached = (tuple(views), total)
            await self.cache.set(key, cached)

        views, total = cached
        return PaginatedResponse.page(list(views), PaginationMeta.from_offset(resolved.offset, resolved.limit, total))

    async def get_composition(self, fingerprint: str, patch: Optional[str] = None,
                              region: Optional[str] = None, rank_tier: Optional[str] = None) -> CompositionDetail:
        """
        Direct lookup of one composition with its placement distribution,
        recent games and similar compositions.

        Raises:
            FilterValidationError: unknown region or rank tier
            CompositionNotFoundError: no games observed for the fingerprint
        """
        resolved = await self._resolve(QueryFilters(patch=patch, region=region, tier=rank_tier))
        partition = PartitionKey(resolved.patch, Region.parse(resolved.region), RankTier.parse(resolved.tier))

        key = CacheKey.of(CacheKeyPrefix.COMPOSITION_DETAIL, partition.patch, partition.region.value,
                          partition.rank_tier.value, fingerprint)
        cached = await self.cache.get(key, decode=CompositionDetail.from_dict)
        if cached is not None:
            return cached

        comp = CompositionFingerprint.from_key(fingerprint)
        record = await self.aggregator.get(partition, comp)
        records = [
            r for r in await self.store.list_records(partition.patch, partition.region.value)
            if r.partition == partition
        ]
        partition_total = sum(r.games for r in records)

        detail = CompositionDetail(
            composition=classify_view(record, partition_total, partition.rank_tier),
            placement_distribution=PlacementDistribution(tuple(record.placement_counts)),
            recent_games=tuple(await self.store.recent_games(partition, comp, Config.RECENT_GAMES_LIMIT)),
            similar_comps=self._similar(comp, records, partition_total, partition.rank_tier),
        )
        await self.cache.set(key, detail)
        return detail

    @staticmethod
    def _similar(fingerprint: CompositionFingerprint, records, partition_total: int,
                 rank_tier: RankTier) -> Tuple[CompositionView, ...]:
        """Other compositions sharing at least one main trait, best first."""
        if fingerprint.is_flex:
            return ()
        wanted = set(fingerprint.main_traits)
        views = [
            classify_view(r, partition_total, rank_tier)
            for r in records
            if r.fingerprint != fingerprint and r.games > 0
            and wanted.intersection(r.fingerprint.main_traits)
        ]
        views.sort(key=ranking_key)
        return tuple(views[:SIMILAR_COMPS_LIMIT])

    async def get_filter_options(self) -> FilterOptions:
        key = CacheKey.of(CacheKeyPrefix.FILTER_OPTIONS)
        cached = await self.cache.get(key, decode=FilterOptions.from_dict)
        if cached is not None:
            return cached

        values = await self.store.distinct_values()
        options = FilterOptions.from_dict(values)
        await self.cache.set(key, options)
        return options

    async def invalidate_partition(self, partition: PartitionKey) -> None:
        """Drop every cached artifact derived from the partition's records."""
        removed = 0
        for prefix in (CacheKeyPrefix.META, CacheKeyPrefix.COMPOSITION, CacheKeyPrefix.COMPOSITION_DETAIL):
            removed += await self.cache.invalidate_prefix(prefix, partition.patch, partition.region.value)
        removed += await self.cache.invalidate_prefix(CacheKeyPrefix.FILTER_OPTIONS)
        logger.debug(f"Invalidated {removed} cached entries for {partition}")
