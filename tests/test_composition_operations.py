"""Tests for the SQL-backed composition store."""

import asyncio
from datetime import datetime, timezone

import pytest

from tftmeta.constants import RankTier, Region
from tftmeta.data_models.composition import PartitionKey
from tftmeta.operations.aggregator import CompositionAggregator
from tftmeta.utils.exceptions import ConsistencyError, DuplicateGameError

from helpers import make_board, make_outcome


@pytest.mark.asyncio
async def test_merge_round_trips_through_sql(sql_store, partition):
    aggregator = CompositionAggregator(sql_store)
    traits, units = make_board()
    for index, placement in enumerate([1, 3, 7]):
        outcome = make_outcome(traits, units, placement, match_id=f"KR_{index}")
        await aggregator.merge(partition, outcome.fingerprint, outcome, traits, units)

    record = await aggregator.get(partition, outcome.fingerprint)

    assert record.games == 3
    assert record.wins == 1
    assert record.top4s == 2
    assert record.placement_counts == [1, 0, 1, 0, 0, 0, 1, 0]
    assert record.traits == traits
    assert record.units == units
    assert record.first_seen.tzinfo is not None
    assert record.version == 3


@pytest.mark.asyncio
async def test_stale_update_raises_consistency_error(sql_store, partition):
    aggregator = CompositionAggregator(sql_store)
    traits, units = make_board()
    outcome = make_outcome(traits, units, 2)
    saved = await aggregator.merge(partition, outcome.fingerprint, outcome)

    await aggregator.merge(partition, outcome.fingerprint, make_outcome(traits, units, 5, match_id="KR_2"))

    with pytest.raises(ConsistencyError):
        await sql_store.save_record(saved)


@pytest.mark.asyncio
async def test_duplicate_insert_raises_consistency_error(sql_store, partition):
    aggregator = CompositionAggregator(sql_store)
    traits, units = make_board()
    outcome = make_outcome(traits, units, 2)
    saved = await aggregator.merge(partition, outcome.fingerprint, outcome)

    fresh = saved.copy()
    fresh.version = 0
    with pytest.raises(ConsistencyError):
        await sql_store.save_record(fresh)


@pytest.mark.asyncio
async def test_concurrent_merges(sql_store, partition):
    aggregator = CompositionAggregator(sql_store)
    traits, units = make_board()
    outcomes = [make_outcome(traits, units, (i % 8) + 1, match_id=f"KR_{i}") for i in range(16)]

    await asyncio.gather(*[aggregator.merge(partition, o.fingerprint, o) for o in outcomes])

    record = await aggregator.get(partition, outcomes[0].fingerprint)
    assert record.games == 16
    assert record.placement_counts == [2] * 8


@pytest.mark.asyncio
async def test_partition_scoping(sql_store, partition):
    aggregator = CompositionAggregator(sql_store)
    traits, units = make_board()
    other = PartitionKey("15.2c", Region.KR, RankTier.MASTER)
    for index, target in enumerate((partition, partition, other)):
        outcome = make_outcome(traits, units, 4, match_id=f"KR_{index}")
        await aggregator.merge(target, outcome.fingerprint, outcome)

    assert await sql_store.partition_total(partition) == 2
    assert await sql_store.partition_total(other) == 1
    assert len(await sql_store.list_records("15.2c", "kr")) == 2
    assert await sql_store.list_records("15.2c", "na1") == []


@pytest.mark.asyncio
async def test_game_rows_dedup_and_recent_games(sql_store, partition):
    aggregator = CompositionAggregator(sql_store)
    traits, units = make_board()
    older = make_outcome(traits, units, 3, match_id="KR_1", when=datetime(2025, 7, 1, tzinfo=timezone.utc))
    newer = make_outcome(traits, units, 6, match_id="KR_2", when=datetime(2025, 7, 2, tzinfo=timezone.utc))

    for outcome in (older, newer):
        await aggregator.merge(partition, outcome.fingerprint, outcome, record_game=True)
    with pytest.raises(DuplicateGameError):
        await aggregator.merge(partition, older.fingerprint, older, record_game=True)

    record = await aggregator.get(partition, older.fingerprint)
    assert record.games == 2

    games = await sql_store.recent_games(partition, older.fingerprint, limit=5)
    assert [g.match_id for g in games] == ["KR_2", "KR_1"]
    assert games[0].game_datetime == datetime(2025, 7, 2, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_rejected_save_does_not_store_its_game(sql_store, partition):
    aggregator = CompositionAggregator(sql_store)
    traits, units = make_board()
    first = make_outcome(traits, units, 2, match_id="KR_1")
    saved = await aggregator.merge(partition, first.fingerprint, first, record_game=True)
    await aggregator.merge(partition, first.fingerprint, make_outcome(traits, units, 5, match_id="KR_2"))

    late = make_outcome(traits, units, 1, match_id="KR_3")
    with pytest.raises(ConsistencyError):
        await sql_store.save_record(saved, game=late)

    games = await sql_store.recent_games(partition, first.fingerprint)
    assert [g.match_id for g in games] == ["KR_1"]

    record = await aggregator.merge(partition, late.fingerprint, late, record_game=True)
    assert record.games == 3


@pytest.mark.asyncio
async def test_distinct_values_and_latest_patch(sql_store, partition):
    aggregator = CompositionAggregator(sql_store)
    traits, units = make_board()
    for patch in ("15.1", "15.2c"):
        target = PartitionKey(patch, Region.KR, RankTier.CHALLENGER)
        outcome = make_outcome(traits, units, 1, match_id=f"KR_{patch}")
        await aggregator.merge(target, outcome.fingerprint, outcome, traits, units)

    values = await sql_store.distinct_values()

    assert values["patches"] == ["15.1", "15.2c"]
    assert values["regions"] == ["kr"]
    assert values["tiers"] == ["CHALLENGER"]
    assert "Bruiser" in values["traits"]
    assert "Jinx" in values["champions"]
    assert await sql_store.latest_patch() == "15.2c"
