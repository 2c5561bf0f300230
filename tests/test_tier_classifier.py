"""Tests for tier labels and sample-size confidence."""

import pytest

from tftmeta.constants import RankTier, SampleSize, TierRank
from tftmeta.operations.tier_classifier import (
    classify, classify_view, confidence, is_ranked, tier_for
)

from helpers import make_board, make_record


def test_high_win_rate_popular_comp_is_s_tier_with_medium_confidence(partition):
    traits, units = make_board()
    record = make_record(partition, traits, units, games=600, wins=160, top4s=400)

    tier, sample_size = classify(record, 10000)

    assert record.win_rate == pytest.approx(26.67, abs=0.01)
    assert record.pick_rate(10000) == pytest.approx(6.0)
    assert tier is TierRank.S
    assert sample_size is SampleSize.MEDIUM


def test_small_sample_is_low_confidence_and_unranked():
    assert confidence(50) is SampleSize.LOW
    assert not is_ranked(confidence(50))
    assert is_ranked(confidence(100))
    assert confidence(1000) is SampleSize.HIGH


@pytest.mark.parametrize("win_rate,pick_rate,games,expected", [
    (25.0, 5.0, 500, TierRank.S),
    (24.9, 5.0, 500, TierRank.A),
    (30.0, 4.9, 500, TierRank.A),
    (30.0, 10.0, 499, TierRank.A),
    (20.0, 3.0, 300, TierRank.A),
    (19.9, 3.0, 300, TierRank.B),
    (15.0, 1.0, 100, TierRank.B),
    (14.9, 1.0, 100, TierRank.C),
    (50.0, 50.0, 99, TierRank.C),
])
def test_thresholds(win_rate, pick_rate, games, expected):
    assert tier_for(win_rate, pick_rate, games) is expected


def test_classification_is_idempotent(partition):
    traits, units = make_board()
    record = make_record(partition, traits, units, games=400, wins=90)
    assert classify(record, 8000) == classify(record, 8000)
    assert classify_view(record, 8000) == classify_view(record, 8000)


def test_better_numbers_never_lower_the_tier():
    order = [TierRank.C, TierRank.B, TierRank.A, TierRank.S]
    previous = tier_for(10.0, 0.5, 50)
    for win_rate, pick_rate, games in [(15, 1, 100), (20, 3, 300), (22, 4, 400), (25, 5, 500), (40, 9, 900)]:
        current = tier_for(win_rate, pick_rate, games)
        assert order.index(current) >= order.index(previous)
        previous = current


def test_view_carries_derived_rates(partition):
    traits, units = make_board()
    record = make_record(partition, traits, units, games=300, wins=60, top4s=180)

    view = classify_view(record, 1500, RankTier.CHALLENGER)

    assert view.fingerprint == "Bruiser+Sorcerer/Ahri,Jinx"
    assert view.name == "Bruiser Sorcerer"
    assert view.win_rate == pytest.approx(20.0)
    assert view.top4_rate == pytest.approx(60.0)
    assert view.pick_rate == pytest.approx(20.0)
    assert view.tier_rank is TierRank.A
    assert view.sample_size is SampleSize.MEDIUM
    assert view.rank_tier is RankTier.CHALLENGER


def test_empty_partition_has_zero_pick_rate(partition):
    traits, units = make_board()
    record = make_record(partition, traits, units, games=200, wins=60)
    assert record.pick_rate(0) == 0.0
    assert classify(record, 0)[0] is TierRank.C
