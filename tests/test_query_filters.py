"""Tests for the query/filter contract."""

import pytest

from tftmeta.config import Config
from tftmeta.operations.query_filters import (
    QueryFilters, apply_defaults, latest_patch, resolve, select_compositions, validate
)
from tftmeta.utils.exceptions import FilterValidationError

from helpers import make_board, make_record


class TestDefaults:

    def test_empty_filters_get_every_default(self):
        filters = apply_defaults(QueryFilters(), latest_known_patch="15.3")

        assert filters.patch == "15.3"
        assert filters.region == Config.DEFAULT_REGION
        assert filters.tier == "CHALLENGER"
        assert filters.sort_by == "win_rate"
        assert filters.order == "desc"
        assert filters.limit == 50
        assert filters.offset == 0
        assert filters.min_games == 100

    def test_tier_follows_configuration(self, monkeypatch):
        monkeypatch.setattr(Config, 'DEFAULT_TIER', 'MASTER')
        assert apply_defaults(QueryFilters()).tier == "MASTER"

    def test_falls_back_to_configured_patch(self):
        assert apply_defaults(QueryFilters()).patch == latest_patch(Config.get_known_patches())

    def test_limit_is_clamped(self):
        assert apply_defaults(QueryFilters(limit=500)).limit == 100
        assert apply_defaults(QueryFilters(limit=-3)).limit == 1
        assert apply_defaults(QueryFilters(limit=0)).limit == 50

    def test_explicit_values_are_kept(self):
        filters = apply_defaults(QueryFilters(patch="15.1", region="na1", sort_by="pick_rate",
                                              order="asc", limit=10, offset=20, min_games=5))
        assert (filters.patch, filters.region, filters.sort_by, filters.order) == ("15.1", "na1", "pick_rate", "asc")
        assert (filters.limit, filters.offset, filters.min_games) == (10, 20, 5)
        assert filters.page == 3


class TestValidate:

    def test_empty_filters_are_valid(self):
        assert validate(QueryFilters()) == []

    @pytest.mark.parametrize("filters,field", [
        (QueryFilters(sort_by="popularity"), "sort_by"),
        (QueryFilters(order="sideways"), "order"),
        (QueryFilters(limit=101), "limit"),
        (QueryFilters(limit=0), "limit"),
        (QueryFilters(offset=-1), "offset"),
        (QueryFilters(min_games=0), "min_games"),
        (QueryFilters(region="mars"), "region"),
        (QueryFilters(tier="WOOD"), "tier"),
        (QueryFilters(tier_rank="Z"), "tier_rank"),
        (QueryFilters(tier_rank="D"), "tier_rank"),
    ])
    def test_invalid_field_is_named(self, filters, field):
        errors = validate(filters)
        assert [e.field for e in errors] == [field]

    def test_every_failing_field_is_reported(self):
        errors = validate(QueryFilters(sort_by="x", order="y", limit=1000))
        assert {e.field for e in errors} == {"sort_by", "order", "limit"}

    def test_non_integer_parameters(self):
        filters = QueryFilters.from_params({"limit": "ten", "offset": "5"})
        assert filters.offset == 5
        errors = validate(filters)
        assert errors[0].field == "limit"
        assert errors[0].tag == "int"

    def test_resolve_raises_with_field_errors(self):
        with pytest.raises(FilterValidationError) as exc_info:
            resolve(QueryFilters(order="up"))
        assert exc_info.value.errors[0].field == "order"
        assert exc_info.value.code == "VALIDATION_ERROR"


class TestFromParams:

    def test_parses_query_parameters(self):
        filters = QueryFilters.from_params({
            "patch": "15.2c", "region": "kr", "sort": "top4_rate",
            "limit": "20", "traits": "Bruiser, Sorcerer", "champions": ["Jinx"],
        })
        assert filters.sort_by == "top4_rate"
        assert filters.limit == 20
        assert filters.traits == ("Bruiser", "Sorcerer")
        assert filters.champions == ("Jinx",)


def test_latest_patch_ordering():
    assert latest_patch(["15.2", "15.10", "15.2c", "14.24"]) == "15.10"
    assert latest_patch(["15.2", "15.2c"]) == "15.2c"
    assert latest_patch([]) is None


class TestSelectCompositions:

    @pytest.fixture
    def records(self, partition):
        return [
            make_record(partition, *make_board(carries=(("Vi", 4, ()),)), games=300, wins=60),
            make_record(partition, *make_board(carries=(("Ashe", 4, ()),)), games=500, wins=150),
            make_record(partition, *make_board(main=(("Ranger", 3), ("Mage", 3)),
                                               carries=(("Jinx", 4, ()),)), games=150, wins=45),
            make_record(partition, *make_board(carries=(("Zeri", 5, ()),)), games=20, wins=10),
        ]

    def test_min_games_and_default_sort(self, records):
        views, total = select_compositions(records, apply_defaults(QueryFilters()), 970)

        assert total == 3
        assert [v.fingerprint for v in views] == [
            "Bruiser+Sorcerer/Ashe", "Mage+Ranger/Jinx", "Bruiser+Sorcerer/Vi",
        ]

    def test_ascending_sort_by_games(self, records):
        filters = apply_defaults(QueryFilters(sort_by="total_games", order="asc", min_games=1))
        views, _ = select_compositions(records, filters, 970)
        assert [v.total_games for v in views] == [20, 150, 300, 500]

    def test_trait_and_champion_filters(self, records):
        filters = apply_defaults(QueryFilters(traits=("Mage",)))
        views, total = select_compositions(records, filters, 970)
        assert total == 1
        assert views[0].fingerprint == "Mage+Ranger/Jinx"

        filters = apply_defaults(QueryFilters(champions=("Vi", "Garen")))
        views, _ = select_compositions(records, filters, 970)
        assert [v.fingerprint for v in views] == ["Bruiser+Sorcerer/Vi"]

    def test_tier_rank_filter(self, records):
        filters = apply_defaults(QueryFilters(tier_rank="S", min_games=1))
        views, _ = select_compositions(records, filters, 970)
        assert [v.fingerprint for v in views] == ["Bruiser+Sorcerer/Ashe"]

    def test_paging(self, records):
        filters = apply_defaults(QueryFilters(limit=2, offset=2, min_games=1, sort_by="total_games"))
        views, total = select_compositions(records, filters, 970)
        assert total == 4
        assert [v.total_games for v in views] == [150, 20]
