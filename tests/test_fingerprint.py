"""Tests for board validation and composition fingerprinting."""

import itertools

import pytest

from tftmeta.data_models.composition import CompositionFingerprint, TraitObservation, UnitObservation
from tftmeta.operations.fingerprint import (
    composition_name, extract, fingerprint_name, is_carry, select_main_traits, validate_board
)
from tftmeta.utils.exceptions import InvalidBoardError

from helpers import make_board


class TestValidateBoard:

    def test_accepts_minimum_board(self):
        traits, units = make_board()
        validate_board(traits, units)

    def test_rejects_too_few_traits(self):
        traits, units = make_board(main=(("Bruiser", 4),), extra=())
        with pytest.raises(InvalidBoardError) as exc_info:
            validate_board(traits, units)
        assert exc_info.value.field == "traits"
        assert exc_info.value.required == 2
        assert exc_info.value.actual == 1

    def test_rejects_too_few_units(self):
        traits, units = make_board(fillers=("Garen", "Darius", "Lux"))
        with pytest.raises(InvalidBoardError) as exc_info:
            validate_board(traits, units)
        assert exc_info.value.field == "units"
        assert exc_info.value.actual == 5


class TestCarryRules:

    @pytest.mark.parametrize("cost,items,expected", [
        (4, (), True),
        (5, (), True),
        (3, ("A", "B"), True),
        (3, ("A",), False),
        (2, ("A", "B", "C"), False),
        (1, (), False),
    ])
    def test_is_carry(self, cost, items, expected):
        assert is_carry(UnitObservation("Unit", cost, items)) is expected


class TestExtract:

    def test_main_traits_and_carries(self):
        traits, units = make_board()
        fingerprint = extract(traits, units)
        assert fingerprint.main_traits == ("Bruiser", "Sorcerer")
        assert fingerprint.carry_units == ("Ahri", "Jinx")
        assert fingerprint.key == "Bruiser+Sorcerer/Ahri,Jinx"

    def test_order_of_traits_and_units_does_not_matter(self):
        traits, units = make_board()
        expected = extract(traits, units)
        for trait_order in itertools.permutations(traits):
            assert extract(trait_order, list(reversed(units))) == expected

    def test_keeps_two_strongest_traits(self):
        traits, units = make_board(main=(("A", 3), ("B", 5), ("C", 4), ("D", 3)))
        assert select_main_traits(traits)[0].name == "B"
        assert extract(traits, units).main_traits == ("B", "C")

    def test_equal_counts_break_ties_by_name(self):
        traits, units = make_board(main=(("Zed", 3), ("Ace", 3), ("Mid", 3)))
        assert extract(traits, units).main_traits == ("Ace", "Mid")

    def test_different_carries_are_different_compositions(self):
        traits, units = make_board()
        other_traits, other_units = make_board(carries=(("Jinx", 4, ()), ("Vi", 4, ())))
        assert extract(traits, units) != extract(other_traits, other_units)

    def test_duplicate_carry_copies_count_once(self):
        traits, units = make_board(carries=(("Jinx", 4, ()), ("Jinx", 4, ("IE",)), ("Ahri", 3, ("A", "B"))))
        assert extract(traits, units).carry_units == ("Ahri", "Jinx")

    def test_board_without_main_trait_is_flex(self):
        traits, units = make_board(main=(("Bruiser", 2), ("Sorcerer", 2)))
        first = extract(traits, units)
        other_traits, other_units = make_board(main=(("Ranger", 2), ("Mage", 1)), carries=(("Vi", 4, ()),))
        assert first.is_flex
        assert first == extract(other_traits, other_units) == CompositionFingerprint.flex()
        assert first.key == "flex"

    def test_no_carries_yields_empty_carry_set(self):
        traits, units = make_board(carries=())
        fingerprint = extract(traits, units)
        assert fingerprint.carry_units == ()
        assert fingerprint.key == "Bruiser+Sorcerer/"

    def test_key_round_trip(self):
        traits, units = make_board()
        fingerprint = extract(traits, units)
        assert CompositionFingerprint.from_key(fingerprint.key) == fingerprint
        assert CompositionFingerprint.from_key("flex").is_flex

    def test_comp_hash_is_stable(self):
        traits, units = make_board()
        assert extract(traits, units).comp_hash == extract(list(reversed(traits)), units).comp_hash

    def test_separators_in_names_do_not_collide(self):
        joined = CompositionFingerprint(("A+B",), ("X,Y",))
        split = CompositionFingerprint(("A", "B"), ("X", "Y"))

        assert joined.key != split.key
        assert joined.comp_hash != split.comp_hash
        assert CompositionFingerprint.from_key(joined.key) == joined
        assert CompositionFingerprint.from_key(split.key) == split

    def test_slash_and_backslash_round_trip(self):
        fingerprint = CompositionFingerprint(("Set/Trait", "Back\\slash"), ("Unit\\",))
        assert CompositionFingerprint.from_key(fingerprint.key) == fingerprint


class TestNames:

    def test_composition_name_strongest_first(self):
        traits, _ = make_board()
        assert composition_name(traits) == "Bruiser Sorcerer"

    def test_flex_name(self):
        assert composition_name([TraitObservation("Mage", 2)]) == "Flex Comp"
        assert fingerprint_name(CompositionFingerprint.flex()) == "Flex Comp"
