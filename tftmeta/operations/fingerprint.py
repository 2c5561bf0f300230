"""
Composition fingerprinting.

Turns a participant's final board (traits and units) into a canonical
composition identity so games sharing an archetype group together no matter
how the source payload orders its traits and units.
"""

from typing import Iterable, List, Sequence

from tftmeta.constants import FingerprintConstants
from tftmeta.data_models.composition import (
    CompositionFingerprint, TraitObservation, UnitObservation
)
from tftmeta.utils.exceptions import InvalidBoardError


def validate_board(traits: Sequence[TraitObservation], units: Sequence[UnitObservation]) -> None:
    """
    Data-quality gate applied before a board reaches the aggregator.

    Raises:
        InvalidBoardError: naming the first field below its minimum
    """
    if len(traits) < FingerprintConstants.MIN_TRAITS:
        raise InvalidBoardError("traits", FingerprintConstants.MIN_TRAITS, len(traits))
    if len(units) < FingerprintConstants.MIN_UNITS:
        raise InvalidBoardError("units", FingerprintConstants.MIN_UNITS, len(units))


def select_main_traits(traits: Iterable[TraitObservation]) -> List[TraitObservation]:
    """Traits at the activation count, highest count first, then by name, top 2."""
    qualifying = [t for t in traits if t.count >= FingerprintConstants.MAIN_TRAIT_MIN_COUNT]
    qualifying.sort(key=lambda t: (-t.count, t.name))
    return qualifying[:FingerprintConstants.MAX_MAIN_TRAITS]


def is_carry(unit: UnitObservation) -> bool:
    if unit.cost >= FingerprintConstants.CARRY_MIN_COST:
        return True
    return (
        unit.cost >= FingerprintConstants.ITEMIZED_CARRY_MIN_COST
        and unit.item_count >= FingerprintConstants.ITEMIZED_CARRY_MIN_ITEMS
    )


def select_carry_units(units: Iterable[UnitObservation]) -> List[str]:
    return sorted({u.champion for u in units if is_carry(u)})


def extract(traits: Iterable[TraitObservation], units: Iterable[UnitObservation]) -> CompositionFingerprint:
    """
    Derive the composition fingerprint of a board. Pure: no state, no I/O.

    Boards with no main trait all map to the flex sentinel.
    """
    main_traits = select_main_traits(traits)
    if not main_traits:
        return CompositionFingerprint.flex()

    return CompositionFingerprint(
        main_traits=tuple(sorted(t.name for t in main_traits)),
        carry_units=tuple(select_carry_units(units)),
    )


def composition_name(traits: Iterable[TraitObservation]) -> str:
    """Display name from the board's main traits, strongest first."""
    main_traits = select_main_traits(traits)
    if not main_traits:
        return FingerprintConstants.FLEX_NAME
    return " ".join(t.name for t in main_traits)


def fingerprint_name(fingerprint: CompositionFingerprint) -> str:
    if fingerprint.is_flex:
        return FingerprintConstants.FLEX_NAME
    return " ".join(fingerprint.main_traits)
