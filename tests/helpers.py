"""Builders for boards, outcomes and records used across the tests."""

from datetime import datetime, timezone

from tftmeta.constants import TraitStyle
from tftmeta.data_models.composition import (
    CompositionRecord, GameOutcome, TraitObservation, UnitObservation
)
from tftmeta.operations.fingerprint import extract


def make_board(main=(("Bruiser", 4), ("Sorcerer", 3)), extra=(("Duelist", 2),),
               carries=(("Jinx", 4, ()), ("Ahri", 3, ("Rabadon", "Jeweled"))),
               fillers=("Garen", "Darius", "Lux", "Annie")):
    """Board with the given traits and units; fillers are 1-cost itemless units."""
    traits = [TraitObservation(name, count, TraitStyle.GOLD) for name, count in main]
    traits += [TraitObservation(name, count, TraitStyle.BRONZE) for name, count in extra]
    units = [UnitObservation(champion, cost, tuple(items), 2) for champion, cost, items in carries]
    units += [UnitObservation(champion, 1, (), 2) for champion in fillers]
    return traits, units


def make_outcome(traits, units, placement, match_id="KR_1", participant_id=0, when=None):
    return GameOutcome(
        fingerprint=extract(traits, units),
        placement=placement,
        match_id=match_id,
        participant_id=participant_id,
        game_datetime=when or datetime(2025, 8, 1, tzinfo=timezone.utc),
    )


def make_record(partition, traits, units, games, wins, top4s=None, placement_sum=None):
    """Record with consistent aggregate fields for classification tests."""
    top4s = wins if top4s is None else top4s
    counts = [0] * 8
    counts[0] = wins
    counts[3] = top4s - wins
    counts[7] = games - top4s
    return CompositionRecord(
        fingerprint=extract(traits, units),
        partition=partition,
        traits=list(traits),
        units=list(units),
        games=games,
        wins=wins,
        top4s=top4s,
        placement_sum=placement_sum if placement_sum is not None else wins + 4 * (top4s - wins) + 8 * (games - top4s),
        placement_counts=counts,
        first_seen=datetime(2025, 8, 1, tzinfo=timezone.utc),
        last_seen=datetime(2025, 8, 2, tzinfo=timezone.utc),
        version=1,
    )


def provider_participant(placement, carries=("TFT_Jinx", "TFT_Vi"), main_traits=("Set_Bruiser", "Set_Sorcerer"),
                         puuid=None):
    """Participant in the match provider's shape: num_units, character_id, rarity, itemNames."""
    traits = [{"name": name, "num_units": 3, "style": 2, "tier_current": 1, "tier_total": 3}
              for name in main_traits]
    traits.append({"name": "Set_Duelist", "num_units": 2, "style": 1, "tier_current": 1, "tier_total": 3})
    units = [{"character_id": champion, "rarity": 4, "itemNames": ["TFT_Item_InfinityEdge"], "tier": 2}
             for champion in carries]
    units += [{"character_id": f"TFT_Filler{i}", "rarity": 0, "itemNames": [], "tier": 1} for i in range(4)]
    return {
        "placement": placement,
        "puuid": puuid or f"puuid-{placement}",
        "level": 8,
        "gold_left": 5,
        "total_damage_to_players": 90,
        "traits": traits,
        "units": units,
    }


def provider_match(match_id, participants, game_datetime=1754006400000):
    return {
        "metadata": {"match_id": match_id},
        "info": {"game_datetime": game_datetime, "participants": participants},
    }


class FakeRedis:
    """Dict-backed stand-in for the redis.asyncio client calls the cache makes."""

    def __init__(self):
        self.store = {}

    async def get(self, name):
        value = self.store.get(name)
        return value.encode('utf-8') if value is not None else None

    async def set(self, name, value, ex=None):
        self.store[name] = value

    async def delete(self, name):
        self.store.pop(name, None)

    async def scan_iter(self, match=None):
        prefix = (match or '').rstrip('*')
        for name in list(self.store):
            if name.startswith(prefix):
                yield name
