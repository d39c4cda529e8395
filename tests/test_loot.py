from __future__ import annotations

import random
import sys
from collections import Counter
from pathlib import Path
from typing import Sequence

import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from verseforge.loot import (
    DROP_CHANCES,
    ITEM_TYPE_WEIGHTS,
    STAT_POINT_RANGES,
    forge_boon,
    generate_boon_description,
    generate_boon_name,
    generate_stat_bonuses,
    pick_item_type,
    roll_rarity,
    slot_for_item_type,
)
from verseforge.models.loot import Boon, EquipSlot, ItemType, Rarity, StatBlock
from verseforge.models.progress import PrimaryClass


class ScriptedRandom:
    """Replays a fixed sequence of ``random()`` draws."""

    def __init__(self, values: Sequence[float]) -> None:
        self._values = list(values)

    def random(self) -> float:
        return self._values.pop(0)


def test_roll_rarity_matches_drop_table_over_a_million_rolls() -> None:
    rng = random.Random(1577)
    counts: Counter[Rarity | None] = Counter(roll_rarity(rng) for _ in range(1_000_000))

    no_drop_rate = counts[None] / 1_000_000
    assert no_drop_rate == pytest.approx(1 - sum(DROP_CHANCES.values()), abs=0.002)
    assert counts[Rarity.COMMON] == pytest.approx(120_000, rel=0.02)
    assert 120 < counts[Rarity.LEGENDARY] < 280
    ratio = counts[Rarity.LEGENDARY] / counts[Rarity.COMMON]
    assert ratio == pytest.approx(0.0002 / 0.12, rel=0.4)


def test_roll_rarity_walks_rarest_first() -> None:
    assert roll_rarity(ScriptedRandom([0.0])) is Rarity.LEGENDARY
    assert roll_rarity(ScriptedRandom([0.0002])) is Rarity.LEGENDARY
    assert roll_rarity(ScriptedRandom([0.001])) is Rarity.EPIC
    assert roll_rarity(ScriptedRandom([0.15])) is Rarity.COMMON
    assert roll_rarity(ScriptedRandom([0.2])) is None


def test_item_type_weights_cover_every_type() -> None:
    assert set(ITEM_TYPE_WEIGHTS) == set(ItemType)
    assert sum(ITEM_TYPE_WEIGHTS.values()) == 132


def test_pick_item_type_uses_running_weights() -> None:
    assert pick_item_type(ScriptedRandom([0.0])) is ItemType.RING
    assert pick_item_type(ScriptedRandom([0.999999])) is ItemType.RELIC
    # ring 8 + amulet 8 = 16 of 132
    assert pick_item_type(ScriptedRandom([16.5 / 132])) is ItemType.CROWN


def test_slot_mapping_is_total_and_stable() -> None:
    slots = {item_type: slot_for_item_type(item_type) for item_type in ItemType}
    again = {item_type: slot_for_item_type(item_type.value) for item_type in ItemType}

    assert slots == again
    assert Counter(slots.values()) == {
        EquipSlot.HANDS: 3,
        EquipSlot.HEAD: 1,
        EquipSlot.HEART: 3,
        EquipSlot.MIND: 3,
        EquipSlot.LIGHT: 4,
        EquipSlot.RELIC: 6,
    }
    assert slots[ItemType.KEY] is EquipSlot.RELIC
    assert slots[ItemType.MIRROR] is EquipSlot.LIGHT


@pytest.mark.parametrize("rarity", list(Rarity))
def test_stat_bonus_budget_respects_rarity(rarity: Rarity) -> None:
    rng = random.Random(rarity.rank)
    budget = STAT_POINT_RANGES[rarity]
    extra_min, extra_max = (1, 2) if rarity.at_least(Rarity.RARE) else (0, 0)

    for _ in range(500):
        bonuses = generate_stat_bonuses(rarity, rng)
        assert budget.minimum + extra_min <= bonuses.total() <= budget.maximum + extra_max
        if extra_min:
            assert bonuses.fortune >= 1


def test_boon_name_descriptor_depends_on_coin_flip() -> None:
    plain = generate_boon_name(ItemType.RING, ScriptedRandom([0.0, 0.0]))
    adorned = generate_boon_name(ItemType.TOME, ScriptedRandom([0.99, 0.99, 0.99]))

    assert plain == "Ring of Hidden Memory"
    assert adorned == "Tome of Veiled Mysteries of the Mystic Vale"


def test_boon_description_lowercases_name() -> None:
    text = generate_boon_description("Ring of Hidden Memory", ScriptedRandom([0.0]))

    assert text == "This ring of hidden memory carries the weight of forgotten wisdom."
    assert generate_boon_description(None, ScriptedRandom([0.0])).startswith("This this artifact")


def test_forge_boon_builds_a_complete_item() -> None:
    rng = random.Random(7)
    boon = forge_boon(
        Rarity.EPIC,
        stats=StatBlock(devotion=9),
        primary_class=PrimaryClass.DEVOTION_SAGE,
        rng=rng,
    )

    assert isinstance(boon, Boon)
    assert len(boon.id) == 32
    assert boon.rarity is Rarity.EPIC
    assert boon.equip_slot is boon.item_type.slot
    assert boon.name.startswith(f"{boon.item_type.display_name} of ")
    assert boon.description
    assert boon.acquired_at
    assert boon.theme_tag
    assert boon.image_url is None


def test_boon_round_trips_through_mapping() -> None:
    boon = forge_boon(Rarity.RARE, rng=random.Random(11))

    restored = Boon.from_dict(boon.to_mapping())

    assert restored == boon


def test_boon_slot_is_rederived_from_item_type() -> None:
    boon = Boon.from_dict(
        {"id": "b1", "name": "Odd", "rarity": "rare", "item_type": "orb", "equip_slot": "head"}
    )

    assert boon.equip_slot is EquipSlot.LIGHT
