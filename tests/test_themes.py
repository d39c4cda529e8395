from __future__ import annotations

import random
import sys
from pathlib import Path
from typing import Sequence

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from verseforge.models.loot import ItemType, Rarity, StatBlock
from verseforge.models.progress import PrimaryClass
from verseforge.themes import (
    THEME_ELEMENTS,
    generate_theme_tag,
    pick_family_tag,
    theme_families,
)


class ScriptedRandom:
    def __init__(self, values: Sequence[float]) -> None:
        self._values = list(values)

    def random(self) -> float:
        return self._values.pop(0)


def test_every_family_has_ten_tags() -> None:
    assert len(THEME_ELEMENTS) == 8
    assert all(len(tags) == 10 for tags in THEME_ELEMENTS.values())


def test_families_are_deduplicated_in_order() -> None:
    families = theme_families(
        ItemType.LANTERN,
        stats=StatBlock(clarity=5),
        primary_class=PrimaryClass.LIGHTBEARER,
    )

    assert len(families) == len(set(families))
    assert families[0] in THEME_ELEMENTS


def test_common_tags_come_from_the_first_three() -> None:
    rng = random.Random(5)
    for family, tags in THEME_ELEMENTS.items():
        for _ in range(50):
            assert pick_family_tag(family, Rarity.COMMON, rng) in tags[:3]


def test_legendary_tags_may_gain_eternal_prefix() -> None:
    family = next(iter(THEME_ELEMENTS))
    tags = THEME_ELEMENTS[family]

    prefixed = pick_family_tag(family, Rarity.LEGENDARY, ScriptedRandom([0.0, 0.9]))
    plain = pick_family_tag(family, Rarity.LEGENDARY, ScriptedRandom([0.0, 0.1]))

    assert prefixed == f"eternal {tags[0]}"
    assert plain == tags[0]


def test_rare_tags_never_prefixed() -> None:
    family = next(iter(THEME_ELEMENTS))

    tag = pick_family_tag(family, Rarity.RARE, ScriptedRandom([0.0, 0.9]))

    assert tag == THEME_ELEMENTS[family][0]


def test_unknown_family_falls_back() -> None:
    assert pick_family_tag("nonexistent", Rarity.COMMON, random.Random(1)) == "mystic essence"


def test_generate_theme_tag_returns_known_element() -> None:
    known = {tag for tags in THEME_ELEMENTS.values() for tag in tags}
    rng = random.Random(42)
    for item_type in ItemType:
        tag = generate_theme_tag(item_type, Rarity.UNCOMMON, rng=rng)
        assert tag in known
