"""Rarity rolls and procedural boon generation."""

from __future__ import annotations

import random
import uuid
from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Mapping, Optional

from .clock import isoformat, now_local
from .models.loot import STAT_NAMES, Boon, EquipSlot, ItemType, Rarity, StatBlock
from .models.progress import PrimaryClass
from .themes import generate_theme_tag


DROP_CHANCES: Mapping[Rarity, float] = MappingProxyType(
    {
        Rarity.COMMON: 0.12,
        Rarity.UNCOMMON: 0.03,
        Rarity.RARE: 0.006,
        Rarity.EPIC: 0.0015,
        Rarity.LEGENDARY: 0.0002,
    }
)

# Rarest first; the cumulative walk depends on this order.
ROLL_ORDER: tuple[Rarity, ...] = (
    Rarity.LEGENDARY,
    Rarity.EPIC,
    Rarity.RARE,
    Rarity.UNCOMMON,
    Rarity.COMMON,
)

ITEM_TYPE_WEIGHTS: Mapping[ItemType, int] = MappingProxyType(
    {
        ItemType.RING: 8,
        ItemType.AMULET: 8,
        ItemType.CROWN: 5,
        ItemType.LAMP: 7,
        ItemType.QUILL: 6,
        ItemType.MIRROR: 7,
        ItemType.KEY: 6,
        ItemType.TOME: 9,
        ItemType.SIGIL: 7,
        ItemType.STAFF: 6,
        ItemType.ORB: 7,
        ItemType.SCROLL: 8,
        ItemType.CLOAK: 6,
        ItemType.RUNE: 7,
        ItemType.BLADE: 5,
        ItemType.CHALICE: 6,
        ItemType.COMPASS: 6,
        ItemType.LANTERN: 7,
        ItemType.TABLET: 7,
        ItemType.RELIC: 4,
    }
)


@dataclass(frozen=True, slots=True)
class PointRange:
    minimum: int
    maximum: int


STAT_POINT_RANGES: Mapping[Rarity, PointRange] = MappingProxyType(
    {
        Rarity.COMMON: PointRange(1, 2),
        Rarity.UNCOMMON: PointRange(2, 4),
        Rarity.RARE: PointRange(3, 6),
        Rarity.EPIC: PointRange(4, 8),
        Rarity.LEGENDARY: PointRange(6, 12),
    }
)

FORTUNE_BONUS_RANGE = PointRange(1, 2)

CONCEPTS: tuple[str, ...] = (
    "Hidden Memory",
    "Radiant Insight",
    "Celestial Silence",
    "Deep Listening",
    "Starlit Wisdom",
    "Wandering Vision",
    "Guiding Fire",
    "Unbroken Devotion",
    "Manyfold Truths",
    "Quiet Liberation",
    "Ancient Dawn",
    "Eternal Paths",
    "Living Words",
    "Inner Realms",
    "Sacred Echoes",
    "Timeless Wonder",
    "Mystic Harmony",
    "Divine Grace",
    "Infinite Depths",
    "Veiled Mysteries",
)

DESCRIPTORS: tuple[str, ...] = (
    "of the Inner Realms",
    "of the Seventh Echo",
    "of the Eternal Path",
    "of the Ancient Dawn",
    "of the Living Word",
    "of the Hidden Cosmos",
    "of the Silent Watch",
    "of the Wandering Soul",
    "of the Celestial Throne",
    "of the Forgotten Ages",
    "of the Blazing Truth",
    "of the Quiet Mind",
    "of the Endless Journey",
    "of the Sacred Fire",
    "of the Mystic Vale",
)

DESCRIPTION_TEMPLATES: tuple[str, ...] = (
    "This {name} carries the weight of forgotten wisdom.",
    "Blessed by ancient forces, this artifact resonates with hidden power.",
    "Those who behold this relic feel the stirring of deeper understanding.",
    "Forged in realms beyond mortal comprehension, it whispers secrets to the worthy.",
    "A treasure of immeasurable significance, passed through countless hands.",
    "The essence of mystery itself seems to cling to this sacred object.",
    "Legends speak of those transformed by merely gazing upon this wonder.",
    "Time itself bends around this artifact, revealing truths long concealed.",
)


def _choice(options, rng) -> str:
    return options[int(rng.random() * len(options))]


def roll_rarity(rng: random.Random | None = None) -> Optional[Rarity]:
    """Roll for a drop; ``None`` means nothing dropped.

    A single draw is compared against the running total of drop chances,
    walking from legendary down to common.
    """

    rng = rng if rng is not None else random
    roll = rng.random()
    cumulative = 0.0
    for rarity in ROLL_ORDER:
        cumulative += DROP_CHANCES[rarity]
        if roll <= cumulative:
            return rarity
    return None


def pick_item_type(rng: random.Random | None = None) -> ItemType:
    rng = rng if rng is not None else random
    total = sum(ITEM_TYPE_WEIGHTS.values())
    draw = rng.random() * total
    running = 0
    for item_type, weight in ITEM_TYPE_WEIGHTS.items():
        running += weight
        if draw <= running:
            return item_type
    return ItemType.RELIC


def slot_for_item_type(item_type: ItemType | str) -> EquipSlot:
    return ItemType.from_value(item_type).slot


def generate_stat_bonuses(rarity: Rarity, rng: random.Random | None = None) -> StatBlock:
    """Spend a rarity-sized point budget on random stats, with replacement."""

    rng = rng if rng is not None else random
    budget = STAT_POINT_RANGES[rarity]
    points = rng.randint(budget.minimum, budget.maximum)
    bonuses = StatBlock()
    for _ in range(points):
        name = _choice(STAT_NAMES, rng)
        setattr(bonuses, name, getattr(bonuses, name) + 1)
    if rarity.at_least(Rarity.RARE):
        bonuses.fortune += rng.randint(FORTUNE_BONUS_RANGE.minimum, FORTUNE_BONUS_RANGE.maximum)
    return bonuses


def generate_boon_name(item_type: ItemType, rng: random.Random | None = None) -> str:
    rng = rng if rng is not None else random
    concept = _choice(CONCEPTS, rng)
    if rng.random() > 0.5:
        return f"{item_type.display_name} of {concept} {_choice(DESCRIPTORS, rng)}"
    return f"{item_type.display_name} of {concept}"


def generate_boon_description(name: str | None, rng: random.Random | None = None) -> str:
    rng = rng if rng is not None else random
    template = _choice(DESCRIPTION_TEMPLATES, rng)
    return template.format(name=(name or "this artifact").lower())


def forge_boon(
    rarity: Rarity,
    *,
    stats: Optional[StatBlock] = None,
    primary_class: Optional[PrimaryClass] = None,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> Boon:
    """Create a complete boon of ``rarity``.

    ``stats`` and ``primary_class`` only flavour the theme tag.
    """

    rng = rng if rng is not None else random
    item_type = pick_item_type(rng)
    name = generate_boon_name(item_type, rng)
    return Boon(
        id=uuid.uuid4().hex,
        name=name,
        description=generate_boon_description(name, rng),
        rarity=rarity,
        item_type=item_type,
        acquired_at=isoformat(now or now_local()),
        stat_bonuses=generate_stat_bonuses(rarity, rng),
        theme_tag=generate_theme_tag(
            item_type, rarity, stats=stats, primary_class=primary_class, rng=rng
        ),
    )


__all__ = [
    "DROP_CHANCES",
    "ITEM_TYPE_WEIGHTS",
    "STAT_POINT_RANGES",
    "forge_boon",
    "generate_boon_description",
    "generate_boon_name",
    "generate_stat_bonuses",
    "pick_item_type",
    "roll_rarity",
    "slot_for_item_type",
]
