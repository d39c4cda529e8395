"""Cosmetic theme tags for freshly forged boons.

A tag is drawn from one of eight element families.  The candidate families
come from the item archetype, the player's dominant stat and the destiny
class, so tags echo the character without ever touching loot odds.
"""

from __future__ import annotations

import logging
import random
from types import MappingProxyType
from typing import List, Mapping, Optional

from .models.loot import ItemType, Rarity, StatBlock
from .models.progress import PrimaryClass
from .stats import dominant_stat

log = logging.getLogger(__name__)

FALLBACK_FAMILIES: tuple[str, ...] = ("cosmic", "light")
FALLBACK_TAG = "mystic essence"
COMMON_TAG_POOL = 3

THEME_ELEMENTS: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "fire": (
        "emberforged",
        "celestial fire",
        "inner flame",
        "dawnfire",
        "sacred ember",
        "burning light",
        "flame hymn",
        "eternal blaze",
        "phoenix spark",
        "starfire core",
    ),
    "light": (
        "radiant path",
        "shining horizon",
        "starborn glow",
        "halo light",
        "dawn radiance",
        "luminous veil",
        "crystal beacon",
        "pure brilliance",
        "silver gleam",
        "golden aura",
    ),
    "shadow": (
        "silent dusk",
        "deep shadow",
        "hidden eclipse",
        "whispering dark",
        "twilight veil",
        "midnight shroud",
        "quiet gloom",
        "umbral whisper",
        "moonless night",
        "shadow dance",
    ),
    "cosmic": (
        "frozen starlight",
        "voidlight nebula",
        "cosmic hymn",
        "ancient constellation",
        "stellar whisper",
        "galaxy spiral",
        "void essence",
        "celestial dream",
        "aurora cascade",
        "infinity spark",
    ),
    "water": (
        "tidal memory",
        "deepwater calm",
        "moonlit tide",
        "sea of glass",
        "oceanic whisper",
        "flowing current",
        "mirror pool",
        "sacred spring",
        "cascading grace",
        "depth reflection",
    ),
    "earth": (
        "stonebound oath",
        "rooted strength",
        "iron earth",
        "mountain calm",
        "ancient stone",
        "bedrock heart",
        "granite will",
        "mossy foundation",
        "crystal vein",
        "earthen power",
    ),
    "wind": (
        "wandering gale",
        "roaming wind",
        "traveling breeze",
        "skyway current",
        "hurricane whisper",
        "gentle zephyr",
        "storm blessing",
        "air's breath",
        "cloudborne spirit",
        "eternal drift",
    ),
    "mind": (
        "quiet mind",
        "deep knowing",
        "inner vision",
        "silent clarity",
        "thought essence",
        "mental fortress",
        "cognitive spark",
        "wisdom flow",
        "contemplative void",
        "mindful echo",
    ),
})

STAT_THEME_FAMILIES: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "insight": ("mind", "cosmic", "shadow"),
        "devotion": ("fire", "light", "earth"),
        "wonder": ("cosmic", "wind", "water"),
        "clarity": ("light", "mind", "cosmic"),
        "fortune": ("wind", "light", "cosmic"),
        "endurance": ("earth", "fire", "shadow"),
        "focus": ("mind", "earth", "fire"),
    }
)

CLASS_THEME_FAMILIES: Mapping[PrimaryClass, tuple[str, ...]] = MappingProxyType(
    {
        PrimaryClass.FATEWEAVER: ("cosmic", "light", "wind"),
        PrimaryClass.LOREKEEPER: ("mind", "shadow", "earth"),
        PrimaryClass.DEVOTION_SAGE: ("fire", "light", "earth"),
        PrimaryClass.SOULWANDERER: ("wind", "cosmic", "water"),
        PrimaryClass.LIGHTBEARER: ("light", "fire", "cosmic"),
        PrimaryClass.MINDFORGED: ("mind", "earth", "shadow"),
        PrimaryClass.FORTUNEBOUND: ("wind", "light", "cosmic"),
        PrimaryClass.ENDUREBORN: ("earth", "fire", "shadow"),
    }
)

ITEM_THEME_HINTS: Mapping[ItemType, tuple[str, ...]] = MappingProxyType({
    ItemType.CROWN: ("light", "cosmic", "fire"),
    ItemType.RING: ("light", "cosmic", "shadow"),
    ItemType.AMULET: ("light", "fire", "shadow"),
    ItemType.CLOAK: ("wind", "shadow", "earth"),
    ItemType.TOME: ("mind", "shadow", "earth"),
    ItemType.BLADE: ("fire", "wind", "shadow"),
    ItemType.LAMP: ("light", "fire", "cosmic"),
    ItemType.LANTERN: ("light", "fire", "cosmic"),
    ItemType.QUILL: ("wind", "mind", "light"),
    ItemType.ORB: ("cosmic", "light", "mind"),
    ItemType.MIRROR: ("light", "cosmic", "shadow"),
    ItemType.SCROLL: ("mind", "wind", "earth"),
    ItemType.TABLET: ("earth", "mind", "shadow"),
    ItemType.STAFF: ("cosmic", "fire", "earth"),
    ItemType.CHALICE: ("water", "light", "fire"),
    ItemType.KEY: ("shadow", "mind", "cosmic"),
    ItemType.RUNE: ("cosmic", "mind", "fire"),
    ItemType.SIGIL: ("cosmic", "shadow", "mind"),
    ItemType.COMPASS: ("wind", "cosmic", "light"),
    ItemType.RELIC: ("earth", "cosmic", "shadow"),
})

RARITY_PREFIXES: Mapping[Rarity, str] = MappingProxyType(
    {Rarity.EPIC: "ancient", Rarity.LEGENDARY: "eternal"}
)


def theme_families(
    item_type: ItemType,
    *,
    stats: Optional[StatBlock] = None,
    primary_class: Optional[PrimaryClass] = None,
) -> List[str]:
    """Candidate families in insertion order without duplicates."""

    families: dict[str, None] = {}
    for family in ITEM_THEME_HINTS.get(item_type, ()):
        families.setdefault(family)
    if stats is not None:
        for family in STAT_THEME_FAMILIES.get(dominant_stat(stats), ()):
            families.setdefault(family)
    if primary_class is not None:
        for family in CLASS_THEME_FAMILIES.get(primary_class, ()):
            families.setdefault(family)
    return list(families) or list(FALLBACK_FAMILIES)


def pick_family_tag(family: str, rarity: Rarity, rng: random.Random | None = None) -> str:
    rng = rng if rng is not None else random
    tags = THEME_ELEMENTS.get(family)
    if not tags:
        return FALLBACK_TAG
    if rarity is Rarity.COMMON:
        tag = tags[int(rng.random() * min(COMMON_TAG_POOL, len(tags)))]
    else:
        tag = tags[int(rng.random() * len(tags))]
    prefix = RARITY_PREFIXES.get(rarity)
    if prefix and rng.random() > 0.5:
        return f"{prefix} {tag}"
    return tag


def generate_theme_tag(
    item_type: ItemType,
    rarity: Rarity,
    *,
    stats: Optional[StatBlock] = None,
    primary_class: Optional[PrimaryClass] = None,
    rng: random.Random | None = None,
) -> str:
    rng = rng if rng is not None else random
    families = theme_families(item_type, stats=stats, primary_class=primary_class)
    family = families[int(rng.random() * len(families))]
    tag = pick_family_tag(family, rarity, rng)
    log.debug("Theme tag %r for %s %s (family %s)", tag, rarity.value, item_type.value, family)
    return tag


__all__ = [
    "THEME_ELEMENTS",
    "generate_theme_tag",
    "pick_family_tag",
    "theme_families",
]
