"""Destiny resolution: from level and stats to a class, title and lore.

The pipeline is deterministic.  Stats are ranked, the top two pick a primary
class, the secondary stat and level pick a subclass, the level alone picks a
tier, and level plus stat total pick an epithet from the tier's pool.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from .models.loot import StatBlock
from .models.progress import Destiny, DestinyTier, PrimaryClass
from .stats import rank_stats

FALLBACK_SUBCLASS = "Wandering Soul"
FALLBACK_EPITHET = "Seeker of Hidden Truths"
SUBCLASS_LEVEL_SPAN = 100

CLASS_FOR_PRIMARY_STAT: Mapping[str, PrimaryClass] = MappingProxyType(
    {
        "insight": PrimaryClass.LOREKEEPER,
        "devotion": PrimaryClass.DEVOTION_SAGE,
        "wonder": PrimaryClass.SOULWANDERER,
        "clarity": PrimaryClass.LIGHTBEARER,
        "focus": PrimaryClass.MINDFORGED,
        "fortune": PrimaryClass.FORTUNEBOUND,
        "endurance": PrimaryClass.ENDUREBORN,
    }
)

FATEWEAVER_PAIR = frozenset({"wonder", "clarity"})


@dataclass(frozen=True, slots=True)
class TierThreshold:
    below: int
    tier: DestinyTier


TIER_THRESHOLDS: tuple[TierThreshold, ...] = (
    TierThreshold(25, DestinyTier.INITIATE),
    TierThreshold(50, DestinyTier.ADEPT),
    TierThreshold(100, DestinyTier.RISING),
    TierThreshold(200, DestinyTier.ELITE),
    TierThreshold(300, DestinyTier.MYTHIC),
    TierThreshold(500, DestinyTier.ASCENDED),
    TierThreshold(750, DestinyTier.ETERNAL),
    TierThreshold(1000, DestinyTier.TRANSCENDENT),
)

SUBCLASS_POOLS: Mapping[PrimaryClass, Mapping[str, tuple[str, ...]]] = {
    PrimaryClass.FATEWEAVER: {
        "insight": ("Dreamscribe", "Chronicle Warden", "Starlit Oracle"),
        "devotion": ("Cosmic Harbinger", "Destiny's Flame", "Eternal Witness"),
        "focus": ("Thread Keeper", "Pattern Sentinel", "Weaver's Eye"),
        "wonder": ("Realm Walker", "Horizon Seeker", "Void Dancer"),
        "clarity": ("Truth Seer", "Light Warden", "Crystal Mind"),
        "fortune": ("Luck Binder", "Chance Weaver", "Fate Spinner"),
        "endurance": ("Time's Guardian", "Eternal Weaver", "Steadfast Spinner"),
    },
    PrimaryClass.LOREKEEPER: {
        "devotion": ("Sacred Archivist", "Eternal Scribe", "Holy Chronicler"),
        "focus": ("Mind Librarian", "Thought Keeper", "Knowledge Sentinel"),
        "wonder": ("Curious Scholar", "Mystery Seeker", "Wonder Archivist"),
        "clarity": ("Truth Keeper", "Crystal Loremaster", "Illuminated Sage"),
        "fortune": ("Fortunate Sage", "Lucky Scholar", "Blessed Keeper"),
        "endurance": ("Ancient Keeper", "Timeless Scholar", "Eternal Archivist"),
        "insight": ("Deep Sage", "Inner Loremaster", "Wisdom Keeper"),
    },
    PrimaryClass.DEVOTION_SAGE: {
        "insight": ("Enlightened Devotee", "Wise Pilgrim", "Contemplative Faithful"),
        "focus": ("Steadfast Believer", "Disciplined Servant", "Unwavering Soul"),
        "wonder": ("Mystical Devotee", "Awe-Struck Pilgrim", "Reverent Wanderer"),
        "clarity": ("Pure Heart", "Clear Devotee", "Radiant Faithful"),
        "fortune": ("Blessed Devotee", "Fortunate Pilgrim", "Grace-Touched Sage"),
        "endurance": ("Eternal Devotee", "Tireless Pilgrim", "Unbreaking Faithful"),
        "devotion": ("Supreme Devotee", "Ultimate Sage", "Perfect Pilgrim"),
    },
    PrimaryClass.SOULWANDERER: {
        "insight": ("Thoughtful Wanderer", "Philosophical Nomad", "Wise Drifter"),
        "devotion": ("Faithful Traveler", "Sacred Wanderer", "Holy Nomad"),
        "focus": ("Purposeful Wanderer", "Determined Drifter", "Goal-Bound Nomad"),
        "clarity": ("Clear-Eyed Wanderer", "Illuminated Nomad", "Bright Drifter"),
        "fortune": ("Lucky Wanderer", "Fortunate Nomad", "Blessed Drifter"),
        "endurance": ("Tireless Wanderer", "Eternal Nomad", "Undying Drifter"),
        "wonder": ("Pure Wanderer", "Ultimate Nomad", "Supreme Drifter"),
    },
    PrimaryClass.LIGHTBEARER: {
        "insight": ("Wise Illuminator", "Thoughtful Beacon", "Sage of Radiance"),
        "devotion": ("Faithful Lightkeeper", "Sacred Beacon", "Holy Illuminator"),
        "focus": ("Focused Beacon", "Determined Illuminator", "Steadfast Lightkeeper"),
        "wonder": ("Mystical Lightbearer", "Wondrous Beacon", "Awe-Inspiring Illuminator"),
        "fortune": ("Fortunate Lightbearer", "Blessed Beacon", "Lucky Illuminator"),
        "endurance": ("Eternal Lightbearer", "Undying Beacon", "Timeless Illuminator"),
        "clarity": ("Supreme Lightbearer", "Ultimate Beacon", "Perfect Illuminator"),
    },
    PrimaryClass.MINDFORGED: {
        "insight": ("Brilliant Thinker", "Deep Contemplator", "Sage Forgemaster"),
        "devotion": ("Devoted Mindsmith", "Faithful Forgemaster", "Sacred Thinker"),
        "wonder": ("Curious Mindforged", "Wondrous Thinker", "Mystical Forgemaster"),
        "clarity": ("Clear-Minded Smith", "Crystalline Thinker", "Illuminated Forgemaster"),
        "fortune": ("Lucky Mindsmith", "Fortunate Thinker", "Blessed Forgemaster"),
        "endurance": ("Tireless Mindsmith", "Eternal Thinker", "Unbreaking Forgemaster"),
        "focus": ("Supreme Mindforged", "Ultimate Thinker", "Perfect Forgemaster"),
    },
    PrimaryClass.FORTUNEBOUND: {
        "insight": ("Wise Fortuneteller", "Sage of Luck", "Thoughtful Gambler"),
        "devotion": ("Faithful Fortunekeeper", "Sacred Gambler", "Devoted Luckbringer"),
        "focus": ("Determined Fortunebound", "Steadfast Gambler", "Goal-Bound Luckkeeper"),
        "wonder": ("Mystical Fortunebound", "Wondrous Gambler", "Awe-Struck Luckbringer"),
        "clarity": ("Clear-Sighted Fortuneteller", "Illuminated Gambler", "Radiant Luckkeeper"),
        "endurance": ("Eternal Fortunebound", "Tireless Gambler", "Undying Luckbringer"),
        "fortune": ("Supreme Fortunebound", "Ultimate Gambler", "Perfect Luckkeeper"),
    },
    PrimaryClass.ENDUREBORN: {
        "insight": ("Wise Survivor", "Thoughtful Endurer", "Sage of Resilience"),
        "devotion": ("Faithful Endureborn", "Sacred Survivor", "Holy Resilient"),
        "focus": ("Determined Endurer", "Steadfast Survivor", "Unwavering Resilient"),
        "wonder": ("Mystical Endureborn", "Wondrous Survivor", "Awe-Inspiring Resilient"),
        "clarity": ("Clear-Minded Endurer", "Illuminated Survivor", "Radiant Resilient"),
        "fortune": ("Lucky Endureborn", "Fortunate Survivor", "Blessed Resilient"),
        "endurance": ("Supreme Endureborn", "Ultimate Survivor", "Perfect Resilient"),
    },
}

EPITHET_POOLS: Mapping[DestinyTier, tuple[str, ...]] = {
    DestinyTier.INITIATE: (
        "Caller of First Whispers",
        "Seeker of Dawn's Light",
        "Walker of New Paths",
        "Bearer of Young Dreams",
        "Kindler of Small Flames",
        "Student of Silent Truths",
        "Holder of Fragile Hope",
        "Listener to Distant Winds",
        "Keeper of Simple Faith",
        "Watcher at the Beginning",
    ),
    DestinyTier.ADEPT: (
        "Caller of Rising Echoes",
        "Keeper of Growing Wisdom",
        "Walker of Steady Paths",
        "Bearer of Strengthening Light",
        "Wielder of Awakening Power",
        "Guardian of Young Mysteries",
        "Seeker of Deeper Truths",
        "Holder of Expanding Vision",
        "Listener to Clear Voices",
        "Watcher at the Crossroads",
    ),
    DestinyTier.RISING: (
        "Caller of Distant Echoes",
        "Keeper of Hidden Realms",
        "Walker of Twilight Paths",
        "Bearer of Ascending Light",
        "Wielder of Growing Might",
        "Guardian of Sacred Thresholds",
        "Seeker of Lost Horizons",
        "Holder of Vivid Dreams",
        "Listener to Ancient Songs",
        "Watcher at the Summit",
    ),
    DestinyTier.ELITE: (
        "Caller of Cosmic Harmonies",
        "Keeper of Profound Secrets",
        "Walker of Gilded Paths",
        "Bearer of Radiant Authority",
        "Wielder of Refined Power",
        "Guardian of Noble Gates",
        "Seeker of Exalted Truths",
        "Holder of Brilliant Visions",
        "Listener to Celestial Choirs",
        "Watcher at the Pinnacle",
    ),
    DestinyTier.MYTHIC: (
        "Caller of Timeless Echoes",
        "Keeper of Forgotten Suns",
        "Walker of Legendary Paths",
        "Bearer of Endless Dawn",
        "Wielder of Mythic Forces",
        "Guardian of Eternal Gates",
        "Seeker of Ultimate Mysteries",
        "Holder of Infinite Visions",
        "Listener to the Void's Song",
        "Watcher of World's Edge",
    ),
    DestinyTier.ASCENDED: (
        "Caller of Divine Resonance",
        "Keeper of Celestial Thrones",
        "Walker of Transcendent Paths",
        "Bearer of Sacred Infinity",
        "Wielder of Ascended Might",
        "Guardian of Heaven's Gate",
        "Seeker of Sublime Truth",
        "Holder of Cosmic Sight",
        "Listener to Angels' Hymns",
        "Watcher Beyond the Veil",
    ),
    DestinyTier.ETERNAL: (
        "Caller of Immortal Echoes",
        "Keeper of Timeless Realms",
        "Walker of Infinite Paths",
        "Bearer of Undying Light",
        "Wielder of Eternal Power",
        "Guardian of Ageless Gates",
        "Seeker of Perpetual Wisdom",
        "Holder of Forever's Vision",
        "Listener to Eternity's Voice",
        "Watcher of All Ages",
    ),
    DestinyTier.TRANSCENDENT: (
        "Caller of Reality's Fabric",
        "Keeper of Existence Itself",
        "Walker Beyond All Worlds",
        "Bearer of Pure Being",
        "Wielder of Absolute Truth",
        "Guardian of Cosmic Balance",
        "Seeker of Final Revelation",
        "Holder of Universal Sight",
        "Listener to Creation's Heart",
        "Watcher Over Everything",
    ),
    DestinyTier.PARAGON: (
        "Caller of Ultimate Destiny",
        "Keeper of Perfect Harmony",
        "Walker of Impossible Paths",
        "Bearer of Supreme Light",
        "Wielder of Boundless Power",
        "Guardian of All That Is",
        "Seeker of Absolute Truth",
        "Holder of Omniscient Vision",
        "Listener to the Source",
        "Watcher of Infinite Horizons",
    ),
}

LORE_TEMPLATES: Mapping[PrimaryClass, tuple[str, ...]] = {
    PrimaryClass.FATEWEAVER: (
        "As a {primary_class} who walks the path of {subclass}, you perceive the threads of destiny that bind all things. {epithet}, you weave possibility into reality.",
        "The cosmic tapestry reveals itself to those who become {subclass}. As {epithet}, your sight pierces the veil of chance itself.",
        "Destiny flows through you, {subclass}, shaping the world with each choice. Known as {epithet}, your path illuminates futures yet unborn.",
    ),
    PrimaryClass.LOREKEEPER: (
        "Knowledge eternal finds its home in you, {subclass}. As {epithet}, you preserve wisdom that transcends mortal understanding.",
        "The archives of existence open before the {subclass}. {epithet}, your mind holds the keys to forgotten truths.",
        "As {subclass}, you stand as guardian of sacred knowledge. {epithet}, the wisdom of ages flows through your very being.",
    ),
    PrimaryClass.DEVOTION_SAGE: (
        "Your unwavering dedication defines you, {subclass}. {epithet}, your faith moves mountains and parts seas of doubt.",
        "The path of {subclass} demands total commitment, and you have given it freely. As {epithet}, your devotion becomes your greatest power.",
        "Sacred purpose guides every step you take, {subclass}. Known as {epithet}, your conviction transforms the impossible into the inevitable.",
    ),
    PrimaryClass.SOULWANDERER: (
        "Endless horizons call to your spirit, {subclass}. {epithet}, you traverse realms both inner and outer with equal wonder.",
        "The journey itself is your home, {subclass}. As {epithet}, each step reveals new dimensions of existence.",
        "Nomad of the infinite, {subclass}, your wanderings map the unmappable. {epithet}, you discover what was never lost.",
    ),
    PrimaryClass.LIGHTBEARER: (
        "Radiance flows from your essence, {subclass}. {epithet}, you illuminate the darkest corners of reality.",
        "As {subclass}, you carry the flame that never dies. {epithet}, your light guides lost souls home.",
        "Beacon of hope and truth, {subclass}, darkness flees before you. Known as {epithet}, your brilliance reveals all hidden things.",
    ),
    PrimaryClass.MINDFORGED: (
        "Will and thought become one in you, {subclass}. {epithet}, your mental discipline shapes reality itself.",
        "The forge of consciousness burns bright within the {subclass}. As {epithet}, your focused mind bends the world to purpose.",
        "Architect of thought, {subclass}, you build cathedrals of pure reason. {epithet}, your intellect is your greatest weapon.",
    ),
    PrimaryClass.FORTUNEBOUND: (
        "Luck itself seems to bend around you, {subclass}. {epithet}, probability becomes your plaything.",
        "The {subclass} dances with chance and always leads. As {epithet}, fortune follows wherever you tread.",
        "Blessed beyond measure, {subclass}, you turn misfortune into opportunity. {epithet}, the universe conspires in your favor.",
    ),
    PrimaryClass.ENDUREBORN: (
        "Resilience incarnate, {subclass}, you outlast all trials. {epithet}, your endurance becomes legendary.",
        "Time itself cannot wear down the {subclass}. Known as {epithet}, you stand eternal against the storm.",
        "Unbreakable and tireless, {subclass}, you embody perseverance. {epithet}, your strength grows with each challenge faced.",
    ),
}


def tier_for_level(level: int) -> DestinyTier:
    for threshold in TIER_THRESHOLDS:
        if level < threshold.below:
            return threshold.tier
    return DestinyTier.PARAGON


def class_for_stats(primary: str, secondary: str) -> PrimaryClass:
    if {primary, secondary} == FATEWEAVER_PAIR:
        return PrimaryClass.FATEWEAVER
    return CLASS_FOR_PRIMARY_STAT.get(primary, PrimaryClass.LOREKEEPER)


def subclass_for(primary_class: PrimaryClass, secondary: str, level: int) -> str:
    pool = SUBCLASS_POOLS.get(primary_class, {}).get(secondary)
    if not pool:
        return FALLBACK_SUBCLASS
    return pool[(level // SUBCLASS_LEVEL_SPAN) % len(pool)]


def epithet_for(tier: DestinyTier, stats: StatBlock, level: int) -> str:
    pool = EPITHET_POOLS.get(tier)
    if not pool:
        return FALLBACK_EPITHET
    return pool[(level + stats.total()) % len(pool)]


def compose_title(tier: DestinyTier, primary_class: PrimaryClass, epithet: str) -> str:
    return f"{tier.value} {primary_class.value}, {epithet}"


def compose_lore(primary_class: PrimaryClass, subclass: str, epithet: str) -> str:
    templates = LORE_TEMPLATES[primary_class]
    template = templates[(len(subclass) + len(epithet)) % len(templates)]
    return template.format(
        primary_class=primary_class.value, subclass=subclass, epithet=epithet
    )


def resolve_destiny(level: int, stats: StatBlock) -> Destiny:
    """Derive the full destiny for ``level`` and ``stats``."""

    level = max(1, int(level))
    ranked = rank_stats(stats)
    primary, secondary = ranked[0], ranked[1]
    primary_class = class_for_stats(primary, secondary)
    subclass = subclass_for(primary_class, secondary, level)
    tier = tier_for_level(level)
    epithet = epithet_for(tier, stats, level)
    return Destiny(
        primary_class=primary_class,
        subclass=subclass,
        epithet=epithet,
        title=compose_title(tier, primary_class, epithet),
        destiny_tier=tier,
        lore_description=compose_lore(primary_class, subclass, epithet),
    )


__all__ = [
    "EPITHET_POOLS",
    "LORE_TEMPLATES",
    "SUBCLASS_POOLS",
    "class_for_stats",
    "compose_lore",
    "compose_title",
    "epithet_for",
    "resolve_destiny",
    "subclass_for",
    "tier_for_level",
]
