"""Badge catalog and the persisted badge record."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ._validation import coerce_optional_str


class BadgeCategory(str, Enum):
    QUOTES = "quotes"
    FILES = "files"
    BOONS = "boons"
    STREAKS = "streaks"
    LEVEL = "level"
    DESTINY = "destiny"
    TIME = "time"
    SCRIPTURE = "scripture"


class BadgeTier(str, Enum):
    BRONZE = "Bronze"
    SILVER = "Silver"
    GOLD = "Gold"
    PLATINUM = "Platinum"
    MYTHIC = "Mythic"
    ASCENDED = "Ascended"
    ETERNAL = "Eternal"
    TRANSCENDENT = "Transcendent"


class BadgeMetric(str, Enum):
    """Counter a badge threshold is measured against."""

    QUOTES_READ = "quotes_read"
    FILES_UPLOADED = "files_uploaded"
    BOONS_OWNED = "boons_owned"
    RARE_BOONS = "rare_boons"
    LEGENDARY_BOONS = "legendary_boons"
    STREAK_DAYS = "streak_days"
    LEVEL = "level"
    DESTINY_TIER = "destiny_tier"
    QUESTING_MINUTES = "questing_minutes"


@dataclass(frozen=True, slots=True)
class BadgeDefinition:
    id: str
    name: str
    description: str
    category: BadgeCategory
    tier: BadgeTier
    metric: BadgeMetric
    requirement: int
    xp_reward: int


_Q = BadgeCategory
_T = BadgeTier
_M = BadgeMetric

BADGE_CATALOG: tuple[BadgeDefinition, ...] = (
    BadgeDefinition("quotes_10", "First Verses", "Read 10 quotes.", _Q.QUOTES, _T.BRONZE, _M.QUOTES_READ, 10, 50),
    BadgeDefinition("quotes_100", "Devoted Reader", "Read 100 quotes.", _Q.QUOTES, _T.SILVER, _M.QUOTES_READ, 100, 150),
    BadgeDefinition("quotes_1000", "Keeper of Words", "Read 1,000 quotes.", _Q.QUOTES, _T.GOLD, _M.QUOTES_READ, 1000, 500),
    BadgeDefinition("quotes_5000", "Living Library", "Read 5,000 quotes.", _Q.QUOTES, _T.PLATINUM, _M.QUOTES_READ, 5000, 1500),
    BadgeDefinition("quotes_10000", "Voice of Ages", "Read 10,000 quotes.", _Q.QUOTES, _T.MYTHIC, _M.QUOTES_READ, 10000, 3000),
    BadgeDefinition("files_5", "Gatherer of Scrolls", "Upload 5 scriptures.", _Q.FILES, _T.BRONZE, _M.FILES_UPLOADED, 5, 50),
    BadgeDefinition("files_10", "Shelf Builder", "Upload 10 scriptures.", _Q.FILES, _T.SILVER, _M.FILES_UPLOADED, 10, 100),
    BadgeDefinition("files_25", "Archive Warden", "Upload 25 scriptures.", _Q.FILES, _T.GOLD, _M.FILES_UPLOADED, 25, 250),
    BadgeDefinition("files_50", "Hall of Tomes", "Upload 50 scriptures.", _Q.FILES, _T.PLATINUM, _M.FILES_UPLOADED, 50, 500),
    BadgeDefinition("files_100", "Great Library", "Upload 100 scriptures.", _Q.FILES, _T.MYTHIC, _M.FILES_UPLOADED, 100, 1000),
    BadgeDefinition("boons_10", "Pocketful of Wonders", "Collect 10 boons.", _Q.BOONS, _T.BRONZE, _M.BOONS_OWNED, 10, 50),
    BadgeDefinition("boons_50", "Treasure Seeker", "Collect 50 boons.", _Q.BOONS, _T.SILVER, _M.BOONS_OWNED, 50, 150),
    BadgeDefinition("boons_100", "Vault Keeper", "Collect 100 boons.", _Q.BOONS, _T.GOLD, _M.BOONS_OWNED, 100, 300),
    BadgeDefinition("boons_250", "Hoard of Ages", "Collect 250 boons.", _Q.BOONS, _T.PLATINUM, _M.BOONS_OWNED, 250, 750),
    BadgeDefinition("boons_500", "Endless Reliquary", "Collect 500 boons.", _Q.BOONS, _T.MYTHIC, _M.BOONS_OWNED, 500, 1500),
    BadgeDefinition("rare_1", "First Glimmer", "Find a rare or better boon.", _Q.BOONS, _T.BRONZE, _M.RARE_BOONS, 1, 50),
    BadgeDefinition("rare_10", "Gleaming Cache", "Find 10 rare or better boons.", _Q.BOONS, _T.SILVER, _M.RARE_BOONS, 10, 150),
    BadgeDefinition("rare_25", "Radiant Collection", "Find 25 rare or better boons.", _Q.BOONS, _T.GOLD, _M.RARE_BOONS, 25, 400),
    BadgeDefinition("rare_50", "Jeweled Sanctum", "Find 50 rare or better boons.", _Q.BOONS, _T.PLATINUM, _M.RARE_BOONS, 50, 800),
    BadgeDefinition("rare_100", "Crown of Rarities", "Find 100 rare or better boons.", _Q.BOONS, _T.MYTHIC, _M.RARE_BOONS, 100, 1500),
    BadgeDefinition("legendary_1", "Touched by Legend", "Find a legendary boon.", _Q.BOONS, _T.GOLD, _M.LEGENDARY_BOONS, 1, 500),
    BadgeDefinition("legendary_3", "Legend Gatherer", "Find 3 legendary boons.", _Q.BOONS, _T.PLATINUM, _M.LEGENDARY_BOONS, 3, 1000),
    BadgeDefinition("legendary_5", "Mythmaker", "Find 5 legendary boons.", _Q.BOONS, _T.MYTHIC, _M.LEGENDARY_BOONS, 5, 2000),
    BadgeDefinition("legendary_10", "Chosen of Legends", "Find 10 legendary boons.", _Q.BOONS, _T.ASCENDED, _M.LEGENDARY_BOONS, 10, 4000),
    BadgeDefinition("legendary_20", "Legend Incarnate", "Find 20 legendary boons.", _Q.BOONS, _T.ETERNAL, _M.LEGENDARY_BOONS, 20, 8000),
    BadgeDefinition("streak_7", "Week of Light", "Read 7 days in a row.", _Q.STREAKS, _T.BRONZE, _M.STREAK_DAYS, 7, 100),
    BadgeDefinition("streak_30", "Moon of Devotion", "Read 30 days in a row.", _Q.STREAKS, _T.SILVER, _M.STREAK_DAYS, 30, 300),
    BadgeDefinition("streak_100", "Hundredfold Flame", "Read 100 days in a row.", _Q.STREAKS, _T.GOLD, _M.STREAK_DAYS, 100, 1000),
    BadgeDefinition("streak_365", "Year of the Word", "Read 365 days in a row.", _Q.STREAKS, _T.MYTHIC, _M.STREAK_DAYS, 365, 5000),
    BadgeDefinition("level_25", "Awakened", "Reach level 25.", _Q.LEVEL, _T.BRONZE, _M.LEVEL, 25, 250),
    BadgeDefinition("level_50", "Ascending Soul", "Reach level 50.", _Q.LEVEL, _T.SILVER, _M.LEVEL, 50, 500),
    BadgeDefinition("level_100", "Centurion of Wisdom", "Reach level 100.", _Q.LEVEL, _T.GOLD, _M.LEVEL, 100, 1000),
    BadgeDefinition("level_150", "Luminous Elder", "Reach level 150.", _Q.LEVEL, _T.PLATINUM, _M.LEVEL, 150, 2000),
    BadgeDefinition("level_200", "Beyond the Veil", "Reach level 200.", _Q.LEVEL, _T.MYTHIC, _M.LEVEL, 200, 4000),
    BadgeDefinition("destiny_disciple", "Disciple of Destiny", "Reach the Adept destiny tier.", _Q.DESTINY, _T.BRONZE, _M.DESTINY_TIER, 1, 100),
    BadgeDefinition("destiny_adept", "Adept of the Path", "Reach the Adept destiny tier.", _Q.DESTINY, _T.SILVER, _M.DESTINY_TIER, 1, 250),
    BadgeDefinition("destiny_master", "Master of Fate", "Reach the Elite destiny tier.", _Q.DESTINY, _T.GOLD, _M.DESTINY_TIER, 3, 750),
    BadgeDefinition("destiny_mythic", "Mythic Destiny", "Reach the Mythic destiny tier.", _Q.DESTINY, _T.PLATINUM, _M.DESTINY_TIER, 4, 2000),
    BadgeDefinition("time_30", "Half an Hour of Stillness", "Quest for 30 minutes.", _Q.TIME, _T.BRONZE, _M.QUESTING_MINUTES, 30, 50),
    BadgeDefinition("time_120", "Two Hours in the Light", "Quest for 2 hours.", _Q.TIME, _T.SILVER, _M.QUESTING_MINUTES, 120, 150),
    BadgeDefinition("time_360", "Pilgrim of Hours", "Quest for 6 hours.", _Q.TIME, _T.GOLD, _M.QUESTING_MINUTES, 360, 400),
    BadgeDefinition("time_1200", "Keeper of the Long Watch", "Quest for 20 hours.", _Q.TIME, _T.PLATINUM, _M.QUESTING_MINUTES, 1200, 1000),
    BadgeDefinition("time_3000", "Timeless Seeker", "Quest for 50 hours.", _Q.TIME, _T.MYTHIC, _M.QUESTING_MINUTES, 3000, 2500),
)

BADGE_DEFINITIONS: Mapping[str, BadgeDefinition] = {
    definition.id: definition for definition in BADGE_CATALOG
}


@dataclass(slots=True)
class Badge:
    """A catalog badge together with its unlock state."""

    definition: BadgeDefinition
    unlocked: bool = False
    date_unlocked: Optional[str] = None

    def __post_init__(self) -> None:
        self.unlocked = bool(self.unlocked)
        self.date_unlocked = coerce_optional_str(self.date_unlocked) if self.unlocked else None

    @property
    def id(self) -> str:
        return self.definition.id

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def xp_reward(self) -> int:
        return self.definition.xp_reward

    def unlock(self, timestamp: str) -> bool:
        """Mark the badge unlocked; returns ``False`` if it already was."""

        if self.unlocked:
            return False
        self.unlocked = True
        self.date_unlocked = timestamp
        return True

    def to_mapping(self) -> Dict[str, Any]:
        definition = self.definition
        return {
            "id": definition.id,
            "name": definition.name,
            "description": definition.description,
            "category": definition.category.value,
            "tier": definition.tier.value,
            "requirement": definition.requirement,
            "xp_reward": definition.xp_reward,
            "unlocked": self.unlocked,
            "date_unlocked": self.date_unlocked,
        }


def build_badge_catalog(saved: Iterable[Any] | None = None) -> List[Badge]:
    """Return the full catalog with unlock state merged from ``saved``.

    Entries whose id is not in the catalog are ignored, and only unlocked
    entries carry state over, so a malformed save can never lock a badge.
    """

    unlocked: dict[str, Optional[str]] = {}
    for entry in saved or ():
        if isinstance(entry, Badge):
            if entry.unlocked:
                unlocked[entry.id] = entry.date_unlocked
            continue
        if not isinstance(entry, Mapping):
            continue
        badge_id = str(entry.get("id", ""))
        if badge_id in BADGE_DEFINITIONS and entry.get("unlocked") is True:
            unlocked[badge_id] = coerce_optional_str(entry.get("date_unlocked"))
    return [
        Badge(
            definition,
            unlocked=definition.id in unlocked,
            date_unlocked=unlocked.get(definition.id),
        )
        for definition in BADGE_CATALOG
    ]


__all__ = [
    "BADGE_CATALOG",
    "BADGE_DEFINITIONS",
    "Badge",
    "BadgeCategory",
    "BadgeDefinition",
    "BadgeMetric",
    "BadgeTier",
    "build_badge_catalog",
]
