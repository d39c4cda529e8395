"""The player progression aggregate and the records it owns."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence

from ..leveling import (
    MasteryTier,
    level_from_xp,
    mastery_tier as mastery_for_reads,
    scripture_level_from_xp,
)
from ._validation import ModelValidationError, coerce_int, coerce_optional_str
from .achievements import Badge, build_badge_catalog
from .loot import Boon, EquipSlot, Rarity


STOCK_FILE_PREFIX = "stock_"


class PrimaryClass(str, Enum):
    FATEWEAVER = "Fateweaver"
    LOREKEEPER = "Lorekeeper"
    DEVOTION_SAGE = "Devotion Sage"
    SOULWANDERER = "Soulwanderer"
    LIGHTBEARER = "Lightbearer"
    MINDFORGED = "Mindforged"
    FORTUNEBOUND = "Fortunebound"
    ENDUREBORN = "Endureborn"

    @classmethod
    def from_value(cls, value: "PrimaryClass | str | None") -> "PrimaryClass | None":
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == normalized:
                return member
        return None


class DestinyTier(str, Enum):
    """Destiny tiers in ascending order."""

    INITIATE = "Initiate"
    ADEPT = "Adept"
    RISING = "Rising"
    ELITE = "Elite"
    MYTHIC = "Mythic"
    ASCENDED = "Ascended"
    ETERNAL = "Eternal"
    TRANSCENDENT = "Transcendent"
    PARAGON = "Paragon"

    @classmethod
    def from_value(cls, value: "DestinyTier | str | None") -> "DestinyTier":
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == normalized:
                return member
        return cls.INITIATE

    @property
    def rank(self) -> int:
        return list(DestinyTier).index(self)


@dataclass(slots=True)
class Destiny:
    primary_class: PrimaryClass
    subclass: str
    epithet: str
    title: str
    destiny_tier: DestinyTier
    lore_description: str

    def to_mapping(self) -> Dict[str, str]:
        return {
            "primary_class": self.primary_class.value,
            "subclass": self.subclass,
            "epithet": self.epithet,
            "title": self.title,
            "destiny_tier": self.destiny_tier.value,
            "lore_description": self.lore_description,
        }

    @classmethod
    def from_mapping(cls, data: Any) -> Optional["Destiny"]:
        """Rebuild a cached destiny; anything without a class is discarded."""

        if isinstance(data, Destiny):
            return data
        if not isinstance(data, Mapping):
            return None
        primary = PrimaryClass.from_value(data.get("primary_class"))
        if primary is None:
            return None
        return cls(
            primary_class=primary,
            subclass=str(data.get("subclass") or ""),
            epithet=str(data.get("epithet") or ""),
            title=str(data.get("title") or ""),
            destiny_tier=DestinyTier.from_value(data.get("destiny_tier")),
            lore_description=str(data.get("lore_description") or ""),
        )


@dataclass(slots=True)
class Quote:
    """A single parsed quote; never mutated once created."""

    id: str
    text: str
    source_label: str = ""
    index: int = 0
    length: int = -1
    file_id: Optional[str] = None

    def __post_init__(self) -> None:
        self.id = str(self.id)
        self.text = str(self.text or "")
        self.source_label = str(self.source_label or "")
        self.index = coerce_int(self.index, 0, minimum=0)
        length = coerce_int(self.length, -1)
        self.length = length if length >= 0 else len(self.text)
        self.file_id = coerce_optional_str(self.file_id)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Quote":
        return cls(
            id=data.get("id", ""),
            text=data.get("text", ""),
            source_label=data.get("source_label", data.get("file_name", "")),
            index=data.get("index", 0),
            length=data.get("length", -1),
            file_id=data.get("file_id"),
        )

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "source_label": self.source_label,
            "index": self.index,
            "length": self.length,
            "file_id": self.file_id,
        }


@dataclass(slots=True)
class Scripture:
    """An uploaded text and the quotes parsed from it."""

    file_id: str
    file_name: str
    quotes: List[Quote] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Scripture":
        file_id = str(data.get("file_id") or "")
        file_name = str(data.get("file_name") or file_id)
        quotes: List[Quote] = []
        for entry in data.get("quotes") or ():
            if isinstance(entry, Quote):
                quotes.append(entry)
            elif isinstance(entry, Mapping) and entry.get("text"):
                quote = Quote.from_mapping(entry)
                quote.file_id = file_id
                quotes.append(quote)
        return cls(file_id=file_id, file_name=file_name, quotes=quotes)

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "file_id": self.file_id,
            "file_name": self.file_name,
            "quotes": [quote.to_mapping() for quote in self.quotes],
        }


@dataclass(slots=True)
class ScriptureStats:
    """Per-scripture progression."""

    file_id: str
    display_name: str
    quotes_read: int = 0
    focus_sessions: int = 0
    focus_quotes_read: int = 0
    local_xp: int = 0
    local_level: int = 1
    mastery_tier: MasteryTier = MasteryTier.UNSEEN
    time_spent_minutes: int = 0

    def __post_init__(self) -> None:
        self.file_id = str(self.file_id)
        self.display_name = str(self.display_name or self.file_id)
        self.quotes_read = coerce_int(self.quotes_read, 0, minimum=0)
        self.focus_sessions = coerce_int(self.focus_sessions, 0, minimum=0)
        self.focus_quotes_read = coerce_int(self.focus_quotes_read, 0, minimum=0)
        self.local_xp = coerce_int(self.local_xp, 0, minimum=0)
        self.time_spent_minutes = coerce_int(self.time_spent_minutes, 0, minimum=0)
        # Derived fields always follow the counters.
        self.local_level = scripture_level_from_xp(self.local_xp)
        self.mastery_tier = mastery_for_reads(self.quotes_read)

    def record_read(self, local_xp: int, *, in_focus: bool) -> None:
        self.quotes_read += 1
        if in_focus:
            self.focus_quotes_read += 1
        self.local_xp += max(0, int(local_xp))
        self.local_level = scripture_level_from_xp(self.local_xp)
        self.mastery_tier = mastery_for_reads(self.quotes_read)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, file_id: str | None = None) -> "ScriptureStats":
        key = file_id if file_id is not None else data.get("file_id", "")
        return cls(
            file_id=key,
            display_name=data.get("display_name") or data.get("file_name") or key,
            quotes_read=data.get("quotes_read", 0),
            focus_sessions=data.get("focus_sessions", 0),
            focus_quotes_read=data.get("focus_quotes_read", 0),
            local_xp=data.get("local_xp", 0),
            time_spent_minutes=data.get("time_spent_minutes", 0),
        )

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "file_id": self.file_id,
            "display_name": self.display_name,
            "quotes_read": self.quotes_read,
            "focus_sessions": self.focus_sessions,
            "focus_quotes_read": self.focus_quotes_read,
            "local_xp": self.local_xp,
            "local_level": self.local_level,
            "mastery_tier": self.mastery_tier.value,
            "time_spent_minutes": self.time_spent_minutes,
        }


class FocusMode(str, Enum):
    ALL = "all"
    FOCUS = "focus"


@dataclass(slots=True)
class FocusState:
    mode: FocusMode = FocusMode.ALL
    focused_file_id: Optional[str] = None

    def __post_init__(self) -> None:
        mode = str(getattr(self.mode, "value", self.mode) or "").strip().lower()
        self.focused_file_id = coerce_optional_str(self.focused_file_id)
        if mode == FocusMode.FOCUS.value and self.focused_file_id:
            self.mode = FocusMode.FOCUS
        else:
            self.mode = FocusMode.ALL
            self.focused_file_id = None

    @property
    def key(self) -> str:
        if self.mode is FocusMode.FOCUS:
            return f"focus:{self.focused_file_id}"
        return FocusMode.ALL.value

    def is_focused_on(self, file_id: str | None) -> bool:
        return self.mode is FocusMode.FOCUS and file_id is not None and self.focused_file_id == file_id

    @classmethod
    def from_value(cls, value: Any) -> "FocusState":
        """Accept a state, a mapping, ``"all"`` or ``"focus:<file_id>"``."""

        if isinstance(value, FocusState):
            return cls(value.mode, value.focused_file_id)
        if isinstance(value, Mapping):
            return cls(value.get("mode", FocusMode.ALL), value.get("focused_file_id"))
        if isinstance(value, str) and ":" in value:
            mode, _, file_id = value.partition(":")
            return cls(mode, file_id)
        return cls()

    def to_mapping(self) -> Dict[str, Any]:
        return {"mode": self.mode.value, "focused_file_id": self.focused_file_id}


@dataclass(slots=True)
class PlayerProgress:
    """Everything the forge knows about its single player."""

    xp: int = 0
    level: int = 1
    total_quotes_read: int = 0
    files_uploaded: int = 0
    streak_days: int = 0
    last_read_date: Optional[str] = None
    total_questing_minutes: int = 0
    total_raiding_minutes: int = 0
    boons: List[Boon] = field(default_factory=list)
    equipment: Dict[str, str] = field(default_factory=dict)
    badges: List[Badge] = field(default_factory=build_badge_catalog)
    destiny: Optional[Destiny] = None
    scriptures: List[Scripture] = field(default_factory=list)
    scripture_stats: Dict[str, ScriptureStats] = field(default_factory=dict)
    focus: FocusState = field(default_factory=FocusState)
    has_onboarded: bool = False
    profile_picture: Optional[str] = None
    character_card_image_url: Optional[str] = None
    last_card_generated_at: Optional[str] = None
    item_art_generation_count_today: int = 0
    item_art_generation_date: Optional[str] = None

    def __post_init__(self) -> None:
        self.xp = coerce_int(self.xp, 0, minimum=0)
        self.level = level_from_xp(self.xp)
        self.total_quotes_read = coerce_int(self.total_quotes_read, 0, minimum=0)
        self.files_uploaded = coerce_int(self.files_uploaded, 0, minimum=0)
        self.streak_days = coerce_int(self.streak_days, 0, minimum=0)
        self.last_read_date = coerce_optional_str(self.last_read_date)
        self.total_questing_minutes = coerce_int(self.total_questing_minutes, 0, minimum=0)
        self.total_raiding_minutes = coerce_int(self.total_raiding_minutes, 0, minimum=0)
        self.has_onboarded = bool(self.has_onboarded)
        self.profile_picture = coerce_optional_str(self.profile_picture)
        self.character_card_image_url = coerce_optional_str(self.character_card_image_url)
        self.last_card_generated_at = coerce_optional_str(self.last_card_generated_at)
        self.item_art_generation_count_today = coerce_int(
            self.item_art_generation_count_today, 0, minimum=0
        )
        self.item_art_generation_date = coerce_optional_str(self.item_art_generation_date)
        self.equipment = _clean_equipment(self.equipment, self.boons)
        if not self.focus_target_exists(self.focus.focused_file_id):
            self.focus = FocusState()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_boon(self, boon_id: str | None) -> Optional[Boon]:
        if not boon_id:
            return None
        for boon in self.boons:
            if boon.id == boon_id:
                return boon
        return None

    def find_scripture(self, file_id: str | None) -> Optional[Scripture]:
        if not file_id:
            return None
        for scripture in self.scriptures:
            if scripture.file_id == file_id:
                return scripture
        return None

    def focus_target_exists(self, file_id: str | None) -> bool:
        if file_id is None:
            return True
        return file_id.startswith(STOCK_FILE_PREFIX) or self.find_scripture(file_id) is not None

    def all_quotes(self) -> List[Quote]:
        return [quote for scripture in self.scriptures for quote in scripture.quotes]

    def equipped_boons(self) -> List[Boon]:
        """Equipped boons in slot order, skipping ids that no longer resolve."""

        equipped: List[Boon] = []
        for slot in EquipSlot:
            boon = self.find_boon(self.equipment.get(slot.value))
            if boon is not None:
                equipped.append(boon)
        return equipped

    def equipment_view(self) -> Dict[str, Optional[str]]:
        return {slot.value: self.equipment.get(slot.value) for slot in EquipSlot}

    def count_boons(self, minimum: Rarity = Rarity.COMMON) -> int:
        return sum(1 for boon in self.boons if boon.rarity.at_least(minimum))

    def iter_unlocked_badges(self) -> Iterator[Badge]:
        return (badge for badge in self.badges if badge.unlocked)

    # ------------------------------------------------------------------
    # Snapshot contract
    # ------------------------------------------------------------------

    @classmethod
    def from_snapshot(cls, data: Any) -> "PlayerProgress":
        """Hydrate from a stored snapshot, coercing every field once.

        A missing or non-mapping snapshot yields a fresh player.  Malformed
        entries are dropped rather than failing the whole load.
        """

        if not isinstance(data, Mapping):
            return cls()

        scriptures = [
            Scripture.from_mapping(entry)
            for entry in _sequence(data.get("scriptures"))
            if isinstance(entry, Mapping) and entry.get("file_id")
        ]

        stats: Dict[str, ScriptureStats] = {}
        raw_stats = data.get("scripture_stats")
        if isinstance(raw_stats, Mapping):
            for key, entry in raw_stats.items():
                if isinstance(entry, Mapping):
                    stats[str(key)] = ScriptureStats.from_mapping(entry, file_id=str(key))

        raw_equipment = data.get("equipment")
        return cls(
            xp=data.get("xp", 0),
            total_quotes_read=data.get("total_quotes_read", 0),
            files_uploaded=data.get("files_uploaded", 0),
            streak_days=data.get("streak_days", 0),
            last_read_date=data.get("last_read_date"),
            total_questing_minutes=data.get("total_questing_minutes", 0),
            total_raiding_minutes=data.get("total_raiding_minutes", 0),
            boons=_load_boons(data.get("boons")),
            equipment=dict(raw_equipment) if isinstance(raw_equipment, Mapping) else {},
            badges=build_badge_catalog(_sequence(data.get("badges"))),
            destiny=Destiny.from_mapping(data.get("destiny")),
            scriptures=scriptures,
            scripture_stats=stats,
            focus=FocusState.from_value(data.get("focus")),
            has_onboarded=data.get("has_onboarded", False),
            profile_picture=data.get("profile_picture"),
            character_card_image_url=data.get("character_card_image_url"),
            last_card_generated_at=data.get("last_card_generated_at"),
            item_art_generation_count_today=data.get("item_art_generation_count_today", 0),
            item_art_generation_date=data.get("item_art_generation_date"),
        )

    def snapshot(self) -> Dict[str, Any]:
        return {
            "xp": self.xp,
            "level": self.level,
            "total_quotes_read": self.total_quotes_read,
            "files_uploaded": self.files_uploaded,
            "streak_days": self.streak_days,
            "last_read_date": self.last_read_date,
            "total_questing_minutes": self.total_questing_minutes,
            "total_raiding_minutes": self.total_raiding_minutes,
            "boons": [boon.to_mapping() for boon in self.boons],
            "equipment": dict(self.equipment),
            "badges": [badge.to_mapping() for badge in self.badges],
            "destiny": self.destiny.to_mapping() if self.destiny else None,
            "scriptures": [scripture.to_mapping() for scripture in self.scriptures],
            "scripture_stats": {
                key: stats.to_mapping() for key, stats in self.scripture_stats.items()
            },
            "focus": self.focus.to_mapping(),
            "has_onboarded": self.has_onboarded,
            "profile_picture": self.profile_picture,
            "character_card_image_url": self.character_card_image_url,
            "last_card_generated_at": self.last_card_generated_at,
            "item_art_generation_count_today": self.item_art_generation_count_today,
            "item_art_generation_date": self.item_art_generation_date,
        }


def _sequence(value: Any) -> Sequence[Any]:
    if isinstance(value, (list, tuple)):
        return value
    return ()


def _load_boons(entries: Any) -> List[Boon]:
    boons: List[Boon] = []
    seen: set[str] = set()
    for entry in _sequence(entries):
        if isinstance(entry, Boon):
            boon = entry
        elif isinstance(entry, Mapping):
            try:
                boon = Boon.from_dict(entry)
            except ModelValidationError:
                continue
        else:
            continue
        if boon.id in seen:
            continue
        seen.add(boon.id)
        boons.append(boon)
    return boons


def _clean_equipment(equipment: Any, boons: Iterable[Boon]) -> Dict[str, str]:
    """Keep only slots that point at an owned boon of the matching slot."""

    if not isinstance(equipment, Mapping):
        return {}
    by_id = {boon.id: boon for boon in boons}
    cleaned: Dict[str, str] = {}
    for slot in EquipSlot:
        boon_id = equipment.get(slot.value)
        boon = by_id.get(str(boon_id)) if boon_id else None
        if boon is not None and boon.equip_slot is slot:
            cleaned[slot.value] = boon.id
    return cleaned


__all__ = [
    "Destiny",
    "DestinyTier",
    "FocusMode",
    "FocusState",
    "PlayerProgress",
    "PrimaryClass",
    "Quote",
    "STOCK_FILE_PREFIX",
    "Scripture",
    "ScriptureStats",
]
