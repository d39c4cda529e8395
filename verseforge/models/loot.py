"""Loot domain models: rarities, item archetypes, stat blocks and boons."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

from ._validation import (
    FieldSpec,
    MappingSpec,
    ModelValidator,
    coerce_int,
    coerce_optional_str,
    is_non_empty_str,
    validate_dataclass_payload,
)


class Rarity(str, Enum):
    """Loot rarity tiers ordered from most to least common."""

    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"

    @classmethod
    def from_value(
        cls, value: "Rarity | str | None", *, default: "Rarity | None" = None
    ) -> "Rarity":
        if isinstance(value, cls):
            return value
        if value is not None:
            normalized = str(value).strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        if default is not None:
            return default
        raise ValueError(f"Unknown rarity: {value}")

    @property
    def rank(self) -> int:
        return _RARITY_ORDER.index(self)

    @property
    def label(self) -> str:
        return self.value.capitalize()

    def at_least(self, other: "Rarity") -> bool:
        return self.rank >= other.rank


_RARITY_ORDER: Tuple[Rarity, ...] = tuple(Rarity)


class EquipSlot(str, Enum):
    """The six equipment slots, in display order."""

    HEAD = "head"
    HANDS = "hands"
    HEART = "heart"
    MIND = "mind"
    LIGHT = "light"
    RELIC = "relic"

    @classmethod
    def from_value(cls, value: "EquipSlot | str | None") -> "EquipSlot":
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        raise ValueError(f"Unknown equipment slot: {value}")


class ItemType(str, Enum):
    """Archetypes a boon can take."""

    RING = "ring"
    AMULET = "amulet"
    CROWN = "crown"
    LAMP = "lamp"
    QUILL = "quill"
    MIRROR = "mirror"
    KEY = "key"
    TOME = "tome"
    SIGIL = "sigil"
    STAFF = "staff"
    ORB = "orb"
    SCROLL = "scroll"
    CLOAK = "cloak"
    RUNE = "rune"
    BLADE = "blade"
    CHALICE = "chalice"
    COMPASS = "compass"
    LANTERN = "lantern"
    TABLET = "tablet"
    RELIC = "relic"

    @classmethod
    def from_value(
        cls, value: "ItemType | str | None", *, default: "ItemType | None" = None
    ) -> "ItemType":
        if isinstance(value, cls):
            return value
        if value is not None:
            normalized = str(value).strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        if default is not None:
            return default
        raise ValueError(f"Unknown item type: {value}")

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def slot(self) -> EquipSlot:
        return ITEM_SLOTS[self]


ITEM_SLOTS: Mapping[ItemType, EquipSlot] = MappingProxyType(
    {
        ItemType.RING: EquipSlot.HANDS,
        ItemType.QUILL: EquipSlot.HANDS,
        ItemType.BLADE: EquipSlot.HANDS,
        ItemType.CROWN: EquipSlot.HEAD,
        ItemType.AMULET: EquipSlot.HEART,
        ItemType.CLOAK: EquipSlot.HEART,
        ItemType.SIGIL: EquipSlot.HEART,
        ItemType.TOME: EquipSlot.MIND,
        ItemType.SCROLL: EquipSlot.MIND,
        ItemType.TABLET: EquipSlot.MIND,
        ItemType.LAMP: EquipSlot.LIGHT,
        ItemType.LANTERN: EquipSlot.LIGHT,
        ItemType.ORB: EquipSlot.LIGHT,
        ItemType.MIRROR: EquipSlot.LIGHT,
        ItemType.STAFF: EquipSlot.RELIC,
        ItemType.CHALICE: EquipSlot.RELIC,
        ItemType.KEY: EquipSlot.RELIC,
        ItemType.RUNE: EquipSlot.RELIC,
        ItemType.COMPASS: EquipSlot.RELIC,
        ItemType.RELIC: EquipSlot.RELIC,
    }
)


STAT_NAMES: tuple[str, ...] = (
    "insight",
    "devotion",
    "focus",
    "wonder",
    "clarity",
    "fortune",
    "endurance",
)


@dataclass(slots=True)
class StatBlock:
    """Seven non-negative stats shared by boon bonuses and character sheets."""

    insight: int = 0
    devotion: int = 0
    focus: int = 0
    wonder: int = 0
    clarity: int = 0
    fortune: int = 0
    endurance: int = 0

    def __post_init__(self) -> None:
        for name in STAT_NAMES:
            setattr(self, name, coerce_int(getattr(self, name), 0, minimum=0))

    def copy(self) -> "StatBlock":
        return StatBlock(**self.to_mapping())

    def to_mapping(self) -> Dict[str, int]:
        return {name: getattr(self, name) for name in STAT_NAMES}

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any] | None) -> "StatBlock":
        if isinstance(mapping, StatBlock):
            return mapping.copy()
        if not isinstance(mapping, Mapping):
            return cls()
        return cls(**{name: mapping.get(name, 0) for name in STAT_NAMES})

    def items(self) -> Iterator[tuple[str, int]]:
        for name in STAT_NAMES:
            yield name, getattr(self, name)

    def get(self, key: str, default: int = 0) -> int:
        if key in STAT_NAMES:
            return getattr(self, key)
        return default

    def total(self) -> int:
        return sum(value for _, value in self.items())

    def add_in_place(self, other: "StatBlock | Mapping[str, Any]") -> None:
        other_block = other if isinstance(other, StatBlock) else StatBlock.from_mapping(other)
        for name in STAT_NAMES:
            setattr(self, name, getattr(self, name) + getattr(other_block, name))


@dataclass(slots=True)
class Boon:
    """A loot item acquired while reading."""

    id: str
    name: str
    rarity: Rarity
    item_type: ItemType
    description: str = ""
    acquired_at: str = ""
    stat_bonuses: StatBlock = field(default_factory=StatBlock)
    equip_slot: Optional[EquipSlot] = None
    theme_tag: Optional[str] = None
    image_url: Optional[str] = None
    image_generated_at: Optional[str] = None

    def __post_init__(self) -> None:
        self.id = str(self.id)
        self.name = str(self.name or "").strip() or "Nameless Relic"
        self.rarity = Rarity.from_value(self.rarity, default=Rarity.COMMON)
        self.item_type = ItemType.from_value(self.item_type, default=ItemType.RELIC)
        # Slot always follows the archetype, whatever was stored.
        self.equip_slot = self.item_type.slot
        self.description = str(self.description or "")
        self.acquired_at = str(self.acquired_at or "")
        if not isinstance(self.stat_bonuses, StatBlock):
            self.stat_bonuses = StatBlock.from_mapping(self.stat_bonuses)
        self.theme_tag = coerce_optional_str(self.theme_tag)
        self.image_url = coerce_optional_str(self.image_url)
        self.image_generated_at = coerce_optional_str(self.image_generated_at)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Boon":
        payload = validate_dataclass_payload(cls, data)
        allowed_keys = {item.name for item in fields(cls)}
        for key in list(payload):
            if key not in allowed_keys:
                payload.pop(key, None)
        return cls(**payload)

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "rarity": self.rarity.value,
            "item_type": self.item_type.value,
            "equip_slot": self.item_type.slot.value,
            "acquired_at": self.acquired_at,
            "stat_bonuses": self.stat_bonuses.to_mapping(),
            "theme_tag": self.theme_tag,
            "image_url": self.image_url,
            "image_generated_at": self.image_generated_at,
        }


class BoonValidator(ModelValidator):
    model = Boon
    fields = {
        "id": FieldSpec(is_non_empty_str, "a non-empty string id"),
        "name": FieldSpec(str, "a string name"),
        "rarity": FieldSpec((Rarity, str), "a rarity identifier"),
        "item_type": FieldSpec((ItemType, str), "an item type identifier"),
        "description": FieldSpec(str, "a string description", required=False, allow_none=True),
        "acquired_at": FieldSpec(str, "an ISO timestamp", required=False, allow_none=True),
        "stat_bonuses": FieldSpec(
            (StatBlock, MappingSpec(str, (int, float))),
            "stat bonuses mapping",
            required=False,
        ),
        "theme_tag": FieldSpec(str, "a theme tag", required=False, allow_none=True),
        "image_url": FieldSpec(str, "an image URI", required=False, allow_none=True),
        "image_generated_at": FieldSpec(
            str, "an ISO timestamp", required=False, allow_none=True
        ),
    }


Boon.validator = BoonValidator


__all__ = [
    "Boon",
    "BoonValidator",
    "EquipSlot",
    "ITEM_SLOTS",
    "ItemType",
    "Rarity",
    "STAT_NAMES",
    "StatBlock",
]
