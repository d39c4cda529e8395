"""Experience curves for the player and for individual scriptures."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple


class XpProgress(NamedTuple):
    """Progress inside the current level."""

    current: int
    needed: int
    percentage: float


# ---------------------------------------------------------------------------
# Player curve
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class QuoteXpBand:
    max_length: float
    xp: int


QUOTE_XP_BANDS: tuple[QuoteXpBand, ...] = (
    QuoteXpBand(80, 5),
    QuoteXpBand(200, 10),
    QuoteXpBand(400, 20),
    QuoteXpBand(math.inf, 40),
)


def xp_for_level(level: int) -> int:
    """Cumulative XP at which ``level`` is reached."""

    return 100 * level * level


def _search_level(total_xp: float, threshold) -> int:
    # Gallop to a bracket, then bisect; threshold(low) <= total_xp < threshold(high).
    if total_xp < threshold(2):
        return 1
    low, high = 2, 4
    while total_xp >= threshold(high):
        low, high = high, high * 2
    while high - low > 1:
        middle = (low + high) // 2
        if total_xp >= threshold(middle):
            low = middle
        else:
            high = middle
    return low


def level_from_xp(total_xp: float) -> int:
    """Return the highest level whose threshold ``total_xp`` has reached.

    Exact thresholds land on the new level, and level 1 is the floor for zero
    or negative totals.
    """

    return _search_level(total_xp, xp_for_level)


def _progress(total_xp: float, level: int, threshold) -> XpProgress:
    level = max(1, int(level))
    floor_xp = threshold(level)
    needed = threshold(level + 1) - floor_xp
    current = int(total_xp) - floor_xp
    percentage = (current / needed) * 100 if needed else 0.0
    return XpProgress(current=current, needed=needed, percentage=percentage)


def xp_progress(total_xp: float, level: int) -> XpProgress:
    return _progress(total_xp, level, xp_for_level)


def xp_for_quote(length: int) -> int:
    """XP awarded for reading a quote of ``length`` characters."""

    for band in QUOTE_XP_BANDS:
        if length <= band.max_length:
            return band.xp
    return QUOTE_XP_BANDS[-1].xp


# ---------------------------------------------------------------------------
# Scripture curve
# ---------------------------------------------------------------------------

SCRIPTURE_READ_XP = 10
SCRIPTURE_FOCUS_BONUS_XP = 5


def scripture_xp_for_level(level: int) -> int:
    return math.floor(200 * math.pow(level, 1.4))


def scripture_level_from_xp(total_xp: float) -> int:
    return _search_level(total_xp, scripture_xp_for_level)


def scripture_xp_progress(total_xp: float, level: int) -> XpProgress:
    return _progress(total_xp, level, scripture_xp_for_level)


def scripture_xp_for_read(in_focus: bool) -> int:
    if in_focus:
        return SCRIPTURE_READ_XP + SCRIPTURE_FOCUS_BONUS_XP
    return SCRIPTURE_READ_XP


class MasteryTier(str, Enum):
    """How well a single scripture has been read."""

    UNSEEN = "Unseen"
    TOUCHED = "Touched"
    FAMILIAR = "Familiar"
    STUDENT = "Student"
    SCHOLAR = "Scholar"
    KEEPER = "Keeper"
    LIVING_VOICE = "Living Voice"

    @classmethod
    def from_value(cls, value: "MasteryTier | str | None") -> "MasteryTier":
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == normalized:
                return member
        return cls.UNSEEN


@dataclass(frozen=True, slots=True)
class MasteryThreshold:
    below: float
    tier: MasteryTier


MASTERY_THRESHOLDS: tuple[MasteryThreshold, ...] = (
    MasteryThreshold(1, MasteryTier.UNSEEN),
    MasteryThreshold(50, MasteryTier.TOUCHED),
    MasteryThreshold(150, MasteryTier.FAMILIAR),
    MasteryThreshold(400, MasteryTier.STUDENT),
    MasteryThreshold(800, MasteryTier.SCHOLAR),
    MasteryThreshold(1500, MasteryTier.KEEPER),
    MasteryThreshold(math.inf, MasteryTier.LIVING_VOICE),
)


def mastery_tier(quotes_read: int) -> MasteryTier:
    count = max(0, int(quotes_read))
    for threshold in MASTERY_THRESHOLDS:
        if count < threshold.below:
            return threshold.tier
    return MasteryTier.LIVING_VOICE


__all__ = [
    "MasteryTier",
    "XpProgress",
    "level_from_xp",
    "mastery_tier",
    "scripture_level_from_xp",
    "scripture_xp_for_level",
    "scripture_xp_for_read",
    "scripture_xp_progress",
    "xp_for_level",
    "xp_for_quote",
    "xp_progress",
]
