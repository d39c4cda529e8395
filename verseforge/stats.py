"""Derived character statistics."""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping

from .models.loot import STAT_NAMES, StatBlock

# Earlier entries win ties when ranking stats.
STAT_PRIORITY: tuple[str, ...] = (
    "wonder",
    "clarity",
    "insight",
    "devotion",
    "focus",
    "fortune",
    "endurance",
)

ENDURANCE_MINUTES_PER_POINT = 30


def compute_stats(
    level: int,
    equipped: Iterable[StatBlock | Mapping[str, Any]] = (),
    time_invested_minutes: int = 0,
) -> StatBlock:
    """Build a fresh character sheet.

    Every stat but endurance starts at half the level (rounded down, level
    floored at 1).  Equipped bonuses are added on top and endurance gains a
    point per thirty minutes invested.
    """

    base = max(1, int(level)) // 2
    stats = StatBlock(**{name: base for name in STAT_NAMES if name != "endurance"})
    for bonuses in equipped:
        stats.add_in_place(bonuses)
    minutes = max(0, int(time_invested_minutes))
    stats.endurance += minutes // ENDURANCE_MINUTES_PER_POINT
    return stats


def rank_stats(stats: StatBlock, *, exclude: Iterable[str] = ()) -> List[str]:
    """Stat names from strongest to weakest, ties broken by ``STAT_PRIORITY``."""

    skipped = set(exclude)
    names = [name for name in STAT_PRIORITY if name not in skipped]
    return sorted(names, key=lambda name: (-stats.get(name), STAT_PRIORITY.index(name)))


def dominant_stat(stats: StatBlock) -> str:
    return rank_stats(stats)[0]


__all__ = [
    "ENDURANCE_MINUTES_PER_POINT",
    "STAT_PRIORITY",
    "compute_stats",
    "dominant_stat",
    "rank_stats",
]
