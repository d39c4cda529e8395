"""Achievement evaluation."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, List, NamedTuple

from .clock import isoformat, now_local
from .models.achievements import Badge, BadgeMetric
from .models.loot import Rarity
from .models.progress import PlayerProgress

log = logging.getLogger(__name__)


class BadgeEvaluation(NamedTuple):
    unlocked: List[Badge]
    xp_reward: int


def _destiny_rank(progress: PlayerProgress) -> int:
    if progress.destiny is None:
        return -1
    return progress.destiny.destiny_tier.rank


METRIC_READERS: Dict[BadgeMetric, Callable[[PlayerProgress], int]] = {
    BadgeMetric.QUOTES_READ: lambda progress: progress.total_quotes_read,
    BadgeMetric.FILES_UPLOADED: lambda progress: progress.files_uploaded,
    BadgeMetric.BOONS_OWNED: lambda progress: len(progress.boons),
    BadgeMetric.RARE_BOONS: lambda progress: progress.count_boons(Rarity.RARE),
    BadgeMetric.LEGENDARY_BOONS: lambda progress: progress.count_boons(Rarity.LEGENDARY),
    BadgeMetric.STREAK_DAYS: lambda progress: progress.streak_days,
    BadgeMetric.LEVEL: lambda progress: progress.level,
    BadgeMetric.DESTINY_TIER: _destiny_rank,
    BadgeMetric.QUESTING_MINUTES: lambda progress: progress.total_questing_minutes,
}


def metric_value(progress: PlayerProgress, metric: BadgeMetric) -> int:
    return METRIC_READERS[metric](progress)


def evaluate_badges(
    progress: PlayerProgress, *, now: datetime | None = None
) -> BadgeEvaluation:
    """Unlock every locked badge whose threshold is met.

    Unlocked badges are never revisited, so calling this repeatedly cannot
    unlock or reward a badge twice.  The caller applies ``xp_reward``.
    """

    timestamp = isoformat(now or now_local())
    counters: Dict[BadgeMetric, int] = {}
    unlocked: List[Badge] = []
    reward = 0
    for badge in progress.badges:
        if badge.unlocked:
            continue
        metric = badge.definition.metric
        if metric not in counters:
            counters[metric] = metric_value(progress, metric)
        if counters[metric] < badge.definition.requirement:
            continue
        if badge.unlock(timestamp):
            unlocked.append(badge)
            reward += badge.xp_reward
            log.info("Badge unlocked: %s (+%s XP)", badge.id, badge.xp_reward)
    return BadgeEvaluation(unlocked=unlocked, xp_reward=reward)


__all__ = ["BadgeEvaluation", "evaluate_badges", "metric_value"]
