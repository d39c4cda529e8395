from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from verseforge.leveling import (
    MasteryTier,
    level_from_xp,
    mastery_tier,
    scripture_level_from_xp,
    scripture_xp_for_level,
    scripture_xp_for_read,
    xp_for_level,
    xp_for_quote,
    xp_progress,
)


@pytest.mark.parametrize("level", [1, 2, 3, 4, 5, 10, 57, 250, 123_457])
def test_level_thresholds_are_exact(level: int) -> None:
    assert level_from_xp(xp_for_level(level)) == level


@pytest.mark.parametrize("level", [2, 3, 4, 5, 10, 57, 250, 123_457])
def test_one_xp_short_stays_on_previous_level(level: int) -> None:
    assert level_from_xp(xp_for_level(level) - 1) == level - 1


@pytest.mark.parametrize("total", [0, -50, 99, 399])
def test_level_never_drops_below_one(total: int) -> None:
    assert level_from_xp(total) == 1


def test_huge_totals_resolve_without_walking_every_level() -> None:
    assert level_from_xp(10**22) == 10**10
    assert scripture_level_from_xp(scripture_xp_for_level(98_765)) == 98_765
    assert scripture_level_from_xp(scripture_xp_for_level(98_765) - 1) == 98_764


def test_xp_progress_reports_position_inside_level() -> None:
    progress = xp_progress(650, 2)

    assert progress.current == 250
    assert progress.needed == 500
    assert progress.percentage == pytest.approx(50.0)


@pytest.mark.parametrize(
    ("length", "expected"),
    [(0, 5), (50, 5), (80, 5), (81, 10), (200, 10), (201, 20), (400, 20), (401, 40), (5000, 40)],
)
def test_quote_xp_steps_by_length(length: int, expected: int) -> None:
    assert xp_for_quote(length) == expected


def test_scripture_curve_uses_power_of_one_point_four() -> None:
    assert scripture_xp_for_level(1) == 200
    assert scripture_xp_for_level(2) == 527
    assert scripture_level_from_xp(526) == 1
    assert scripture_level_from_xp(527) == 2


def test_focus_reads_earn_bonus_scripture_xp() -> None:
    assert scripture_xp_for_read(False) == 10
    assert scripture_xp_for_read(True) == 15


@pytest.mark.parametrize(
    ("reads", "tier"),
    [
        (0, MasteryTier.UNSEEN),
        (1, MasteryTier.TOUCHED),
        (49, MasteryTier.TOUCHED),
        (50, MasteryTier.FAMILIAR),
        (149, MasteryTier.FAMILIAR),
        (150, MasteryTier.STUDENT),
        (400, MasteryTier.SCHOLAR),
        (800, MasteryTier.KEEPER),
        (1499, MasteryTier.KEEPER),
        (1500, MasteryTier.LIVING_VOICE),
    ],
)
def test_mastery_tiers(reads: int, tier: MasteryTier) -> None:
    assert mastery_tier(reads) is tier
