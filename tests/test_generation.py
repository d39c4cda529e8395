from __future__ import annotations

import asyncio
import random
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from verseforge.destiny import resolve_destiny
from verseforge.game import Forge
from verseforge.generation import (
    CARD_SIZE,
    DAILY_LIMIT_REASON,
    ITEM_ART_SIZE,
    build_destiny_card_prompt,
    build_item_art_prompt,
    can_generate_card,
    can_generate_item_art,
    extract_image_uri,
    shorten_item_name,
)
from verseforge.models.loot import Boon, StatBlock
from verseforge.models.progress import PlayerProgress
from verseforge.quotes import QuoteCatalog

NOW = datetime(2026, 7, 4, 18, 0, tzinfo=timezone.utc)
TODAY = "2026-07-04"


class FakeGenerator:
    def __init__(self, response: Any = None, error: BaseException | None = None) -> None:
        self.response = response if response is not None else {"image": {"base64Data": "QUJD"}}
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def __call__(self, prompt: str, *, size: str) -> Any:
        self.calls.append((prompt, size))
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.response


def _boon(**overrides: Any) -> Boon:
    data = {
        "id": "orb-1",
        "name": "Orb of Starlit Wisdom",
        "rarity": "common",
        "item_type": "orb",
        "theme_tag": "starlit veil",
    }
    data.update(overrides)
    return Boon.from_dict(data)


def _forge(*boons: Boon) -> Forge:
    return Forge(PlayerProgress(boons=list(boons)), catalog=QuoteCatalog(), rng=random.Random(2))


# ---------------------------------------------------------------------------
# Cooldown checks
# ---------------------------------------------------------------------------


def test_item_art_daily_limit_applies_to_today_only() -> None:
    blocked = can_generate_item_art(10, TODAY, None, now=NOW)
    fresh_day = can_generate_item_art(10, "2026-07-03", None, now=NOW)

    assert not blocked.allowed
    assert blocked.reason == DAILY_LIMIT_REASON
    assert blocked.remaining_today == 0
    assert fresh_day.allowed
    assert fresh_day.remaining_today == 9


def test_item_art_per_item_cooldown() -> None:
    recent = (NOW - timedelta(seconds=30)).isoformat()
    older = (NOW - timedelta(seconds=61)).isoformat()

    waiting = can_generate_item_art(3, TODAY, recent, now=NOW)

    assert not waiting.allowed
    assert waiting.reason == "Please wait 30 seconds before forging this item again."
    assert can_generate_item_art(3, TODAY, older, now=NOW).allowed


def test_item_art_daily_day_is_utc() -> None:
    # 01:00 on the 5th at +05:00 is still the 4th in UTC.
    local = datetime(2026, 7, 5, 1, 0, tzinfo=timezone(timedelta(hours=5)))

    assert not can_generate_item_art(10, TODAY, None, now=local).allowed


def test_card_cooldown_reports_wait_minutes() -> None:
    assert can_generate_card(None, now=NOW).allowed

    check = can_generate_card((NOW - timedelta(minutes=4)).isoformat(), now=NOW)

    assert not check.allowed
    assert check.wait_minutes == 6
    assert "6 minutes" in check.reason
    assert can_generate_card((NOW - timedelta(minutes=10)).isoformat(), now=NOW).allowed


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------


def test_long_item_names_are_shortened() -> None:
    assert shorten_item_name("Ring of Dawn") == "Ring of Dawn"
    assert shorten_item_name("Ring of Dawn of the Eternal Path of Light") == "Ring of Dawn"
    long_name = "Tome of " + "x" * 90
    assert shorten_item_name(long_name) == long_name[:77] + "..."


def test_item_art_prompt_reflects_rarity_and_theme() -> None:
    prompt = build_item_art_prompt(_boon())

    assert "A single magical orb called 'Orb of Starlit Wisdom'" in prompt
    assert "mystical sphere, internal energy, suspended in air" in prompt
    assert "simple but meaningful design" in prompt
    assert "The design reflects the theme of starlit veil." in prompt
    assert "ultra high detail" not in prompt


def test_item_art_prompt_enhanced_for_epic_or_high_level() -> None:
    assert "ultra high detail" in build_item_art_prompt(_boon(rarity="epic"))
    assert "ultra high detail" in build_item_art_prompt(_boon(), player_level=100)
    assert "theme of" not in build_item_art_prompt(_boon(theme_tag=None))


def test_destiny_card_prompt_uses_class_and_top_stats() -> None:
    stats = StatBlock(focus=8, insight=5)
    destiny = resolve_destiny(60, stats)

    prompt = build_destiny_card_prompt(destiny, stats, "Male", rng=random.Random(0))

    assert prompt.startswith("Fantasy character portrait of a male mindforged,")
    assert "IMPORTANT: The character must be clearly male." in prompt
    assert any(
        phrase in prompt
        for phrase in ("intense concentrated gaze", "laser-focused eyes", "determined expression")
    )
    assert "female" in build_destiny_card_prompt(destiny, stats, "unspecified", rng=random.Random(0))


# ---------------------------------------------------------------------------
# Response payloads
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("payload", "uri"),
    [
        ({"image": {"base64Data": "QUJD", "mimeType": "image/jpeg"}}, "data:image/jpeg;base64,QUJD"),
        ({"image": {"base64": "QUJD"}}, "data:image/png;base64,QUJD"),
        ({"image": "QUJD"}, "data:image/png;base64,QUJD"),
        ({"base64Data": "QUJD"}, "data:image/png;base64,QUJD"),
        ({"url": "https://images.example/orb.png"}, "https://images.example/orb.png"),
        ("data:image/png;base64,QUJD", "data:image/png;base64,QUJD"),
    ],
)
def test_extract_image_uri_accepts_known_shapes(payload: Any, uri: str) -> None:
    result = extract_image_uri(payload)

    assert result.success
    assert result.image_uri == uri


@pytest.mark.parametrize(
    ("payload", "error"),
    [
        ({"image": {"other": 1}}, "Could not find image data in response"),
        ({}, "No image data found in response"),
        ({"image": ""}, "Image data is empty"),
        ("", "Image data is empty"),
        (42, "Invalid response from server"),
    ],
)
def test_extract_image_uri_reports_missing_data(payload: Any, error: str) -> None:
    result = extract_image_uri(payload)

    assert not result.success
    assert result.error == error


# ---------------------------------------------------------------------------
# Forge integration
# ---------------------------------------------------------------------------


def test_generate_item_art_applies_image_and_counts() -> None:
    forge = _forge(_boon())
    generator = FakeGenerator()

    result = asyncio.run(forge.generate_item_art("orb-1", generator, now=NOW))

    boon = forge.progress.find_boon("orb-1")
    assert result.success
    assert boon.image_url == "data:image/png;base64,QUJD"
    assert boon.image_generated_at == NOW.isoformat()
    assert forge.progress.item_art_generation_count_today == 1
    assert forge.progress.item_art_generation_date == TODAY
    assert generator.calls[0][1] == ITEM_ART_SIZE

    again = asyncio.run(forge.generate_item_art("orb-1", generator, now=NOW + timedelta(seconds=5)))
    assert not again.success
    assert "Please wait 55 seconds" in again.error
    assert len(generator.calls) == 1


def test_item_art_counter_restarts_on_new_utc_day() -> None:
    forge = _forge(_boon())
    forge.progress.item_art_generation_count_today = 10
    forge.progress.item_art_generation_date = "2026-07-03"

    result = asyncio.run(forge.generate_item_art("orb-1", FakeGenerator(), now=NOW))

    assert result.success
    assert forge.progress.item_art_generation_count_today == 1
    assert forge.progress.item_art_generation_date == TODAY


def test_generator_failure_leaves_state_untouched() -> None:
    forge = _forge(_boon())
    before = forge.snapshot()

    result = asyncio.run(
        forge.generate_item_art("orb-1", FakeGenerator(error=RuntimeError("service offline")), now=NOW)
    )

    assert not result.success
    assert result.error == "service offline"
    assert forge.snapshot() == before


def test_empty_response_leaves_state_untouched() -> None:
    forge = _forge(_boon())
    before = forge.snapshot()

    result = asyncio.run(forge.generate_item_art("orb-1", FakeGenerator(response={"url": ""}), now=NOW))

    assert not result.success
    assert forge.snapshot() == before


def test_cancelled_generation_propagates_without_changes() -> None:
    forge = _forge(_boon())
    before = forge.snapshot()

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(
            forge.generate_item_art(
                "orb-1", FakeGenerator(error=asyncio.CancelledError()), now=NOW
            )
        )

    assert forge.snapshot() == before


def test_unknown_boon_is_reported() -> None:
    forge = _forge()

    result = asyncio.run(forge.generate_item_art("missing", FakeGenerator(), now=NOW))

    assert result == (False, None, "Artifact not found")
    assert not forge.can_generate_item_art("missing", now=NOW).allowed


def test_character_card_generation_and_cooldown() -> None:
    forge = _forge()
    generator = FakeGenerator(response={"url": "https://images.example/card.png"})

    result = asyncio.run(forge.generate_character_card(generator, gender="male", now=NOW))

    assert result.success
    assert forge.progress.character_card_image_url == "https://images.example/card.png"
    assert forge.progress.last_card_generated_at == NOW.isoformat()
    assert forge.progress.destiny is not None
    assert generator.calls[0][1] == CARD_SIZE
    assert "clearly male" in generator.calls[0][0]

    later = NOW + timedelta(minutes=1)
    denied = asyncio.run(forge.generate_character_card(generator, now=later))
    assert not denied.success
    assert forge.can_generate_card(later).wait_minutes == 9
    assert len(generator.calls) == 1


def test_overlapping_item_art_respects_daily_limit() -> None:
    forge = _forge(_boon(), _boon(id="orb-2", name="Orb of Quiet Dawn"))
    forge.progress.item_art_generation_count_today = 9
    forge.progress.item_art_generation_date = TODAY
    generator = FakeGenerator()

    async def _both() -> list:
        return await asyncio.gather(
            forge.generate_item_art("orb-1", generator, now=NOW),
            forge.generate_item_art("orb-2", generator, now=NOW),
        )

    first, second = asyncio.run(_both())

    assert first.success
    assert not second.success
    assert second.error == DAILY_LIMIT_REASON
    assert forge.progress.item_art_generation_count_today == 10
    assert len(generator.calls) == 1


def test_overlapping_item_art_for_one_boon_runs_once() -> None:
    forge = _forge(_boon())
    generator = FakeGenerator()

    async def _both() -> list:
        return await asyncio.gather(
            forge.generate_item_art("orb-1", generator, now=NOW),
            forge.generate_item_art("orb-1", generator, now=NOW),
        )

    first, second = asyncio.run(_both())

    assert first.success
    assert second.error == "This item is already being forged."
    assert forge.progress.item_art_generation_count_today == 1


def test_overlapping_card_generation_runs_once() -> None:
    forge = _forge()
    generator = FakeGenerator(response={"url": "https://images.example/card.png"})

    async def _both() -> list:
        return await asyncio.gather(
            forge.generate_character_card(generator, now=NOW),
            forge.generate_character_card(generator, now=NOW),
        )

    first, second = asyncio.run(_both())

    assert first.success
    assert second.error == "A destiny card is already being forged."
    assert len(generator.calls) == 1
    assert not forge.can_generate_card(NOW).allowed


def test_failed_generation_releases_its_reservation() -> None:
    forge = _forge(_boon())
    forge.progress.item_art_generation_count_today = 9
    forge.progress.item_art_generation_date = TODAY

    asyncio.run(forge.generate_item_art("orb-1", FakeGenerator(error=RuntimeError("down")), now=NOW))
    with pytest.raises(asyncio.CancelledError):
        asyncio.run(
            forge.generate_item_art("orb-1", FakeGenerator(error=asyncio.CancelledError()), now=NOW)
        )

    check = forge.can_generate_item_art("orb-1", now=NOW)
    assert check.allowed
    assert check.remaining_today == 0
    card = asyncio.run(
        forge.generate_character_card(FakeGenerator(error=RuntimeError("down")), now=NOW)
    )
    assert card.error == "down"
    assert forge.can_generate_card(NOW).allowed


def test_pending_generations_count_against_the_day() -> None:
    check = can_generate_item_art(8, TODAY, None, now=NOW, pending=2)

    assert not check.allowed
    assert check.reason == DAILY_LIMIT_REASON
