from __future__ import annotations

import json
import random
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from verseforge.backup import BACKUP_VERSION, MAX_BACKUP_XP, export_backup, import_backup
from verseforge.game import Forge
from verseforge.models.loot import Rarity
from verseforge.models.progress import FocusMode, PlayerProgress
from verseforge.quotes import QuoteCatalog

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
XP_REASON = f"Invalid XP value: expected a whole number from 0 to {MAX_BACKUP_XP}"


@pytest.fixture
def source(monkeypatch: pytest.MonkeyPatch) -> Forge:
    monkeypatch.setattr("verseforge.game.roll_rarity", lambda rng=None: Rarity.UNCOMMON)
    forge = Forge(catalog=QuoteCatalog(), rng=random.Random(9))
    meditations = forge.add_scripture("Meditations", ["The secret words stay home."])
    forge.add_scripture("Letters", ["Another private line."])
    forge.set_focus("focus", meditations.file_id)
    for _ in range(12):
        forge.read_quote(NOW)
    return forge


def test_export_omits_quote_bodies(source: Forge) -> None:
    payload = export_backup(source.progress, now=NOW)
    data = json.loads(payload)

    assert data["version"] == BACKUP_VERSION
    assert data["created_at"] == NOW.isoformat()
    assert "The secret words stay home." not in payload
    assert "scriptures" not in data["player"]
    assert data["player"]["total_quotes_read"] == 12
    assert len(data["player"]["boons"]) == 12
    assert set(data["player"]["equipment"]) == {"head", "hands", "heart", "mind", "light", "relic"}
    names = {entry["file_name"] for entry in data["scriptures"].values()}
    assert names == {"Meditations", "Letters"}


def test_restore_matches_scriptures_by_file_name(source: Forge) -> None:
    payload = source.export_backup(NOW)
    target = Forge(catalog=QuoteCatalog(), rng=random.Random(1))
    local = target.add_scripture("Meditations", ["A local copy of the text."])
    target.set_focus("focus", local.file_id)

    result = target.import_backup(payload)

    assert result.success, result.error
    progress = target.progress
    assert progress.total_quotes_read == 12
    assert progress.xp == source.progress.xp
    assert progress.level == source.progress.level
    assert progress.focus.mode is FocusMode.ALL
    assert [scripture.file_id for scripture in progress.scriptures] == [local.file_id]
    assert progress.scripture_stats[local.file_id].quotes_read == 12
    assert progress.scripture_stats[local.file_id].local_xp == 12 * 15

    letters_key = next(
        key for key, stats in source.progress.scripture_stats.items() if stats.display_name == "Letters"
    )
    assert letters_key in progress.scripture_stats


def test_reuploading_a_missing_text_adopts_saved_stats(source: Forge) -> None:
    target = Forge(catalog=QuoteCatalog())
    assert target.import_backup(source.export_backup(NOW)).success

    letters = target.add_scripture("Letters", ["Another private line."])

    stats = target.progress.scripture_stats[letters.file_id]
    assert stats.display_name == "Letters"
    assert stats.file_id == letters.file_id
    assert sum(1 for item in target.progress.scripture_stats.values() if item.display_name == "Letters") == 1


def test_level_is_recomputed_from_xp() -> None:
    data = json.loads(export_backup(PlayerProgress(xp=950), now=NOW))
    data["player"]["level"] = 80

    result = import_backup(PlayerProgress(), data)

    assert result.success
    assert result.progress is not None
    assert result.progress.level == 3
    assert result.progress.destiny is not None


@pytest.mark.parametrize(
    ("mutate", "reason"),
    [
        (lambda data: data["player"].__setitem__("xp", "1200"),
         "Invalid player progression fields (xp, level, total_quotes_read)"),
        (lambda data: data["player"].pop("total_quotes_read"),
         "Invalid player progression fields (xp, level, total_quotes_read)"),
        (lambda data: data["player"].__setitem__("xp", 1e22), XP_REASON),
        (lambda data: data["player"].__setitem__("xp", 950.5), XP_REASON),
        (lambda data: data["player"].__setitem__("xp", -100), XP_REASON),
        (lambda data: data["player"].__setitem__("boons", {"a": 1}),
         "Invalid arrays (boons, badges must be arrays)"),
        (lambda data: data.__setitem__("version", 1),
         "Unsupported backup version. This restore requires Backup v2."),
        (lambda data: data.pop("created_at"), "Missing or invalid creation date"),
        (lambda data: data.__setitem__("player", None), "Missing player data"),
    ],
)
def test_invalid_backups_are_rejected_without_changes(source: Forge, mutate, reason: str) -> None:
    data = json.loads(source.export_backup(NOW))
    mutate(data)
    before = source.snapshot()

    result = source.import_backup(json.dumps(data))

    assert not result.success
    assert result.error == reason
    assert result.progress is None
    assert source.snapshot() == before


@pytest.mark.parametrize(
    ("payload", "reason"),
    [
        ("{not json", "Invalid JSON format"),
        ("[1, 2, 3]", "Invalid backup format: not an object"),
    ],
)
def test_malformed_payloads(payload: str, reason: str) -> None:
    current = PlayerProgress(xp=10)

    result = import_backup(current, payload)

    assert result == (False, reason, None)
    assert current.xp == 10
