"""Backup v2: progress-only export and restore.

A backup carries the player's progression and per-scripture stats but never
the quote bodies themselves.  Restoring keeps the texts already loaded and
re-attaches stats to them by file name, so a backup taken on one device can be
merged into another that has its own uploads.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict, Mapping, NamedTuple, Optional

from .clock import isoformat, now_local
from .destiny import resolve_destiny
from .models._validation import FieldSpec, ModelValidator, SequenceSpec, is_non_empty_str
from .models.progress import FocusState, PlayerProgress, ScriptureStats
from .stats import compute_stats

log = logging.getLogger(__name__)

BACKUP_VERSION = 2
MAX_BACKUP_XP = 1_000_000_000_000


class RestoreResult(NamedTuple):
    success: bool
    error: Optional[str] = None
    progress: Optional[PlayerProgress] = None


class BackupEnvelopeValidator(ModelValidator):
    model = dict
    fields = {
        "created_at": FieldSpec(is_non_empty_str, "an ISO creation timestamp"),
        "player": FieldSpec(dict, "a player mapping"),
    }


class BackupProgressionValidator(ModelValidator):
    model = PlayerProgress
    fields = {
        "xp": FieldSpec(float, "a number"),
        "level": FieldSpec(float, "a number"),
        "total_quotes_read": FieldSpec(float, "a number"),
    }


class BackupCollectionsValidator(ModelValidator):
    model = PlayerProgress
    fields = {
        "boons": FieldSpec(SequenceSpec(object), "a list of boons"),
        "badges": FieldSpec(SequenceSpec(object), "a list of badges"),
    }


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def build_backup(progress: PlayerProgress, *, now: datetime | None = None) -> Dict[str, Any]:
    scriptures: Dict[str, Dict[str, Any]] = {}
    for key, stats in progress.scripture_stats.items():
        scripture = progress.find_scripture(key)
        file_name = scripture.file_name if scripture is not None else key
        entry = stats.to_mapping()
        entry.pop("file_id", None)
        entry["file_name"] = file_name
        entry["display_name"] = stats.display_name or file_name
        scriptures[key] = entry

    player = progress.snapshot()
    for key in ("scriptures", "scripture_stats", "focus"):
        player.pop(key, None)
    player["equipment"] = progress.equipment_view()

    return {
        "version": BACKUP_VERSION,
        "created_at": isoformat(now or now_local()),
        "player": player,
        "scriptures": scriptures,
    }


def export_backup(progress: PlayerProgress, *, now: datetime | None = None) -> str:
    backup = build_backup(progress, now=now)
    log.info(
        "Exported backup: level %s, %s boons, %s scripture stats",
        progress.level,
        len(progress.boons),
        len(backup["scriptures"]),
    )
    return json.dumps(backup, indent=2, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


def validate_backup(data: Any) -> Optional[str]:
    """Return the first reason ``data`` is not a usable v2 backup, else ``None``."""

    if not isinstance(data, Mapping):
        return "Invalid backup format: not an object"
    version = data.get("version")
    if isinstance(version, bool) or version != BACKUP_VERSION:
        return "Unsupported backup version. This restore requires Backup v2."
    envelope_errors = BackupEnvelopeValidator.check(data)
    if any("created_at" in error for error in envelope_errors):
        return "Missing or invalid creation date"
    if envelope_errors:
        return "Missing player data"
    player = data["player"]
    if BackupProgressionValidator.check(player):
        return "Invalid player progression fields (xp, level, total_quotes_read)"
    xp = player["xp"]
    if xp < 0 or xp > MAX_BACKUP_XP or xp != int(xp):
        return f"Invalid XP value: expected a whole number from 0 to {MAX_BACKUP_XP}"
    if BackupCollectionsValidator.check(player):
        return "Invalid arrays (boons, badges must be arrays)"
    return None


def _restore_scripture_stats(
    current: PlayerProgress, scriptures: Any
) -> Dict[str, ScriptureStats]:
    restored: Dict[str, ScriptureStats] = {}
    if not isinstance(scriptures, Mapping):
        return restored
    for key, entry in scriptures.items():
        if not isinstance(entry, Mapping):
            continue
        key = str(key)
        file_name = entry.get("file_name")
        match = next(
            (
                scripture
                for scripture in current.scriptures
                if scripture.file_name == file_name or scripture.file_id == key
            ),
            None,
        )
        if match is not None:
            log.debug("Attaching restored stats to '%s'", match.file_name)
            restored[match.file_id] = ScriptureStats.from_mapping(entry, file_id=match.file_id)
        else:
            log.debug("Keeping stats for absent scripture '%s' under %s", file_name, key)
            restored[key] = ScriptureStats.from_mapping(entry, file_id=key)
    return restored


def import_backup(current: PlayerProgress, payload: str | bytes | Mapping[str, Any]) -> RestoreResult:
    """Merge a v2 backup into ``current`` and return the restored progress.

    ``current`` is never mutated.  Its scriptures are kept as they are and
    the focus returns to every text.
    """

    if isinstance(payload, (str, bytes)):
        try:
            data = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError):
            log.warning("Rejected backup: not valid JSON")
            return RestoreResult(False, "Invalid JSON format")
    else:
        data = payload

    reason = validate_backup(data)
    if reason is not None:
        log.warning("Rejected backup: %s", reason)
        return RestoreResult(False, reason)

    player = dict(data["player"])
    player["scriptures"] = [scripture.to_mapping() for scripture in current.scriptures]
    player["scripture_stats"] = {}
    player["focus"] = FocusState().to_mapping()
    restored = PlayerProgress.from_snapshot(player)
    restored.scripture_stats = _restore_scripture_stats(current, data.get("scriptures"))

    if restored.destiny is None:
        log.info("Backup carried no destiny; recomputing from stats")
        stats = compute_stats(
            restored.level,
            [boon.stat_bonuses for boon in restored.equipped_boons()],
            restored.total_questing_minutes,
        )
        restored.destiny = resolve_destiny(restored.level, stats)

    log.info(
        "Restored backup: level %s, %s XP, %s boons, %s scripture stats",
        restored.level,
        restored.xp,
        len(restored.boons),
        len(restored.scripture_stats),
    )
    return RestoreResult(True, None, restored)


__all__ = [
    "BACKUP_VERSION",
    "RestoreResult",
    "build_backup",
    "export_backup",
    "import_backup",
    "validate_backup",
]
