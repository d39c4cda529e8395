"""Forge configuration utilities."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .generation import (
    CARD_COOLDOWN_MINUTES,
    ITEM_ART_COOLDOWN_SECONDS,
    ITEM_ART_DAILY_LIMIT,
)

DEFAULT_SNAPSHOT = "player"
DEFAULT_LOG_LEVEL = "WARNING"


def _env_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if value < minimum:
        return default
    return value


@dataclass(slots=True)
class ForgeConfig:
    data_root: Optional[Path] = None
    snapshot: str = DEFAULT_SNAPSHOT
    item_art_daily_limit: int = ITEM_ART_DAILY_LIMIT
    item_art_cooldown_seconds: int = ITEM_ART_COOLDOWN_SECONDS
    card_cooldown_minutes: int = CARD_COOLDOWN_MINUTES
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls) -> "ForgeConfig":
        root = os.getenv("VERSEFORGE_DATA_ROOT")
        data_root = Path(root).expanduser() if root else None
        snapshot = (os.getenv("VERSEFORGE_SNAPSHOT") or DEFAULT_SNAPSHOT).strip()
        daily_limit = _env_int("VERSEFORGE_ITEM_ART_DAILY_LIMIT", ITEM_ART_DAILY_LIMIT, minimum=1)
        cooldown = _env_int("VERSEFORGE_ITEM_ART_COOLDOWN", ITEM_ART_COOLDOWN_SECONDS)
        card_cooldown = _env_int("VERSEFORGE_CARD_COOLDOWN_MINUTES", CARD_COOLDOWN_MINUTES)
        log_level = (os.getenv("VERSEFORGE_LOG_LEVEL") or DEFAULT_LOG_LEVEL).strip().upper()
        if not isinstance(logging.getLevelName(log_level), int):
            log_level = DEFAULT_LOG_LEVEL

        return cls(
            data_root=data_root,
            snapshot=snapshot or DEFAULT_SNAPSHOT,
            item_art_daily_limit=daily_limit,
            item_art_cooldown_seconds=cooldown,
            card_cooldown_minutes=card_cooldown,
            log_level=log_level,
        )


__all__ = ["ForgeConfig"]
