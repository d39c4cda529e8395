"""Built-in stock quote packs.

The catalog is an ordinary object handed to the forge, so tests and callers
can swap the fallback corpus freely.  The bundled packs live in
``data/stock_packs.toml``.
"""

from __future__ import annotations

import logging
import random
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

import tomllib

from .models.progress import STOCK_FILE_PREFIX, Quote

log = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"
STOCK_PACKS_PATH = DATA_DIR / "stock_packs.toml"


def stock_file_id(pack_name: str) -> str:
    return STOCK_FILE_PREFIX + re.sub(r"\s+", "_", pack_name.strip().lower())


class QuoteCatalog:
    """Named packs of stock quotes."""

    def __init__(self, packs: Mapping[str, Iterable[Any]] | None = None) -> None:
        self._packs: Dict[str, List[Quote]] = {}
        for name, entries in (packs or {}).items():
            self.load_pack(name, entries)

    @classmethod
    def from_toml(cls, path: Path) -> "QuoteCatalog":
        """Load packs from a TOML file of ``[[quotes]]`` entries.

        Entries are grouped by their ``category``.  A missing or unreadable
        file produces an empty catalog.
        """

        try:
            with path.open("rb") as handle:
                document = tomllib.load(handle)
        except (FileNotFoundError, tomllib.TOMLDecodeError, OSError):
            log.warning("Stock pack file %s could not be read", path)
            return cls()
        grouped: Dict[str, List[Any]] = {}
        for entry in document.get("quotes", []):
            if isinstance(entry, Mapping) and entry.get("category"):
                grouped.setdefault(str(entry["category"]), []).append(entry)
        return cls(grouped)

    @classmethod
    def bundled(cls) -> "QuoteCatalog":
        return cls.from_toml(STOCK_PACKS_PATH)

    def load_pack(self, name: str, entries: Iterable[Any]) -> int:
        """Replace pack ``name`` with the valid ``entries`` and return their count.

        Entries need an id, text and category; anything else is skipped.
        """

        file_id = stock_file_id(name)
        quotes: List[Quote] = []
        for entry in entries:
            if isinstance(entry, Quote):
                data = entry.to_mapping()
                data.setdefault("category", entry.source_label)
            elif isinstance(entry, Mapping):
                data = entry
            else:
                continue
            if not (data.get("id") and data.get("text") and data.get("category")):
                continue
            text = str(data["text"]).strip()
            quotes.append(
                Quote(
                    id=str(data["id"]),
                    text=text,
                    source_label=name,
                    index=len(quotes),
                    length=len(text),
                    file_id=file_id,
                )
            )
        self._packs[name] = quotes
        log.info("Loaded %s quotes into '%s'", len(quotes), name)
        return len(quotes)

    def pack_names(self) -> List[str]:
        return list(self._packs)

    def pack_quotes(self, name: str) -> List[Quote]:
        return list(self._packs.get(name, ()))

    def pack_for_file_id(self, file_id: str | None) -> Optional[str]:
        if not file_id or not file_id.startswith(STOCK_FILE_PREFIX):
            return None
        for name in self._packs:
            if stock_file_id(name) == file_id:
                return name
        return None

    def all_quotes(self) -> List[Quote]:
        return [quote for quotes in self._packs.values() for quote in quotes]

    def random_quote(self, rng: random.Random | None = None) -> Optional[Quote]:
        rng = rng if rng is not None else random
        quotes = self.all_quotes()
        if not quotes:
            return None
        return quotes[int(rng.random() * len(quotes))]

    def clear(self) -> None:
        self._packs.clear()

    def __len__(self) -> int:
        return sum(len(quotes) for quotes in self._packs.values())


__all__ = ["QuoteCatalog", "STOCK_PACKS_PATH", "stock_file_id"]
