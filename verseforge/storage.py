"""Snapshot persistence for player progress.

Snapshots are TOML documents under ``<storage root>/snapshots``.  Every write
goes through a temporary file and ``os.replace`` so a crash never leaves a
half written snapshot behind, and all disk access is serialised through one
``asyncio.Lock``.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote, unquote

import tomllib

from .config import ForgeConfig

log = logging.getLogger(__name__)

_STORAGE_LOCK = asyncio.Lock()

SNAPSHOT_DIRECTORY = "snapshots"
_BARE_KEY = re.compile(r"^[A-Za-z0-9_-]+$")


def _is_site_packages(path: Path) -> bool:
    """Return ``True`` if ``path`` is inside a site/dist-packages directory."""

    normalized = {part.lower() for part in path.parts}
    return "site-packages" in normalized or "dist-packages" in normalized


def resolve_storage_root(package_root: Path) -> Path:
    """Determine where mutable data should be stored.

    Data stays alongside the source tree when running from a checkout.  An
    explicit override wins, and read-only or site-packages installs fall back
    to the working directory.
    """

    override = os.getenv("VERSEFORGE_DATA_ROOT")
    if override:
        return Path(override).expanduser().resolve()

    if _is_site_packages(package_root) or not os.access(package_root, os.W_OK):
        return Path.cwd().resolve()

    return package_root


# ---------------------------------------------------------------------------
# TOML writing
# ---------------------------------------------------------------------------

_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\b": "\\b",
    "\t": "\\t",
    "\n": "\\n",
    "\f": "\\f",
    "\r": "\\r",
}


def _snapshot_value(value: Any) -> Any:
    """Drop ``None`` entries and reject anything TOML cannot hold."""

    if isinstance(value, Mapping):
        return {str(key): _snapshot_value(item) for key, item in value.items() if item is not None}
    if isinstance(value, (list, tuple)):
        return [_snapshot_value(item) for item in value if item is not None]
    if isinstance(value, (str, int)):
        return value
    raise TypeError(f"Cannot store {type(value).__name__} in a snapshot")


def _toml_string(text: str) -> str:
    pieces = []
    for char in text:
        escaped = _ESCAPES.get(char)
        if escaped is None:
            code = ord(char)
            escaped = f"\\u{code:04x}" if code < 0x20 or code == 0x7F else char
        pieces.append(escaped)
    return '"' + "".join(pieces) + '"'


def _toml_key(key: str) -> str:
    return key if _BARE_KEY.match(key) else _toml_string(key)


def _toml_inline(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return _toml_string(value)
    if isinstance(value, list) and not any(isinstance(item, dict) for item in value):
        return "[" + ", ".join(_toml_inline(item) for item in value) + "]"
    raise TypeError(f"Cannot inline {type(value).__name__} in TOML")


def _is_table_array(value: Any) -> bool:
    return isinstance(value, list) and bool(value) and all(isinstance(item, dict) for item in value)


def _emit_table(table: Dict[str, Any], path: tuple[str, ...], lines: list[str]) -> None:
    # Plain keys must precede any sub-table header of the same table.
    nested = []
    for key, value in table.items():
        if isinstance(value, dict) or _is_table_array(value):
            nested.append((key, value))
        else:
            lines.append(f"{_toml_key(key)} = {_toml_inline(value)}")

    for key, value in nested:
        child = (*path, _toml_key(key))
        header = ".".join(child)
        if isinstance(value, dict):
            lines.extend(["", f"[{header}]"])
            _emit_table(value, child, lines)
            continue
        for item in value:
            lines.extend(["", f"[[{header}]]"])
            _emit_table(item, child, lines)


def _toml_dumps(data: Mapping[str, Any]) -> str:
    document = _snapshot_value(data)
    if not isinstance(document, dict):
        raise TypeError("A snapshot must be a mapping")
    lines: list[str] = []
    _emit_table(document, (), lines)
    return "\n".join(lines).lstrip("\n") + "\n"


def _read_toml(path: Path) -> Any:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except (FileNotFoundError, tomllib.TOMLDecodeError, OSError):
        return None


def _write_toml(path: Path, payload: Mapping[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path: Path | None = None
    data = _toml_dumps(payload)
    try:
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf8", dir=path.parent, delete=False
        ) as handle:
            temp_path = Path(handle.name)
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, path)
        temp_path = None
    finally:
        if temp_path is not None:
            try:
                temp_path.unlink()
            except FileNotFoundError:
                pass


# ---------------------------------------------------------------------------
# Snapshot store
# ---------------------------------------------------------------------------


def _encode_snapshot_key(key: str) -> str:
    return quote(str(key), safe="")


def _decode_snapshot_key(filename: str) -> str:
    return unquote(filename)


class SnapshotStore:
    """Asynchronous store of player snapshots keyed by profile name."""

    def __init__(self, root: Path | None = None) -> None:
        if root is None:
            package_root = Path(__file__).resolve().parent.parent
            root = resolve_storage_root(package_root)
        self._root = Path(root) / SNAPSHOT_DIRECTORY

    @classmethod
    def from_config(cls, config: ForgeConfig) -> "SnapshotStore":
        if config.data_root is not None:
            return cls(config.data_root.resolve())
        return cls()

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, key: str) -> Path:
        return self._root / f"{_encode_snapshot_key(key)}.toml"

    async def load(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the stored snapshot, or ``None`` when missing or unreadable."""

        async with _STORAGE_LOCK:
            path = self.path_for(key)
            data = _read_toml(path)
            if data is None and path.exists():
                log.warning("Snapshot %s could not be parsed; starting fresh", path)
            return data

    async def save(self, key: str, snapshot: Mapping[str, Any]) -> None:
        async with _STORAGE_LOCK:
            _write_toml(self.path_for(key), snapshot)
            log.debug("Saved snapshot '%s'", key)

    async def delete(self, key: str) -> bool:
        async with _STORAGE_LOCK:
            try:
                self.path_for(key).unlink()
            except FileNotFoundError:
                return False
            return True

    async def keys(self) -> list[str]:
        async with _STORAGE_LOCK:
            if not self._root.exists():
                return []
            return sorted(
                _decode_snapshot_key(path.stem) for path in self._root.glob("*.toml")
            )


__all__ = ["SnapshotStore", "resolve_storage_root"]
