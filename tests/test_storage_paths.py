from __future__ import annotations

from pathlib import Path

import sys
import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from verseforge.config import ForgeConfig
from verseforge.storage import SnapshotStore, resolve_storage_root


def test_resolve_storage_root_prefers_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    override = tmp_path / "custom"
    monkeypatch.setenv("VERSEFORGE_DATA_ROOT", str(override))

    result = resolve_storage_root(Path("/ignored/base"))

    assert result == override.resolve()


def test_resolve_storage_root_handles_site_packages(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("VERSEFORGE_DATA_ROOT", raising=False)
    package_root = tmp_path / "lib" / "python3.12" / "site-packages" / "verseforge"
    package_root.mkdir(parents=True)

    working_dir = tmp_path / "runtime"
    working_dir.mkdir()
    monkeypatch.chdir(working_dir)

    result = resolve_storage_root(package_root)

    assert result == working_dir.resolve()


def test_resolve_storage_root_defaults_to_package_root(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("VERSEFORGE_DATA_ROOT", raising=False)
    package_root = tmp_path / "verseforge"
    package_root.mkdir()

    result = resolve_storage_root(package_root)

    assert result == package_root.resolve()


def test_store_uses_configured_root(tmp_path: Path) -> None:
    store = SnapshotStore.from_config(ForgeConfig(data_root=tmp_path))

    assert store.root == tmp_path.resolve() / "snapshots"
    assert store.path_for("player") == store.root / "player.toml"
    assert store.path_for("../escape").parent == store.root
