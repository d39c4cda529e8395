from __future__ import annotations

import sys
import tomllib
from pathlib import Path

import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from verseforge.storage import _toml_dumps, _write_toml


def test_write_toml_preserves_original_on_replace_failure(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    target = tmp_path / "player.toml"
    _write_toml(target, {"xp": 1})
    original_contents = target.read_text(encoding="utf8")

    def _boom(src: Path, dst: Path) -> None:
        raise RuntimeError("simulated failure")

    monkeypatch.setattr("verseforge.storage.os.replace", _boom)

    with pytest.raises(RuntimeError):
        _write_toml(target, {"xp": 2})

    assert target.read_text(encoding="utf8") == original_contents
    leftovers = [p for p in target.parent.iterdir() if p.name != "player.toml"]
    assert leftovers == []


def test_toml_dumps_quotes_keys_and_escapes_text() -> None:
    document = {
        "scripture_stats": {"stock_grit_&_glory": {"quotes_read": 2}},
        "profile_picture": 'say "hi"\n\U0001f525 ok',
        "boons": [{"id": "b1", "stat_bonuses": {"focus": 1}}, {"id": "b2"}],
        "destiny": None,
    }

    parsed = tomllib.loads(_toml_dumps(document))

    assert parsed["scripture_stats"] == {"stock_grit_&_glory": {"quotes_read": 2}}
    assert parsed["profile_picture"] == 'say "hi"\n\U0001f525 ok'
    assert [boon["id"] for boon in parsed["boons"]] == ["b1", "b2"]
    assert parsed["boons"][0]["stat_bonuses"] == {"focus": 1}
    assert "destiny" not in parsed


def test_toml_dumps_rejects_values_a_snapshot_never_holds(tmp_path: Path) -> None:
    target = tmp_path / "player.toml"

    with pytest.raises(TypeError):
        _toml_dumps({"ratio": 0.5})
    with pytest.raises(TypeError):
        _write_toml(target, {"when": object()})

    assert not target.exists()
    assert list(tmp_path.iterdir()) == []
