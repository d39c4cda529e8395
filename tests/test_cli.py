from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from verseforge.storage import SnapshotStore
from verseforge.utils import build_parser, format_number, main


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("VERSEFORGE_DATA_ROOT", "VERSEFORGE_SNAPSHOT", "VERSEFORGE_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


def _run(tmp_path: Path, *argv: str) -> int:
    return main(["--data-root", str(tmp_path), *argv])


def test_format_number_uses_apostrophes() -> None:
    assert format_number(0) == "0"
    assert format_number(1234567) == "1'234'567"
    assert format_number(-9876) == "-9'876"


def test_parser_lists_commands() -> None:
    parser = build_parser()

    args = parser.parse_args(["read", "--count", "3"])

    assert args.command == "read"
    assert args.count == 3


def test_read_persists_progress(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(tmp_path, "read", "--count", "2") == 0
    assert "XP)" in capsys.readouterr().out

    path = SnapshotStore(tmp_path).path_for("player")
    assert path.exists()

    assert _run(tmp_path, "status") == 0
    output = capsys.readouterr().out
    assert "Profile: player" in output
    assert "Quotes read: 2" in output
    assert "Destiny:" in output


def test_focus_and_equip_commands(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(tmp_path, "focus", "stock_radiant_resolve") == 0
    assert "focus:stock_radiant_resolve" in capsys.readouterr().out

    assert _run(tmp_path, "focus", "missing-text") == 1
    assert _run(tmp_path, "equip", "head", "no-such-boon") == 1
    assert _run(tmp_path, "equip", "head") == 2
    assert _run(tmp_path, "equip", "head", "--clear") == 0
    assert _run(tmp_path, "focus", "all") == 0


def test_export_then_import(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    backup = tmp_path / "backup.json"
    assert _run(tmp_path, "--profile", "source", "read", "--count", "3") == 0
    assert _run(tmp_path, "--profile", "source", "export", "--output", str(backup)) == 0

    data = json.loads(backup.read_text(encoding="utf8"))
    assert data["version"] == 2
    assert data["player"]["total_quotes_read"] == 3

    assert _run(tmp_path, "--profile", "target", "import", "--input", str(backup)) == 0
    capsys.readouterr()
    assert _run(tmp_path, "--profile", "target", "status") == 0
    assert "Quotes read: 3" in capsys.readouterr().out


def test_import_reports_bad_files(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf8")

    assert _run(tmp_path, "import", "--input", str(broken)) == 1
    assert "Invalid JSON format" in capsys.readouterr().err
    assert _run(tmp_path, "import", "--input", str(tmp_path / "absent.json")) == 1


def test_no_command_prints_help(capsys: pytest.CaptureFixture[str]) -> None:
    assert main([]) == 0
    assert "usage" in capsys.readouterr().out.lower()
