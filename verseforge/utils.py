"""Command line helpers for inspecting and driving a stored player."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Sequence, SupportsInt

from .config import ForgeConfig
from .game import Forge
from .models.loot import EquipSlot
from .models.progress import FocusMode
from .storage import SnapshotStore


def format_number(value: SupportsInt) -> str:
    """Return ``value`` with ``'`` as the thousands separator."""

    integer = int(value)
    sign = "-" if integer < 0 else ""
    formatted = f"{abs(integer):,}".replace(",", "'")
    return f"{sign}{formatted}"


def _config_from_args(args: argparse.Namespace) -> ForgeConfig:
    config = ForgeConfig.from_env()
    if args.data_root:
        config.data_root = Path(args.data_root).expanduser()
    if args.profile:
        config.snapshot = args.profile
    return config


def _open_forge(args: argparse.Namespace) -> tuple[Forge, SnapshotStore, str]:
    config = _config_from_args(args)
    store = SnapshotStore.from_config(config)
    snapshot = asyncio.run(store.load(config.snapshot))
    return Forge.from_snapshot(snapshot, config=config), store, config.snapshot


def _save(forge: Forge, store: SnapshotStore, key: str) -> None:
    asyncio.run(store.save(key, forge.snapshot()))


def _command_status(args: argparse.Namespace) -> int:
    forge, _, key = _open_forge(args)
    forge.refresh_destiny()
    progress = forge.progress
    progression = forge.xp_progress()

    print(f"Profile: {key}")
    print(
        f"Level {progress.level} ({format_number(progress.xp)} XP, "
        f"{progression.current}/{progression.needed} to next, {progression.percentage:.0f}%)"
    )
    if progress.destiny is not None:
        print(f"Destiny: {progress.destiny.title}")
    print(
        f"Quotes read: {format_number(progress.total_quotes_read)}  "
        f"Streak: {progress.streak_days} day(s)  "
        f"Texts: {progress.files_uploaded}"
    )
    stats = forge.stats()
    print("Stats: " + ", ".join(f"{name} {value}" for name, value in stats.items()))

    print("Equipment:")
    for slot, boon_id in forge.progress.equipment_view().items():
        boon = progress.find_boon(boon_id)
        label = f"{boon.name} [{boon.rarity.label}]" if boon is not None else "-"
        print(f"  - {slot}: {label}")

    unlocked = list(progress.iter_unlocked_badges())
    print(f"Boons: {len(progress.boons)}  Badges: {len(unlocked)}/{len(progress.badges)}")
    print(f"Focus: {progress.focus.key}")
    return 0


def _command_read(args: argparse.Namespace) -> int:
    forge, store, key = _open_forge(args)
    count = max(1, args.count)
    for _ in range(count):
        result = forge.read_quote()
        if result.quote is None:
            print("No quotes available.", file=sys.stderr)
            return 1
        print(f"“{result.quote.text}”  (+{result.xp_gained} XP)")
        if result.boon is not None:
            print(f"  Found {result.boon.rarity.label} {result.boon.name}")
        for badge in result.unlocked_badges:
            print(f"  Badge unlocked: {badge.name} (+{badge.xp_reward} XP)")
        if result.leveled_up:
            print(f"  Reached level {result.new_level}!")
    _save(forge, store, key)
    return 0


def _command_equip(args: argparse.Namespace) -> int:
    forge, store, key = _open_forge(args)
    boon_id = None if args.clear else args.boon
    if boon_id is None and not args.clear:
        print("Provide a boon id or --clear.", file=sys.stderr)
        return 2
    if not forge.equip_boon(args.slot, boon_id):
        print(f"Cannot equip {boon_id} in {args.slot}.", file=sys.stderr)
        return 1
    _save(forge, store, key)
    print(f"Updated {args.slot}.")
    return 0


def _command_focus(args: argparse.Namespace) -> int:
    forge, store, key = _open_forge(args)
    if args.target == FocusMode.ALL.value:
        forge.set_focus(FocusMode.ALL)
    elif not forge.set_focus(FocusMode.FOCUS, args.target):
        print(f"Unknown text: {args.target}", file=sys.stderr)
        return 1
    _save(forge, store, key)
    print(f"Focus: {forge.progress.focus.key}")
    return 0


def _command_export(args: argparse.Namespace) -> int:
    forge, _, _ = _open_forge(args)
    payload = forge.export_backup()
    if args.output:
        Path(args.output).write_text(payload, encoding="utf8")
        print(f"Wrote backup to {args.output}")
    else:
        print(payload)
    return 0


def _command_import(args: argparse.Namespace) -> int:
    forge, store, key = _open_forge(args)
    try:
        payload = Path(args.input).read_text(encoding="utf8")
    except OSError as exc:
        print(f"Cannot read {args.input}: {exc}", file=sys.stderr)
        return 1
    result = forge.import_backup(payload)
    if not result.success:
        print(f"Restore failed: {result.error}", file=sys.stderr)
        return 1
    _save(forge, store, key)
    print(f"Restored level {forge.progress.level} with {len(forge.progress.boons)} boon(s).")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Inspect and drive a stored VerseForge player.")
    parser.add_argument("--data-root", help="Directory holding snapshots (default: VERSEFORGE_DATA_ROOT)")
    parser.add_argument("--profile", help="Snapshot name to use (default: player)")

    subparsers = parser.add_subparsers(dest="command")

    status_parser = subparsers.add_parser("status", help="Show level, stats and equipment")
    status_parser.set_defaults(func=_command_status)

    read_parser = subparsers.add_parser("read", help="Read quotes and roll for loot")
    read_parser.add_argument("--count", type=int, default=1, help="How many quotes to read")
    read_parser.set_defaults(func=_command_read)

    equip_parser = subparsers.add_parser("equip", help="Equip or clear a slot")
    equip_parser.add_argument("slot", choices=[slot.value for slot in EquipSlot])
    equip_parser.add_argument("boon", nargs="?", help="Id of the boon to equip")
    equip_parser.add_argument("--clear", action="store_true", help="Empty the slot")
    equip_parser.set_defaults(func=_command_equip)

    focus_parser = subparsers.add_parser("focus", help="Focus one text, or 'all'")
    focus_parser.add_argument("target", help="'all' or a text/stock pack file id")
    focus_parser.set_defaults(func=_command_focus)

    export_parser = subparsers.add_parser("export", help="Write a v2 progress backup")
    export_parser.add_argument("--output", help="Destination file (default: stdout)")
    export_parser.set_defaults(func=_command_export)

    import_parser = subparsers.add_parser("import", help="Restore a v2 progress backup")
    import_parser.add_argument("--input", required=True, help="Backup file to restore")
    import_parser.set_defaults(func=_command_import)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=ForgeConfig.from_env().log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if not getattr(args, "command", None):
        parser.print_help()
        return 0
    return args.func(args)


__all__ = ["build_parser", "format_number", "main"]


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
