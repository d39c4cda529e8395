from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from verseforge.game import Forge
from verseforge.quotes import QuoteCatalog
from verseforge.sessions import ReadingSession, SessionKind


def test_ticks_credit_only_new_whole_minutes() -> None:
    session = ReadingSession.start("Questing", now=0.0)

    assert session.kind is SessionKind.QUESTING
    assert session.tick(59.9) == 0
    assert session.tick(125.0) == 2
    assert session.tick(130.0) == 0
    assert session.finish(185.0) == 1
    assert session.minute_marker == 3


def test_finishing_under_a_minute_credits_nothing() -> None:
    session = ReadingSession.start(SessionKind.RAIDING, file_id="abc", now=100.0)

    assert session.finish(159.0) == 0
    assert session.file_id == "abc"


def test_clock_going_backwards_never_credits() -> None:
    session = ReadingSession.start(SessionKind.QUESTING, now=1000.0)

    assert session.elapsed_minutes(900.0) == 0
    assert session.tick(900.0) == 0


def test_unknown_session_kind_is_rejected() -> None:
    with pytest.raises(ValueError):
        ReadingSession.start("napping", now=0.0)


def test_starting_a_new_session_closes_the_previous_one() -> None:
    forge = Forge(catalog=QuoteCatalog())

    forge.start_session(SessionKind.QUESTING, now=0.0)
    session = forge.start_session(SessionKind.RAIDING, now=180.0)

    assert forge.progress.total_questing_minutes == 3
    assert forge.session is session
    assert session.kind is SessionKind.RAIDING
    assert session.file_id is None


def test_tick_without_session_is_a_no_op() -> None:
    forge = Forge(catalog=QuoteCatalog())

    assert forge.tick_session(now=600.0) == 0
    assert forge.progress.total_questing_minutes == 0
