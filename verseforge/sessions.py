"""Timed reading sessions.

A session credits whole minutes only.  Each tick credits the minutes elapsed
since the last credited minute, and ending a session credits whatever whole
minutes remain, so a partial minute is never counted and a torn-down ticker
never double counts.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SessionKind(str, Enum):
    QUESTING = "questing"
    RAIDING = "raiding"

    @classmethod
    def from_value(cls, value: "SessionKind | str") -> "SessionKind":
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        raise ValueError(f"Unknown session kind: {value}")


@dataclass(slots=True)
class ReadingSession:
    kind: SessionKind
    started_at: float
    file_id: Optional[str] = None
    minute_marker: int = 0

    @classmethod
    def start(
        cls,
        kind: SessionKind | str,
        *,
        file_id: str | None = None,
        now: float | None = None,
    ) -> "ReadingSession":
        return cls(
            kind=SessionKind.from_value(kind),
            started_at=time.time() if now is None else now,
            file_id=file_id,
        )

    def elapsed_minutes(self, now: float | None = None) -> int:
        current = time.time() if now is None else now
        return max(0, int((current - self.started_at) // 60))

    def tick(self, now: float | None = None) -> int:
        """Return the whole minutes gained since the last credited minute."""

        whole = self.elapsed_minutes(now)
        gained = max(0, whole - self.minute_marker)
        self.minute_marker = max(self.minute_marker, whole)
        return gained

    def finish(self, now: float | None = None) -> int:
        whole = self.elapsed_minutes(now)
        if whole < 1:
            return 0
        return self.tick(now)


__all__ = ["ReadingSession", "SessionKind"]
