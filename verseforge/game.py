"""The progression orchestrator.

:class:`Forge` owns one :class:`PlayerProgress` and is the only thing that
mutates it.  Every mutation runs under a single re-entrant lock and finishes
by settling derived state: the destiny cache is recomputed and swapped when it
changed, badges are evaluated, their XP applied, and the pass repeats until
nothing new unlocks.
"""

from __future__ import annotations

import logging
import random
import threading
import uuid
from datetime import datetime
from typing import Any, Iterable, List, NamedTuple, Optional

from .backup import RestoreResult, export_backup, import_backup
from .badges import evaluate_badges
from .clock import calendar_day, ensure_aware, isoformat, now_local, parse_day, utc_day
from .config import ForgeConfig
from .destiny import resolve_destiny
from .generation import (
    CARD_SIZE,
    ITEM_ART_SIZE,
    GenerationCheck,
    GenerationResult,
    ImageGenerator,
    build_destiny_card_prompt,
    build_item_art_prompt,
    can_generate_card,
    can_generate_item_art,
    extract_image_uri,
)
from .leveling import XpProgress, level_from_xp, scripture_xp_for_read, xp_for_quote, xp_progress
from .loot import forge_boon, roll_rarity
from .models.achievements import Badge
from .models.loot import Boon, EquipSlot, StatBlock
from .models.progress import (
    FocusMode,
    FocusState,
    PlayerProgress,
    Quote,
    Scripture,
    ScriptureStats,
)
from .quotes import QuoteCatalog
from .sessions import ReadingSession, SessionKind
from .stats import compute_stats

log = logging.getLogger(__name__)

ARTIFACT_NOT_FOUND = "Artifact not found"
ITEM_ART_IN_PROGRESS = "This item is already being forged."
CARD_IN_PROGRESS = "A destiny card is already being forged."


class ReadResult(NamedTuple):
    quote: Optional[Quote]
    xp_gained: int
    boon: Optional[Boon]
    leveled_up: bool
    new_level: int
    unlocked_badges: tuple[Badge, ...] = ()


class Forge:
    """Single-player progression state and the operations on it."""

    def __init__(
        self,
        progress: PlayerProgress | None = None,
        *,
        catalog: QuoteCatalog | None = None,
        config: ForgeConfig | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.progress = progress if progress is not None else PlayerProgress()
        self.catalog = catalog if catalog is not None else QuoteCatalog.bundled()
        self.config = config if config is not None else ForgeConfig()
        self._rng = rng if rng is not None else random
        self._lock = threading.RLock()
        self._session: Optional[ReadingSession] = None
        self._art_in_flight: set[str] = set()
        self._card_in_flight = False

    @classmethod
    def from_snapshot(cls, data: Any, **kwargs: Any) -> "Forge":
        return cls(PlayerProgress.from_snapshot(data), **kwargs)

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return self.progress.snapshot()

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    def stats(self) -> StatBlock:
        with self._lock:
            progress = self.progress
            return compute_stats(
                progress.level,
                [boon.stat_bonuses for boon in progress.equipped_boons()],
                progress.total_questing_minutes,
            )

    def xp_progress(self) -> XpProgress:
        with self._lock:
            return xp_progress(self.progress.xp, self.progress.level)

    @property
    def session(self) -> Optional[ReadingSession]:
        return self._session

    # ------------------------------------------------------------------
    # Settling derived state
    # ------------------------------------------------------------------

    def _grant_xp(self, amount: int) -> None:
        progress = self.progress
        progress.xp += max(0, int(amount))
        progress.level = level_from_xp(progress.xp)

    def _refresh_destiny(self) -> bool:
        destiny = resolve_destiny(self.progress.level, self.stats())
        if destiny == self.progress.destiny:
            return False
        previous = self.progress.destiny
        self.progress.destiny = destiny
        if previous is None or previous.title != destiny.title:
            log.info("Destiny is now %s", destiny.title)
        return True

    def _settle(self, now: datetime | None = None) -> List[Badge]:
        unlocked: List[Badge] = []
        while True:
            self._refresh_destiny()
            evaluation = evaluate_badges(self.progress, now=now)
            if not evaluation.unlocked:
                return unlocked
            unlocked.extend(evaluation.unlocked)
            self._grant_xp(evaluation.xp_reward)

    def refresh_destiny(self) -> bool:
        """Recompute the destiny cache; returns ``True`` if it changed."""

        with self._lock:
            return self._refresh_destiny()

    def check_badges(self, now: datetime | None = None) -> List[Badge]:
        with self._lock:
            return self._settle(now)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def _quote_pool(self) -> List[Quote]:
        progress = self.progress
        focus = progress.focus
        if focus.mode is FocusMode.FOCUS:
            scripture = progress.find_scripture(focus.focused_file_id)
            if scripture is not None and scripture.quotes:
                return scripture.quotes
            pack = self.catalog.pack_for_file_id(focus.focused_file_id)
            if pack is not None:
                quotes = self.catalog.pack_quotes(pack)
                if quotes:
                    return quotes
            if not progress.focus_target_exists(focus.focused_file_id):
                log.warning("Focused text %s is gone; reading from all", focus.focused_file_id)
                progress.focus = FocusState()
        uploaded = progress.all_quotes()
        if uploaded:
            return uploaded
        return self.catalog.all_quotes()

    def _advance_streak(self, now: datetime) -> None:
        progress = self.progress
        today = calendar_day(now)
        last = parse_day(progress.last_read_date)
        if last == today:
            return
        if last is not None and (today - last).days == 1:
            progress.streak_days += 1
        else:
            progress.streak_days = 1
        progress.last_read_date = today.isoformat()

    def _record_scripture_read(self, quote: Quote) -> None:
        stats = self.progress.scripture_stats.get(quote.file_id or "")
        if stats is None:
            return
        in_focus = self.progress.focus.is_focused_on(quote.file_id)
        # Stock packs only track reads made while focused on them.
        if not in_focus and self.catalog.pack_for_file_id(quote.file_id) is not None:
            return
        stats.record_read(scripture_xp_for_read(in_focus), in_focus=in_focus)

    def read_quote(self, now: datetime | None = None) -> ReadResult:
        """Read one quote, award XP and roll for loot.

        With no quote available anywhere the result is empty and nothing
        changes.
        """

        moment = ensure_aware(now or now_local())
        with self._lock:
            progress = self.progress
            pool = self._quote_pool()
            if not pool:
                log.info("No quotes available to read")
                return ReadResult(None, 0, None, False, progress.level)

            quote = pool[int(self._rng.random() * len(pool))]
            previous_level = progress.level
            xp_gained = xp_for_quote(quote.length)
            progress.total_quotes_read += 1
            self._grant_xp(xp_gained)

            boon: Optional[Boon] = None
            rarity = roll_rarity(self._rng)
            if rarity is not None:
                destiny = progress.destiny
                boon = forge_boon(
                    rarity,
                    stats=self.stats(),
                    primary_class=destiny.primary_class if destiny else None,
                    now=moment,
                    rng=self._rng,
                )
                progress.boons.append(boon)
                log.info("Found %s %s", rarity.label, boon.name)

            self._advance_streak(moment)
            self._record_scripture_read(quote)
            unlocked = self._settle(moment)

            leveled_up = progress.level > previous_level
            if leveled_up:
                log.info("Reached level %s", progress.level)
            return ReadResult(
                quote=quote,
                xp_gained=xp_gained,
                boon=boon,
                leveled_up=leveled_up,
                new_level=progress.level,
                unlocked_badges=tuple(unlocked),
            )

    # ------------------------------------------------------------------
    # Equipment
    # ------------------------------------------------------------------

    def equip_boon(self, slot: EquipSlot | str, boon_id: str | None) -> bool:
        """Put ``boon_id`` into ``slot``, or clear the slot when ``None``.

        Unknown boons and boons that belong to another slot are refused.
        """

        try:
            equip_slot = EquipSlot.from_value(slot)
        except ValueError:
            log.warning("Refused to equip into unknown slot %r", slot)
            return False
        with self._lock:
            progress = self.progress
            if boon_id is None:
                progress.equipment.pop(equip_slot.value, None)
            else:
                boon = progress.find_boon(boon_id)
                if boon is None or boon.equip_slot is not equip_slot:
                    log.warning("Refused to equip %s into %s", boon_id, equip_slot.value)
                    return False
                progress.equipment[equip_slot.value] = boon.id
            self._settle()
            return True

    def unequip(self, slot: EquipSlot | str) -> bool:
        return self.equip_boon(slot, None)

    # ------------------------------------------------------------------
    # Scriptures and focus
    # ------------------------------------------------------------------

    def add_scripture(
        self,
        file_name: str,
        quotes: Iterable[Quote | str | dict[str, Any]],
        *,
        file_id: str | None = None,
        now: datetime | None = None,
    ) -> Scripture:
        """Register an uploaded text from already parsed quotes.

        Stats left behind by a restored backup for a text of the same name are
        adopted by the new upload.
        """

        file_id = file_id or uuid.uuid4().hex
        file_name = str(file_name).strip() or file_id
        parsed: List[Quote] = []
        for entry in quotes:
            if isinstance(entry, Quote):
                text, quote_id = entry.text, entry.id
            elif isinstance(entry, dict):
                text, quote_id = str(entry.get("text") or ""), entry.get("id")
            else:
                text, quote_id = str(entry), None
            text = text.strip()
            if not text:
                continue
            index = len(parsed)
            parsed.append(
                Quote(
                    id=quote_id or f"{file_id}-{index}",
                    text=text,
                    source_label=file_name,
                    index=index,
                    file_id=file_id,
                )
            )

        with self._lock:
            progress = self.progress
            scripture = Scripture(file_id=file_id, file_name=file_name, quotes=parsed)
            progress.scriptures.append(scripture)
            progress.files_uploaded += 1

            orphan_key = next(
                (
                    key
                    for key, stats in progress.scripture_stats.items()
                    if stats.display_name == file_name and not progress.focus_target_exists(key)
                ),
                None,
            )
            if orphan_key is not None:
                stats = progress.scripture_stats.pop(orphan_key)
                stats.file_id = file_id
                progress.scripture_stats[file_id] = stats
                log.info("Re-attached saved progress to '%s'", file_name)
            else:
                progress.scripture_stats.setdefault(
                    file_id, ScriptureStats(file_id=file_id, display_name=file_name)
                )

            self._settle(now)
            log.info("Added '%s' with %s quotes", file_name, len(parsed))
            return scripture

    def delete_scripture(self, file_id: str) -> bool:
        with self._lock:
            progress = self.progress
            scripture = progress.find_scripture(file_id)
            if scripture is None:
                return False
            progress.scriptures.remove(scripture)
            progress.scripture_stats.pop(file_id, None)
            if progress.focus.focused_file_id == file_id:
                progress.focus = FocusState()
            progress.files_uploaded = max(0, progress.files_uploaded - 1)
            log.info("Deleted '%s'", scripture.file_name)
            return True

    def set_focus(self, mode: FocusMode | str, file_id: str | None = None) -> bool:
        """Switch between reading everything and focusing on one text.

        Focusing initialises the text's stats when needed and counts a focus
        session.  Unknown texts are refused.
        """

        state = FocusState(mode, file_id)
        with self._lock:
            progress = self.progress
            if state.mode is FocusMode.FOCUS:
                target = state.focused_file_id
                scripture = progress.find_scripture(target)
                pack = self.catalog.pack_for_file_id(target)
                if scripture is None and pack is None:
                    log.warning("Cannot focus unknown text %s", target)
                    return False
                stats = progress.scripture_stats.get(target)
                if stats is None:
                    display_name = scripture.file_name if scripture is not None else pack
                    stats = ScriptureStats(file_id=target, display_name=display_name)
                    progress.scripture_stats[target] = stats
                stats.focus_sessions += 1
            progress.focus = state
            return True

    # ------------------------------------------------------------------
    # Reading sessions
    # ------------------------------------------------------------------

    def start_session(self, kind: SessionKind | str, *, now: float | None = None) -> ReadingSession:
        with self._lock:
            if self._session is not None:
                self.end_session(now=now)
            focus = self.progress.focus
            file_id = focus.focused_file_id if focus.mode is FocusMode.FOCUS else None
            self._session = ReadingSession.start(kind, file_id=file_id, now=now)
            return self._session

    def tick_session(self, now: float | None = None) -> int:
        """Credit whole minutes elapsed since the last tick."""

        with self._lock:
            if self._session is None:
                return 0
            minutes = self._session.tick(now)
            self._credit_minutes(self._session, minutes)
            return minutes

    def end_session(self, now: float | None = None) -> int:
        with self._lock:
            session = self._session
            if session is None:
                return 0
            self._session = None
            minutes = session.finish(now)
            self._credit_minutes(session, minutes)
            log.info("%s session ended after %s minutes", session.kind.value, session.minute_marker)
            return minutes

    def _credit_minutes(self, session: ReadingSession, minutes: int) -> None:
        if minutes <= 0:
            return
        progress = self.progress
        if session.kind is SessionKind.QUESTING:
            progress.total_questing_minutes += minutes
        else:
            progress.total_raiding_minutes += minutes
            stats = progress.scripture_stats.get(session.file_id or "")
            if stats is not None:
                stats.time_spent_minutes += minutes
        self._settle()

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def set_profile_picture(self, uri: str | None) -> None:
        with self._lock:
            self.progress.profile_picture = (uri or "").strip() or None

    def complete_onboarding(self) -> None:
        with self._lock:
            self.progress.has_onboarded = True

    def reset_onboarding(self) -> None:
        with self._lock:
            self.progress.has_onboarded = False

    def reset(self) -> None:
        with self._lock:
            self._session = None
            self.progress = PlayerProgress()
            self._refresh_destiny()
            log.info("Progress reset")

    # ------------------------------------------------------------------
    # Backups
    # ------------------------------------------------------------------

    def export_backup(self, now: datetime | None = None) -> str:
        with self._lock:
            return export_backup(self.progress, now=now)

    def import_backup(self, payload: str | bytes | dict[str, Any]) -> RestoreResult:
        with self._lock:
            result = import_backup(self.progress, payload)
            if result.success and result.progress is not None:
                self._session = None
                self.progress = result.progress
                self._refresh_destiny()
            return result

    # ------------------------------------------------------------------
    # Art generation
    # ------------------------------------------------------------------

    def _item_art_check(self, boon: Boon, now: datetime) -> GenerationCheck:
        if boon.id in self._art_in_flight:
            return GenerationCheck(False, ITEM_ART_IN_PROGRESS)
        progress = self.progress
        return can_generate_item_art(
            progress.item_art_generation_count_today,
            progress.item_art_generation_date,
            boon.image_generated_at,
            now=now,
            daily_limit=self.config.item_art_daily_limit,
            cooldown_seconds=self.config.item_art_cooldown_seconds,
            pending=len(self._art_in_flight),
        )

    def _card_check(self, now: datetime) -> GenerationCheck:
        if self._card_in_flight:
            return GenerationCheck(False, CARD_IN_PROGRESS)
        return can_generate_card(
            self.progress.last_card_generated_at,
            now=now,
            cooldown_minutes=self.config.card_cooldown_minutes,
        )

    def can_generate_item_art(self, boon_id: str, now: datetime | None = None) -> GenerationCheck:
        moment = ensure_aware(now or now_local())
        with self._lock:
            boon = self.progress.find_boon(boon_id)
            if boon is None:
                return GenerationCheck(False, ARTIFACT_NOT_FOUND)
            return self._item_art_check(boon, moment)

    def can_generate_card(self, now: datetime | None = None) -> GenerationCheck:
        moment = ensure_aware(now or now_local())
        with self._lock:
            return self._card_check(moment)

    async def _generate(self, generator: ImageGenerator, prompt: str, size: str) -> GenerationResult:
        try:
            payload = await generator(prompt, size=size)
        except Exception as exc:
            log.exception("Image generation failed")
            return GenerationResult(False, error=str(exc) or "Image generation failed")
        result = extract_image_uri(payload)
        if not result.success:
            log.warning("Image service returned no image: %s", result.error)
        return result

    async def generate_item_art(
        self,
        boon_id: str,
        generator: ImageGenerator,
        *,
        now: datetime | None = None,
    ) -> GenerationResult:
        """Forge artwork for one boon.

        The daily slot and the item are reserved under the lock before the
        generator is awaited outside it, so overlapping calls cannot exceed
        the limits.  State only changes when the generator returns an image;
        failures and cancellation release the reservation and leave
        everything as it was.
        """

        moment = ensure_aware(now or now_local())
        with self._lock:
            boon = self.progress.find_boon(boon_id)
            if boon is None:
                return GenerationResult(False, error=ARTIFACT_NOT_FOUND)
            check = self._item_art_check(boon, moment)
            if not check.allowed:
                return GenerationResult(False, error=check.reason)
            prompt = build_item_art_prompt(boon, self.progress.level)
            self._art_in_flight.add(boon_id)

        try:
            result = await self._generate(generator, prompt, ITEM_ART_SIZE)
            if not result.success:
                return result

            with self._lock:
                progress = self.progress
                boon = progress.find_boon(boon_id)
                if boon is None:
                    return GenerationResult(False, error=ARTIFACT_NOT_FOUND)
                boon.image_url = result.image_uri
                boon.image_generated_at = isoformat(moment)
                today = utc_day(moment)
                if progress.item_art_generation_date == today:
                    progress.item_art_generation_count_today += 1
                else:
                    progress.item_art_generation_date = today
                    progress.item_art_generation_count_today = 1
                log.info("Forged art for %s", boon.name)
            return result
        finally:
            with self._lock:
                self._art_in_flight.discard(boon_id)

    async def generate_character_card(
        self,
        generator: ImageGenerator,
        *,
        gender: str = "female",
        now: datetime | None = None,
    ) -> GenerationResult:
        moment = ensure_aware(now or now_local())
        with self._lock:
            check = self._card_check(moment)
            if not check.allowed:
                return GenerationResult(False, error=check.reason)
            self._refresh_destiny()
            prompt = build_destiny_card_prompt(
                self.progress.destiny, self.stats(), gender, rng=self._rng
            )
            self._card_in_flight = True

        try:
            result = await self._generate(generator, prompt, CARD_SIZE)
            if not result.success:
                return result

            with self._lock:
                self.progress.character_card_image_url = result.image_uri
                self.progress.last_card_generated_at = isoformat(moment)
                log.info("Forged a new destiny card")
            return result
        finally:
            with self._lock:
                self._card_in_flight = False


__all__ = ["Forge", "ReadResult"]
