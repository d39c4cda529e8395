"""Cooldown-gated art generation: checks, prompts and response handling.

The image service itself is injected as an :class:`ImageGenerator`.  Every
check here is pure so it can be consulted before any network work starts.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping, NamedTuple, Optional, Protocol

from .clock import ensure_aware, now_local, parse_timestamp, utc_day
from .models.loot import Boon, ItemType, Rarity, StatBlock
from .models.progress import Destiny, DestinyTier, PrimaryClass
from .stats import rank_stats

ITEM_ART_DAILY_LIMIT = 10
ITEM_ART_COOLDOWN_SECONDS = 60
CARD_COOLDOWN_MINUTES = 10

ITEM_ART_SIZE = "1024x1024"
CARD_SIZE = "1024x1536"

DAILY_LIMIT_REASON = (
    "You've reached today's forging limit for item art. "
    "The Forge will be ready again tomorrow."
)


class GenerationCheck(NamedTuple):
    allowed: bool
    reason: Optional[str] = None
    remaining_today: Optional[int] = None
    wait_minutes: Optional[int] = None


class GenerationResult(NamedTuple):
    success: bool
    image_uri: Optional[str] = None
    error: Optional[str] = None


class ImageGenerator(Protocol):
    """Async image service.

    Returns either an image URI or the raw response payload, which is passed
    through :func:`extract_image_uri`.
    """

    async def __call__(self, prompt: str, *, size: str) -> Mapping[str, Any] | str:
        ...


# ---------------------------------------------------------------------------
# Cooldowns
# ---------------------------------------------------------------------------


def can_generate_item_art(
    daily_count: int,
    daily_date: str | None,
    last_generated_at: str | None,
    *,
    now: datetime | None = None,
    daily_limit: int = ITEM_ART_DAILY_LIMIT,
    cooldown_seconds: int = ITEM_ART_COOLDOWN_SECONDS,
    pending: int = 0,
) -> GenerationCheck:
    """Whether one more item image may be forged.

    The daily counter only applies when ``daily_date`` is today's UTC date.
    ``last_generated_at`` is the item's own previous generation time and
    ``pending`` counts generations already started but not yet applied.
    """

    current = ensure_aware(now or now_local())
    count = max(0, int(daily_count or 0)) if daily_date == utc_day(current) else 0
    count += max(0, int(pending))
    if count >= daily_limit:
        return GenerationCheck(False, DAILY_LIMIT_REASON, remaining_today=0)

    last = parse_timestamp(last_generated_at)
    if last is not None:
        elapsed = (current - last).total_seconds()
        if elapsed < cooldown_seconds:
            wait_seconds = math.ceil(cooldown_seconds - elapsed)
            return GenerationCheck(
                False,
                f"Please wait {wait_seconds} seconds before forging this item again.",
                remaining_today=daily_limit - count,
            )

    return GenerationCheck(True, remaining_today=daily_limit - count - 1)


def can_generate_card(
    last_generated_at: str | None,
    *,
    now: datetime | None = None,
    cooldown_minutes: int = CARD_COOLDOWN_MINUTES,
) -> GenerationCheck:
    last = parse_timestamp(last_generated_at)
    if last is None:
        return GenerationCheck(True)
    current = ensure_aware(now or now_local())
    elapsed_minutes = (current - last).total_seconds() / 60
    if elapsed_minutes >= cooldown_minutes:
        return GenerationCheck(True)
    wait = math.ceil(cooldown_minutes - elapsed_minutes)
    return GenerationCheck(
        False,
        f"Please wait {wait} minutes before forging a new destiny card.",
        wait_minutes=wait,
    )


# ---------------------------------------------------------------------------
# Item art prompt
# ---------------------------------------------------------------------------

RARITY_STYLES: Mapping[Rarity, str] = MappingProxyType(
    {
        Rarity.COMMON: "simple but meaningful design, subtle magical hint, minimal glow, grounded colors",
        Rarity.UNCOMMON: "soft magical aura, light engravings, slightly enhanced detail",
        Rarity.RARE: "strong magical glow, vivid colors, intricate engravings, clearly powerful artifact",
        Rarity.EPIC: "dramatic lighting, swirling magical energy, complex silhouette, heroic presentation",
        Rarity.LEGENDARY: "legendary artifact, highly ornate, radiant energy, sacred and ancient, awe-inspiring design",
    }
)

ITEM_DESCRIPTIONS: Mapping[ItemType, str] = MappingProxyType(
    {
        ItemType.CROWN: "floating crown, ornate metalwork, gemstone centerpiece",
        ItemType.RING: "close-up mystical ring, glowing gem, soft surface reflection",
        ItemType.CLOAK: "cloak shown on invisible mannequin, flowing fabric, magical folds",
        ItemType.LAMP: "ancient magical lantern, internal glow",
        ItemType.LANTERN: "ancient magical lantern, internal glow",
        ItemType.TOME: "ancient spellbook, slightly open, glowing runes or pages",
        ItemType.KEY: "ornate key with intricate head design, suspended softly",
        ItemType.AMULET: "pendant floating in air, faint chain visible",
        ItemType.BLADE: "sword or dagger, dynamic angle, detailed hilt",
        ItemType.QUILL: "mystical feather quill, glowing ink tip, ethereal",
        ItemType.ORB: "mystical sphere, internal energy, suspended in air",
        ItemType.MIRROR: "ornate hand mirror, reflective surface with magical depth",
        ItemType.SCROLL: "partially unrolled scroll, glowing symbols visible",
        ItemType.TABLET: "stone or crystal tablet, engraved with mystical writing",
        ItemType.STAFF: "ornate magical staff, detailed headpiece, energy flowing",
        ItemType.CHALICE: "sacred goblet, intricate design, subtle inner light",
        ItemType.RUNE: "carved mystical rune stone, glowing inscriptions",
        ItemType.SIGIL: "floating magical sigil, complex geometric pattern",
        ItemType.COMPASS: "mystical compass, ornate design, magical needle",
        ItemType.RELIC: "ancient sacred relic, mysterious aura, timeless design",
    }
)

HIGH_LEVEL_ART_THRESHOLD = 100


def shorten_item_name(name: str) -> str:
    parts = name.split(" of ")
    if len(parts) > 3:
        return f"{parts[0]} of {parts[1]}"
    if len(name) > 80:
        return name[:77] + "..."
    return name


def build_item_art_prompt(boon: Boon, player_level: int = 1) -> str:
    slot_description = ITEM_DESCRIPTIONS.get(
        boon.item_type, "mystical item, centered composition"
    )
    enhanced = player_level >= HIGH_LEVEL_ART_THRESHOLD or boon.rarity.at_least(Rarity.EPIC)
    enhancement = (
        "ultra high detail, cinematic lighting, dramatic composition" if enhanced else ""
    )
    theme_line = (
        f"\nThe design reflects the theme of {boon.theme_tag}." if boon.theme_tag else ""
    )
    return (
        f"A single magical {boon.item_type.value} called '{shorten_item_name(boon.name)}', "
        "centered on screen, no text, no labels, detailed fantasy concept art, "
        "clean background, designed as game item artwork.\n\n"
        f"{slot_description}\n\n"
        f"Rarity style: {RARITY_STYLES[boon.rarity]}\n\n"
        f"{enhancement}{theme_line}\n\n"
        "No text, no labels, no lettering anywhere in the image.\n"
        "No copyrighted content, no real people, no logos.\n"
        "Mystical and spiritual aesthetic, suitable for a wisdom and knowledge focused RPG.\n"
        "Clean, iconic design optimized for mobile game item cards."
    )


# ---------------------------------------------------------------------------
# Destiny card prompt
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CardStyle:
    detail: str
    aura: str


@dataclass(frozen=True, slots=True)
class ClassTheme:
    base: str
    motifs: str


TIER_STYLES: Mapping[DestinyTier, CardStyle] = MappingProxyType({
    DestinyTier.INITIATE: CardStyle(
        detail="simple, clean illustration, minimal background, soft watercolor feel",
        aura="soft subtle glow, faint shimmer",
    ),
    DestinyTier.ADEPT: CardStyle(
        detail="more detailed rendering, gentle magical energy, refined brushwork",
        aura="soft halo, subtle floating symbols, wisps of light",
    ),
    DestinyTier.RISING: CardStyle(
        detail="polished fantasy art, vivid colors, detailed costume and accessories",
        aura="growing aura, floating runes, crystalline particles",
    ),
    DestinyTier.ELITE: CardStyle(
        detail="highly detailed fantasy art, rich textures, ornate decorations",
        aura="bright aura, glowing runes and symbols, dramatic lighting, energy waves",
    ),
    DestinyTier.MYTHIC: CardStyle(
        detail="epic fantasy illustration, intricate details, legendary aesthetic",
        aura="radiant aura, mystical patterns, ancient symbols, powerful energy",
    ),
    DestinyTier.ASCENDED: CardStyle(
        detail="transcendent fantasy art, divine aesthetic, breathtaking detail",
        aura="brilliant aura, sacred geometry, celestial light, divine radiance",
    ),
    DestinyTier.ETERNAL: CardStyle(
        detail="cosmic fantasy art, timeless aesthetic, ultra-detailed illustration",
        aura="constellations, infinite patterns, swirling cosmic light, eternal glow",
    ),
    DestinyTier.TRANSCENDENT: CardStyle(
        detail="mythic, otherworldly, hyper-detailed masterpiece, reality-bending aesthetic",
        aura="nebulae, fractal light, divine radiance, multi-layered cosmic aura, reality warping effects",
    ),
    DestinyTier.PARAGON: CardStyle(
        detail="ultimate masterpiece, godlike presence, infinite detail, beyond mortal comprehension",
        aura="universe itself as aura, dimensional rifts, pure energy, manifestation of infinity",
    ),
})

CLASS_THEMES: Mapping[PrimaryClass, ClassTheme] = MappingProxyType({
    PrimaryClass.FATEWEAVER: ClassTheme(
        base="weaver of cosmic threads, confident mystic gaze, flowing robes with constellation patterns",
        motifs="glowing threads of light weaving through space, constellations, woven patterns, destiny symbols",
    ),
    PrimaryClass.LOREKEEPER: ClassTheme(
        base="keeper of ancient knowledge, scholarly presence, robes adorned with script and symbols",
        motifs="floating books, ancient scrolls, glowing runes, library aesthetic, wisdom symbols",
    ),
    PrimaryClass.DEVOTION_SAGE: ClassTheme(
        base="devoted spiritual master, serene expression, ceremonial garments with sacred symbols",
        motifs="sacred flames, prayer beads, lotus flowers, mandala patterns, spiritual energy",
    ),
    PrimaryClass.SOULWANDERER: ClassTheme(
        base="traveler between worlds, introspective expression, travel-worn mystical attire",
        motifs="floating lanterns, distant landscapes, dreamlike mist, portal effects, path symbols",
    ),
    PrimaryClass.LIGHTBEARER: ClassTheme(
        base="bringer of illumination, radiant presence, robes that shimmer with inner light",
        motifs="beams of light, glowing crystals, sun motifs, stars, radiant energy",
    ),
    PrimaryClass.MINDFORGED: ClassTheme(
        base="master of mental discipline, focused intense gaze, sleek armor-like robes",
        motifs="geometric patterns, crystalline structures, neural networks, thought made visible",
    ),
    PrimaryClass.FORTUNEBOUND: ClassTheme(
        base="favored by luck, knowing smile, elegant attire with fortune symbols",
        motifs="coins and dice floating nearby, four-leaf clovers, probability waves, luck runes",
    ),
    PrimaryClass.ENDUREBORN: ClassTheme(
        base="embodiment of resilience, weathered but strong, sturdy robes with endurance marks",
        motifs="mountains, oak trees, unbreakable chains, shield symbols, timeless stones",
    ),
})

STAT_ADJECTIVES: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "insight": ("thoughtful expression", "perceptive eyes", "wise countenance"),
        "devotion": ("warm aura", "compassionate gaze", "gentle glow around the heart"),
        "wonder": ("wide curious eyes", "awe-struck expression", "surrounded by magical sparkles"),
        "clarity": ("sharp focused features", "crisp clear lighting", "crystalline clarity"),
        "fortune": ("subtle knowing smile", "lucky shimmer", "coins or runes of luck nearby"),
        "endurance": ("steady confident stance", "strong grounded posture", "weathered but resilient"),
        "focus": ("intense concentrated gaze", "laser-focused eyes", "determined expression"),
    }
)


def build_destiny_card_prompt(
    destiny: Destiny,
    stats: StatBlock,
    gender: str = "female",
    rng: random.Random | None = None,
) -> str:
    rng = rng if rng is not None else random
    style = TIER_STYLES[destiny.destiny_tier]
    theme = CLASS_THEMES[destiny.primary_class]
    phrases = []
    for stat in rank_stats(stats)[:2]:
        adjectives = STAT_ADJECTIVES.get(stat, ())
        if adjectives:
            phrases.append(adjectives[int(rng.random() * len(adjectives))])
    gender_text = "male" if str(gender).strip().lower() == "male" else "female"
    return (
        f"Fantasy character portrait of a {gender_text} {destiny.primary_class.value.lower()},\n"
        f"{theme.base}, {', '.join(phrases)}.\n"
        f"Background with {theme.motifs}, {style.detail},\n"
        f"{style.aura}.\n"
        "Tarot-style character card illustration, centered composition, highly polished art.\n"
        f"IMPORTANT: The character must be clearly {gender_text}.\n"
        "No text, no lettering, no captions, no words anywhere in the image.\n"
        "No copyrighted characters, no logos, no real people.\n"
        "Original fantasy-inspired mystical character, spiritual and ethereal aesthetic.\n"
        "Portrait orientation (2:3 aspect ratio), suitable for mobile game character card."
    )


# ---------------------------------------------------------------------------
# Response payloads
# ---------------------------------------------------------------------------


def _base64_from(container: Mapping[str, Any]) -> tuple[str, str] | None:
    for key in ("base64Data", "base64"):
        data = container.get(key)
        if isinstance(data, str):
            return data, str(container.get("mimeType") or "image/png")
    return None


def extract_image_uri(payload: Any) -> GenerationResult:
    """Turn an image service response into a result.

    Base64 bodies become ``data:`` URIs; a plain ``url`` is used as-is.
    """

    if isinstance(payload, str):
        if payload:
            return GenerationResult(True, image_uri=payload)
        return GenerationResult(False, error="Image data is empty")
    if not isinstance(payload, Mapping):
        return GenerationResult(False, error="Invalid response from server")

    image = payload.get("image")
    if isinstance(image, Mapping):
        found = _base64_from(image)
        if found is None:
            return GenerationResult(False, error="Could not find image data in response")
    elif isinstance(image, str):
        found = (image, "image/png")
    else:
        found = _base64_from(payload)
        if found is None:
            url = payload.get("url")
            if isinstance(url, str) and url:
                return GenerationResult(True, image_uri=url)
            return GenerationResult(False, error="No image data found in response")

    data, mime_type = found
    if not data:
        return GenerationResult(False, error="Image data is empty")
    return GenerationResult(True, image_uri=f"data:{mime_type};base64,{data}")


__all__ = [
    "CARD_COOLDOWN_MINUTES",
    "GenerationCheck",
    "GenerationResult",
    "ITEM_ART_COOLDOWN_SECONDS",
    "ITEM_ART_DAILY_LIMIT",
    "ImageGenerator",
    "build_destiny_card_prompt",
    "build_item_art_prompt",
    "can_generate_card",
    "can_generate_item_art",
    "extract_image_uri",
]
