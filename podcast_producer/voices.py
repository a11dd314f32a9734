"""Speaker normalization and voice assignment for generated segments."""

import logging
from typing import Callable

from podcast_producer.constants import (
    DISALLOWED_SPEAKERS,
    FEMALE_ALIASES,
    FEMALE_VOICE,
    MALE_ALIASES,
    MALE_PERSONA,
    MALE_VOICE,
)
from podcast_producer.models import Segment
from podcast_producer.parser import RawSegment

logger = logging.getLogger(__name__)

CANONICAL_VOICES = (MALE_VOICE, FEMALE_VOICE)


def _contains_any(tokens: tuple[str, ...]) -> Callable[[str], bool]:
    return lambda label: any(token in label for token in tokens)


# Evaluated top to bottom; the LAST matching rule wins. A label naming both
# personas therefore resolves to the male voice.
VOICE_RULES: list[tuple[Callable[[str], bool], str]] = [
    (lambda label: True, MALE_VOICE),
    (_contains_any(FEMALE_ALIASES), FEMALE_VOICE),
    (_contains_any(MALE_ALIASES), MALE_VOICE),
]


def resolve_voice(label: str | None) -> str:
    """Map a speaker label (or a voice name) to a canonical voice id."""
    lowered = (label or "").lower()
    voice = MALE_VOICE
    for predicate, rule_voice in VOICE_RULES:
        if predicate(lowered):
            voice = rule_voice
    return voice


def is_disallowed_speaker(speaker: str) -> bool:
    """True for generic narrator/host labels the show must never use."""
    lowered = speaker.lower()
    return any(token in lowered for token in DISALLOWED_SPEAKERS)


def _normalize_speaker(speaker: str | None) -> str:
    name = (speaker or "").strip()
    if not name:
        return MALE_PERSONA
    if is_disallowed_speaker(name):
        logger.debug("Rewriting disallowed speaker %r to %s", name, MALE_PERSONA)
        return MALE_PERSONA
    return name


def sanitize_segments(raw_segments: list[RawSegment]) -> list[Segment]:
    """Normalize speakers and voices. Never raises.

    The model's own voiceId is ignored: voice depends only on the speaker.
    """
    segments = []
    for raw in raw_segments:
        speaker = _normalize_speaker(raw.speaker)
        segments.append(Segment(
            speaker=speaker,
            voice_id=resolve_voice(speaker),
            text=raw.text or "",
            tone=raw.tone,
        ))

    # Unreachable after the rewrite above, kept as a last filter
    kept = [s for s in segments if not is_disallowed_speaker(s.speaker)]
    if len(kept) != len(segments):
        logger.warning("Dropped %d segments with narrator/host speakers", len(segments) - len(kept))
    return kept
