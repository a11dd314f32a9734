"""Prompt text for script generation, plus the bibliography sidecar."""

import json
import logging
import os
from dataclasses import dataclass

from podcast_producer.constants import (
    BOOK_TITLE,
    CONTINUITY_LINES,
    FEMALE_PERSONA,
    FEMALE_VOICE,
    FREE_ROAM_CHAPTER,
    FREE_ROAM_DESCRIPTION,
    FREE_ROAM_ID,
    FREE_ROAM_SUBCHAPTER,
    LANGUAGE,
    MALE_PERSONA,
    MALE_VOICE,
)
from podcast_producer.models import ChunkPlan, Segment

logger = logging.getLogger(__name__)

PODCAST_SYSTEM_INSTRUCTION = f"""
You write scripts for a two-voice podcast based on the book "{BOOK_TITLE}".
The hosts are {MALE_PERSONA} and {FEMALE_PERSONA}. They blend Ericksonian
hypnotic language, NLP, neuroscience and quantum-physics metaphors into a
warm, fluid conversation.

Write every line in {LANGUAGE}.

Answer ONLY with a JSON array. Each element is an object:
  {{"speaker": "<host name>", "text": "<spoken line>", "voiceId": "<voice id>", "tone": "<delivery hint>"}}
""".strip()


@dataclass(frozen=True)
class TopicContext:
    """Structural context for one episode. custom_topic overrides the rest."""

    chapter_title: str = FREE_ROAM_CHAPTER
    subchapter_title: str = FREE_ROAM_SUBCHAPTER
    description: str = FREE_ROAM_DESCRIPTION
    subchapter_id: str = FREE_ROAM_ID
    custom_topic: str = ""

    @property
    def uses_web_search(self) -> bool:
        return bool(self.custom_topic.strip())

    @property
    def is_free_roam(self) -> bool:
        return self.subchapter_id == FREE_ROAM_ID


def load_bibliography(path: str | None) -> dict[str, list[str]]:
    """Load the subchapter-id → citations sidecar.

    Returns an empty dict if the path is unset, missing or malformed.
    """
    if not path or not os.path.exists(path):
        return {}
    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError:
        logger.warning("Ignoring malformed bibliography file: %s", path)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring bibliography file %s: not a JSON object", path)
        return {}
    return {
        str(key): [str(ref) for ref in refs]
        for key, refs in data.items()
        if isinstance(refs, list)
    }


def _bibliography_block(references: list[str] | None) -> str:
    if not references:
        return ""
    lines = "\n".join(f"- {ref}" for ref in references)
    return f"INTERNAL SCIENTIFIC BASIS (reference):\n{lines}"


def _topic_block(topic: TopicContext) -> str:
    if not topic.uses_web_search:
        return "Stick strictly to the subchapter theme given above."
    custom = topic.custom_topic.strip()
    return (
        f'PRIORITY THEME (DEEP RESEARCH): the user chose the topic "{custom}".\n'
        f'1. Ignore the subchapter title if it conflicts with this theme. The focus is "{custom}".\n'
        "2. USE THE SEARCH TOOL to find recent academic articles, precise scientific "
        "definitions (neuroscience / quantum physics) and current news on the theme.\n"
        "3. Synthesize the EXTERNAL SEARCH results with the INTERNAL SCIENTIFIC BASIS."
    )


def summarize_for_continuity(segments: list[Segment], lines: int = CONTINUITY_LINES) -> str:
    """Digest of the last few lines, handed to the next chunk as context."""
    tail = "\n".join(f"{s.speaker}: {s.text}" for s in segments[-lines:])
    return f"The conversation was flowing. Last lines:\n{tail}"


def build_chunk_prompt(
    topic: TopicContext,
    plan: ChunkPlan,
    previous_context: str = "",
    references: list[str] | None = None,
) -> str:
    """Build the user prompt for one generation chunk."""
    if plan.total_chunks > 1:
        part = (
            f"PART {plan.index} of {plan.total_chunks}. "
            "(Generate ONLY the script for this part, keeping continuity.)"
        )
    else:
        part = "Complete script."

    if previous_context:
        context = f"SUMMARY OF THE PREVIOUS PART: {previous_context}\nCONTINUE THE CONVERSATION NATURALLY FROM HERE."
    else:
        context = "START OF THE PODCAST."

    hook = ""
    if plan.is_first:
        hook = (
            "OPENING RULE (THE HOOK): start IMMEDIATELY with a hypnotic hook that breaks the fourth wall.\n"
            '- FORBIDDEN: opening with "Hello", "Welcome", "In this episode".\n'
            "- REQUIRED: the first line is a provocative rhetorical question or a startling "
            "statement that grabs attention within 3 seconds."
        )

    if plan.is_final:
        closing = "Close the podcast with final conclusions and farewells."
    else:
        closing = "Do NOT end the podcast yet. Finish this part so the next one can continue the flow."

    sections = [
        "Generate the podcast script for:",
        f"Chapter: {topic.chapter_title}",
        f"Subchapter: {topic.subchapter_title}",
        f"Original context: {topic.description}",
        _bibliography_block(references),
        _topic_block(topic),
        "GENERATION STRUCTURE:",
        part,
        context,
        hook,
        "GOAL FOR THIS PART:",
        f"- Length of this block: {plan.minutes} minutes.",
        f"- Target words: ~{plan.target_word_count} words.",
        f"- {closing}",
        "CHARACTERS AND VOICES (CRITICAL):",
        f'1. {MALE_PERSONA} (voice id: "{MALE_VOICE}") -> male voice.',
        f'2. {FEMALE_PERSONA} (voice id: "{FEMALE_VOICE}") -> female voice.',
        "FORBIDDEN:",
        '- Do NOT use "Narrator", "Host" or "System" as a speaker.',
        f'- Do NOT mention the voice names ("{MALE_VOICE}" or "{FEMALE_VOICE}") in the dialogue.',
        "- No monologues. Keep the turns short and interactive (ping-pong).",
        f"To reach {plan.minutes} minutes, go deeper with stories and metaphors while "
        f"keeping the turns alternating between the two hosts.",
        "Generate the JSON array of segments.",
    ]
    return "\n".join(s for s in sections if s)
