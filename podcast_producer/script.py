"""Multi-chunk podcast script generation with continuity between chunks."""

import logging

from podcast_producer.errors import GenerationFailure
from podcast_producer.models import Episode, Segment
from podcast_producer.parser import parse_segments
from podcast_producer.planner import plan_chunks
from podcast_producer.prompts import (
    PODCAST_SYSTEM_INSTRUCTION,
    TopicContext,
    build_chunk_prompt,
    summarize_for_continuity,
)
from podcast_producer.voices import sanitize_segments

logger = logging.getLogger(__name__)


async def generate_script(
    topic: TopicContext,
    total_minutes: int,
    text_client,
    deep: bool = False,
    bibliography: dict[str, list[str]] | None = None,
) -> Episode:
    """Generate a full episode, one chunk at a time.

    Chunks run strictly in order because each prompt carries a summary of
    the previous chunk's last lines. All-or-nothing: if any chunk fails the
    whole run raises GenerationFailure and nothing generated so far is kept.
    There is no retry or resume of a partial run.
    """
    if topic.is_free_roam and not topic.uses_web_search:
        raise ValueError("Free-roam episodes need a custom topic")

    plans = plan_chunks(total_minutes)
    references = (bibliography or {}).get(topic.subchapter_id)
    logger.info(
        "Starting podcast generation: %d min total in %d chunks, topic: %s",
        total_minutes, len(plans), topic.custom_topic or "standard",
    )

    segments: list[Segment] = []
    previous_context = ""

    for plan in plans:
        prompt = build_chunk_prompt(topic, plan, previous_context, references)
        logger.info("Requesting chunk %d/%d (%d min, ~%d words)",
                    plan.index, plan.total_chunks, plan.minutes, plan.target_word_count)
        try:
            text = await text_client.generate(
                PODCAST_SYSTEM_INSTRUCTION,
                prompt,
                deep=deep,
                web_search=topic.uses_web_search,
            )
        except GenerationFailure:
            raise
        except Exception as e:
            logger.error("Chunk %d/%d request failed: %s", plan.index, plan.total_chunks, e)
            raise GenerationFailure(f"Chunk {plan.index} of {plan.total_chunks} failed: {e}") from e

        chunk_segments = sanitize_segments(parse_segments(text))
        segments.extend(chunk_segments)

        if not plan.is_final and chunk_segments:
            previous_context = summarize_for_continuity(chunk_segments)

    logger.info("Generated %d segments", len(segments))
    return Episode(
        segments=tuple(segments),
        title=topic.custom_topic.strip() or topic.subchapter_title,
        description=topic.description,
        topic=topic.custom_topic.strip(),
        minutes=total_minutes,
        deep=deep,
        subchapter_id=topic.subchapter_id,
    )
