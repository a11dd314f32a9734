"""Split a requested episode length into bounded generation chunks."""

import math

from podcast_producer.constants import CHUNK_MINUTES, WORDS_PER_MINUTE
from podcast_producer.models import ChunkPlan


def plan_chunks(total_minutes: int, chunk_minutes: int = CHUNK_MINUTES) -> list[ChunkPlan]:
    """Return the ordered chunk plans for an episode of total_minutes.

    Every chunk is chunk_minutes long except the last, which takes the
    remainder (or a full chunk when the total divides evenly). The minutes
    always add up to total_minutes.
    """
    if total_minutes <= 0:
        raise ValueError(f"Episode duration must be positive, got {total_minutes}")

    total_chunks = math.ceil(total_minutes / chunk_minutes)
    plans = []
    for i in range(1, total_chunks + 1):
        minutes = chunk_minutes
        if i == total_chunks:
            minutes = total_minutes % chunk_minutes or chunk_minutes
        plans.append(ChunkPlan(
            index=i,
            total_chunks=total_chunks,
            minutes=minutes,
            target_word_count=minutes * WORDS_PER_MINUTE,
            is_first=i == 1,
            is_final=i == total_chunks,
        ))
    return plans
