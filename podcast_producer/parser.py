"""Parse raw text-model output into candidate segment records."""

import json
import logging
import re

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from podcast_producer.errors import GenerationFailure

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


class RawSegment(BaseModel):
    """One record as the model emits it. Everything is optional; the
    sanitizer fills in defaults."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    speaker: str | None = None
    text: str | None = None
    voice_id: str | None = Field(default=None, alias="voiceId")
    tone: str | None = None


_RAW_SEGMENTS = TypeAdapter(list[RawSegment])


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences the model wraps around JSON."""
    return _FENCE_RE.sub("", text).strip()


def extract_json_array(text: str) -> str:
    """Cut prose around the outermost [...] the model wrapped its answer in.

    Search-grounded answers come back as free text, so the array may be
    preceded by an intro line or followed by a sign-off.
    """
    start = text.find("[")
    end = text.rfind("]")
    if start == -1 or end < start:
        return text
    return text[start:end + 1]


def parse_segments(text: str | None) -> list[RawSegment]:
    """Validate a model response as a JSON array of segment records.

    Raises GenerationFailure for empty text, invalid JSON, or a shape
    that isn't a list of objects with string fields.
    """
    if not text or not text.strip():
        raise GenerationFailure("Text model returned an empty response")

    payload = extract_json_array(strip_code_fences(text))
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        logger.warning("Unparsable model output (%s): %.80s", e, payload)
        raise GenerationFailure(f"Model output is not valid JSON: {e}") from e

    try:
        return _RAW_SEGMENTS.validate_python(data)
    except ValidationError as e:
        logger.warning("Model output failed schema validation: %s", e.error_count())
        raise GenerationFailure(f"Model output does not match the segment schema: {e}") from e
