"""Write transcript and audio artifacts for a generated episode."""

import json
import os
import re
from datetime import datetime, timezone

from pydub import AudioSegment

from podcast_producer.constants import (
    CHANNELS,
    DEFAULT_TITLE,
    FREE_MODE_LABEL,
    FREE_ROAM_ID,
    OUTPUT_BITRATE,
    SAMPLE_RATE,
    SAMPLE_WIDTH,
    VERSION,
    WAV_HEADER_SIZE,
)
from podcast_producer.models import Episode

RULE_LINE = "-" * 50


def safe_title(title: str) -> str:
    """Filename stem for a title: whitespace → underscore, lowercase.

    "Quantum Fields" → "quantum_fields"
    """
    stem = re.sub(r"\s+", "_", title.strip()).lower()
    stem = re.sub(r"[^\w\-]", "", stem)
    return stem or DEFAULT_TITLE


def render_transcript(episode: Episode, generated_at: datetime | None = None) -> str:
    """Plain-text script: header block, then one paragraph per segment."""
    if generated_at is None:
        generated_at = datetime.now()
    title = episode.title or DEFAULT_TITLE
    description = episode.description or FREE_MODE_LABEL
    if episode.subchapter_id == FREE_ROAM_ID:
        description = FREE_MODE_LABEL
    header = (
        f"PODCAST SCRIPT: {title}\n"
        f"DESCRIPTION: {description}\n"
        f"GENERATED AT: {generated_at.strftime('%Y-%m-%d %H:%M:%S')}\n"
        f"{RULE_LINE}\n\n"
    )
    body = "\n".join(f"{seg.speaker.upper()}:\n{seg.text}\n" for seg in episode.segments)
    return header + body


def export_transcript(
    episode: Episode,
    final_dir: str,
    generated_at: datetime | None = None,
) -> str | None:
    """Write <title>_script.txt. Returns the path, or None for an empty episode."""
    if not episode.segments:
        return None
    os.makedirs(final_dir, exist_ok=True)
    path = os.path.join(final_dir, f"{safe_title(episode.title)}_script.txt")
    with open(path, "w", encoding="utf-8") as f:
        f.write(render_transcript(episode, generated_at))
    return path


def export_audio(
    wav_bytes: bytes,
    final_dir: str,
    title: str,
    audio_format: str = "wav",
) -> str:
    """Write the assembled episode as WAV (byte for byte) or MP3.

    MP3 export re-encodes the PCM payload through pydub and needs ffmpeg.
    Returns path to the written file.
    """
    os.makedirs(final_dir, exist_ok=True)
    stem = safe_title(title)

    if audio_format == "wav":
        path = os.path.join(final_dir, f"{stem}.wav")
        with open(path, "wb") as f:
            f.write(wav_bytes)
        return path

    if audio_format != "mp3":
        raise ValueError(f"Unsupported audio format: {audio_format}")

    audio = AudioSegment(
        data=wav_bytes[WAV_HEADER_SIZE:],
        sample_width=SAMPLE_WIDTH,
        frame_rate=SAMPLE_RATE,
        channels=CHANNELS,
    )
    path = os.path.join(final_dir, f"{stem}.mp3")
    audio.export(path, format="mp3", bitrate=OUTPUT_BITRATE, tags={"title": title})
    return path


def write_manifest(
    final_dir: str,
    episode: Episode,
    audio_path: str | None,
    settings: dict,
) -> str:
    """Write output.json provenance manifest next to the exported files."""
    os.makedirs(final_dir, exist_ok=True)
    payload_bytes = 0
    if audio_path and audio_path.endswith(".wav") and os.path.exists(audio_path):
        payload_bytes = os.path.getsize(audio_path) - WAV_HEADER_SIZE

    manifest = {
        "title": episode.title,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "producer_version": VERSION,
        "audio": os.path.basename(audio_path) if audio_path else None,
        "settings": settings,
        "stats": {
            "segments": len(episode.segments),
            "requested_minutes": episode.minutes,
            "duration_seconds": round(payload_bytes / (SAMPLE_RATE * SAMPLE_WIDTH * CHANNELS), 1),
            "speakers": sorted({s.speaker for s in episode.segments}),
        },
    }
    path = os.path.join(final_dir, "output.json")
    with open(path, "w") as f:
        json.dump(manifest, f, indent=2, ensure_ascii=False)
    return path
