"""Assemble per-segment speech into a single WAV container."""

import logging
import struct

from podcast_producer.constants import CHANNELS, SAMPLE_RATE, SAMPLE_WIDTH
from podcast_producer.errors import DownloadAssemblyFailure
from podcast_producer.models import Episode

logger = logging.getLogger(__name__)


def build_wav_header(data_length: int) -> bytes:
    """Return the 44-byte RIFF/WAVE header for data_length bytes of PCM."""
    block_align = CHANNELS * SAMPLE_WIDTH
    return struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        36 + data_length,
        b"WAVE",
        b"fmt ",
        16,                         # fmt chunk size
        1,                          # PCM
        CHANNELS,
        SAMPLE_RATE,
        SAMPLE_RATE * block_align,  # byte rate
        block_align,
        SAMPLE_WIDTH * 8,           # bits per sample
        b"data",
        data_length,
    )


def wrap_wav(pcm: bytes) -> bytes:
    """Prefix raw PCM with a WAV header."""
    return build_wav_header(len(pcm)) + pcm


async def synthesize_clips(episode: Episode, synthesizer) -> list[bytes]:
    """Synthesize every segment in order. Failed segments are left out."""
    clips = []
    total = len(episode.segments)
    for i, seg in enumerate(episode.segments):
        logger.info("Synthesizing segment %d/%d (%s)", i + 1, total, seg.speaker)
        audio = await synthesizer.synthesize(seg.text, seg.voice_id)
        if audio:
            clips.append(audio)
        else:
            logger.warning("Segment %d/%d produced no audio, leaving it out", i + 1, total)
    return clips


async def assemble_audio(episode: Episode, synthesizer) -> bytes:
    """Build the downloadable WAV: header then every clip, no re-encoding."""
    clips = await synthesize_clips(episode, synthesizer)
    return wrap_wav(b"".join(clips))


class AudioDownloader:
    """Runs one assembly at a time and reports whether one is in progress."""

    def __init__(self, synthesizer):
        self.synthesizer = synthesizer
        self.in_progress = False

    async def download(self, episode: Episode) -> bytes | None:
        """Assemble the episode's audio.

        Returns the WAV bytes, or None when there is nothing to do (empty
        episode, an assembly already running, or no segment synthesized).
        Unexpected errors become DownloadAssemblyFailure and leave nothing
        behind.
        """
        if not episode.segments or self.in_progress:
            return None

        self.in_progress = True
        try:
            clips = await synthesize_clips(episode, self.synthesizer)
            if not clips:
                logger.warning("No segment could be synthesized; no audio produced")
                return None
            return wrap_wav(b"".join(clips))
        except Exception as e:
            logger.error("Audio download failed: %s", e)
            raise DownloadAssemblyFailure(f"Could not assemble episode audio: {e}") from e
        finally:
            self.in_progress = False
