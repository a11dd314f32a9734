"""Speech synthesis backends (Gemini TTS or edge-tts) with retry logic.

Both backends return raw mono 16-bit 24 kHz PCM, or None when a segment
could not be synthesized. A missing clip is never an exception for the
caller: playback skips it and assembly leaves it out.
"""

import asyncio
import base64
import io
import logging

import edge_tts
from google import genai
from google.genai import types
from pydub import AudioSegment

from podcast_producer.config import Settings
from podcast_producer.constants import (
    CHANNELS,
    EDGE_VOICES,
    SAMPLE_RATE,
    SAMPLE_WIDTH,
    TTS_MODEL,
    TTS_RATE,
    TTS_RETRY_BASE_DELAY,
    TTS_RETRY_COUNT,
    TTS_TEXT_LIMIT,
)
from podcast_producer.errors import SynthesisFailure
from podcast_producer.voices import resolve_voice

logger = logging.getLogger(__name__)


class Synthesizer:
    """Base class: retries, text cap and voice mapping around _request()."""

    def __init__(self, retries: int = TTS_RETRY_COUNT, base_delay: float = TTS_RETRY_BASE_DELAY):
        self.retries = retries
        self.base_delay = base_delay

    async def _request(self, text: str, voice: str) -> bytes:
        raise NotImplementedError

    async def synthesize(self, text: str, voice_id: str) -> bytes | None:
        """Synthesize one segment. Returns PCM bytes, or None after all retries fail.

        Retries on any error or on empty audio, with exponential backoff.
        """
        safe_text = text[:TTS_TEXT_LIMIT]
        if not safe_text.strip():
            return None
        voice = resolve_voice(voice_id)

        last_error = None
        for attempt in range(self.retries):
            try:
                audio = await self._request(safe_text, voice)
                if audio:
                    return audio
                last_error = SynthesisFailure(f"TTS produced no audio for: {safe_text[:50]}...")
            except Exception as e:
                last_error = e

            if attempt < self.retries - 1:
                delay = self.base_delay * (2 ** attempt)
                logger.debug("TTS attempt %d failed (%s), retrying in %.1fs", attempt + 1, last_error, delay)
                await asyncio.sleep(delay)

        logger.warning("Speech synthesis failed for voice %s: %s", voice, last_error)
        return None


class GeminiSynthesizer(Synthesizer):
    """Gemini TTS with a single prebuilt voice per request."""

    def __init__(self, api_key: str, model: str = TTS_MODEL, client: genai.Client | None = None, **kwargs):
        super().__init__(**kwargs)
        self.model = model
        self._client = client or genai.Client(api_key=api_key)

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiSynthesizer":
        return cls(settings.require_api_key(), model=settings.tts_model)

    async def _request(self, text: str, voice: str) -> bytes:
        response = await self._client.aio.models.generate_content(
            model=self.model,
            contents=text,
            config=types.GenerateContentConfig(
                response_modalities=["AUDIO"],
                speech_config=types.SpeechConfig(
                    voice_config=types.VoiceConfig(
                        prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=voice),
                    ),
                ),
            ),
        )
        if not response.candidates or response.candidates[0].content is None:
            return b""
        parts = response.candidates[0].content.parts or []
        if not parts or parts[0].inline_data is None:
            return b""
        data = parts[0].inline_data.data or b""
        # The REST payload is base64; the SDK usually decodes it already
        if isinstance(data, str):
            data = base64.b64decode(data)
        return data


def mp3_to_pcm(data: bytes) -> bytes:
    """Decode MP3 bytes to mono 16-bit 24 kHz PCM."""
    audio = AudioSegment.from_file(io.BytesIO(data), format="mp3")
    audio = audio.set_channels(CHANNELS).set_frame_rate(SAMPLE_RATE).set_sample_width(SAMPLE_WIDTH)
    return audio.raw_data


class EdgeSynthesizer(Synthesizer):
    """edge-tts backend. Needs no API key, needs ffmpeg for decoding."""

    def __init__(self, rate: str = TTS_RATE, voices: dict[str, str] | None = None, **kwargs):
        super().__init__(**kwargs)
        self.rate = rate
        self.voices = voices or dict(EDGE_VOICES)

    async def _request(self, text: str, voice: str) -> bytes:
        communicate = edge_tts.Communicate(text, self.voices[voice], rate=self.rate)
        buffer = io.BytesIO()
        async for chunk in communicate.stream():
            if chunk["type"] == "audio":
                buffer.write(chunk["data"])
        if buffer.tell() == 0:
            return b""
        return await asyncio.to_thread(mp3_to_pcm, buffer.getvalue())


def create_synthesizer(settings: Settings) -> Synthesizer:
    """Pick the speech backend named in settings."""
    if settings.speech_engine == "edge":
        return EdgeSynthesizer()
    return GeminiSynthesizer.from_settings(settings)
