"""Runtime settings read from the environment (and an optional .env file)."""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from podcast_producer.constants import OUTPUT_DIR, SPEECH_ENGINES, TEXT_MODEL, TTS_MODEL
from podcast_producer.errors import ConfigurationFailure


@dataclass
class Settings:
    api_key: str | None = None
    text_model: str = TEXT_MODEL
    tts_model: str = TTS_MODEL
    speech_engine: str = "gemini"
    output_dir: str = OUTPUT_DIR
    bibliography_path: str | None = None

    def require_api_key(self) -> str:
        """Return the API key or fail before anything touches the network."""
        if not self.api_key:
            raise ConfigurationFailure(
                "GEMINI_API_KEY is not set. Add it to your environment or a .env file."
            )
        return self.api_key


def load_settings(env_file: str | None = None) -> Settings:
    """Build Settings from environment variables.

    GEMINI_API_KEY wins over the legacy API_KEY name. An unknown speech
    engine is a configuration error.
    """
    load_dotenv(env_file)

    engine = os.environ.get("PODCAST_SPEECH_ENGINE", "gemini").strip().lower()
    if engine not in SPEECH_ENGINES:
        raise ConfigurationFailure(
            f"Unknown speech engine '{engine}'. Choose one of: {', '.join(SPEECH_ENGINES)}"
        )

    return Settings(
        api_key=os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY") or None,
        text_model=os.environ.get("PODCAST_TEXT_MODEL", TEXT_MODEL),
        tts_model=os.environ.get("PODCAST_TTS_MODEL", TTS_MODEL),
        speech_engine=engine,
        output_dir=os.environ.get("PODCAST_OUTPUT_DIR", OUTPUT_DIR),
        bibliography_path=os.environ.get("PODCAST_BIBLIOGRAPHY") or None,
    )
