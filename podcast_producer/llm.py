"""Text generation via the Gemini API."""

import logging

from google import genai
from google.genai import types

from podcast_producer.config import Settings
from podcast_producer.constants import (
    TEMPERATURE,
    TEXT_MODEL,
    THINKING_BUDGET_DEEP,
    THINKING_BUDGET_QUICK,
    TOP_K,
    TOP_P,
)

logger = logging.getLogger(__name__)


class GeminiTextClient:
    """Thin async wrapper over client.aio.models.generate_content().

    Any object with a matching ``generate`` coroutine can stand in for it
    (tests use fakes).
    """

    def __init__(self, api_key: str, model: str = TEXT_MODEL, client: genai.Client | None = None):
        self.model = model
        self._client = client or genai.Client(api_key=api_key)

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiTextClient":
        return cls(settings.require_api_key(), model=settings.text_model)

    def _config(self, deep: bool, web_search: bool) -> types.GenerateContentConfig:
        options = {
            "temperature": TEMPERATURE,
            "top_p": TOP_P,
            "top_k": TOP_K,
            "thinking_config": types.ThinkingConfig(
                thinking_budget=THINKING_BUDGET_DEEP if deep else THINKING_BUDGET_QUICK,
            ),
        }
        if web_search:
            # Search grounding can't be combined with a JSON mime type
            options["tools"] = [types.Tool(google_search=types.GoogleSearch())]
        else:
            options["response_mime_type"] = "application/json"
        return types.GenerateContentConfig(**options)

    async def generate(
        self,
        system_instruction: str,
        prompt: str,
        *,
        deep: bool = False,
        web_search: bool = False,
    ) -> str | None:
        """Send one request and return the response text (may be None)."""
        logger.debug("Text request: model=%s deep=%s search=%s", self.model, deep, web_search)
        response = await self._client.aio.models.generate_content(
            model=self.model,
            contents=[
                types.Content(role="user", parts=[types.Part.from_text(text=system_instruction)]),
                types.Content(role="user", parts=[types.Part.from_text(text=prompt)]),
            ],
            config=self._config(deep, web_search),
        )
        return response.text
