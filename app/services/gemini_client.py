"""
Gemini Text Completion Client

Thin wrapper over the Google Gen AI SDK used by every component that needs
free text from a model: unknown-code explanations, country-of-origin checks,
fallback HTS extraction and document question answering.

All failures (missing key, network, empty response) surface as
CollaboratorUnavailable so callers can substitute their own fallback text.
"""

import logging
from typing import Optional

from app import config
from app.errors import CollaboratorUnavailable

logger = logging.getLogger(__name__)


class GeminiClient:
    """
    Text completion via Gemini.

    Usage:
        client = GeminiClient()
        text = client.generate("Why might HTS 0000000000 be unknown?", max_output_tokens=100)
    """

    def __init__(self, model: str = None, api_key: Optional[str] = None):
        self.model = model or config.GENERATION_MODEL
        self.api_key = api_key or config.GEMINI_API_KEY
        self._client = None

    @property
    def client(self):
        """Lazy initialization of Gemini client."""
        if self._client is None:
            if not self.api_key:
                raise CollaboratorUnavailable("GEMINI_API_KEY environment variable is not set")
            from google import genai
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def generate(self, prompt: str, max_output_tokens: int = 1024, temperature: float = 0.1) -> str:
        """
        Generate text for a prompt.

        Raises:
            CollaboratorUnavailable: if the call fails or returns no text
        """
        from google.genai import types

        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    max_output_tokens=max_output_tokens,
                    temperature=temperature,
                ),
            )
        except CollaboratorUnavailable:
            raise
        except Exception as e:
            logger.error(f"Gemini generation failed ({self.model}): {e}")
            raise CollaboratorUnavailable(str(e)) from e

        text = (response.text or "").strip()
        if not text:
            raise CollaboratorUnavailable(f"Empty response from {self.model}")
        return text
