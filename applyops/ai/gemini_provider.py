"""
Gemini AI Provider - Google Gemini implementation
"""

import logging
import os
from typing import Any, Dict, Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from .base import AIProvider, AIProviderError, AIRateLimitError, looks_like_rate_limit

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.0-flash"


class GeminiProvider(AIProvider):
    """Gemini AI provider using the google-generativeai SDK."""

    def __init__(self, config: Optional[Dict[str, Any]] = None, model=None):
        """
        Args:
            config: Configuration dict with optional 'ai.model' / 'ai.timeout'
            model: Pre-built GenerativeModel (tests)
        """
        config = config or {}
        ai_config = config.get("ai", {})
        self._model_name = ai_config.get("model") or DEFAULT_MODEL
        self._timeout = float(ai_config.get("timeout") or 30.0)

        if model is None:
            api_key = os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")
            if not api_key:
                raise ValueError(
                    "GEMINI_API_KEY not found. Set it in .env or environment variables."
                )
            genai.configure(api_key=api_key)
            model = genai.GenerativeModel(self._model_name)

        self._model = model

    @property
    def provider_name(self) -> str:
        return "gemini"

    @property
    def model_name(self) -> str:
        return self._model_name

    def complete(self, prompt: str, max_tokens: int = 1000) -> str:
        try:
            response = self._model.generate_content(
                prompt,
                generation_config={"max_output_tokens": max_tokens},
                request_options={"timeout": self._timeout},
            )
            return response.text.strip()
        except google_exceptions.ResourceExhausted as e:
            logger.warning(f"Gemini quota exhausted: {e}")
            raise AIRateLimitError(str(e)) from e
        except Exception as e:
            if looks_like_rate_limit(e):
                logger.warning(f"Gemini rate limit hit: {e}")
                raise AIRateLimitError(str(e)) from e
            logger.error(f"Gemini generation error: {e}")
            raise AIProviderError(str(e)) from e
