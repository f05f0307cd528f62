"""
Claude AI Provider - Anthropic Claude implementation
"""

import logging
import os
from typing import Any, Dict, Optional

import anthropic

from .base import AIProvider, AIProviderError, AIRateLimitError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"


class ClaudeProvider(AIProvider):
    """Claude AI provider using the Anthropic API."""

    def __init__(self, config: Optional[Dict[str, Any]] = None, client=None):
        """
        Initialize Claude provider.

        Args:
            config: Configuration dict with optional 'ai.model' / 'ai.timeout'
            client: Pre-built anthropic client (tests)
        """
        config = config or {}
        ai_config = config.get("ai", {})
        self._model = ai_config.get("model") or DEFAULT_MODEL

        if client is None:
            if not os.environ.get("ANTHROPIC_API_KEY"):
                raise ValueError(
                    "ANTHROPIC_API_KEY not found. " "Set it in .env or environment variables."
                )
            client = anthropic.Anthropic(timeout=float(ai_config.get("timeout") or 30.0))

        self._client = client

    @property
    def provider_name(self) -> str:
        return "claude"

    @property
    def model_name(self) -> str:
        return self._model

    def complete(self, prompt: str, max_tokens: int = 1000) -> str:
        """Generate a response using Claude."""
        try:
            response = self._client.messages.create(
                model=self._model,
                max_tokens=max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.RateLimitError as e:
            logger.warning(f"Claude rate limit hit: {e}")
            raise AIRateLimitError(str(e)) from e
        except anthropic.APIError as e:
            logger.error(f"Claude generation error: {e}")
            raise AIProviderError(str(e)) from e

        return response.content[0].text.strip()
