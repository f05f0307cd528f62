"""
Base AI Provider - Abstract base class for AI providers

This module defines the interface for AI backends (Claude, Gemini). A
provider only turns a prompt into text; callers own prompt construction
and validation of the structured output.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict

logger = logging.getLogger(__name__)


class AIProviderError(Exception):
    """Raised when the AI backend call fails."""


class AIRateLimitError(AIProviderError):
    """Raised when the AI backend rejects a call for rate-limit or quota reasons."""


def looks_like_rate_limit(error: Exception) -> bool:
    """Heuristic for SDK errors that only carry the HTTP status in their message."""
    message = str(error).lower()
    return "429" in message or "quota" in message or "rate limit" in message


class AIProvider(ABC):
    """
    Abstract base class for AI providers.

    Implementations wrap one vendor SDK and must raise AIRateLimitError for
    quota/rate-limit rejections and AIProviderError for any other failure.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of this AI provider.

        Returns:
            str: Provider name (e.g., 'claude', 'gemini')
        """

    @property
    @abstractmethod
    def model_name(self) -> str:
        """
        Return the model being used.

        Returns:
            str: Model identifier (e.g., 'gemini-2.0-flash')
        """

    @abstractmethod
    def complete(self, prompt: str, max_tokens: int = 1000) -> str:
        """
        Generate a completion for a single-turn prompt.

        Args:
            prompt: Full prompt text
            max_tokens: Upper bound on generated tokens

        Returns:
            str: Raw model output, stripped

        Raises:
            AIRateLimitError: Backend reported a rate limit / exhausted quota
            AIProviderError: Any other backend failure (including timeouts)
        """

    def complete_json(self, prompt: str, max_tokens: int = 1000) -> Dict[str, Any]:
        """Generate a completion and parse it as a JSON object."""
        return self._parse_json_response(self.complete(prompt, max_tokens=max_tokens))

    def _parse_json_response(self, text: str) -> Dict[str, Any]:
        """
        Extract a JSON object from an AI response that might include markdown fences or preamble.

        Args:
            text: Raw AI response text

        Returns:
            dict: Parsed JSON object

        Raises:
            ValueError: If no JSON object can be extracted

        Example:
            >>> provider._parse_json_response('```json\\n{"key": "value"}\\n```')
            {'key': 'value'}
            >>> provider._parse_json_response('Here is the result: {"key": "value"}')
            {'key': 'value'}
        """
        if not text:
            raise ValueError("Empty response text")

        text = text.strip()
        candidates = [text]

        # Markdown json fence, then generic fence, then outermost braces
        for pattern in (r"```json\s*([\s\S]*?)\s*```", r"```\s*([\s\S]*?)\s*```"):
            match = re.search(pattern, text)
            if match:
                candidates.append(match.group(1))

        match = re.search(r"\{[\s\S]*\}", text)
        if match:
            candidates.append(match.group())

        for candidate in candidates:
            try:
                parsed = json.loads(candidate)
            except json.JSONDecodeError:
                continue
            if isinstance(parsed, dict):
                return parsed

        raise ValueError(
            f"Could not extract a JSON object from response. "
            f"Raw text (first 500 chars): {text[:500]}"
        )
