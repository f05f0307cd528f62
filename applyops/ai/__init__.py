"""
AI Package - AI-powered features for ApplyOps

Email classification for the Gmail sync, plus thin pass-throughs for
resume scoring and cover-letter drafting.

Supports multiple AI providers: Claude and Gemini.

Usage:
    from applyops.ai import get_provider, EmailClassifier

    provider = get_provider(config.to_dict())
    verdict = EmailClassifier(provider).classify(body, subject, sender)
"""

from .base import AIProvider, AIProviderError, AIRateLimitError
from .factory import get_provider
from .classifier import (
    EmailClassifier,
    Classification,
    ClassificationReason,
    passes_keyword_filter,
    parse_verdict,
    regex_fallback,
)
from .analyzer import score_resume, generate_cover_letter

__all__ = [
    "AIProvider",
    "AIProviderError",
    "AIRateLimitError",
    "get_provider",
    "EmailClassifier",
    "Classification",
    "ClassificationReason",
    "passes_keyword_filter",
    "parse_verdict",
    "regex_fallback",
    "score_resume",
    "generate_cover_letter",
]
