"""
Shared AI Prompt Templates

Prompt builders shared by every AI provider so the structured output has
the same shape regardless of backend.
"""

from .classify_email import build_classify_email_prompt
from .analyze_resume import build_analyze_resume_prompt
from .cover_letter import build_cover_letter_prompt

__all__ = [
    "build_classify_email_prompt",
    "build_analyze_resume_prompt",
    "build_cover_letter_prompt",
]
