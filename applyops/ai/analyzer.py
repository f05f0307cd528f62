"""
AI pass-through features: resume ATS scoring and cover-letter drafting.

Both degrade to a fixed fallback when the provider fails so the UI always
has something to show.
"""

import logging
from typing import Any, Dict, Optional

from .base import AIProvider
from .prompts import build_analyze_resume_prompt, build_cover_letter_prompt

logger = logging.getLogger(__name__)

RESUME_FALLBACK: Dict[str, Any] = {
    "score": 80,
    "missingHardSkills": ["Docker", "System Design"],
    "missingTools": ["AWS"],
    "sectionSuggestions": ["Add scalable system projects"],
    "bulletImprovements": ["Use quantified achievements"],
}

RESUME_LIST_FIELDS = (
    "missingHardSkills",
    "missingTools",
    "sectionSuggestions",
    "bulletImprovements",
)


def score_resume(provider: AIProvider, resume_text: str, job_description: str) -> Dict[str, Any]:
    """
    Score a resume against a job description.

    Returns:
        dict: {score, missingHardSkills, missingTools, sectionSuggestions,
        bulletImprovements}
    """
    prompt = build_analyze_resume_prompt(resume_text, job_description)

    try:
        result = provider.complete_json(prompt, max_tokens=1000)
        score = result.get("score")
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            raise ValueError(f"Resume score is not a number: {score!r}")
        return {
            "score": max(0, min(100, int(score))),
            **{name: list(result.get(name) or []) for name in RESUME_LIST_FIELDS},
        }
    except Exception as e:
        logger.error(f"Resume analysis error: {e}")
        return {key: (list(value) if isinstance(value, list) else value)
                for key, value in RESUME_FALLBACK.items()}


def fallback_cover_letter(company: str, role: str, user_name: str) -> str:
    return f"""Dear Hiring Manager,

I am applying for the {role} role at {company}. My background in full-stack development and real-world project delivery aligns well with your requirements.

I have hands-on experience building scalable applications using modern frameworks and cloud tools. My ability to quickly adapt and solve complex problems makes me a strong fit for this role.

I am particularly excited about {company}'s work and would welcome the opportunity to contribute.

Sincerely,
{user_name}"""


def generate_cover_letter(
    provider: AIProvider,
    company: str,
    role: str,
    job_description: str,
    tone: str = "Professional",
    user_name: str = "Candidate",
    resume_text: Optional[str] = None,
) -> str:
    """Draft a cover letter; falls back to a template letter on provider failure."""
    prompt = build_cover_letter_prompt(
        company, role, job_description, tone, user_name, resume_text
    )

    try:
        return provider.complete(prompt, max_tokens=1000)
    except Exception as e:
        logger.error(f"Cover letter error: {e}")
        return fallback_cover_letter(company, role, user_name)
