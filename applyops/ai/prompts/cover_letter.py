"""
Cover Letter Prompt Template
"""

from typing import Optional


def build_cover_letter_prompt(
    company: str,
    role: str,
    job_description: str,
    tone: str,
    user_name: str,
    resume_text: Optional[str] = None,
) -> str:
    """
    Build the prompt for cover letter generation.

    Args:
        company: Company name
        role: Role title
        job_description: Posting text (truncated to 2000 chars)
        tone: Requested tone, e.g. "Professional"
        user_name: Candidate name used in the sign-off
        resume_text: Candidate resume (truncated to 3000 chars)
    """
    return f"""Write a {tone.lower()} cover letter.

Structure:
- 1 intro sentence
- 2 skill-to-job matches
- 1 company-specific line
- 1 closing

No buzzwords. No fluff.

Candidate: {user_name}
Company: {company}
Role: {role}

Resume:
{(resume_text or 'Not provided')[:3000]}

Job Description:
{job_description[:2000]}
"""
