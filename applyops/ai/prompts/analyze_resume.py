"""
Resume ATS Scoring Prompt Template
"""


def build_analyze_resume_prompt(resume_text: str, job_description: str) -> str:
    return f"""You are an ATS scanner.

Return ONLY valid JSON:
{{
  "score": number (0-100),
  "missingHardSkills": [],
  "missingTools": [],
  "sectionSuggestions": [],
  "bulletImprovements": []
}}

Resume:
{resume_text[:5000]}

Job Description:
{job_description[:2000]}
"""
