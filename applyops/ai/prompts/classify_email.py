"""
Email Classification Prompt Template

Used by the Gmail sync to turn one email into a structured verdict.
"""

MAX_BODY_CHARS = 2000


def build_classify_email_prompt(subject: str, sender: str, body: str) -> str:
    """
    Build the prompt for job-email classification.

    Args:
        subject: Email subject line
        sender: Raw From header
        body: Plain-text body (truncated to MAX_BODY_CHARS)

    Returns:
        str: Formatted prompt string
    """
    return f"""Return ONLY valid JSON.

If this email is NOT an update about one of the recipient's job applications:
{{ "isJobEmail": false }}

If it IS:
{{
  "isJobEmail": true,
  "company": "string",
  "role": "string",
  "status": "APPLIED | INTERVIEW | REJECTED | OFFER",
  "round": "string or null (e.g. 'Technical Round 2', 'HR Round')",
  "confidence": 0.0-1.0,
  "interviewDate": "ISO 8601 datetime with offset, or null",
  "location": "string or null",
  "salary": "string or null",
  "platform": "string or null",
  "summary": "one sentence describing the update"
}}

Do NOT guess. If unsure, set isJobEmail=false.

Sender: {sender}
Subject: {subject}
Body: {(body or '')[:MAX_BODY_CHARS]}
"""
