"""
Company Matcher - finds the application an email refers to

Company names coming out of the classifier are noisy ("Google" vs
"Google LLC" vs "google, inc."), so matching is done on a normalized form
with substring containment in either direction.
"""

import logging
import re
from typing import Iterable, Optional

from applyops.models import Application

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_company(name: Optional[str]) -> str:
    """
    Lowercase and strip everything but letters and digits.

    >>> normalize_company("Acme Corp, Inc.")
    'acmecorpinc'
    """
    return _NON_ALNUM.sub("", (name or "").lower())


def companies_match(candidate: str, existing: str) -> bool:
    """True if either normalized name contains the other. Empty names never match."""
    a = normalize_company(candidate)
    b = normalize_company(existing)
    if not a or not b:
        return False
    return a in b or b in a


def pick_match(company: str, applications: Iterable[Application]) -> Optional[Application]:
    """
    Return the first application whose company matches.

    Callers pass applications most recently updated first, so the first
    match is the tie-break winner.
    """
    for application in applications:
        if companies_match(company, application.company):
            return application
    return None


def find_existing_application(store, user_id: str, company: str, conn=None) -> Optional[Application]:
    """
    Look up the user's application for a company.

    Args:
        store: RecordStore
        user_id: Owner of the applications
        company: Company name from the classifier verdict
        conn: Optional open transaction

    Returns:
        The most recently updated matching Application, or None
    """
    if not normalize_company(company):
        return None

    match = pick_match(company, store.list_applications(user_id, conn=conn))
    if match:
        logger.debug(f"Matched '{company}' to application {match.id} ({match.company})")
    return match
