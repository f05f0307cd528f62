"""
Tracking Package - company matching and status reconciliation

Usage:
    from applyops.tracking import find_existing_application, reconcile
"""

from .matcher import normalize_company, companies_match, find_existing_application
from .reconciler import (
    Decision,
    DecisionKind,
    reconcile,
    platform_from_sender,
    gmail_message_url,
)

__all__ = [
    "normalize_company",
    "companies_match",
    "find_existing_application",
    "Decision",
    "DecisionKind",
    "reconcile",
    "platform_from_sender",
    "gmail_message_url",
]
