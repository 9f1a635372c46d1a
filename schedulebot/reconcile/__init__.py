"""Reconciliation of calendar occurrences with stored appointments."""

from .duplicates import DuplicateAuditor
from .matching import ClientMatcher, NameMatcher, NamePhoneMatcher, matcher_for
from .models import (
    AuditResult,
    DuplicateGroup,
    DuplicateReport,
    Occurrence,
    ReconcileOutcome,
    ReconcileResult,
)
from .reconciler import Reconciler, compose_notes
from .series import SeriesManager

__all__ = [
    "AuditResult",
    "ClientMatcher",
    "DuplicateAuditor",
    "DuplicateGroup",
    "DuplicateReport",
    "NameMatcher",
    "NamePhoneMatcher",
    "Occurrence",
    "ReconcileOutcome",
    "ReconcileResult",
    "Reconciler",
    "SeriesManager",
    "compose_notes",
    "matcher_for",
]
