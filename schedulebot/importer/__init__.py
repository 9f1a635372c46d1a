"""Calendar import pipeline."""

from .models import FailureRecord, ImportSummary, PlannedOccurrence
from .orchestrator import ImportOrchestrator

__all__ = ["FailureRecord", "ImportOrchestrator", "ImportSummary", "PlannedOccurrence"]
