"""Data models for import runs."""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..extraction.models import ExtractedAppointmentInfo
from ..reconcile.models import Occurrence


class FailureRecord(BaseModel):
    """An occurrence the store failed to persist."""

    event_uid: str
    reason: str
    occurrence_start: Optional[datetime] = None


class PlannedOccurrence(BaseModel):
    """An occurrence paired with the details extracted from its event."""

    occurrence: Occurrence
    info: ExtractedAppointmentInfo

    model_config = ConfigDict(frozen=True)

    def to_row(self, all_day_default: str) -> dict[str, Any]:
        """Flatten for preview output."""
        return {
            "uid": self.occurrence.event.uid,
            "date": self.occurrence.date.isoformat(),
            "time": self.occurrence.time_slot(all_day_default),
            "client_name": self.info.client_name,
            "pet_info": self.info.pet_info,
            "amount": str(self.info.amount) if self.info.amount is not None else "",
            "services": ", ".join(self.info.services),
            "phone": self.info.phone or "",
            "address": self.info.address or "",
            "recurring": self.occurrence.pattern.describe() if self.occurrence.pattern else "",
            "summary": self.info.original_summary,
        }


class ImportSummary(BaseModel):
    """Counters and failures of one import run."""

    imported: int = 0
    skipped: int = 0
    errors: int = 0
    failures: List[FailureRecord] = Field(default_factory=list)
    stopped: bool = False

    # Run statistics
    event_count: int = 0
    occurrence_count: int = 0
    dropped_blocks: int = 0
    warnings: List[str] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=datetime.now)
    duration_seconds: float = 0.0

    @property
    def processed(self) -> int:
        return self.imported + self.skipped + self.errors

    def record_failure(
        self, event_uid: str, reason: str, occurrence_start: Optional[datetime] = None
    ) -> None:
        self.errors += 1
        self.failures.append(
            FailureRecord(event_uid=event_uid, reason=reason, occurrence_start=occurrence_start)
        )

    def to_report(self) -> dict[str, Any]:
        """Run summary in its external form."""
        return {
            "imported": self.imported,
            "skipped": self.skipped,
            "errors": self.errors,
            "failures": [
                {"event_uid": failure.event_uid, "reason": failure.reason}
                for failure in self.failures
            ],
            "stopped": self.stopped,
        }
