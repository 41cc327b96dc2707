"""
Result contract returned by an import pass.
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Any, Dict, List


@dataclass
class ErrorReport:
    """One failure surfaced to the caller: a record, or a whole entity-type batch."""

    entity_type: str
    entity_id: str
    error_message: str
    platform: str = ""

    @classmethod
    def of(cls, entity_type: str, entity_id: str, error: Exception | str, platform: str = "") -> "ErrorReport":
        message = str(error) if str(error) else type(error).__name__
        return cls(entity_type=entity_type, entity_id=entity_id, error_message=message, platform=platform)

    def to_dict(self) -> Dict[str, str]:
        return {
            "entityType": self.entity_type,
            "entityId": self.entity_id,
            "errorMessage": self.error_message,
            "platform": self.platform,
        }


@dataclass
class ProcessingResult:
    processed_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    total_processed: int = 0
    success_count: int = 0
    failed_count: int = 0
    skipped_count: int = 0
    processing_time_ms: int = 0
    errors: List[ErrorReport] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        """Percentage of processed orders that succeeded, 0 when nothing was processed."""
        if self.total_processed == 0:
            return 0.0
        return self.success_count / self.total_processed * 100

    @property
    def is_success(self) -> bool:
        return self.failed_count == 0

    def add_error(self, report: ErrorReport) -> None:
        self.errors.append(report)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processedAt": self.processed_at.isoformat(),
            "totalProcessed": self.total_processed,
            "successCount": self.success_count,
            "failedCount": self.failed_count,
            "skippedCount": self.skipped_count,
            "processingTimeMs": self.processing_time_ms,
            "successRate": round(self.success_rate, 2),
            "isSuccess": self.is_success,
            "errors": [error.to_dict() for error in self.errors],
        }
