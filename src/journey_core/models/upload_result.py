"""
Upload Result Models

Per-item outcomes and the aggregate report of one batch upload.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .photo import PhotoStatus


class BatchOutcome(Enum):
    """Aggregate result of a batch upload"""
    COMPLETE = "complete"
    PARTIAL = "partial"
    FAILED = "failed"
    EMPTY = "empty"


@dataclass
class ItemOutcome:
    """Result for a single staged photo"""
    item_id: str
    filename: str
    status: PhotoStatus
    error_detail: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status is PhotoStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item_id": self.item_id,
            "filename": self.filename,
            "status": self.status.value,
            "error_detail": self.error_detail,
        }


@dataclass
class BatchUploadReport:
    """
    Aggregate of one upload_all() run.

    Each item is counted exactly once: as succeeded, failed or duplicate.
    """
    results: List[ItemOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.status is PhotoStatus.COMPLETED)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status is PhotoStatus.FAILED)

    @property
    def duplicates(self) -> int:
        return sum(1 for r in self.results if r.status is PhotoStatus.DUPLICATE)

    @property
    def attempted(self) -> int:
        return self.succeeded + self.failed

    @property
    def outcome(self) -> BatchOutcome:
        if self.attempted == 0:
            return BatchOutcome.EMPTY
        if self.failed == 0:
            return BatchOutcome.COMPLETE
        if self.succeeded == 0:
            return BatchOutcome.FAILED
        return BatchOutcome.PARTIAL

    @property
    def message(self) -> str:
        """User-facing summary"""
        outcome = self.outcome
        if outcome is BatchOutcome.EMPTY:
            if self.duplicates:
                return f"Nothing to upload: {self.duplicates} duplicate photos are waiting for review."
            return "Nothing to upload."
        if outcome is BatchOutcome.COMPLETE:
            noun = "photo" if self.succeeded == 1 else "photos"
            return f"All {self.succeeded} {noun} uploaded. What would you like to do next?"
        if outcome is BatchOutcome.FAILED:
            return "Upload failed. Please check your connection and try again."
        return (
            f"{self.succeeded} of {self.attempted} photos uploaded, {self.failed} failed, "
            f"{self.duplicates} duplicates skipped. Retry the failed uploads."
        )

    def failures(self) -> List[ItemOutcome]:
        return [r for r in self.results if r.status is PhotoStatus.FAILED]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "message": self.message,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "duplicates": self.duplicates,
            "results": [r.to_dict() for r in self.results],
        }
