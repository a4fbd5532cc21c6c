"""
Staged Photo Model

One file queued client-side for upload, from intake until it is removed or
handed off to storage.
"""

import math
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ..errors import InvalidTransitionError
from ..metadata.exif_extractor import CaptureMetadata
from ..preview.generator import PreviewHandle


class PhotoStatus(Enum):
    """Lifecycle of a staged photo"""
    PENDING = "pending"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"
    DUPLICATE = "duplicate"


# Allowed status moves
TRANSITIONS = {
    PhotoStatus.PENDING: {PhotoStatus.UPLOADING},
    PhotoStatus.UPLOADING: {PhotoStatus.COMPLETED, PhotoStatus.FAILED},
    PhotoStatus.FAILED: {PhotoStatus.UPLOADING},
    PhotoStatus.DUPLICATE: {PhotoStatus.PENDING},
    PhotoStatus.COMPLETED: set(),
}

EDITABLE = {PhotoStatus.PENDING, PhotoStatus.FAILED, PhotoStatus.DUPLICATE}


@dataclass(frozen=True)
class ManualLocation:
    """
    Place picked by the user.

    Takes precedence over EXIF coordinates when the photo is persisted.
    """
    name: str
    latitude: float
    longitude: float
    place_id: Optional[str] = None

    def __post_init__(self):
        if not (math.isfinite(self.latitude) and -90 <= self.latitude <= 90):
            raise ValueError(f"Latitude out of range: {self.latitude}")
        if not (math.isfinite(self.longitude) and -180 <= self.longitude <= 180):
            raise ValueError(f"Longitude out of range: {self.longitude}")

    @classmethod
    def from_coordinates(cls, latitude: float, longitude: float) -> "ManualLocation":
        """Unnamed location, labelled with its own coordinates (device GPS fix)"""
        return cls(name=f"{latitude:.6f}, {longitude:.6f}", latitude=latitude, longitude=longitude)

    def to_dict(self) -> Dict[str, Any]:
        data = {"name": self.name, "latitude": self.latitude, "longitude": self.longitude}
        if self.place_id:
            data["place_id"] = self.place_id
        return data


@dataclass
class StagedPhoto:
    """
    A file waiting in the upload queue.

    fingerprint and extracted_metadata are written once by the intake
    pipeline and never change afterwards. caption and manual_location stay
    editable until an upload starts. stored_url survives a failed attempt so
    a retry reuses the object already in storage.
    """
    filename: str
    source_bytes: Optional[bytes]
    content_type: str
    intake_index: int
    preview: Optional[PreviewHandle] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    caption: str = ""
    manual_location: Optional[ManualLocation] = None
    extracted_metadata: Optional[CaptureMetadata] = None
    fingerprint: Optional[str] = None
    status: PhotoStatus = PhotoStatus.PENDING
    error_detail: Optional[str] = None
    error_code: Optional[str] = None
    upload_progress: int = 0
    file_url: Optional[str] = None
    record_id: Optional[str] = None
    file_size: int = 0
    stored_url: Optional[str] = None
    intake_done: bool = False

    def __post_init__(self):
        if self.source_bytes is not None and not self.file_size:
            self.file_size = len(self.source_bytes)

    # Write-once fields

    def set_fingerprint(self, fingerprint: str) -> None:
        if self.fingerprint is not None:
            raise InvalidTransitionError(f"Fingerprint of {self.filename} already computed")
        self.fingerprint = fingerprint

    def set_metadata(self, metadata: CaptureMetadata) -> None:
        if self.extracted_metadata is not None:
            raise InvalidTransitionError(f"Metadata of {self.filename} already extracted")
        self.extracted_metadata = metadata

    def finish_intake(self) -> None:
        """Fingerprint and metadata are settled; the item may now be uploaded."""
        self.intake_done = True

    # User edits

    def set_caption(self, caption: str) -> None:
        self._require_editable()
        self.caption = caption or ""

    def set_location(self, location: Optional[ManualLocation]) -> None:
        self._require_editable()
        self.manual_location = location

    def _require_editable(self) -> None:
        if self.status not in EDITABLE:
            raise InvalidTransitionError(
                f"{self.filename} cannot be edited while {self.status.value}"
            )

    # Status machine

    def transition(self, new_status: PhotoStatus) -> None:
        if new_status not in TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"{self.filename}: {self.status.value} -> {new_status.value} is not allowed"
            )
        self.status = new_status

    def mark_duplicate(self) -> None:
        """Flag at intake time; only valid before any upload was attempted."""
        if self.status is not PhotoStatus.PENDING or self.fingerprint is None:
            raise InvalidTransitionError(f"{self.filename} cannot be flagged as duplicate")
        self.status = PhotoStatus.DUPLICATE
        self.upload_progress = 100

    def start_upload(self) -> None:
        self.transition(PhotoStatus.UPLOADING)
        self.upload_progress = 0
        self.error_detail = None
        self.error_code = None
        self.file_url = None
        self.record_id = None

    def complete(self, file_url: str, record_id: Optional[str]) -> None:
        self.transition(PhotoStatus.COMPLETED)
        self.upload_progress = 100
        self.file_url = file_url
        self.record_id = record_id

    def fail(self, message: str, code: str) -> None:
        self.transition(PhotoStatus.FAILED)
        self.error_detail = message
        self.error_code = code

    # Derived values

    @property
    def is_eligible(self) -> bool:
        """Can be picked up by a batch upload; never before intake has finished"""
        return self.intake_done and self.status in (PhotoStatus.PENDING, PhotoStatus.FAILED)

    def final_coordinates(self) -> Tuple[Optional[float], Optional[float]]:
        """Manual location wins over EXIF coordinates"""
        if self.manual_location is not None:
            return self.manual_location.latitude, self.manual_location.longitude
        if self.extracted_metadata is not None and self.extracted_metadata.has_location:
            return self.extracted_metadata.latitude, self.extracted_metadata.longitude
        return None, None

    def release(self) -> None:
        """Release the preview and drop the bytes held for upload."""
        if self.preview is not None and not self.preview.released:
            self.preview.release()
        self.source_bytes = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "id": self.id,
            "filename": self.filename,
            "content_type": self.content_type,
            "file_size": self.file_size,
            "order_index": self.intake_index,
            "caption": self.caption,
            "manual_location": self.manual_location.to_dict() if self.manual_location else None,
            "extracted_metadata": (
                self.extracted_metadata.to_dict() if self.extracted_metadata else None
            ),
            "fingerprint": self.fingerprint,
            "status": self.status.value,
            "upload_progress": self.upload_progress,
            "error_detail": self.error_detail,
            "error_code": self.error_code,
            "preview_url": (
                self.preview.url if self.preview is not None and not self.preview.released else None
            ),
            "file_url": self.file_url,
            "record_id": self.record_id,
        }
