"""Data models for journey-core"""

from .photo import ManualLocation, PhotoStatus, StagedPhoto
from .upload_result import BatchOutcome, BatchUploadReport, ItemOutcome

__all__ = [
    "StagedPhoto",
    "PhotoStatus",
    "ManualLocation",
    "BatchOutcome",
    "BatchUploadReport",
    "ItemOutcome",
]
