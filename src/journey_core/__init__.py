"""
journey-core - Photo ingestion for the Journey travel journal

This library provides:
- Content fingerprints (SHA256) for duplicate detection
- Capture metadata extraction (time, GPS, camera) with timeout
- Per-album duplicate membership index
- Staging queue with concurrent intake and batch upload
- Backend client for auth, storage and the photos table

Example:
    >>> import asyncio
    >>> from journey_core import IncomingFile, IngestionQueue
    >>>
    >>> async def main(session, album_id, files):
    ...     queue = await IngestionQueue.open(session, album_id)
    ...     await queue.add_files(files)
    ...     report = await queue.upload_all()
    ...     print(report.message)
"""

from .version import __version__

# Configuration
from .config import Settings, configure_logging, get_settings

# Errors
from .errors import (
    AuthenticationError,
    InvalidTransitionError,
    JourneyCoreError,
    SchemaMismatchError,
    StorageError,
    UploadError,
    describe_upload_error,
)

# Fingerprints
from .fingerprint import FingerprintCalculator

# Metadata extraction
from .metadata import CaptureMetadata, ExifExtractor

# Duplicate detection
from .index import DuplicateIndex

# Previews
from .preview import PreviewHandle, PreviewRegistry

# Models
from .models import BatchOutcome, BatchUploadReport, ManualLocation, PhotoStatus, StagedPhoto

# Validation
from .validation import FormatDetector, UploadValidator

# Backend
from .backend import CurrentUser, RestBackend, UploadSession

# Ingestion
from .ingest import IncomingFile, IngestionQueue, PhotoUploader

# High-level API
from .api import inspect_photo, upload_files

__all__ = [
    "__version__",
    # Configuration
    "Settings",
    "get_settings",
    "configure_logging",
    # Errors
    "JourneyCoreError",
    "InvalidTransitionError",
    "UploadError",
    "AuthenticationError",
    "StorageError",
    "SchemaMismatchError",
    "describe_upload_error",
    # Fingerprints
    "FingerprintCalculator",
    # Metadata
    "CaptureMetadata",
    "ExifExtractor",
    # Index
    "DuplicateIndex",
    # Previews
    "PreviewHandle",
    "PreviewRegistry",
    # Models
    "StagedPhoto",
    "PhotoStatus",
    "ManualLocation",
    "BatchUploadReport",
    "BatchOutcome",
    # Validation
    "FormatDetector",
    "UploadValidator",
    # Backend
    "CurrentUser",
    "UploadSession",
    "RestBackend",
    # Ingestion
    "IncomingFile",
    "IngestionQueue",
    "PhotoUploader",
    # High-level API
    "inspect_photo",
    "upload_files",
]
