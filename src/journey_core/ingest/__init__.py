"""Ingestion pipeline: staging queue and upload step"""

from .orchestrator import IncomingFile, IngestionQueue
from .uploader import PhotoUploader, build_photo_row, filter_photo_payload, storage_path

__all__ = [
    "IncomingFile",
    "IngestionQueue",
    "PhotoUploader",
    "build_photo_row",
    "filter_photo_payload",
    "storage_path",
]
