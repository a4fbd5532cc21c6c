"""
High-level API for journey-core

Convenience functions for scripts and services that do not need to drive
the staging queue step by step.
"""

from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from .backend.protocols import UploadSession
from .config import Settings
from .fingerprint.calculator import FingerprintCalculator
from .ingest.orchestrator import IncomingFile, IngestionQueue
from .metadata.exif_extractor import CaptureMetadata, ExifExtractor
from .models.photo import StagedPhoto
from .models.upload_result import BatchUploadReport


def inspect_photo(image_path: Path) -> Tuple[str, CaptureMetadata]:
    """
    Fingerprint a file and read its capture metadata.

    Args:
        image_path: Path to image file

    Returns:
        (fingerprint, metadata) tuple; metadata is empty when unreadable

    Example:
        >>> from pathlib import Path
        >>> from journey_core import inspect_photo
        >>>
        >>> fingerprint, metadata = inspect_photo(Path("photo.jpg"))
        >>> if metadata.has_location:
        ...     print(metadata.latitude, metadata.longitude)
    """
    with open(image_path, "rb") as f:
        fingerprint = FingerprintCalculator.calculate_stream(f)
    metadata = ExifExtractor.extract_from_bytes(image_path.read_bytes())
    return fingerprint, metadata


def load_files(image_paths: Sequence[Path]) -> List[IncomingFile]:
    """Read files from disk into IncomingFile objects, keeping their order."""
    return [IncomingFile(filename=path.name, data=path.read_bytes()) for path in image_paths]


async def upload_files(
    session: UploadSession,
    album_id: str,
    image_paths: Sequence[Path],
    progress_callback: Optional[Callable[[StagedPhoto], None]] = None,
    settings: Optional[Settings] = None,
) -> BatchUploadReport:
    """
    Stage files for an album and upload them in one batch.

    Duplicates of photos already in the album are reported, not uploaded.

    Args:
        session: Backend session (auth, storage, metadata store)
        album_id: Target album
        image_paths: Files to upload, in display order
        progress_callback: Optional callback(item) run once per staged item
                           after the batch finishes
        settings: Overrides the process-wide settings

    Returns:
        BatchUploadReport for the batch

    Example:
        >>> import asyncio
        >>> from pathlib import Path
        >>> from journey_core import RestBackend, get_settings, upload_files
        >>>
        >>> backend = RestBackend.from_settings(get_settings(), access_token=token)
        >>> images = sorted(Path("./trip").glob("*.jpg"))
        >>> report = asyncio.run(upload_files(backend.session(), album_id, images))
        >>> print(report.message)
    """
    queue = await IngestionQueue.open(session, album_id, settings=settings)
    try:
        await queue.add_files(load_files(image_paths))
        report = await queue.upload_all()
        if progress_callback:
            for item in queue.items:
                progress_callback(item)
        return report
    finally:
        queue.close()
