"""
Ingestion Orchestrator

Stages dropped or captured files for one album and drains them to the
backend on request. Every file runs its own pipeline; a failure in one
file's pipeline never touches another file's status.
"""

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set

from ..backend.protocols import UploadSession
from ..config import Settings, get_settings
from ..errors import (
    InvalidTransitionError,
    ItemNotFoundError,
    JourneyCoreError,
    UploadError,
    describe_upload_error,
    error_code,
)
from ..fingerprint.calculator import fingerprint_or_none
from ..index.membership import DuplicateIndex
from ..metadata.exif_extractor import ExifExtractor
from ..models.photo import ManualLocation, PhotoStatus, StagedPhoto
from ..models.upload_result import BatchUploadReport, ItemOutcome
from ..preview.generator import PreviewRegistry
from ..validation.formats import FormatDetector
from .uploader import PhotoUploader

logger = logging.getLogger(__name__)


@dataclass
class IncomingFile:
    """
    A file handed to the queue by drag-and-drop or the camera.

    Attributes:
        filename: Original file name
        data: Raw file bytes
        content_type: Declared MIME type (guessed from the name if missing)
        manual_location: Device position for camera captures
    """
    filename: str
    data: bytes
    content_type: Optional[str] = None
    manual_location: Optional[ManualLocation] = None


class IngestionQueue:
    """
    Upload queue for one album.

    Use IngestionQueue.open() to seed the duplicate index from the album's
    existing photos before files are added.
    """

    def __init__(
        self,
        session: UploadSession,
        album_id: str,
        *,
        index: Optional[DuplicateIndex] = None,
        uploader: Optional[PhotoUploader] = None,
        previews: Optional[PreviewRegistry] = None,
        settings: Optional[Settings] = None,
    ):
        self.session = session
        self.album_id = album_id
        self.settings = settings or get_settings()
        self.index = index if index is not None else DuplicateIndex(album_id)
        self.uploader = uploader or PhotoUploader(session, self.settings)
        self.previews = previews or PreviewRegistry()
        self._items: Dict[str, StagedPhoto] = {}
        self._next_index = 0
        self._intake_tasks: Set["asyncio.Task[None]"] = set()

    @classmethod
    async def open(cls, session: UploadSession, album_id: str, **kwargs) -> "IngestionQueue":
        """Create a queue with the album's duplicate index loaded."""
        try:
            index = await DuplicateIndex.load(session.metadata, album_id)
        except JourneyCoreError as exc:
            logger.warning("Duplicate index unavailable for album %s, starting empty: %s", album_id, exc)
            index = DuplicateIndex(album_id)
        return cls(session, album_id, index=index, **kwargs)

    # Queue inspection

    @property
    def items(self) -> List[StagedPhoto]:
        """Staged photos in intake order"""
        return list(self._items.values())

    @property
    def eligible(self) -> List[StagedPhoto]:
        return [item for item in self._items.values() if item.is_eligible]

    def get(self, item_id: str) -> StagedPhoto:
        try:
            return self._items[item_id]
        except KeyError:
            raise ItemNotFoundError(item_id) from None

    def counts(self) -> Dict[str, int]:
        counter = Counter(item.status.value for item in self._items.values())
        return {status.value: counter.get(status.value, 0) for status in PhotoStatus}

    def __len__(self) -> int:
        return len(self._items)

    # Intake

    async def add_files(self, files: Sequence[IncomingFile]) -> List[StagedPhoto]:
        """
        Stage files and run their intake pipelines concurrently.

        Items enter the queue in the order given, before any pipeline
        finishes, so their order_index reflects intake order.

        Returns:
            The new staged photos, in intake order
        """
        staged = [self._stage(incoming) for incoming in files]
        tasks = [asyncio.ensure_future(self._run_intake(item)) for item in staged]
        self._intake_tasks.update(tasks)
        try:
            results = await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            self._intake_tasks.difference_update(tasks)
        for item, result in zip(staged, results):
            if isinstance(result, Exception):
                logger.error("Intake pipeline crashed for %s", item.filename, exc_info=result)
        logger.info("Staged %d files for album %s", len(staged), self.album_id)
        return staged

    def _stage(self, incoming: IncomingFile) -> StagedPhoto:
        item = StagedPhoto(
            filename=incoming.filename,
            source_bytes=incoming.data,
            content_type=incoming.content_type or FormatDetector.guess_content_type(incoming.filename),
            intake_index=self._next_index,
            preview=self.previews.create(incoming.data),
            manual_location=incoming.manual_location,
        )
        self._next_index += 1
        self._items[item.id] = item
        return item

    async def _run_intake(self, item: StagedPhoto) -> None:
        data = item.source_bytes or b""
        try:
            fingerprint, metadata = await asyncio.gather(
                fingerprint_or_none(data, item.filename),
                ExifExtractor.extract(data, timeout=self.settings.metadata_timeout, filename=item.filename),
            )
            item.set_metadata(metadata)
            if fingerprint is None:
                return
            item.set_fingerprint(fingerprint)
            if self.index.contains(fingerprint) and item.status is PhotoStatus.PENDING:
                logger.info("%s is already in album %s", item.filename, self.album_id)
                item.mark_duplicate()
        finally:
            item.finish_intake()

    async def wait_for_intake(self) -> None:
        """Block until every intake pipeline started so far has finished."""
        pending = list(self._intake_tasks)
        if pending:
            logger.debug("Waiting for %d intake pipelines in album %s", len(pending), self.album_id)
            await asyncio.gather(*pending, return_exceptions=True)

    # User edits

    def set_caption(self, item_id: str, caption: str) -> StagedPhoto:
        item = self.get(item_id)
        item.set_caption(caption)
        return item

    def set_location(self, item_id: str, location: Optional[ManualLocation]) -> StagedPhoto:
        item = self.get(item_id)
        item.set_location(location)
        return item

    def accept_duplicate(self, item_id: str) -> StagedPhoto:
        """Keep a flagged duplicate and upload it anyway."""
        item = self.get(item_id)
        item.transition(PhotoStatus.PENDING)
        item.upload_progress = 0
        return item

    def remove(self, item_id: str) -> StagedPhoto:
        """
        Drop an item from the queue and release its preview.

        Not allowed while its upload is in flight.
        """
        item = self.get(item_id)
        if item.status is PhotoStatus.UPLOADING:
            raise InvalidTransitionError(f"{item.filename} is uploading and cannot be removed")
        del self._items[item_id]
        item.release()
        return item

    def clear_completed(self) -> int:
        """Tear down uploaded items; returns how many were removed."""
        done = [item for item in self._items.values() if item.status is PhotoStatus.COMPLETED]
        for item in done:
            self.remove(item.id)
        return len(done)

    def close(self) -> None:
        """Release every remaining preview."""
        for item in self._items.values():
            item.release()
        self._items.clear()

    # Upload

    async def upload_all(self) -> BatchUploadReport:
        """
        Upload every pending or failed item concurrently.

        Files still in intake are waited for first, so a duplicate is
        flagged before anything is sent.

        Returns:
            Aggregate report; duplicates are reported but not uploaded
        """
        await self.wait_for_intake()
        duplicates = [item for item in self._items.values() if item.status is PhotoStatus.DUPLICATE]
        eligible = self.eligible
        for item in eligible:
            item.start_upload()

        logger.info(
            "Uploading %d photos to album %s (%d duplicates held back)",
            len(eligible), self.album_id, len(duplicates),
        )
        results = await asyncio.gather(
            *(self._upload_one(item) for item in eligible), return_exceptions=True
        )

        report = BatchUploadReport()
        for item, result in zip(eligible, results):
            if isinstance(result, BaseException):
                logger.error("Upload task crashed for %s", item.filename, exc_info=result)
                if item.status is PhotoStatus.UPLOADING:
                    item.fail(describe_upload_error(result), error_code(result))
                result = self._outcome(item)
            report.results.append(result)
        report.results.extend(self._outcome(item) for item in duplicates)

        logger.info(
            "Album %s upload: %d succeeded, %d failed, %d duplicates",
            self.album_id, report.succeeded, report.failed, report.duplicates,
        )
        return report

    async def retry(self, item_id: str) -> ItemOutcome:
        """Re-upload a single failed item."""
        item = self.get(item_id)
        if item.status is not PhotoStatus.FAILED:
            raise InvalidTransitionError(f"{item.filename} has not failed ({item.status.value})")
        item.start_upload()
        return await self._upload_one(item)

    async def _upload_one(self, item: StagedPhoto) -> ItemOutcome:
        try:
            record = await self.uploader.upload(item, self.album_id)
        except UploadError as exc:
            logger.warning("Upload of %s failed: %s", item.filename, exc)
            item.fail(describe_upload_error(exc), error_code(exc))
        except Exception as exc:
            logger.exception("Unexpected error uploading %s", item.filename)
            item.fail(describe_upload_error(exc), error_code(exc))
        else:
            record_id = record.get("id")
            item.complete(item.stored_url or record.get("file_path"), str(record_id) if record_id else None)
            # Storage now owns the bytes
            item.source_bytes = None
            if item.fingerprint:
                self.index.insert(item.fingerprint)
        return self._outcome(item)

    @staticmethod
    def _outcome(item: StagedPhoto) -> ItemOutcome:
        return ItemOutcome(
            item_id=item.id,
            filename=item.filename,
            status=item.status,
            error_detail=item.error_detail,
        )
