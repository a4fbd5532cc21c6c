"""
Upload/Persist Step

Pushes one staged photo to object storage and records its metadata row.
"""

import logging
import secrets
import time
from pathlib import PurePath
from typing import Any, Dict, Mapping, Optional

from ..backend.protocols import UploadSession
from ..config import Settings, get_settings
from ..errors import AuthenticationError
from ..models.photo import StagedPhoto
from ..validation.upload_validator import UploadValidator

logger = logging.getLogger(__name__)

PHOTOS_TABLE = "photos"

# Columns the photos table is known to accept
PHOTO_COLUMNS = frozenset({
    "album_id",
    "user_id",
    "file_path",
    "file_hash",
    "caption",
    "taken_at",
    "latitude",
    "longitude",
    "location_name",
    "file_size",
    "exif_data",
    "order_index",
    "processing_status",
})


def storage_path(filename: str, user_id: Optional[str] = None) -> str:
    """Unique object path: photos/<user>-<millis>-<random>.<ext>"""
    ext = PurePath(filename).suffix.lstrip(".").lower() or "jpg"
    prefix = f"{user_id}-" if user_id else ""
    return f"photos/{prefix}{int(time.time() * 1000)}-{secrets.token_hex(4)}.{ext}"


def build_photo_row(item: StagedPhoto, album_id: str, user_id: str, file_url: str) -> Dict[str, Any]:
    """
    Database payload for one uploaded photo.

    A manual location overrides EXIF coordinates.
    """
    metadata = item.extracted_metadata
    latitude, longitude = item.final_coordinates()
    location_name = item.manual_location.name if item.manual_location else None

    exif_data: Dict[str, Any] = metadata.to_dict() if metadata else {}
    exif_data.update({
        "mime_type": item.content_type,
        "file_name": item.filename,
        "order_index": item.intake_index,
    })
    if location_name:
        exif_data["location_name"] = location_name

    return {
        "album_id": album_id,
        "user_id": user_id,
        "file_path": file_url,
        "file_hash": item.fingerprint,
        "caption": item.caption or None,
        "taken_at": metadata.taken_at if metadata else None,
        "latitude": latitude,
        "longitude": longitude,
        "location_name": location_name,
        "file_size": item.file_size,
        "exif_data": exif_data,
        "order_index": item.intake_index,
        "processing_status": "completed",
    }


def filter_photo_payload(row: Mapping[str, Any], columns=PHOTO_COLUMNS) -> Dict[str, Any]:
    """Drop keys the photos table does not have."""
    dropped = sorted(key for key in row if key not in columns)
    if dropped:
        logger.debug("Dropping unknown photo columns: %s", ", ".join(dropped))
    return {key: value for key, value in row.items() if key in columns}


class PhotoUploader:
    """
    Persist staged photos to the hosted backend.

    Failures propagate as journey-core errors; the caller decides what the
    item's status becomes. Nothing is retried here.
    """

    def __init__(self, session: UploadSession, settings: Optional[Settings] = None):
        self.session = session
        self.settings = settings or get_settings()

    async def upload(self, item: StagedPhoto, album_id: str) -> Dict[str, Any]:
        """
        Store the file, then insert its photos row.

        An object stored by an earlier attempt whose insert failed is reused
        rather than uploaded again.

        Args:
            item: Staged photo in uploading state
            album_id: Album receiving the photo

        Returns:
            The inserted photos record

        Raises:
            AuthenticationError: No signed-in user
            StorageError, PermissionDeniedError, NetworkError: Storage failed
            MetadataStoreError, SchemaMismatchError: Row insert failed
        """
        user = await self.session.auth.get_current_user()
        if user is None:
            raise AuthenticationError("User not authenticated. Please sign in to upload photos.")
        item.upload_progress = 10

        file_url = item.stored_url
        if file_url is None:
            file_url = await self._store(item, user.id)
            item.stored_url = file_url
        else:
            logger.info("Reusing stored object for %s", item.filename)
        item.upload_progress = 60

        row = filter_photo_payload(build_photo_row(item, album_id, user.id, file_url))
        record = await self.session.metadata.insert(PHOTOS_TABLE, row)
        logger.info("Recorded %s in album %s", item.filename, album_id)
        return record

    async def _store(self, item: StagedPhoto, user_id: str) -> str:
        data = item.source_bytes or b""
        bucket = self.settings.photos_bucket
        UploadValidator.check(
            item.filename,
            data,
            item.content_type,
            bucket=bucket,
            max_size=self.settings.max_upload_bytes,
        )

        path = storage_path(item.filename, user_id)
        file_url = await self.session.storage.store(bucket, path, data, item.content_type)
        logger.info("Stored %s at %s", item.filename, path)
        return file_url
