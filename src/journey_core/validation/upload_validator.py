"""
Upload Validation Module

Checks staged files against the bucket limits before they are sent to
storage.
"""

from typing import Iterable, Optional

from ..errors import DEFAULT_ALLOWED_TYPES, StorageError
from .formats import FormatDetector


def _detect_content_type(filename: str, data: bytes) -> str:
    """Content first, then the file extension"""
    detected = FormatDetector.sniff(data)
    if detected is not None:
        return detected.value
    return FormatDetector.guess_content_type(filename)


class UploadValidator:
    """Validate files against a storage bucket's limits"""

    MAX_FILE_SIZE = 50 * 1024 * 1024  # 50 MB
    ALLOWED_TYPES = DEFAULT_ALLOWED_TYPES

    @staticmethod
    def check(
        filename: str,
        data: bytes,
        content_type: Optional[str] = None,
        *,
        bucket: str = "photos",
        max_size: int = MAX_FILE_SIZE,
        allowed_types: Iterable[str] = ALLOWED_TYPES,
    ) -> None:
        """
        Validate one upload.

        Checks:
        - File is not empty
        - File size within bucket limit
        - MIME type is accepted by the bucket

        Args:
            filename: Original file name (fallback when content_type is missing
                      and the bytes are not recognised)
            data: Raw file bytes
            content_type: Declared MIME type
            bucket: Target bucket name, for error context
            max_size: Bucket size limit in bytes
            allowed_types: MIME types the bucket accepts

        Raises:
            StorageError: code file_too_large, invalid_file_type or empty_file
        """
        allowed = tuple(allowed_types)
        limit_mb = round(max_size / 1024 / 1024)

        if not data:
            raise StorageError("File is empty", code="empty_file", bucket=bucket)

        if len(data) > max_size:
            size_mb = len(data) / 1024 / 1024
            raise StorageError(
                f"File too large: {size_mb:.1f} MB (max {limit_mb} MB)",
                code="file_too_large",
                bucket=bucket,
                limit_mb=limit_mb,
            )

        mime = content_type or _detect_content_type(filename, data)
        if mime not in allowed:
            raise StorageError(
                f"Unsupported content type: {mime}",
                code="invalid_file_type",
                bucket=bucket,
                allowed_types=allowed,
            )
