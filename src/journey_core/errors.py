"""
Error taxonomy for photo ingestion

Boundary code raises the typed errors below; the ingestion queue turns them
into a per-item status and a human-readable message via describe_upload_error().
"""

import re
from typing import Iterable, Optional

_MISSING_COLUMN_RE = re.compile(r"Could not find the '(.+?)' column")

DEFAULT_ALLOWED_TYPES = ("image/jpeg", "image/png", "image/webp", "image/gif", "image/heic")


class JourneyCoreError(Exception):
    """Base class for all journey-core errors"""


class InvalidTransitionError(JourneyCoreError):
    """Raised when a staged photo is moved to a state it cannot reach"""


class ItemNotFoundError(JourneyCoreError, KeyError):
    """Raised when a staged item id is not in the queue"""

    def __str__(self) -> str:
        return f"No staged photo with id {self.args[0]!r}"


class UploadError(JourneyCoreError):
    """Base class for failures of the upload/persist step"""

    code = "upload_failed"


class AuthenticationError(UploadError):
    """No signed-in user; the upload cannot proceed without re-authentication"""

    code = "auth_required"


class NetworkError(UploadError):
    """Transport-level failure talking to the backend"""

    code = "network"


class PermissionDeniedError(UploadError):
    """The backend refused the operation for the current user"""

    code = "permission_denied"


class StorageError(UploadError):
    """
    Object storage failure.

    Attributes:
        code: Machine-readable reason (file_too_large, invalid_file_type,
              quota_exceeded, upload_failed)
        bucket: Target bucket, when known
        path: Target object path, when known
    """

    def __init__(
        self,
        message: str,
        code: str = "upload_failed",
        bucket: Optional[str] = None,
        path: Optional[str] = None,
        limit_mb: Optional[int] = None,
        allowed_types: Optional[Iterable[str]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.bucket = bucket
        self.path = path
        self.limit_mb = limit_mb
        self.allowed_types = tuple(allowed_types) if allowed_types else ()


class MetadataStoreError(UploadError):
    """Relational metadata store rejected a read or write"""

    code = "database"

    def __init__(self, message: str, db_code: Optional[str] = None):
        super().__init__(message)
        self.db_code = db_code


class SchemaMismatchError(MetadataStoreError):
    """A write referenced a column the remote schema does not have"""

    code = "schema_mismatch"

    def __init__(self, column: str, message: Optional[str] = None):
        super().__init__(message or f"Missing column: {column}", db_code="PGRST204")
        self.column = column


def parse_missing_column(message: str) -> Optional[str]:
    """Extract the column name from a PostgREST 'Could not find the ... column' message."""
    match = _MISSING_COLUMN_RE.search(message or "")
    return match.group(1) if match else None


def error_code(exc: BaseException) -> str:
    """Machine-readable code recorded on a failed item"""
    if not isinstance(exc, UploadError):
        return UploadError.code
    if isinstance(exc, MetadataStoreError) and parse_missing_column(str(exc)):
        return SchemaMismatchError.code
    return exc.code


def describe_upload_error(exc: BaseException) -> str:
    """
    Map an upload failure to a message safe to show the user.

    Raw backend text never leaks through; the only detail carried over is
    the missing column name of a schema mismatch.
    """
    if isinstance(exc, AuthenticationError):
        return "Your session has expired. Please sign in again before retrying."

    if isinstance(exc, SchemaMismatchError):
        column = exc.column
    elif isinstance(exc, MetadataStoreError):
        column = parse_missing_column(str(exc))
    else:
        column = None
    if column:
        return f"Missing DB column: {column}. Remove it from the insert or add it to the table."

    if isinstance(exc, StorageError):
        if exc.code == "file_too_large":
            limit = f"{exc.limit_mb}MB" if exc.limit_mb else "the bucket limit"
            return f"File too large. Maximum size is {limit}."
        if exc.code == "invalid_file_type":
            allowed = ", ".join(exc.allowed_types or DEFAULT_ALLOWED_TYPES)
            return f"File type not allowed. Supported types: {allowed}"
        if exc.code == "empty_file":
            return "File is empty."
        if exc.code == "quota_exceeded":
            return "Storage quota exceeded. Free up space or upgrade your plan."
    if isinstance(exc, PermissionDeniedError):
        return "You don't have permission to upload to this album."
    if isinstance(exc, NetworkError):
        return "Network error. Check your connection and retry."
    return "Upload failed. Please try again."
