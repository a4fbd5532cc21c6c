"""
Backend boundary contracts

Authentication, object storage and the relational metadata store are
provided by a hosted backend. Ingestion only talks to them through these
protocols.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: Optional[str] = None


class AuthProvider(Protocol):
    async def get_current_user(self) -> Optional[CurrentUser]: ...


class ObjectStorage(Protocol):
    async def store(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        """Upload bytes and return their public URL."""
        ...


class MetadataStore(Protocol):
    async def insert(self, table: str, row: Mapping[str, Any]) -> Dict[str, Any]: ...

    async def select(
        self,
        table: str,
        *,
        columns: Sequence[str],
        equals: Optional[Mapping[str, Any]] = None,
        not_null: Sequence[str] = (),
    ) -> List[Dict[str, Any]]: ...


@dataclass
class UploadSession:
    """
    Backend context handed to the ingestion queue.

    Passed explicitly to whatever needs auth, storage or the database.
    """
    auth: AuthProvider
    storage: ObjectStorage
    metadata: MetadataStore
