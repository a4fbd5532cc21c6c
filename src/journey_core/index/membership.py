"""
Duplicate Membership Index

Fingerprints already persisted for one album. Loaded once when an album's
upload session starts, then grown as uploads succeed so a file dropped
again in the same session is recognised too.
"""

import logging
from typing import FrozenSet, Iterable

from ..backend.protocols import MetadataStore

logger = logging.getLogger(__name__)

PHOTOS_TABLE = "photos"


class DuplicateIndex:
    """Set of known fingerprints for a single album"""

    def __init__(self, album_id: str, fingerprints: Iterable[str] = ()):
        self.album_id = album_id
        self._fingerprints = {fp.lower() for fp in fingerprints if fp}

    @classmethod
    async def load(cls, store: MetadataStore, album_id: str) -> "DuplicateIndex":
        """
        Seed the index from the album's persisted photo rows.

        Args:
            store: Relational metadata store
            album_id: Album whose photos are indexed

        Returns:
            DuplicateIndex holding every non-null file_hash of the album
        """
        rows = await store.select(
            PHOTOS_TABLE,
            columns=["file_hash"],
            equals={"album_id": album_id},
            not_null=["file_hash"],
        )
        index = cls(album_id, (row.get("file_hash") for row in rows))
        logger.info("Loaded %d fingerprints for album %s", len(index), album_id)
        return index

    def contains(self, fingerprint: str) -> bool:
        return bool(fingerprint) and fingerprint.lower() in self._fingerprints

    def insert(self, fingerprint: str) -> None:
        if fingerprint:
            self._fingerprints.add(fingerprint.lower())

    def snapshot(self) -> FrozenSet[str]:
        return frozenset(self._fingerprints)

    def __contains__(self, fingerprint: object) -> bool:
        return isinstance(fingerprint, str) and self.contains(fingerprint)

    def __len__(self) -> int:
        return len(self._fingerprints)
