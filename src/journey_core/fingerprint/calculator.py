"""
Content Fingerprint Module

SHA-256 fingerprints of raw file bytes, used to spot byte-identical uploads.
"""

import asyncio
import hashlib
import logging
from typing import BinaryIO, Optional

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


class FingerprintCalculator:
    """Calculate SHA256 fingerprints from file content"""

    @staticmethod
    def calculate(data: bytes) -> str:
        """
        Calculate SHA256 hash from raw file bytes.

        Args:
            data: Raw file bytes (any size, may be empty)

        Returns:
            Lowercase SHA256 hex digest (64 characters)
        """
        return hashlib.sha256(data).hexdigest()

    @staticmethod
    def calculate_stream(stream: BinaryIO, chunk_size: int = CHUNK_SIZE) -> str:
        """
        Calculate SHA256 hash of a binary stream, reading it in chunks.

        Args:
            stream: File object opened in binary mode
            chunk_size: Bytes read per iteration

        Returns:
            Lowercase SHA256 hex digest (64 characters)
        """
        digest = hashlib.sha256()
        for chunk in iter(lambda: stream.read(chunk_size), b""):
            digest.update(chunk)
        return digest.hexdigest()

    @staticmethod
    def verify(data: bytes, expected_hash: str) -> bool:
        """
        Verify fingerprint matches expected value.

        Args:
            data: Raw file bytes
            expected_hash: Expected SHA256 hex digest

        Returns:
            True if hash matches
        """
        return FingerprintCalculator.calculate(data) == expected_hash.lower()


async def fingerprint_or_none(data: bytes, filename: str = "") -> Optional[str]:
    """
    Fingerprint bytes off the event loop.

    Any failure yields None: duplicate detection is skipped for that file
    and ingestion carries on.
    """
    try:
        return await asyncio.to_thread(FingerprintCalculator.calculate, data)
    except Exception as exc:
        logger.warning("Fingerprint failed for %s, skipping duplicate check: %s", filename, exc)
        return None
