"""
Basic tests for journey-core

Run with: pytest tests/
"""

import asyncio

from journey_core import (
    BatchUploadReport,
    CaptureMetadata,
    ExifExtractor,
    FingerprintCalculator,
    Settings,
    StagedPhoto,
    __version__,
)
from journey_core.models.photo import PhotoStatus
from journey_core.models.upload_result import BatchOutcome, ItemOutcome


def test_version():
    """Test that version is defined"""
    assert __version__ == "1.0.0"


def test_exif_extractor_garbage():
    """Unreadable bytes should give empty metadata, not an exception"""
    metadata = ExifExtractor.extract_from_bytes(b"not an image")
    assert metadata is not None
    assert metadata.is_empty


def test_exif_extractor_async_garbage():
    metadata = asyncio.run(ExifExtractor.extract(b"", timeout=1.0))
    assert metadata == CaptureMetadata()


def test_fingerprint_known_value():
    assert FingerprintCalculator.calculate(b"abc") == (
        "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    )


def test_staged_photo_serialization():
    """Test StagedPhoto creation and serialization"""
    photo = StagedPhoto(filename="test.jpg", source_bytes=b"1234", content_type="image/jpeg", intake_index=2)

    data = photo.to_dict()
    assert isinstance(data, dict)
    assert data["filename"] == "test.jpg"
    assert data["file_size"] == 4
    assert data["order_index"] == 2
    assert data["status"] == "pending"
    assert data["preview_url"] is None


def test_report_messages():
    def outcome(status):
        return ItemOutcome(item_id=status.value, filename=f"{status.value}.jpg", status=status)

    assert BatchUploadReport().outcome is BatchOutcome.EMPTY
    assert BatchUploadReport([outcome(PhotoStatus.COMPLETED)] * 3).message == (
        "All 3 photos uploaded. What would you like to do next?"
    )
    failed = BatchUploadReport([outcome(PhotoStatus.FAILED), outcome(PhotoStatus.DUPLICATE)])
    assert failed.outcome is BatchOutcome.FAILED
    assert failed.message == "Upload failed. Please check your connection and try again."


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("JOURNEY_API_URL", "https://backend.example.com")
    monkeypatch.setenv("JOURNEY_API_KEY", "anon-key")
    monkeypatch.setenv("JOURNEY_METADATA_TIMEOUT", "2.5")
    monkeypatch.setenv("JOURNEY_MAX_UPLOAD_MB", "10")

    settings = Settings.from_env()

    assert settings.api_url == "https://backend.example.com"
    assert settings.metadata_timeout == 2.5
    assert settings.max_upload_bytes == 10 * 1024 * 1024
    assert settings.photos_bucket == "photos"
