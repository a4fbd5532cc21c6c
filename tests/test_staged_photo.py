"""
Tests for the StagedPhoto model and its status machine
"""

import pytest

from journey_core.errors import InvalidTransitionError
from journey_core.metadata.exif_extractor import CaptureMetadata
from journey_core.models.photo import ManualLocation, PhotoStatus, StagedPhoto
from journey_core.preview.generator import PreviewRegistry


def make_item(**kwargs) -> StagedPhoto:
    defaults = dict(filename="IMG_0001.jpg", source_bytes=b"bytes", content_type="image/jpeg", intake_index=0)
    defaults.update(kwargs)
    return StagedPhoto(**defaults)


class TestWriteOnceFields:

    def test_fingerprint_set_once(self):
        item = make_item()
        item.set_fingerprint("ab" * 32)

        with pytest.raises(InvalidTransitionError):
            item.set_fingerprint("cd" * 32)
        assert item.fingerprint == "ab" * 32

    def test_metadata_set_once(self):
        item = make_item()
        item.set_metadata(CaptureMetadata())

        with pytest.raises(InvalidTransitionError):
            item.set_metadata(CaptureMetadata(camera_make="Sony"))
        assert item.extracted_metadata.is_empty

    def test_file_size_from_bytes(self):
        assert make_item(source_bytes=b"12345").file_size == 5


class TestStatusMachine:

    def test_happy_path(self):
        item = make_item()
        item.start_upload()
        item.complete("https://cdn.example.com/a.jpg", "photo-1")

        assert item.status is PhotoStatus.COMPLETED
        assert item.upload_progress == 100
        assert item.record_id == "photo-1"

    def test_failed_can_retry(self):
        item = make_item()
        item.start_upload()
        item.fail("Network error. Check your connection and retry.", "network")

        assert item.status is PhotoStatus.FAILED
        assert item.error_detail

        item.start_upload()

        assert item.status is PhotoStatus.UPLOADING
        assert item.error_detail is None
        assert item.error_code is None

    def test_completed_is_terminal(self):
        item = make_item()
        item.start_upload()
        item.complete("url", None)

        with pytest.raises(InvalidTransitionError):
            item.start_upload()

    def test_pending_cannot_complete_directly(self):
        with pytest.raises(InvalidTransitionError):
            make_item().complete("url", None)

    def test_duplicate_requires_fingerprint(self):
        with pytest.raises(InvalidTransitionError):
            make_item().mark_duplicate()

    def test_duplicate_flagging(self):
        item = make_item()
        item.set_fingerprint("ab" * 32)
        item.mark_duplicate()

        assert item.status is PhotoStatus.DUPLICATE
        assert item.upload_progress == 100
        assert not item.is_eligible

    def test_duplicate_cannot_upload(self):
        item = make_item()
        item.set_fingerprint("ab" * 32)
        item.mark_duplicate()

        with pytest.raises(InvalidTransitionError):
            item.start_upload()

        item.transition(PhotoStatus.PENDING)
        item.finish_intake()
        assert item.is_eligible

    def test_not_eligible_during_intake(self):
        item = make_item()

        assert not item.is_eligible

        item.finish_intake()

        assert item.is_eligible

    def test_restart_clears_previous_result(self):
        """A retry must not carry the URL of the failed attempt"""
        item = make_item()
        item.start_upload()
        item.file_url = "https://cdn.example.com/stale.jpg"
        item.fail("Failed to save to database.", "database")

        item.start_upload()

        assert item.file_url is None
        assert item.record_id is None


class TestUserEdits:

    def test_caption_editable_until_upload(self):
        item = make_item()
        item.set_caption("Sunset over Alfama")
        item.start_upload()

        with pytest.raises(InvalidTransitionError):
            item.set_caption("changed")
        assert item.caption == "Sunset over Alfama"

    def test_caption_editable_after_failure(self):
        item = make_item()
        item.start_upload()
        item.fail("Upload failed. Please try again.", "upload_failed")
        item.set_caption("retry with caption")

        assert item.caption == "retry with caption"

    def test_manual_location_overrides_exif(self):
        item = make_item()
        item.set_metadata(CaptureMetadata(latitude=38.72, longitude=-9.14))

        assert item.final_coordinates() == (38.72, -9.14)

        item.set_location(ManualLocation("Porto", 41.1579, -8.6291))

        assert item.final_coordinates() == (41.1579, -8.6291)

        item.set_location(None)

        assert item.final_coordinates() == (38.72, -9.14)

    def test_no_coordinates(self):
        item = make_item()
        item.set_metadata(CaptureMetadata(camera_make="Sony"))

        assert item.final_coordinates() == (None, None)


class TestManualLocation:

    def test_rejects_out_of_range(self):
        with pytest.raises(ValueError):
            ManualLocation("Nowhere", 95.0, 10.0)
        with pytest.raises(ValueError):
            ManualLocation("Nowhere", 10.0, -190.0)

    def test_from_coordinates(self):
        location = ManualLocation.from_coordinates(59.9139, 10.7522)

        assert location.name == "59.913900, 10.752200"


class TestRelease:

    def test_release_once(self):
        registry = PreviewRegistry()
        item = make_item(preview=registry.create(b"bytes"))

        item.release()
        item.release()

        assert item.preview.released
        assert item.source_bytes is None
        assert registry.released == 1
        assert registry.outstanding == 0

    def test_to_dict(self):
        registry = PreviewRegistry()
        item = make_item(preview=registry.create(b"bytes"), caption="hello")

        data = item.to_dict()

        assert data["status"] == "pending"
        assert data["caption"] == "hello"
        assert data["preview_url"].startswith("preview://")
        assert data["order_index"] == 0
