"""
Tests for capture metadata extraction

Extraction is advisory: missing or broken metadata must come back as an
empty CaptureMetadata, never as an exception.
"""

import asyncio
import math
import time

import pytest

from conftest import make_jpeg, make_png
from journey_core.metadata.exif_extractor import CaptureMetadata, ExifExtractor, validate_coordinates


class TestCaptureMetadataExtraction:
    """Test CaptureMetadata extraction from bytes"""

    def test_extract_from_jpeg_with_full_exif(self, gps_jpeg):
        """Should extract time, camera and GPS from a tagged JPEG"""
        metadata = ExifExtractor.extract_from_bytes(gps_jpeg)

        assert metadata.taken_at == "2023-06-14T18:42:05"
        assert metadata.camera_make == "FUJIFILM"
        assert metadata.camera_model == "X-T4"
        assert metadata.has_location
        assert abs(metadata.latitude - 38.7223) < 0.001
        assert abs(metadata.longitude - (-9.1393)) < 0.001

    def test_southern_hemisphere(self):
        """Should apply S/W references as negative coordinates"""
        data = make_jpeg(gps=(-33.8568, 151.2153))  # Sydney
        metadata = ExifExtractor.extract_from_bytes(data)

        assert abs(metadata.latitude - (-33.8568)) < 0.001
        assert abs(metadata.longitude - 151.2153) < 0.001

    def test_extract_from_jpeg_without_exif(self, plain_jpeg):
        """Should return empty metadata for JPEG without EXIF"""
        metadata = ExifExtractor.extract_from_bytes(plain_jpeg)

        assert metadata == CaptureMetadata()
        assert metadata.is_empty

    def test_extract_from_png(self):
        """Should handle PNG (no EXIF)"""
        metadata = ExifExtractor.extract_from_bytes(make_png())

        assert metadata.is_empty

    def test_extract_from_garbage(self):
        """Should return empty metadata for bytes that are not an image"""
        metadata = ExifExtractor.extract_from_bytes(b"definitely not a jpeg")

        assert metadata.is_empty

    def test_extract_from_empty_bytes(self):
        assert ExifExtractor.extract_from_bytes(b"").is_empty

    def test_camera_only(self):
        """Should keep camera fields when GPS is missing"""
        data = make_jpeg(camera_make="  Canon ", camera_model="EOS R5")
        metadata = ExifExtractor.extract_from_bytes(data)

        assert metadata.camera_make == "Canon"
        assert metadata.camera_model == "EOS R5"
        assert not metadata.has_location
        assert metadata.taken_at is None


class TestCoordinateValidation:
    """Out-of-range coordinates are dropped, not reported as errors"""

    def test_latitude_out_of_range_in_exif(self):
        """Latitude 190 should leave both coordinates absent"""
        data = make_jpeg(gps=(190.0, 10.0), camera_make="Nikon")
        metadata = ExifExtractor.extract_from_bytes(data)

        assert metadata.latitude is None
        assert metadata.longitude is None
        # Other fields survive
        assert metadata.camera_make == "Nikon"

    def test_longitude_out_of_range_in_exif(self):
        data = make_jpeg(gps=(45.0, 200.0))
        metadata = ExifExtractor.extract_from_bytes(data)

        assert not metadata.has_location

    @pytest.mark.parametrize("lat, lon", [
        (190, 10),
        (-90.5, 10),
        (45, 180.01),
        (45, -181),
        (math.nan, 10),
        (45, math.inf),
        (None, 10),
        (45, None),
        (0, 0),
    ])
    def test_invalid_pairs_dropped(self, lat, lon):
        assert validate_coordinates(lat, lon) == (None, None)

    @pytest.mark.parametrize("lat, lon", [
        (90, 180),
        (-90, -180),
        (59.9139, 10.7522),
        (0, 10.5),
    ])
    def test_valid_pairs_kept(self, lat, lon):
        assert validate_coordinates(lat, lon) == (float(lat), float(lon))


class TestTimestampParsing:
    """Test timestamp standardization"""

    @pytest.mark.parametrize("raw, expected", [
        ("2023:06:14 18:42:05", "2023-06-14T18:42:05"),
        ("2023-06-14 18:42:05", "2023-06-14T18:42:05"),
        ("2023-06-14T18:42:05+02:00", "2023-06-14T18:42:05"),
        ("2023:06:14", "2023-06-14T00:00:00"),
    ])
    def test_formats(self, raw, expected):
        assert ExifExtractor._standardize_datetime(raw) == expected

    def test_unparseable_dropped(self):
        assert ExifExtractor._standardize_datetime("0000:00:00 00:00:00") is None
        assert ExifExtractor._standardize_datetime("") is None


class TestBoundedExtraction:
    """Test the async, timeout-bounded extractor"""

    def test_extract_async(self, gps_jpeg):
        metadata = asyncio.run(ExifExtractor.extract(gps_jpeg, timeout=5))

        assert metadata.has_location

    def test_timeout_yields_empty_metadata(self, gps_jpeg, monkeypatch):
        """Extraction slower than the bound should degrade to empty"""
        def slow_extract(image_bytes):
            time.sleep(0.5)
            return CaptureMetadata(camera_make="too late")

        monkeypatch.setattr(ExifExtractor, "extract_from_bytes", staticmethod(slow_extract))

        metadata = asyncio.run(ExifExtractor.extract(gps_jpeg, timeout=0.05))

        assert metadata == CaptureMetadata()

    def test_exception_yields_empty_metadata(self, gps_jpeg, monkeypatch):
        def broken_extract(image_bytes):
            raise RuntimeError("parser exploded")

        monkeypatch.setattr(ExifExtractor, "extract_from_bytes", staticmethod(broken_extract))

        metadata = asyncio.run(ExifExtractor.extract(gps_jpeg))

        assert metadata.is_empty


class TestCaptureMetadataModel:

    def test_to_dict_skips_missing(self):
        metadata = CaptureMetadata(taken_at="2023-06-14T18:42:05", camera_make="Sony")

        assert metadata.to_dict() == {"taken_at": "2023-06-14T18:42:05", "camera_make": "Sony"}

    def test_immutable(self):
        metadata = CaptureMetadata()
        with pytest.raises(AttributeError):
            metadata.latitude = 10.0
