"""Metadata extraction module"""

from .exif_extractor import CaptureMetadata, ExifExtractor, validate_coordinates

__all__ = ["CaptureMetadata", "ExifExtractor", "validate_coordinates"]
