"""
EXIF Metadata Extraction Module

Reads capture time, GPS position and camera identity from image bytes.
Extraction is advisory: every failure mode (unreadable file, missing EXIF
block, bad values, timeout) ends in an empty CaptureMetadata, never an
exception.
"""

import asyncio
import logging
import math
from dataclasses import asdict, dataclass
from datetime import datetime
from io import BytesIO
from typing import Any, Dict, Optional, Tuple

from PIL import Image

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0

# EXIF tag ids
TAG_MAKE = 271
TAG_MODEL = 272
TAG_DATETIME = 306
TAG_DATETIME_ORIGINAL = 36867
TAG_DATETIME_DIGITIZED = 36868
IFD_EXIF = 0x8769
IFD_GPS = 0x8825

# GPS IFD tag ids
GPS_LATITUDE_REF = 1
GPS_LATITUDE = 2
GPS_LONGITUDE_REF = 3
GPS_LONGITUDE = 4


@dataclass(frozen=True)
class CaptureMetadata:
    """
    Capture metadata of one photo.

    Every field is optional; CaptureMetadata() is the valid empty result.

    Attributes:
        taken_at: ISO 8601 timestamp when photo was taken
        latitude: GPS latitude in decimal degrees (-90..90)
        longitude: GPS longitude in decimal degrees (-180..180)
        camera_make: Camera manufacturer
        camera_model: Camera model
    """
    taken_at: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    camera_make: Optional[str] = None
    camera_model: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return all(value is None for value in asdict(self).values())

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def to_dict(self) -> Dict[str, Any]:
        """Populated fields only"""
        return {key: value for key, value in asdict(self).items() if value is not None}


def validate_coordinates(
    latitude: Optional[float], longitude: Optional[float]
) -> Tuple[Optional[float], Optional[float]]:
    """
    Accept a coordinate pair only if both halves are usable.

    Missing, non-finite and out-of-range values drop the pair, as does
    (0, 0), which cameras write when they have no fix.
    """
    if latitude is None or longitude is None:
        return None, None
    try:
        lat = float(latitude)
        lon = float(longitude)
    except (TypeError, ValueError):
        return None, None
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return None, None
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        logger.debug("Dropping out-of-range coordinates (%s, %s)", lat, lon)
        return None, None
    if lat == 0 and lon == 0:
        return None, None
    return lat, lon


class ExifExtractor:
    """Extracts capture metadata from images"""

    @staticmethod
    def extract_from_bytes(image_bytes: bytes) -> CaptureMetadata:
        """
        Extract capture metadata from image bytes.

        Args:
            image_bytes: Raw image file bytes

        Returns:
            CaptureMetadata, empty when nothing usable was found
        """
        try:
            with Image.open(BytesIO(image_bytes)) as img:
                exif = img.getexif()
                if not exif:
                    return CaptureMetadata()

                # Capture time usually lives in the EXIF sub-IFD
                tags: Dict[int, Any] = dict(exif)
                try:
                    for tag_id, value in exif.get_ifd(IFD_EXIF).items():
                        tags.setdefault(tag_id, value)
                except (KeyError, AttributeError):
                    pass

                taken_at = None
                for datetime_tag in (TAG_DATETIME_ORIGINAL, TAG_DATETIME_DIGITIZED, TAG_DATETIME):
                    taken_at = ExifExtractor._standardize_datetime(tags.get(datetime_tag))
                    if taken_at:
                        break

                lat, lon = ExifExtractor._extract_gps_from_exif(exif)

                return CaptureMetadata(
                    taken_at=taken_at,
                    latitude=lat,
                    longitude=lon,
                    camera_make=ExifExtractor._clean_text(tags.get(TAG_MAKE)),
                    camera_model=ExifExtractor._clean_text(tags.get(TAG_MODEL)),
                )

        except Exception as e:
            logger.debug("EXIF extraction failed, continuing without metadata: %s", e)
            return CaptureMetadata()

    @staticmethod
    async def extract(image_bytes: bytes, timeout: float = DEFAULT_TIMEOUT, filename: str = "") -> CaptureMetadata:
        """
        Extract metadata off the event loop, bounded by timeout.

        A timeout or any other failure yields an empty CaptureMetadata.
        """
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(ExifExtractor.extract_from_bytes, image_bytes),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("EXIF extraction timed out after %.1fs for %s", timeout, filename)
        except Exception as e:
            logger.warning("EXIF extraction failed for %s: %s", filename, e)
        return CaptureMetadata()

    @staticmethod
    def _extract_gps_from_exif(exif) -> Tuple[Optional[float], Optional[float]]:
        """
        Extract GPS position from EXIF.

        Returns:
            Tuple of (latitude, longitude), both None if unusable
        """
        try:
            gps_ifd = exif.get_ifd(IFD_GPS)
        except (KeyError, AttributeError):
            return None, None

        if not gps_ifd:
            return None, None

        gps_latitude = gps_ifd.get(GPS_LATITUDE)
        gps_longitude = gps_ifd.get(GPS_LONGITUDE)
        if not gps_latitude or not gps_longitude:
            return None, None

        lat = ExifExtractor._convert_to_decimal(gps_latitude, gps_ifd.get(GPS_LATITUDE_REF))
        lon = ExifExtractor._convert_to_decimal(gps_longitude, gps_ifd.get(GPS_LONGITUDE_REF))
        return validate_coordinates(lat, lon)

    @staticmethod
    def _convert_to_decimal(coord_tuple, ref) -> Optional[float]:
        """
        Convert GPS coordinate to decimal degrees.

        Supports DMS, DM, and decimal formats.
        """
        try:
            if not isinstance(coord_tuple, (tuple, list)):
                coord_tuple = (coord_tuple,)
            if not coord_tuple:
                return None

            parts = [ExifExtractor._to_float(part) for part in coord_tuple[:3]]
            decimal = parts[0]
            if len(parts) >= 2:
                decimal += parts[1] / 60.0
            if len(parts) >= 3:
                decimal += parts[2] / 3600.0

            if isinstance(ref, bytes):
                ref = ref.decode("ascii", errors="ignore")
            if ref and ref.strip().upper() in ("S", "W"):
                decimal = -decimal

            return decimal

        except Exception:
            return None

    @staticmethod
    def _to_float(value) -> float:
        # Older Pillow releases hand back rationals as (numerator, denominator)
        if isinstance(value, tuple):
            return value[0] / value[1]
        return float(value)

    @staticmethod
    def _clean_text(value) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="ignore")
        text = str(value).strip().strip("\x00").strip()
        return text or None

    @staticmethod
    def _standardize_datetime(dt_str) -> Optional[str]:
        """
        Convert EXIF datetime to ISO 8601 format.

        Handles multiple datetime formats from different cameras.
        Unparseable values are dropped.
        """
        if isinstance(dt_str, bytes):
            dt_str = dt_str.decode("ascii", errors="ignore")
        if not dt_str or not isinstance(dt_str, str):
            return None

        # Remove timezone info for simplicity
        dt_str_clean = dt_str.split('+')[0].split('Z')[0].strip().strip("\x00")

        formats = [
            "%Y:%m:%d %H:%M:%S",      # Standard EXIF
            "%Y-%m-%d %H:%M:%S",      # ISO with space
            "%Y-%m-%dT%H:%M:%S",      # ISO 8601
            "%Y:%m:%d %H:%M:%S.%f",   # EXIF with subseconds
            "%Y-%m-%d %H:%M:%S.%f",   # ISO with subseconds
            "%Y:%m:%d",               # Date only EXIF
            "%Y-%m-%d",               # Date only ISO
        ]

        for fmt in formats:
            try:
                return datetime.strptime(dt_str_clean, fmt).isoformat()
            except ValueError:
                continue

        return None
