"""
Image Format Detection
"""

from enum import Enum
from io import BytesIO
from pathlib import PurePath
from typing import Optional

from PIL import Image


class ImageFormat(Enum):
    """Image formats accepted by the photos bucket"""
    JPEG = "image/jpeg"
    PNG = "image/png"
    WEBP = "image/webp"
    GIF = "image/gif"
    HEIC = "image/heic"


class FormatDetector:
    """Detect image formats from filenames and content"""

    EXTENSION_MAP = {
        '.jpg': ImageFormat.JPEG,
        '.jpeg': ImageFormat.JPEG,
        '.png': ImageFormat.PNG,
        '.webp': ImageFormat.WEBP,
        '.gif': ImageFormat.GIF,
        '.heic': ImageFormat.HEIC,
    }

    # Pillow format names
    PIL_FORMAT_MAP = {
        'JPEG': ImageFormat.JPEG,
        'MPO': ImageFormat.JPEG,
        'PNG': ImageFormat.PNG,
        'WEBP': ImageFormat.WEBP,
        'GIF': ImageFormat.GIF,
        'HEIF': ImageFormat.HEIC,
    }

    @staticmethod
    def detect_format(filename: str) -> Optional[ImageFormat]:
        """
        Detect format from file extension.

        Args:
            filename: File name or path

        Returns:
            ImageFormat enum or None if unsupported
        """
        return FormatDetector.EXTENSION_MAP.get(PurePath(filename).suffix.lower())

    @staticmethod
    def guess_content_type(filename: str, default: str = "application/octet-stream") -> str:
        """MIME type for a filename, falling back to default"""
        image_format = FormatDetector.detect_format(filename)
        return image_format.value if image_format else default

    @staticmethod
    def sniff(data: bytes) -> Optional[ImageFormat]:
        """
        Detect format from content with Pillow.

        Returns:
            ImageFormat, or None if Pillow cannot identify the bytes
        """
        try:
            with Image.open(BytesIO(data)) as img:
                return FormatDetector.PIL_FORMAT_MAP.get(img.format or "")
        except Exception:
            return None
