"""Upload validation module"""

from .formats import FormatDetector, ImageFormat
from .upload_validator import UploadValidator

__all__ = ["FormatDetector", "ImageFormat", "UploadValidator"]
