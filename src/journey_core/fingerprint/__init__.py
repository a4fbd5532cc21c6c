"""Content fingerprint module"""

from .calculator import FingerprintCalculator, fingerprint_or_none

__all__ = ["FingerprintCalculator", "fingerprint_or_none"]
