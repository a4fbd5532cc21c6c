"""Duplicate membership index"""

from .membership import DuplicateIndex

__all__ = ["DuplicateIndex"]
