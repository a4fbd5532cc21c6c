"""Preview handle module"""

from .generator import PreviewHandle, PreviewRegistry, PreviewReleasedError

__all__ = ["PreviewHandle", "PreviewRegistry", "PreviewReleasedError"]
