"""
Preview Handle Module

Staged photos get a transient preview handle for display while they sit in
the queue. A handle owns a reference to the file bytes and, once rendered, a
small JPEG thumbnail. Handles must be released exactly once.
"""

import logging
import uuid
from io import BytesIO
from typing import Dict, Optional, Tuple

from PIL import Image, ImageOps

logger = logging.getLogger(__name__)


class PreviewReleasedError(RuntimeError):
    """Raised when a released preview handle is used or released again"""


class PreviewHandle:
    """
    Renderable reference to staged bytes.

    Attributes:
        url: Opaque local reference (preview://<id>) for clients to display
        released: True once release() has run
    """

    DEFAULT_SIZE = (300, 300)

    def __init__(self, data: bytes, registry: Optional["PreviewRegistry"] = None):
        self.id = uuid.uuid4().hex
        self.url = f"preview://{self.id}"
        self._data: Optional[bytes] = data
        self._thumbnail: Optional[bytes] = None
        self._registry = registry
        self.released = False

    def render(self, size: Tuple[int, int] = DEFAULT_SIZE, quality: int = 85) -> Optional[bytes]:
        """
        JPEG thumbnail of the staged image, generated on first use.

        Process:
        1. Open image
        2. Apply EXIF orientation (rotate pixels)
        3. Resize within size (aspect ratio preserved)
        4. Save as JPEG (no EXIF)

        Returns:
            JPEG bytes, or None when the image cannot be decoded
        """
        if self.released:
            raise PreviewReleasedError(f"Preview {self.id} already released")
        if self._thumbnail is not None:
            return self._thumbnail

        try:
            with Image.open(BytesIO(self._data)) as img:
                try:
                    img = ImageOps.exif_transpose(img)
                except Exception:
                    pass  # No EXIF orientation or already correct

                img.thumbnail(size, Image.Resampling.LANCZOS)
                buffer = BytesIO()
                img.convert("RGB").save(buffer, format="JPEG", quality=quality)
        except Exception as e:
            logger.debug("Preview %s cannot be rendered: %s", self.id, e)
            return None

        self._thumbnail = buffer.getvalue()
        return self._thumbnail

    def release(self) -> None:
        """Drop the bytes and thumbnail. Releasing twice is an error."""
        if self.released:
            raise PreviewReleasedError(f"Preview {self.id} already released")
        self.released = True
        self._data = None
        self._thumbnail = None
        if self._registry is not None:
            self._registry._forget(self)


class PreviewRegistry:
    """Creates preview handles and tracks the ones still outstanding"""

    def __init__(self):
        self._handles: Dict[str, PreviewHandle] = {}
        self.created = 0
        self.released = 0

    def create(self, data: bytes) -> PreviewHandle:
        handle = PreviewHandle(data, registry=self)
        self._handles[handle.id] = handle
        self.created += 1
        return handle

    @property
    def outstanding(self) -> int:
        return len(self._handles)

    def release_all(self) -> int:
        """Release every outstanding handle; returns how many were released."""
        handles = list(self._handles.values())
        for handle in handles:
            handle.release()
        return len(handles)

    def _forget(self, handle: PreviewHandle) -> None:
        self._handles.pop(handle.id, None)
        self.released += 1
