"""
Shared fixtures for journey-core tests

Images are generated in memory with Pillow; the hosted backend is replaced
by an in-memory fake implementing the auth, storage and metadata protocols.
"""

import asyncio
import hashlib
from io import BytesIO
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import pytest
from PIL import Image
from PIL.TiffImagePlugin import IFDRational

from journey_core.backend.protocols import CurrentUser, UploadSession
from journey_core.config import Settings


def _dms(value: float) -> Tuple[IFDRational, IFDRational, IFDRational]:
    """Decimal degrees -> EXIF degrees/minutes/seconds rationals"""
    degrees = int(value)
    minutes_float = (value - degrees) * 60
    minutes = int(minutes_float)
    seconds = round((minutes_float - minutes) * 60 * 100)
    return IFDRational(degrees, 1), IFDRational(minutes, 1), IFDRational(seconds, 100)


def make_jpeg(
    width: int = 64,
    height: int = 48,
    color: Tuple[int, int, int] = (70, 130, 180),
    *,
    taken_at: Optional[str] = None,
    camera_make: Optional[str] = None,
    camera_model: Optional[str] = None,
    gps: Optional[Tuple[float, float]] = None,
) -> bytes:
    """Create a JPEG with optional EXIF metadata"""
    img = Image.new("RGB", (width, height), color)
    exif = Image.Exif()
    if camera_make:
        exif[271] = camera_make
    if camera_model:
        exif[272] = camera_model
    if taken_at:
        exif[306] = taken_at
        exif[0x8769] = {36867: taken_at}
    if gps:
        lat, lon = gps
        exif[0x8825] = {
            1: "N" if lat >= 0 else "S",
            2: _dms(abs(lat)),
            3: "E" if lon >= 0 else "W",
            4: _dms(abs(lon)),
        }

    buffer = BytesIO()
    if len(exif):
        img.save(buffer, format="JPEG", quality=85, exif=exif)
    else:
        img.save(buffer, format="JPEG", quality=85)
    return buffer.getvalue()


def make_png(width: int = 64, height: int = 48) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (width, height), (150, 150, 150)).save(buffer, format="PNG")
    return buffer.getvalue()


def sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


ErrorHook = Callable[[Any], Optional[Exception]]


class FakeBackend:
    """
    In-memory hosted backend.

    store_error / insert_error hooks return an exception to raise for a
    given upload (bytes) or row (dict), or None to let it through.
    """

    def __init__(self, user: Optional[CurrentUser] = CurrentUser(id="user-1", email="traveler@example.com")):
        self.user = user
        self.objects: Dict[str, bytes] = {}
        self.rows: List[Dict[str, Any]] = []
        self.store_calls = 0
        self.insert_calls = 0
        self.select_calls = 0
        self.store_error: Optional[ErrorHook] = None
        self.insert_error: Optional[ErrorHook] = None
        self.select_error: Optional[Exception] = None

    def session(self) -> UploadSession:
        return UploadSession(auth=self, storage=self, metadata=self)

    def seed_photo(self, album_id: str, data: bytes) -> Dict[str, Any]:
        row = {"id": f"seed-{len(self.rows) + 1}", "album_id": album_id, "file_hash": sha256(data)}
        self.rows.append(row)
        return row

    async def get_current_user(self) -> Optional[CurrentUser]:
        await asyncio.sleep(0)
        return self.user

    async def store(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        self.store_calls += 1
        await asyncio.sleep(0)
        error = self.store_error(data) if self.store_error else None
        if error is not None:
            raise error
        self.objects[path] = data
        return f"https://cdn.example.com/storage/v1/object/public/{bucket}/{path}"

    async def insert(self, table: str, row: Mapping[str, Any]) -> Dict[str, Any]:
        self.insert_calls += 1
        await asyncio.sleep(0)
        error = self.insert_error(row) if self.insert_error else None
        if error is not None:
            raise error
        record = dict(row, id=f"photo-{len(self.rows) + 1}")
        self.rows.append(record)
        return record

    async def select(
        self,
        table: str,
        *,
        columns: Sequence[str],
        equals: Optional[Mapping[str, Any]] = None,
        not_null: Sequence[str] = (),
    ) -> List[Dict[str, Any]]:
        self.select_calls += 1
        if self.select_error is not None:
            raise self.select_error
        matches = []
        for row in self.rows:
            if any(row.get(key) != value for key, value in (equals or {}).items()):
                continue
            if any(row.get(key) is None for key in not_null):
                continue
            matches.append({column: row.get(column) for column in columns})
        return matches


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def settings() -> Settings:
    return Settings(api_url="https://backend.example.com", api_key="anon-key", metadata_timeout=2.0)


@pytest.fixture
def gps_jpeg() -> bytes:
    """Lisbon, with camera and capture time"""
    return make_jpeg(
        800,
        600,
        taken_at="2023:06:14 18:42:05",
        camera_make="FUJIFILM",
        camera_model="X-T4",
        gps=(38.7223, -9.1393),
    )


@pytest.fixture
def plain_jpeg() -> bytes:
    return make_jpeg(320, 240, (180, 130, 70))
