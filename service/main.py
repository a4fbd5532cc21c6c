"""
FastAPI service for journey-core

Exposes the per-album staging queue over HTTP: stage files, edit captions
and locations, review duplicates, upload, retry.
"""

import asyncio
import logging
from collections import OrderedDict
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Tuple

from fastapi import Depends, FastAPI, File, Form, Header, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from journey_core import __version__
from journey_core.backend import RestBackend, UploadSession
from journey_core.config import configure_logging, get_settings
from journey_core.errors import AuthenticationError, InvalidTransitionError, ItemNotFoundError
from journey_core.ingest import IncomingFile, IngestionQueue
from journey_core.models import ManualLocation, StagedPhoto

logger = logging.getLogger(__name__)

MAX_CALLERS = 100

QueueKey = Tuple[Optional[str], str]


class QueueRegistry:
    """
    Open staging queues and backend clients, keyed by caller token.

    Only the max_callers most recently seen callers are kept. Dropping a
    caller closes its queues and its backend client.
    """

    def __init__(self, max_callers: int = MAX_CALLERS):
        self.max_callers = max_callers
        self._callers: "OrderedDict[Optional[str], None]" = OrderedDict()
        self._backends: Dict[str, RestBackend] = {}
        self._queues: Dict[QueueKey, IngestionQueue] = {}
        self._opening: Dict[QueueKey, "asyncio.Task[IngestionQueue]"] = {}

    def __len__(self) -> int:
        return len(self._callers)

    def __contains__(self, caller: Optional[str]) -> bool:
        return caller in self._callers

    async def backend_for(self, token: str) -> RestBackend:
        """Backend client for token, created on first use"""
        await self._touch(token)
        backend = self._backends.get(token)
        if backend is None:
            backend = RestBackend.from_settings(get_settings(), access_token=token)
            self._backends[token] = backend
        return backend

    async def get_or_open(
        self, caller: Optional[str], album_id: str, session: UploadSession
    ) -> IngestionQueue:
        """
        Queue for (caller, album), opened once.

        Concurrent first requests share a single open, so the album index
        is loaded once and every request sees the same queue.
        """
        await self._touch(caller)
        key = (caller, album_id)
        queue = self._queues.get(key)
        if queue is not None:
            return queue

        task = self._opening.get(key)
        if task is None:
            task = asyncio.ensure_future(IngestionQueue.open(session, album_id))
            self._opening[key] = task
        try:
            queue = await asyncio.shield(task)
        finally:
            if self._opening.get(key) is task:
                del self._opening[key]

        # Not kept if the caller was dropped while the album loaded
        if caller in self._callers:
            queue = self._queues.setdefault(key, queue)
        return queue

    async def evict(self, caller: Optional[str]) -> None:
        """Close everything held for caller"""
        self._callers.pop(caller, None)
        for key in [key for key in self._queues if key[0] == caller]:
            self._queues.pop(key).close()
        backend = self._backends.pop(caller, None)
        if backend is not None:
            await backend.aclose()

    async def close_all(self) -> None:
        for caller in list(self._callers):
            await self.evict(caller)
        for queue in self._queues.values():
            queue.close()
        self._queues.clear()

    async def _touch(self, caller: Optional[str]) -> None:
        self._callers[caller] = None
        self._callers.move_to_end(caller)
        while len(self._callers) > self.max_callers:
            oldest = next(iter(self._callers))
            logger.info("Dropping least recently used caller (%d open)", len(self._callers))
            await self.evict(oldest)


registry = QueueRegistry()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    yield
    await registry.close_all()


# Initialize FastAPI app
app = FastAPI(
    title="Journey Photo Ingestion API",
    description="Stage photos for an album, detect duplicates, extract capture metadata and upload",
    version=__version__,
    lifespan=lifespan,
)

# CORS - allow the web client to call this service
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure based on deployment
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ErrorResponse(BaseModel):
    """Error response"""
    detail: str


class LocationSchema(BaseModel):
    name: str
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    place_id: Optional[str] = None


class StagedPhotoSchema(BaseModel):
    id: str
    filename: str
    content_type: str
    file_size: int
    order_index: int
    caption: str
    manual_location: Optional[Dict[str, Any]] = None
    extracted_metadata: Optional[Dict[str, Any]] = None
    fingerprint: Optional[str] = None
    status: str
    upload_progress: int
    error_detail: Optional[str] = None
    error_code: Optional[str] = None
    preview_url: Optional[str] = None
    file_url: Optional[str] = None
    record_id: Optional[str] = None

    @classmethod
    def from_item(cls, item: StagedPhoto) -> "StagedPhotoSchema":
        return cls(**item.to_dict())


class StagedUpdateSchema(BaseModel):
    caption: Optional[str] = None
    location: Optional[LocationSchema] = None
    clear_location: bool = False


class ItemOutcomeSchema(BaseModel):
    item_id: str
    filename: str
    status: str
    error_detail: Optional[str] = None


class UploadReportSchema(BaseModel):
    outcome: str
    message: str
    succeeded: int
    failed: int
    duplicates: int
    results: List[ItemOutcomeSchema]


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return None


async def get_session(authorization: Optional[str] = Header(None)) -> UploadSession:
    """Backend session for the caller's access token"""
    token = _bearer_token(authorization)
    if token is None:
        raise HTTPException(status_code=401, detail="Sign in to upload photos")
    try:
        backend = await registry.backend_for(token)
    except ValueError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return backend.session()


async def get_queue(
    album_id: str,
    authorization: Optional[str] = Header(None),
    session: UploadSession = Depends(get_session),
) -> IngestionQueue:
    return await registry.get_or_open(_bearer_token(authorization), album_id, session)


async def _drop_if_signed_out(authorization: Optional[str], items: List[StagedPhoto]) -> None:
    """A rejected token will not come back; free what was held for it"""
    if any(item.error_code == AuthenticationError.code for item in items):
        logger.info("Access token rejected, dropping its queues")
        await registry.evict(_bearer_token(authorization))


@app.exception_handler(ItemNotFoundError)
async def item_not_found_handler(request: Request, exc: ItemNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(InvalidTransitionError)
async def invalid_transition_handler(request: Request, exc: InvalidTransitionError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


# API Endpoints
@app.get("/")
def root():
    """API root - health check"""
    return {
        "service": "Journey Photo Ingestion API",
        "version": __version__,
        "status": "healthy"
    }


@app.get("/health")
def health_check():
    """Health check endpoint for monitoring"""
    return {"status": "healthy"}


@app.post(
    "/v1/albums/{album_id}/staged",
    response_model=List[StagedPhotoSchema],
    responses={401: {"model": ErrorResponse}},
)
async def stage_files(
    files: List[UploadFile] = File(..., description="Photos to stage"),
    latitude: Optional[float] = Form(None, ge=-90, le=90, description="Device latitude (camera capture)"),
    longitude: Optional[float] = Form(None, ge=-180, le=180, description="Device longitude (camera capture)"),
    queue: IngestionQueue = Depends(get_queue),
):
    """
    Stage uploaded files for the album.

    Each file is fingerprinted and its capture metadata extracted. Files
    already in the album come back with status "duplicate".

    Example:
        curl -X POST http://localhost:8765/v1/albums/<album>/staged \\
          -H "Authorization: Bearer <token>" \\
          -F "files=@IMG_0001.jpg" -F "files=@IMG_0002.jpg"
    """
    device_location = None
    if latitude is not None and longitude is not None:
        device_location = ManualLocation.from_coordinates(latitude, longitude)

    incoming = [
        IncomingFile(
            filename=upload.filename or "photo.jpg",
            data=await upload.read(),
            content_type=upload.content_type,
            manual_location=device_location,
        )
        for upload in files
    ]
    staged = await queue.add_files(incoming)
    return [StagedPhotoSchema.from_item(item) for item in staged]


@app.get("/v1/albums/{album_id}/staged", response_model=List[StagedPhotoSchema])
async def list_staged(queue: IngestionQueue = Depends(get_queue)):
    """Staged photos in intake order"""
    return [StagedPhotoSchema.from_item(item) for item in queue.items]


@app.patch("/v1/albums/{album_id}/staged/{item_id}", response_model=StagedPhotoSchema)
async def update_staged(
    item_id: str,
    update: StagedUpdateSchema,
    queue: IngestionQueue = Depends(get_queue),
):
    """Edit caption and/or manual location of a staged photo"""
    if update.caption is not None:
        queue.set_caption(item_id, update.caption)
    if update.clear_location:
        queue.set_location(item_id, None)
    elif update.location is not None:
        queue.set_location(item_id, ManualLocation(**update.location.model_dump()))
    return StagedPhotoSchema.from_item(queue.get(item_id))


@app.delete("/v1/albums/{album_id}/staged/{item_id}", status_code=204)
async def remove_staged(item_id: str, queue: IngestionQueue = Depends(get_queue)):
    """Remove a staged photo before it is uploaded"""
    queue.remove(item_id)
    return Response(status_code=204)


@app.post("/v1/albums/{album_id}/staged/{item_id}/accept", response_model=StagedPhotoSchema)
async def accept_duplicate(item_id: str, queue: IngestionQueue = Depends(get_queue)):
    """Upload a flagged duplicate anyway"""
    return StagedPhotoSchema.from_item(queue.accept_duplicate(item_id))


@app.get("/v1/albums/{album_id}/staged/{item_id}/preview")
async def preview_staged(item_id: str, queue: IngestionQueue = Depends(get_queue)):
    """JPEG thumbnail of a staged photo"""
    item = queue.get(item_id)
    thumbnail = item.preview.render() if item.preview is not None else None
    if thumbnail is None:
        raise HTTPException(status_code=404, detail="No preview available")
    return Response(content=thumbnail, media_type="image/jpeg")


@app.post("/v1/albums/{album_id}/upload", response_model=UploadReportSchema)
async def upload_all(
    authorization: Optional[str] = Header(None),
    queue: IngestionQueue = Depends(get_queue),
):
    """Upload every pending or failed photo and report the aggregate outcome"""
    report = await queue.upload_all()
    response = UploadReportSchema(**report.to_dict())
    await _drop_if_signed_out(authorization, queue.items)
    return response


@app.post("/v1/albums/{album_id}/staged/{item_id}/retry", response_model=StagedPhotoSchema)
async def retry_staged(
    item_id: str,
    authorization: Optional[str] = Header(None),
    queue: IngestionQueue = Depends(get_queue),
):
    """Retry a failed upload"""
    await queue.retry(item_id)
    item = queue.get(item_id)
    response = StagedPhotoSchema.from_item(item)
    await _drop_if_signed_out(authorization, [item])
    return response


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8765)
