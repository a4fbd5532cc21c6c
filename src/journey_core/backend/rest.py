"""
REST backend client

Talks to a Supabase-style hosted backend (GoTrue auth, storage API and
PostgREST) over httpx, mapping HTTP failures onto the journey-core error
taxonomy.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx

from ..config import Settings
from ..errors import (
    MetadataStoreError,
    NetworkError,
    PermissionDeniedError,
    SchemaMismatchError,
    StorageError,
    parse_missing_column,
)
from .protocols import CurrentUser, UploadSession

logger = logging.getLogger(__name__)


def _error_payload(response: httpx.Response) -> Dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {"message": response.text}
    return data if isinstance(data, dict) else {"message": str(data)}


class RestBackend:
    """
    Auth, storage and metadata store in one HTTP client.

    Implements AuthProvider, ObjectStorage and MetadataStore.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        access_token: Optional[str] = None,
        *,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.access_token = access_token
        headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {access_token or api_key}",
        }
        if client is None:
            client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout)
        client.headers.update(headers)
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings, access_token: Optional[str] = None) -> "RestBackend":
        if not settings.api_url or not settings.api_key:
            raise ValueError("JOURNEY_API_URL and JOURNEY_API_KEY must be set")
        return cls(settings.api_url, settings.api_key, access_token, timeout=settings.http_timeout)

    def session(self) -> UploadSession:
        return UploadSession(auth=self, storage=self, metadata=self)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self.client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise NetworkError(f"{method} {url} failed: {exc}") from exc

    # AuthProvider

    async def get_current_user(self) -> Optional[CurrentUser]:
        if not self.access_token:
            return None
        response = await self._request("GET", "/auth/v1/user")
        if response.status_code in (401, 403):
            return None
        if response.status_code >= 500:
            raise NetworkError(f"Auth service unavailable ({response.status_code})")
        if response.is_error:
            logger.info("Auth lookup rejected with %s", response.status_code)
            return None
        data = response.json()
        if not data.get("id"):
            return None
        return CurrentUser(id=str(data["id"]), email=data.get("email"))

    # ObjectStorage

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{path}"

    async def store(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        response = await self._request(
            "POST",
            f"/storage/v1/object/{bucket}/{path}",
            content=data,
            headers={"Content-Type": content_type, "x-upsert": "false"},
        )
        if response.is_error:
            raise self._storage_error(response, bucket, path)
        return self.public_url(bucket, path)

    @staticmethod
    def _storage_error(response: httpx.Response, bucket: str, path: str) -> Exception:
        payload = _error_payload(response)
        message = str(payload.get("message") or payload.get("error") or response.reason_phrase)
        # The storage API nests the real status in the body
        status = str(payload.get("statusCode") or response.status_code)
        lowered = message.lower()

        if status == "413" or "maximum allowed size" in lowered:
            return StorageError(message, code="file_too_large", bucket=bucket, path=path)
        if "quota" in lowered:
            return StorageError(message, code="quota_exceeded", bucket=bucket, path=path)
        if status in ("401", "403") or "row-level security" in lowered:
            return PermissionDeniedError(message)
        return StorageError(message, code="upload_failed", bucket=bucket, path=path)

    # MetadataStore

    async def insert(self, table: str, row: Mapping[str, Any]) -> Dict[str, Any]:
        response = await self._request(
            "POST",
            f"/rest/v1/{table}",
            json=dict(row),
            headers={"Prefer": "return=representation"},
        )
        if response.is_error:
            raise self._database_error(response)
        data = response.json()
        if isinstance(data, list):
            return data[0] if data else {}
        return data

    async def select(
        self,
        table: str,
        *,
        columns: Sequence[str],
        equals: Optional[Mapping[str, Any]] = None,
        not_null: Sequence[str] = (),
    ) -> List[Dict[str, Any]]:
        params: List[tuple] = [("select", ",".join(columns))]
        for column, value in (equals or {}).items():
            params.append((column, f"eq.{value}"))
        for column in not_null:
            params.append((column, "not.is.null"))

        response = await self._request("GET", f"/rest/v1/{table}", params=params)
        if response.is_error:
            raise self._database_error(response)
        return response.json()

    @staticmethod
    def _database_error(response: httpx.Response) -> Exception:
        payload = _error_payload(response)
        message = str(payload.get("message") or response.reason_phrase)
        code = payload.get("code")

        if code == "PGRST204":
            column = parse_missing_column(message)
            if column:
                return SchemaMismatchError(column, message)
        if response.status_code in (401, 403) or code == "42501":
            return PermissionDeniedError(message)
        return MetadataStoreError(message, db_code=code)
