"""Google Drive folder storage for carousel inputs and outputs.

Processing flow:
    - List image files inside a folder.
    - Download file contents as bytes.
    - Upload generated frames and metadata into the output folder.

Concurrency:
    The Drive client is blocking and its HTTP transport is not thread-safe, so
    every call runs in a worker thread via `asyncio.to_thread` with a Drive
    service instance private to that thread.

Error handling strategy:
    - `googleapiclient.errors.HttpError` and transport failures raise
      `StorageError`.
"""

import asyncio
import io
import logging
import threading

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseDownload, MediaIoBaseUpload

from bagify.core.errors import ConfigurationError, StorageError
from bagify.image.provider_config import DRIVE_SCOPE, ServiceAccountInfo


logger = logging.getLogger(__name__)


class DriveStorage:
    """Thin async facade over the Drive v3 files API.

    Args:
        credentials: google-auth credentials with the Drive scope.
        service_factory: Callable returning a Drive service; defaults to
            `googleapiclient.discovery.build`.
    """

    def __init__(self, credentials, service_factory=None) -> None:
        self.credentials = credentials
        self._service_factory = service_factory or self._build_service
        self._local = threading.local()

    @classmethod
    def from_service_account(cls, info: ServiceAccountInfo) -> "DriveStorage":
        try:
            credentials = service_account.Credentials.from_service_account_info(
                info.as_info(),
                scopes=[DRIVE_SCOPE],
            )
        except (ValueError, KeyError) as exc:
            raise ConfigurationError(f"Invalid service-account key for Drive: {exc}") from exc
        return cls(credentials)

    def _build_service(self):
        return build("drive", "v3", credentials=self.credentials, cache_discovery=False)

    def _service(self):
        service = getattr(self._local, "service", None)
        if service is None:
            service = self._service_factory()
            self._local.service = service
        return service

    async def list_files(self, folder_id: str) -> list[dict]:
        """Return `{id, name, mimeType}` entries of non-trashed files in a folder."""
        return await asyncio.to_thread(self._list_files, folder_id)

    async def download(self, file_id: str) -> bytes:
        return await asyncio.to_thread(self._download, file_id)

    async def upload(self, name: str, data: bytes, mime_type: str, folder_id: str) -> str:
        """Upload bytes as a new file and return its id."""
        return await asyncio.to_thread(self._upload, name, data, mime_type, folder_id)

    def _list_files(self, folder_id: str) -> list[dict]:
        try:
            response = self._service().files().list(
                q=f"'{folder_id}' in parents and trashed=false",
                spaces="drive",
                fields="files(id, name, mimeType)",
                pageSize=100,
            ).execute()
        except (HttpError, OSError) as exc:
            logger.error("Listing Drive folder %s failed: %s", folder_id, exc)
            raise StorageError(f"Listing Drive folder failed: {exc}") from exc
        return response.get("files", [])

    def _download(self, file_id: str) -> bytes:
        buffer = io.BytesIO()
        try:
            request = self._service().files().get_media(fileId=file_id)
            downloader = MediaIoBaseDownload(buffer, request)
            done = False
            while not done:
                _, done = downloader.next_chunk()
        except (HttpError, OSError) as exc:
            logger.error("Downloading Drive file %s failed: %s", file_id, exc)
            raise StorageError(f"Downloading Drive file failed: {exc}") from exc
        return buffer.getvalue()

    def _upload(self, name: str, data: bytes, mime_type: str, folder_id: str) -> str:
        media = MediaIoBaseUpload(io.BytesIO(data), mimetype=mime_type, resumable=False)
        try:
            response = self._service().files().create(
                body={"name": name, "parents": [folder_id]},
                media_body=media,
                fields="id",
            ).execute()
        except (HttpError, OSError) as exc:
            logger.error("Uploading %s failed: %s", name, exc)
            raise StorageError(f"Upload of {name} failed: {exc}") from exc

        logger.info("Uploaded %s", name)
        return response["id"]
