"""
Google Drive gateway for asset files: folder paths, uploads, streaming, deletes
"""
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple
import asyncio
import io
import logging
import mimetypes
import os

from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseDownload, MediaIoBaseUpload

from creativehub.core.config import settings
from creativehub.core.errors import UpstreamStorageError
from creativehub.core.google_clients import authorized_http, google_services

logger = logging.getLogger(__name__)

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
CHUNK_SIZE = 1024 * 1024  # 1MB chunks for streaming


def public_view_url(file_id: str) -> str:
    return f"https://drive.google.com/uc?id={file_id}&export=view"


def public_thumb_url(file_id: str) -> str:
    """Stable CDN thumbnail for publicly shared files"""
    return f"https://lh3.googleusercontent.com/d/{file_id}=w800"


def escape_query_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


@dataclass
class DriveUpload:
    file_id: str
    name: str
    mime_type: str
    size: Optional[int]
    web_view_link: Optional[str]
    web_content_link: Optional[str]
    thumbnail_link: Optional[str]
    public_view_url: str
    public_thumb_url: str


@dataclass
class DriveStream:
    mime_type: str
    name: Optional[str]
    chunks: AsyncIterator[bytes]


def _read_chunk(buffer: io.BytesIO, downloader: MediaIoBaseDownload) -> Tuple[bytes, bool]:
    _, done = downloader.next_chunk()
    data = buffer.getvalue()
    buffer.seek(0)
    buffer.truncate(0)
    return data, done


class DriveGateway:
    """Drive v3 operations rooted at one folder"""

    def __init__(self, service, root_folder_id: str = "", credentials=None):
        self.service = service
        self.root_folder_id = root_folder_id or "root"
        self.credentials = credentials

    def _files(self):
        if self.service is None:
            raise RuntimeError("Drive client is not configured")
        return self.service.files()

    def _http(self):
        return authorized_http(self.credentials)

    # ------------------------------------------------------------------ folders

    def _find_or_create_folder(self, name: str, parent_id: str) -> str:
        q = " and ".join([
            f"'{parent_id}' in parents",
            f"mimeType = '{FOLDER_MIME_TYPE}'",
            f"name = '{escape_query_value(name)}'",
            "trashed = false",
        ])
        found = self._files().list(
            q=q,
            fields="files(id, name)",
            pageSize=1,
            supportsAllDrives=True,
            includeItemsFromAllDrives=True,
        ).execute(http=self._http())
        files = found.get("files") or []
        if files:
            return files[0]["id"]

        created = self._files().create(
            body={"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [parent_id]},
            fields="id, name",
            supportsAllDrives=True,
        ).execute(http=self._http())
        logger.info(f"Created Drive folder '{name}' under {parent_id}")
        return created["id"]

    def _ensure_folder_path(self, segments: List[str]) -> str:
        parent_id = self.root_folder_id
        for raw in segments:
            name = str(raw or "").strip()
            if not name:
                continue
            parent_id = self._find_or_create_folder(name, parent_id)
        return parent_id

    async def ensure_folder_path(self, segments: List[str]) -> str:
        """Walk/create the folder chain; returns the deepest folder id"""
        try:
            return await asyncio.to_thread(self._ensure_folder_path, segments)
        except Exception as e:
            raise UpstreamStorageError(f"Drive folder path failed: {e}") from e

    # ------------------------------------------------------------------ uploads

    def _upload_file(
        self,
        folder_id: str,
        local_path: str,
        file_name: Optional[str],
        mime_type: Optional[str],
    ) -> DriveUpload:
        name = file_name or os.path.basename(local_path)
        mt = mime_type or mimetypes.guess_type(local_path)[0] or "application/octet-stream"

        with open(local_path, "rb") as fh:
            media = MediaIoBaseUpload(fh, mimetype=mt, resumable=False)
            created = self._files().create(
                body={"name": name, "parents": [folder_id], "mimeType": mt},
                media_body=media,
                fields="id, name, size, webViewLink, webContentLink, mimeType",
                supportsAllDrives=True,
            ).execute(http=self._http())

        file_id = created["id"]

        # Public link access so thumbnails render without auth
        self.service.permissions().create(
            fileId=file_id,
            body={"role": "reader", "type": "anyone", "allowFileDiscovery": False},
            supportsAllDrives=True,
        ).execute(http=self._http())

        meta = self._files().get(
            fileId=file_id,
            supportsAllDrives=True,
            fields="id,name,size,mimeType,webViewLink,webContentLink,thumbnailLink,iconLink",
        ).execute(http=self._http())

        return DriveUpload(
            file_id=file_id,
            name=meta.get("name") or name,
            mime_type=meta.get("mimeType") or mt,
            size=int(meta["size"]) if meta.get("size") else None,
            web_view_link=meta.get("webViewLink"),
            web_content_link=meta.get("webContentLink"),
            thumbnail_link=meta.get("thumbnailLink"),
            public_view_url=public_view_url(file_id),
            public_thumb_url=public_thumb_url(file_id),
        )

    async def upload_file(
        self,
        folder_id: str,
        local_path: str,
        file_name: Optional[str] = None,
        mime_type: Optional[str] = None,
    ) -> DriveUpload:
        try:
            return await asyncio.to_thread(self._upload_file, folder_id, local_path, file_name, mime_type)
        except Exception as e:
            raise UpstreamStorageError(f"Drive upload failed: {e}") from e

    # ---------------------------------------------------------------- streaming

    def _open_download(self, file_id: str):
        meta = self._files().get(
            fileId=file_id,
            fields="mimeType,name",
            supportsAllDrives=True,
        ).execute(http=self._http())

        request = self._files().get_media(fileId=file_id, supportsAllDrives=True)
        http = self._http()
        if http is not None:
            request.http = http
        buffer = io.BytesIO()
        downloader = MediaIoBaseDownload(buffer, request, chunksize=CHUNK_SIZE)
        return meta, buffer, downloader

    async def stream_file(self, file_id: str) -> DriveStream:
        """
        Resolve metadata and fetch the first chunk up front so failures are
        reported before the response starts; later chunks are read lazily.
        """
        try:
            meta, buffer, downloader = await asyncio.to_thread(self._open_download, file_id)
            first, done = await asyncio.to_thread(_read_chunk, buffer, downloader)
        except Exception as e:
            raise UpstreamStorageError(f"Drive stream failed for {file_id}: {e}") from e

        async def chunks() -> AsyncIterator[bytes]:
            if first:
                yield first
            finished = done
            while not finished:
                try:
                    data, finished = await asyncio.to_thread(_read_chunk, buffer, downloader)
                except Exception as e:
                    logger.error(f"Drive stream error for {file_id}: {e}")
                    raise
                if data:
                    yield data

        return DriveStream(
            mime_type=meta.get("mimeType") or "application/octet-stream",
            name=meta.get("name"),
            chunks=chunks(),
        )

    # ------------------------------------------------------------------ deletes

    def _delete_file(self, file_id: str) -> Dict[str, Any]:
        try:
            self._files().delete(fileId=file_id, supportsAllDrives=True).execute(http=self._http())
        except HttpError as e:
            # Already gone counts as deleted
            if e.resp.status == 404:
                return {"ok": True, "file_id": file_id, "already_deleted": True}
            raise
        return {"ok": True, "file_id": file_id, "already_deleted": False}

    async def delete_file(self, file_id: str) -> Dict[str, Any]:
        try:
            return await asyncio.to_thread(self._delete_file, file_id)
        except Exception as e:
            raise UpstreamStorageError(f"Drive delete failed for {file_id}: {e}") from e


@lru_cache()
def get_drive_gateway() -> DriveGateway:
    return DriveGateway(
        google_services.drive,
        settings.DRIVE_ROOT_FOLDER_ID,
        google_services.drive_credentials,
    )
