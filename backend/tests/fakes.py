from __future__ import annotations

import re
from typing import Any, Callable, Dict, List, Optional

import httplib2
from googleapiclient.errors import HttpError

from creativehub.core.errors import UpstreamStorageError
from creativehub.services.drive import DriveStream, DriveUpload, public_thumb_url, public_view_url


ADMIN_EMAIL = "admin@pw.live"
SME_EMAIL = "sme@pw.live"
VIEWER_EMAIL = "viewer@pw.live"

TAXONOMY_TABS: Dict[str, List[List[str]]] = {
    "Grades": [
        ["id", "name", "code", "sort_order", "is_active"],
        ["g9", "Grade 9", "", "2", "TRUE"],
        ["g10", "Grade 10", "", "1", "TRUE"],
        ["g8", "Grade 8", "", "0", "FALSE"],
    ],
    "Subjects": [
        ["id", "grade_id", "name", "code", "sort_order", "is_active"],
        ["s1", "g9", "Chemistry", "CHEM", "1", "yes"],
        ["s2", "g10", "Physics", "", "1", "yes"],
    ],
    # No is_active column: every row counts as active
    "Chapters": [
        ["id", "subject_id", "number", "name", "sort_order"],
        ["c1", "s1", "3", "Atoms and Molecules", "1"],
        ["c2", "s2", "1", "Motion", "1"],
    ],
    "Topics": [
        ["id", "chapter_id", "name", "sort_order", "is_active"],
        ["t1", "c1", "Structure of the Atom", "1", "y"],
        ["t2", "c2", "Velocity", "1", "y"],
    ],
    "Subtopics": [
        ["id", "topic_id", "name", "sort_order", "is_active"],
        ["st1", "t1", "Atomic Structure", "1", "1"],
        ["st2", "t1", "Isotopes", "0", "1"],
        ["st3", "t2", "Average Velocity", "1", "1"],
    ],
    "ArtStyles": [
        ["id", "name", "sort_order", "is_active"],
        ["a1", "3D", "1", "true"],
        ["a2", "Flat", "2", "true"],
        ["a3", "Sketch", "3", "no"],
    ],
}


class SheetSource:
    """Serves tab rows by range name and counts reads"""

    def __init__(self, tabs: Dict[str, List[List[str]]]):
        self.tabs = tabs
        self.calls: List[str] = []

    async def get_values(self, range_name: str) -> List[List[str]]:
        self.calls.append(range_name)
        tab = range_name.split("!", 1)[0]
        return [list(row) for row in self.tabs.get(tab, [])]


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeRedis:
    """The subset of redis.asyncio used for sessions"""

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.expiry: Dict[str, int] = {}

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None):
        self.data[key] = value
        if ex is not None:
            self.expiry[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.expiry.pop(key, None)
        return removed


class FakeVerifier:
    """Treats the credential as the email; 'bad-token' is rejected"""

    def __init__(self, unverified: Optional[set] = None):
        self.unverified = unverified or set()

    async def verify(self, credential: str) -> Dict[str, Any]:
        if credential == "bad-token":
            raise ValueError("Wrong number of segments in token")
        return {
            "email": credential,
            "email_verified": credential not in self.unverified,
            "name": credential.split("@")[0].title(),
            "picture": None,
        }


def http_error(status: int) -> HttpError:
    return HttpError(
        httplib2.Response({"status": str(status)}),
        b'{"error": {"code": %d, "message": "fake"}}' % status,
    )


class _Call:
    def __init__(self, fn: Callable[[], Any]):
        self.fn = fn

    def execute(self, http=None, num_retries=0):
        return self.fn()


class _Files:
    def __init__(self, service: "FakeDriveService"):
        self.service = service

    def list(self, q: str, **kwargs):
        parent = re.search(r"'([^']*)' in parents", q).group(1)
        raw_name = re.search(r"name = '((?:[^'\\]|\\.)*)'", q).group(1)
        name = raw_name.replace("\\'", "'").replace("\\\\", "\\")
        self.service.queries.append(q)

        def run():
            matches = [
                {"id": fid, "name": f["name"]}
                for fid, f in self.service.items.items()
                if f["parent"] == parent and f["name"] == name and f["folder"]
            ]
            return {"files": matches[:1]}
        return _Call(run)

    def create(self, body: Dict[str, Any], media_body=None, **kwargs):
        def run():
            if self.service.fail_create:
                raise http_error(500)
            self.service.counter += 1
            fid = f"id{self.service.counter}"
            is_folder = body.get("mimeType") == "application/vnd.google-apps.folder"
            self.service.items[fid] = {
                "name": body["name"],
                "parent": body["parents"][0],
                "folder": is_folder,
                "mimeType": body.get("mimeType"),
                "size": "4",
            }
            if media_body is not None:
                self.service.uploaded_mime_types.append(media_body.mimetype())
            return {"id": fid, "name": body["name"]}
        return _Call(run)

    def get(self, fileId: str, **kwargs):
        def run():
            item = self.service.items.get(fileId)
            if item is None:
                raise http_error(404)
            return {
                "id": fileId,
                "name": item["name"],
                "size": item["size"],
                "mimeType": item["mimeType"],
                "webViewLink": f"https://drive.google.com/file/d/{fileId}/view",
                "webContentLink": f"https://drive.google.com/uc?id={fileId}&export=download",
                "thumbnailLink": None,
            }
        return _Call(run)

    def delete(self, fileId: str, **kwargs):
        def run():
            if self.service.fail_delete_status:
                raise http_error(self.service.fail_delete_status)
            if self.service.items.pop(fileId, None) is None:
                raise http_error(404)
            return ""
        return _Call(run)


class _Permissions:
    def __init__(self, service: "FakeDriveService"):
        self.service = service

    def create(self, fileId: str, body: Dict[str, Any], **kwargs):
        def run():
            self.service.granted.append((fileId, body))
            return {"id": "anyoneWithLink"}
        return _Call(run)


class FakeDriveService:
    """In-memory stand-in for the Drive v3 discovery client"""

    def __init__(self):
        self.items: Dict[str, Dict[str, Any]] = {}
        self.counter = 0
        self.queries: List[str] = []
        self.granted: List[Any] = []
        self.uploaded_mime_types: List[str] = []
        self.fail_create = False
        self.fail_delete_status: Optional[int] = None

    def files(self):
        return _Files(self)

    def permissions(self):
        return _Permissions(self)


class FakeDriveGateway:
    """Drive gateway double for API tests"""

    def __init__(self):
        self.folders: List[List[str]] = []
        self.uploads: List[Dict[str, Any]] = []
        self.deleted: List[str] = []
        self.content: Dict[str, bytes] = {}
        self.fail_folder = False
        self.fail_upload = False
        self.fail_delete = False
        self.fail_stream = False

    async def ensure_folder_path(self, segments: List[str]) -> str:
        if self.fail_folder:
            raise UpstreamStorageError("folder boom")
        self.folders.append(list(segments))
        return "folder-" + "-".join(s.strip().lower().replace(" ", "") for s in segments if s.strip())

    async def upload_file(self, folder_id, local_path, file_name=None, mime_type=None) -> DriveUpload:
        if self.fail_upload:
            raise UpstreamStorageError("upload boom")
        with open(local_path, "rb") as f:
            data = f.read()
        file_id = f"file{len(self.uploads) + 1}"
        self.content[file_id] = data
        self.uploads.append({
            "folder_id": folder_id,
            "local_path": local_path,
            "file_name": file_name,
            "mime_type": mime_type,
        })
        return DriveUpload(
            file_id=file_id,
            name=file_name or "upload",
            mime_type=mime_type or "application/octet-stream",
            size=len(data),
            web_view_link=f"https://drive.google.com/file/d/{file_id}/view",
            web_content_link=None,
            thumbnail_link=None,
            public_view_url=public_view_url(file_id),
            public_thumb_url=public_thumb_url(file_id),
        )

    async def stream_file(self, file_id: str) -> DriveStream:
        if self.fail_stream:
            raise UpstreamStorageError("stream boom")
        data = self.content.get(file_id, b"")

        async def chunks():
            yield data

        return DriveStream(mime_type="image/png", name=file_id, chunks=chunks())

    async def delete_file(self, file_id: str) -> Dict[str, Any]:
        if self.fail_delete:
            raise UpstreamStorageError("delete boom")
        self.deleted.append(file_id)
        return {"ok": True, "file_id": file_id, "already_deleted": False}
