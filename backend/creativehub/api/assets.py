"""
Asset management API routes
"""
from typing import Optional
from fastapi import APIRouter, HTTPException, status, Depends, UploadFile, File, Form, Query, Request
from fastapi.responses import RedirectResponse, StreamingResponse
from pydantic import ValidationError as PayloadValidationError
from pymongo.errors import PyMongoError
import json
import logging
import mimetypes
import os
import re
import tempfile

from creativehub.core.config import settings
from creativehub.core.database import get_db
from creativehub.core.errors import NotFoundError, UpstreamStorageError, ValidationError
from creativehub.core.security import get_current_user, require_admin, require_sme
from creativehub.models.user import SessionUser
from creativehub.models.asset import (
    ApprovalRequest,
    AssetItemResponse,
    AssetListResponse,
    AssetMeta,
    AssetResponse,
    AssignRequest,
    CommentRequest,
    DeleteAssetResponse,
    DeleteMode,
)
from creativehub.services.asset_store import AssetStore
from creativehub.services.drive import DriveGateway, get_drive_gateway, public_thumb_url
from creativehub.services.review import default_approval

logger = logging.getLogger(__name__)
router = APIRouter()

REQUIRED_TAXONOMY_FIELDS = ("grade", "subject", "chapter", "topic", "subtopic", "art_style")
ABSOLUTE_URL = re.compile(r"^https?://", re.IGNORECASE)
UNSAFE_FILENAME_CHARS = re.compile(r"[^\w.-]+", re.ASCII)


def get_asset_store() -> AssetStore:
    return AssetStore(get_db())


def request_base_url(request: Request) -> str:
    """PUBLIC_BASE_URL when set, else the (possibly proxied) request origin"""
    if settings.public_base_url:
        return settings.public_base_url
    proto = request.headers.get("x-forwarded-proto") or request.url.scheme
    host = request.headers.get("x-forwarded-host") or request.headers.get("host") or request.url.netloc
    return f"{proto}://{host}"


def absolutize(path: Optional[str], base: str) -> Optional[str]:
    if not path or ABSOLUTE_URL.match(path):
        return path
    return f"{base}{'' if path.startswith('/') else '/'}{path}"


def to_response(doc: dict, base: str) -> AssetResponse:
    """Map a stored document to the API shape; Drive CDN thumbs win"""
    drive_thumb = public_thumb_url(doc["drive_file_id"]) if doc.get("drive_file_id") else None
    thumb = drive_thumb or doc.get("thumb") or doc.get("url")

    fields = {k: v for k, v in doc.items() if k != "_id"}
    fields["id"] = str(doc["_id"])
    fields["thumb"] = absolutize(thumb, base)
    fields["url"] = absolutize(doc.get("url") or thumb, base)
    fields["approval"] = doc.get("approval") or default_approval()
    return AssetResponse(**fields)


def download_filename(doc: dict, mime_type: Optional[str]) -> str:
    # Header values are latin-1; non-ASCII titles fall back to the asset id
    base = UNSAFE_FILENAME_CHARS.sub("_", doc.get("title") or "").strip("_") or f"asset-{doc['_id']}"
    ext = mimetypes.guess_extension(mime_type) if mime_type else None
    return f"{base}{ext}" if ext else base


def save_temp_upload(content: bytes, filename: str) -> str:
    """Spill the upload to disk; the Drive client uploads from a path"""
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    suffix = os.path.splitext(filename or "")[1]
    fd, path = tempfile.mkstemp(dir=settings.UPLOAD_DIR, suffix=suffix)
    with os.fdopen(fd, "wb") as f:
        f.write(content)
    return path


def remove_temp_upload(path: str):
    try:
        os.unlink(path)
    except OSError as e:
        logger.warning(f"Could not remove temp upload {path}: {e}")


def parse_meta(raw: Optional[str]) -> AssetMeta:
    try:
        data = json.loads(raw) if raw else {}
    except json.JSONDecodeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="meta must be a JSON object"
        )
    if not isinstance(data, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="meta must be a JSON object"
        )
    try:
        return AssetMeta.model_validate(data)
    except PayloadValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid meta: {e.errors()[0].get('msg', 'invalid value')}"
        )


async def _transition(action) -> dict:
    try:
        return await action
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Asset not found"
        )


@router.get("", response_model=AssetListResponse)
async def list_assets(
    request: Request,
    q: Optional[str] = None,
    current_user: SessionUser = Depends(get_current_user),
    store: AssetStore = Depends(get_asset_store),
):
    """Search assets, newest first. SMEs only see admin uploads."""
    docs = await store.search(q, current_user.role)
    base = request_base_url(request)
    items = [to_response(doc, base) for doc in docs]
    return AssetListResponse(items=items, total=len(items))


@router.get("/{asset_id}", response_model=AssetItemResponse)
async def get_asset(
    asset_id: str,
    request: Request,
    current_user: SessionUser = Depends(get_current_user),
    store: AssetStore = Depends(get_asset_store),
):
    """Get asset metadata"""
    doc = await _transition(store.get(asset_id))
    return AssetItemResponse(item=to_response(doc, request_base_url(request)))


@router.get("/{asset_id}/file")
async def get_asset_file(
    asset_id: str,
    download: Optional[str] = Query(None),
    dl: Optional[str] = Query(None),
    current_user: SessionUser = Depends(get_current_user),
    store: AssetStore = Depends(get_asset_store),
    drive: DriveGateway = Depends(get_drive_gateway),
):
    """Stream the Drive file (``download=1`` forces an attachment)"""
    doc = await _transition(store.get(asset_id))
    force_download = (download or dl or "") == "1"

    if not doc.get("drive_file_id"):
        target = doc.get("url") or doc.get("thumb")
        if not force_download and target and ABSOLUTE_URL.match(target):
            return RedirectResponse(target)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="file not available"
        )

    try:
        stream = await drive.stream_file(doc["drive_file_id"])
    except UpstreamStorageError as e:
        logger.error(f"Failed to stream asset {asset_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to stream file"
        )

    mime_type = doc.get("mime_type") or stream.mime_type
    if force_download:
        disposition = f'attachment; filename="{download_filename(doc, mime_type)}"'
    else:
        disposition = "inline"

    await store.increment_downloads(asset_id)

    return StreamingResponse(
        stream.chunks,
        media_type=mime_type,
        headers={
            "Content-Disposition": disposition,
            "Cache-Control": "public, max-age=3600",
        },
    )


@router.post("", response_model=AssetItemResponse, status_code=status.HTTP_201_CREATED)
async def upload_asset(
    request: Request,
    file: UploadFile = File(...),
    meta: Optional[str] = Form(None),
    current_user: SessionUser = Depends(require_admin),
    store: AssetStore = Depends(get_asset_store),
    drive: DriveGateway = Depends(get_drive_gateway),
):
    """Upload an image into its taxonomy folder on Drive (admin only)"""
    content_type = file.content_type or mimetypes.guess_type(file.filename or "")[0] or ""
    if not content_type.startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only image files are allowed"
        )

    content = await file.read()
    max_size = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
    if len(content) > max_size:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File too large. Maximum size: {settings.MAX_UPLOAD_SIZE_MB}MB"
        )

    asset_meta = parse_meta(meta)
    missing = [name for name in REQUIRED_TAXONOMY_FIELDS if not getattr(asset_meta, name)]
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Missing fields: {', '.join(missing)}"
        )

    folder_segments = [str(getattr(asset_meta, name)) for name in REQUIRED_TAXONOMY_FIELDS]
    logger.debug(f"Building Drive path: {' / '.join(folder_segments)}")

    try:
        folder_id = await drive.ensure_folder_path(folder_segments)
    except UpstreamStorageError as e:
        logger.error(f"ensure_folder_path error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Drive folder error"
        )

    local_path = save_temp_upload(content, file.filename)
    try:
        uploaded = await drive.upload_file(folder_id, local_path, file.filename, content_type)
    except UpstreamStorageError as e:
        logger.error(f"upload_file error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Drive upload error"
        )
    finally:
        remove_temp_upload(local_path)

    logger.debug(f"Uploaded {uploaded.file_id} into {folder_id} ({uploaded.mime_type})")

    thumb = uploaded.public_thumb_url or uploaded.public_view_url or uploaded.web_view_link
    fields = asset_meta.model_dump(mode="json")
    fields.update({
        "title": (asset_meta.title or "").strip() or asset_meta.subtopic or "Untitled",
        "thumb": thumb,
        "url": thumb,
        "folder_path": asset_meta.folder_path or "/".join(folder_segments),
        "drive_file_id": uploaded.file_id,
        "drive_folder_id": folder_id,
        "drive_web_view_link": uploaded.web_view_link,
        "drive_web_content_link": uploaded.web_content_link,
        "mime_type": uploaded.mime_type,
    })

    try:
        doc = await store.create(fields, current_user)
    except PyMongoError as e:
        logger.error(f"Saving asset for Drive file {uploaded.file_id} failed: {e}")
        try:
            await drive.delete_file(uploaded.file_id)
        except UpstreamStorageError as cleanup_error:
            logger.warning(f"Orphaned Drive file {uploaded.file_id}: {cleanup_error}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save asset"
        )

    return AssetItemResponse(item=to_response(doc, request_base_url(request)))


@router.post("/{asset_id}/assign", response_model=AssetItemResponse)
async def assign_asset(
    asset_id: str,
    request: Request,
    body: Optional[AssignRequest] = None,
    current_user: SessionUser = Depends(require_admin),
    store: AssetStore = Depends(get_asset_store),
):
    """Allot an asset to an SME; resets the review to allotted"""
    body = body or AssignRequest()
    doc = await _transition(store.assign(asset_id, body.assigned_to, body.assigned_to_name))
    return AssetItemResponse(item=to_response(doc, request_base_url(request)))


@router.post("/{asset_id}/comment", response_model=AssetItemResponse)
async def comment_asset(
    asset_id: str,
    request: Request,
    body: Optional[CommentRequest] = None,
    current_user: SessionUser = Depends(require_sme),
    store: AssetStore = Depends(get_asset_store),
):
    body = body or CommentRequest()
    doc = await _transition(store.comment(asset_id, current_user, body.comment))
    return AssetItemResponse(item=to_response(doc, request_base_url(request)))


@router.post("/{asset_id}/pass", response_model=AssetItemResponse)
async def pass_asset(
    asset_id: str,
    request: Request,
    current_user: SessionUser = Depends(require_sme),
    store: AssetStore = Depends(get_asset_store),
):
    doc = await _transition(store.mark_passed(asset_id, current_user))
    return AssetItemResponse(item=to_response(doc, request_base_url(request)))


@router.patch("/{asset_id}/approval", response_model=AssetItemResponse)
async def set_asset_approval(
    asset_id: str,
    request: Request,
    body: Optional[ApprovalRequest] = None,
    current_user: SessionUser = Depends(require_sme),
    store: AssetStore = Depends(get_asset_store),
):
    """Toggle yellow/green (SME only)"""
    body = body or ApprovalRequest()
    try:
        doc = await _transition(store.set_approval(asset_id, body.status, current_user))
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    return AssetItemResponse(item=to_response(doc, request_base_url(request)))


@router.post("/{asset_id}/download")
async def count_download(
    asset_id: str,
    current_user: SessionUser = Depends(get_current_user),
    store: AssetStore = Depends(get_asset_store),
):
    """Record a client-side download"""
    if not await store.increment_downloads(asset_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Asset not found"
        )
    return {"ok": True}


@router.delete("/{asset_id}", response_model=DeleteAssetResponse)
async def delete_asset_endpoint(
    asset_id: str,
    mode: DeleteMode = Query(DeleteMode.PORTAL),
    current_user: SessionUser = Depends(require_admin),
    store: AssetStore = Depends(get_asset_store),
    drive: DriveGateway = Depends(get_drive_gateway),
):
    """
    Delete an asset (admin only).
    permanent mode removes the Drive file first; the portal record is deleted
    even if that fails, and the failure is reported in the response.
    """
    doc = await _transition(store.get(asset_id))

    drive_deleted = False
    drive_error = None
    if mode == DeleteMode.PERMANENT and doc.get("drive_file_id"):
        try:
            await drive.delete_file(doc["drive_file_id"])
            drive_deleted = True
        except UpstreamStorageError as e:
            logger.warning(f"Drive delete failed for asset {asset_id}: {e}")
            drive_error = "Drive delete failed"

    deleted = await store.delete(asset_id)
    logger.info(f"Asset {asset_id} deleted by {current_user.email} (mode={mode.value})")

    return DeleteAssetResponse(
        deleted=deleted,
        mode=mode,
        drive_deleted=drive_deleted,
        drive_error=drive_error,
    )
