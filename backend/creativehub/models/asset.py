"""
Asset models: metadata, Drive pointers, approval and review state
"""
from datetime import datetime
from typing import Optional, List
from enum import Enum
from pydantic import BaseModel, Field

from creativehub.models.user import UserRole


class AssetType(str, Enum):
    """Asset media types"""
    PHOTO = "photo"
    VIDEO = "video"
    DOCUMENT = "document"
    VECTOR = "vector"


class ApprovalStatus(str, Enum):
    YELLOW = "yellow"
    GREEN = "green"


class ReviewStatus(str, Enum):
    ALLOTTED = "allotted"
    COMMENTED = "commented"
    PASSED = "passed"


class DeleteMode(str, Enum):
    """portal drops the record only; permanent also removes the Drive file"""
    PORTAL = "portal"
    PERMANENT = "permanent"


class Approval(BaseModel):
    """green iff approved_by_email and approved_at are both set"""
    status: ApprovalStatus = ApprovalStatus.YELLOW
    approved_by_email: Optional[str] = None
    approved_at: Optional[datetime] = None


class Review(BaseModel):
    """Present only once a review cycle has started"""
    status: ReviewStatus
    assigned_to: Optional[str] = None
    assigned_to_name: Optional[str] = None
    comment: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_by_name: Optional[str] = None
    reviewed_at: Optional[datetime] = None


class AssetMeta(BaseModel):
    """Descriptive fields sent alongside an upload"""
    title: Optional[str] = None
    type: AssetType = AssetType.PHOTO
    tags: List[str] = []
    grade: Optional[str] = None
    stream: Optional[str] = None
    subject: Optional[str] = None
    chapter: Optional[str] = None
    topic: Optional[str] = None
    subtopic: Optional[str] = None
    art_style: Optional[str] = None
    version: Optional[str] = None
    code: Optional[str] = None
    folder_path: Optional[str] = None


class AssetInDB(AssetMeta):
    """Asset as stored in database"""
    id: str = Field(..., alias="_id")
    title: str
    thumb: str
    url: Optional[str] = None
    drive_file_id: Optional[str] = None
    drive_folder_id: Optional[str] = None
    drive_web_view_link: Optional[str] = None
    drive_web_content_link: Optional[str] = None
    mime_type: Optional[str] = None
    uploaded_by: Optional[str] = None
    uploader_role: UserRole = UserRole.USER
    created_at: datetime
    downloads: int = 0
    views: int = 0
    approval: Approval = Approval()
    review: Optional[Review] = None

    class Config:
        populate_by_name = True


class AssetResponse(AssetMeta):
    """Asset response model; thumb and url are absolute"""
    id: str
    title: str
    thumb: str
    url: Optional[str] = None
    drive_file_id: Optional[str] = None
    drive_folder_id: Optional[str] = None
    drive_web_view_link: Optional[str] = None
    drive_web_content_link: Optional[str] = None
    mime_type: Optional[str] = None
    uploaded_by: Optional[str] = None
    uploader_role: UserRole
    created_at: datetime
    downloads: int = 0
    views: int = 0
    approval: Approval
    review: Optional[Review] = None


class AssetItemResponse(BaseModel):
    item: AssetResponse


class AssetListResponse(BaseModel):
    """Asset list response"""
    items: List[AssetResponse]
    total: int


class AssignRequest(BaseModel):
    assigned_to: Optional[str] = None
    assigned_to_name: Optional[str] = None


class CommentRequest(BaseModel):
    comment: Optional[str] = None


class ApprovalRequest(BaseModel):
    # Validated by the workflow so unknown values are a 400, not a 422
    status: Optional[str] = None


class DeleteAssetResponse(BaseModel):
    ok: bool = True
    deleted: int
    mode: DeleteMode
    drive_deleted: bool = False
    drive_error: Optional[str] = None
