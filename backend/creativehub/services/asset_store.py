"""
Asset persistence on MongoDB.
Every mutation is a single-document atomic update; concurrent review actions
on one asset are last-write-wins.
"""
import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from creativehub.core.errors import NotFoundError
from creativehub.models.user import SessionUser, UserRole
from creativehub.services import review

logger = logging.getLogger(__name__)


def build_search_filter(q: Optional[str], viewer_role: UserRole) -> Dict[str, Any]:
    """
    Case-insensitive substring match on title, tags and uploader.
    SMEs only see admin uploads, which is their review queue.
    """
    query: Dict[str, Any] = {}
    text = (q or "").strip()
    if text:
        pattern = re.compile(re.escape(text), re.IGNORECASE)
        query["$or"] = [
            {"title": pattern},
            {"tags": pattern},
            {"uploaded_by": pattern},
        ]
    if viewer_role == UserRole.SME:
        query["uploader_role"] = UserRole.ADMIN.value
    return query


class AssetStore:
    """Asset documents and their review/approval transitions"""

    COLLECTION = "assets"

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.assets = db[self.COLLECTION]

    async def create(self, fields: Dict[str, Any], uploader: SessionUser) -> Dict[str, Any]:
        asset_id = uuid4().hex
        doc = {
            **fields,
            "_id": asset_id,
            "uploaded_by": uploader.email,
            "uploader_role": uploader.role.value,
            "created_at": datetime.utcnow(),
            "downloads": 0,
            "views": 0,
            "approval": review.default_approval(),
        }
        opening_review = review.initial_review(uploader.role)
        if opening_review is not None:
            doc["review"] = opening_review

        await self.assets.insert_one(doc)
        logger.info(f"Asset {asset_id} created by {uploader.email} ({uploader.role.value})")
        return doc

    async def get(self, asset_id: str) -> Dict[str, Any]:
        doc = await self.assets.find_one({"_id": asset_id})
        if not doc:
            raise NotFoundError("Asset not found")
        return doc

    async def search(self, q: Optional[str], viewer_role: UserRole) -> List[Dict[str, Any]]:
        cursor = self.assets.find(build_search_filter(q, viewer_role)).sort("created_at", -1)
        return [doc async for doc in cursor]

    async def _set(self, asset_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        doc = await self.assets.find_one_and_update(
            {"_id": asset_id},
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            raise NotFoundError("Asset not found")
        return doc

    async def assign(self, asset_id: str, assigned_to: Optional[str], assigned_to_name: Optional[str]):
        return await self._set(asset_id, review.assign_update(assigned_to, assigned_to_name))

    async def comment(self, asset_id: str, reviewer: SessionUser, comment: Optional[str]):
        return await self._set(asset_id, review.comment_update(reviewer, comment, datetime.utcnow()))

    async def mark_passed(self, asset_id: str, reviewer: SessionUser):
        return await self._set(asset_id, review.pass_update(reviewer, datetime.utcnow()))

    async def set_approval(self, asset_id: str, status: Any, approver: SessionUser):
        # Rejected values raise before any write
        fields = review.approval_update(status, approver, datetime.utcnow())
        return await self._set(asset_id, fields)

    async def increment_downloads(self, asset_id: str) -> bool:
        result = await self.assets.update_one({"_id": asset_id}, {"$inc": {"downloads": 1}})
        return result.matched_count > 0

    async def delete(self, asset_id: str) -> int:
        result = await self.assets.delete_one({"_id": asset_id})
        return result.deleted_count
