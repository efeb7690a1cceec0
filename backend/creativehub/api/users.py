"""
User directory API routes (admin only)

Records are written on login. Their role is the one resolved at that login and
is never used for authorization.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query
import logging

from creativehub.core.database import get_collection
from creativehub.core.security import require_admin
from creativehub.models.user import (
    SessionUser,
    UserListResponse,
    UserResponse,
    UserRole,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=UserListResponse)
async def list_users(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    role: Optional[UserRole] = None,
    current_user: SessionUser = Depends(require_admin),
):
    """List users who have signed in (admin only)"""
    users = get_collection("users")

    query = {}
    if role:
        query["role"] = role.value

    total = await users.count_documents(query)
    cursor = users.find(query).sort("last_login_at", -1).skip(skip).limit(limit)

    result = []
    async for user_doc in cursor:
        result.append(UserResponse(
            id=user_doc["_id"],
            email=user_doc["email"],
            name=user_doc.get("name"),
            role=UserRole(user_doc.get("role", UserRole.USER.value)),
            last_login_at=user_doc.get("last_login_at"),
        ))

    return UserListResponse(users=result, total=total)
