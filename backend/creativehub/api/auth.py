"""
Authentication API routes (Google Identity Services sign-in)
"""
from datetime import datetime
from fastapi import APIRouter, HTTPException, Request, status, Depends
from uuid import uuid4
import logging

from creativehub.core.database import get_collection
from creativehub.core.google_clients import GoogleIdentityVerifier
from creativehub.core.security import (
    create_session,
    destroy_session,
    email_domain_allowed,
    get_current_user,
    get_identity_verifier,
)
from creativehub.models.user import (
    AuthUserResponse,
    GoogleLoginRequest,
    SessionUser,
)
from creativehub.services.roles import RoleResolver, get_role_resolver

logger = logging.getLogger(__name__)
router = APIRouter()


async def record_login(user: SessionUser):
    """Upsert the directory record for this email"""
    users = get_collection("users")
    now = datetime.utcnow()
    await users.update_one(
        {"email": user.email},
        {
            "$set": {
                "name": user.name,
                "picture": user.picture,
                "role": user.role.value,
                "last_login_at": now,
                "updated_at": now,
            },
            "$setOnInsert": {
                "_id": uuid4().hex,
                "created_at": now,
            },
        },
        upsert=True,
    )


@router.post("/google", response_model=AuthUserResponse)
async def google_login(
    body: GoogleLoginRequest,
    request: Request,
    verifier: GoogleIdentityVerifier = Depends(get_identity_verifier),
    role_resolver: RoleResolver = Depends(get_role_resolver),
):
    """Exchange a Google ID token for a session"""
    if not body.credential:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="missing credential"
        )

    try:
        payload = await verifier.verify(body.credential)
    except ValueError as e:
        logger.warning(f"Rejected Google credential: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid credential"
        )

    email = str(payload.get("email") or "").strip().lower()
    if not email or not payload.get("email_verified"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="email not verified"
        )

    if not email_domain_allowed(email):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="domain not allowed"
        )

    role = await role_resolver.get_role_for_email(email)
    user = SessionUser(
        email=email,
        name=payload.get("name") or email.split("@")[0],
        picture=payload.get("picture"),
        role=role,
    )

    await record_login(user)
    await create_session(request, user)
    logger.info(f"Login: {email} as {role.value}")

    return AuthUserResponse(user=user)


@router.get("/me", response_model=AuthUserResponse)
async def get_current_user_info(current_user: SessionUser = Depends(get_current_user)):
    """Get current user information"""
    return AuthUserResponse(user=current_user)


@router.post("/logout")
async def logout(request: Request):
    """Drop the server-side session and clear the cookie"""
    await destroy_session(request)
    return {"ok": True}
