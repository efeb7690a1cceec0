"""
Login sessions and role-based access dependencies

The session cookie only carries an opaque session id; the user record lives
in Redis so logout revokes it server-side. The role is re-resolved from the
role directory on every request, so directory edits apply within one cache
TTL.
"""
from functools import lru_cache
from typing import Optional
import logging
import secrets

from fastapi import Depends, HTTPException, Request, status

from creativehub.core.config import settings
from creativehub.core.google_clients import GoogleIdentityVerifier
from creativehub.core.redis_client import RedisKeys, RedisTTL, get_redis
from creativehub.models.user import SessionUser, UserRole
from creativehub.services.roles import RoleResolver, get_role_resolver

logger = logging.getLogger(__name__)

SESSION_ID_KEY = "sid"


@lru_cache()
def get_identity_verifier() -> GoogleIdentityVerifier:
    return GoogleIdentityVerifier(settings.GOOGLE_CLIENT_ID)


def email_domain_allowed(email: str) -> bool:
    domain = email.rsplit("@", 1)[-1].lower() if "@" in email else ""
    return domain in {d.strip().lower() for d in settings.ALLOWED_EMAIL_DOMAINS}


async def create_session(request: Request, user: SessionUser) -> str:
    """Store the user server-side and point the cookie at it"""
    session_id = secrets.token_urlsafe(32)
    await get_redis().set(
        RedisKeys.session(session_id),
        user.model_dump_json(),
        ex=RedisTTL.SESSION,
    )
    request.session[SESSION_ID_KEY] = session_id
    return session_id


async def destroy_session(request: Request) -> None:
    session_id = request.session.get(SESSION_ID_KEY)
    if session_id:
        await get_redis().delete(RedisKeys.session(session_id))
    request.session.clear()


async def get_optional_user(
    request: Request,
    role_resolver: RoleResolver = Depends(get_role_resolver),
) -> Optional[SessionUser]:
    """Session user with a freshly resolved role, or None"""
    session_id = request.session.get(SESSION_ID_KEY)
    if not session_id:
        return None

    raw = await get_redis().get(RedisKeys.session(session_id))
    if not raw:
        return None

    user = SessionUser.model_validate_json(raw)
    role = await role_resolver.get_role_for_email(user.email)
    return user.model_copy(update={"role": role})


async def get_current_user(
    user: Optional[SessionUser] = Depends(get_optional_user),
) -> SessionUser:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="auth required",
        )
    return user


def require_roles(*roles: UserRole):
    """Dependency factory: the current user's role must be in the given set"""
    allowed = frozenset(roles)

    async def role_checker(current_user: SessionUser = Depends(get_current_user)) -> SessionUser:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="forbidden",
            )
        return current_user

    return role_checker


require_admin = require_roles(UserRole.ADMIN)
require_sme = require_roles(UserRole.SME)
