"""
Role resolution from the role directory spreadsheet (email -> role).

The whole mapping is cached and swapped in one assignment when the TTL runs
out. A failed refetch propagates to the caller; there is no stale fallback.
"""
import logging
import time
from functools import lru_cache
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from creativehub.core.config import settings
from creativehub.core.errors import UpstreamFetchError
from creativehub.core.google_clients import SheetsValuesReader, google_services
from creativehub.models.user import UserRole

logger = logging.getLogger(__name__)

ACCEPTED_ROLES = {role.value: role for role in UserRole}


def parse_role_rows(rows: List[List[str]]) -> Dict[str, UserRole]:
    """Rows are [email, role]; unknown roles and blank emails are dropped"""
    mapping: Dict[str, UserRole] = {}
    for row in rows:
        email = str(row[0] if len(row) > 0 else "").strip().lower()
        role = str(row[1] if len(row) > 1 else "").strip().lower()
        if not email:
            continue
        if role in ACCEPTED_ROLES:
            mapping[email] = ACCEPTED_ROLES[role]
    return mapping


class RoleResolver:
    """Cached email -> role lookup"""

    def __init__(
        self,
        fetch_rows: Callable[[], Awaitable[List[List[str]]]],
        ttl_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.fetch_rows = fetch_rows
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._cache: Optional[Tuple[Dict[str, UserRole], float]] = None

    async def _refresh(self, now: float) -> Dict[str, UserRole]:
        try:
            rows = await self.fetch_rows()
        except UpstreamFetchError:
            raise
        except Exception as e:
            logger.error(f"Role directory fetch failed: {e}")
            raise UpstreamFetchError(f"Role directory read failed: {e}") from e

        mapping = parse_role_rows(rows)
        self._cache = (mapping, now + self.ttl_seconds)
        logger.info(f"Loaded {len(mapping)} role assignments")
        return mapping

    async def get_role_for_email(self, email: str) -> UserRole:
        now = self.clock()
        cached = self._cache
        if cached is None or now > cached[1]:
            mapping = await self._refresh(now)
        else:
            mapping = cached[0]
        return mapping.get((email or "").strip().lower(), UserRole.USER)


@lru_cache()
def get_role_resolver() -> RoleResolver:
    if google_services.roles_sheets is None:
        async def fetch_rows():
            return []
    else:
        reader = SheetsValuesReader(
            google_services.roles_sheets,
            settings.ROLES_SHEET_ID,
            google_services.roles_credentials,
        )

        async def fetch_rows():
            return await reader.get_values(settings.ROLES_SHEET_RANGE)

    return RoleResolver(fetch_rows, ttl_seconds=settings.ROLE_CACHE_TTL_SECONDS)
