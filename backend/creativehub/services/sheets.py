"""
Spreadsheet cache: per-tab, TTL-bound, header-keyed rows.

Each tab is read as ``{tab}!A:Z``. The first row is the header; blank header
cells become ``COL`` and duplicates get ``_2``, ``_3`` ... suffixes so every
row maps to a dict with unique keys.
"""
import asyncio
import logging
import random
import time
from functools import lru_cache
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from creativehub.core.config import settings
from creativehub.core.errors import UpstreamFetchError
from creativehub.core.google_clients import SheetsValuesReader, google_services

logger = logging.getLogger(__name__)

Rows = List[List[str]]
Records = List[Dict[str, str]]

READ_ATTEMPTS = 4
BACKOFF_BASE_SECONDS = 0.2
BACKOFF_CAP_SECONDS = 2.0
BACKOFF_JITTER_SECONDS = 0.2


def uniquify_headers(header: List[str]) -> List[str]:
    seen: Dict[str, int] = {}
    result = []
    for raw in header:
        key = str(raw or "").strip() or "COL"
        count = seen.get(key, 0)
        seen[key] = count + 1
        result.append(key if count == 0 else f"{key}_{count + 1}")
    return result


def rows_to_records(rows: Rows) -> Records:
    if not rows:
        return []
    header = uniquify_headers(rows[0])
    records = []
    for row in rows[1:]:
        records.append({
            key: str(row[i] if i < len(row) and row[i] is not None else "").strip()
            for i, key in enumerate(header)
        })
    return records


def backoff_delay(attempt: int, jitter: float) -> float:
    """200ms, 400ms, 800ms, 1600ms ... capped at 2s, plus jitter"""
    return min(BACKOFF_BASE_SECONDS * 2 ** attempt, BACKOFF_CAP_SECONDS) + jitter


class SheetCache:
    """
    Caches tab contents of one spreadsheet.
    Entries are replaced whole, so readers never observe a partial tab.
    """

    def __init__(
        self,
        fetch_values: Callable[[str], Awaitable[Rows]],
        ttl_seconds: float = 60,
        attempts: int = READ_ATTEMPTS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        jitter: Callable[[], float] = lambda: random.uniform(0, BACKOFF_JITTER_SECONDS),
    ):
        self.fetch_values = fetch_values
        self.ttl_seconds = ttl_seconds
        self.attempts = attempts
        self.clock = clock
        self.sleep = sleep
        self.jitter = jitter
        self._entries: Dict[str, Tuple[float, Records]] = {}

    def clear(self) -> None:
        self._entries = {}

    async def _fetch_with_retry(self, range_name: str) -> Rows:
        last_error: Optional[BaseException] = None
        for attempt in range(self.attempts):
            try:
                return await self.fetch_values(range_name)
            except Exception as e:
                last_error = e
                logger.warning(f"Sheets read attempt {attempt + 1}/{self.attempts} failed for {range_name}: {e}")
                if attempt + 1 < self.attempts:
                    await self.sleep(backoff_delay(attempt, self.jitter()))
        raise UpstreamFetchError(f'Sheets read failed for range "{range_name}": {last_error}')

    async def read_sheet(self, tab: str) -> Records:
        now = self.clock()
        hit = self._entries.get(tab)
        if hit and hit[0] > now:
            return hit[1]

        rows = await self._fetch_with_retry(f"{tab}!A:Z")
        records = rows_to_records(rows)
        self._entries = {**self._entries, tab: (now + self.ttl_seconds, records)}
        return records


@lru_cache()
def get_sheet_cache() -> SheetCache:
    """Process-wide cache over the taxonomy spreadsheet"""
    reader = SheetsValuesReader(
        google_services.taxonomy_sheets,
        settings.GOOGLE_SHEETS_TAXONOMY_SHEET_ID,
        google_services.drive_credentials,
    )
    return SheetCache(reader.get_values, ttl_seconds=settings.SHEETS_CACHE_TTL_SECONDS)
