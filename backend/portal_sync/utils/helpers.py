"""
Utility helper functions
"""
from datetime import datetime, timezone
import random
import time
from typing import Container, Optional

from portal_sync.core.config import settings


def utcnow() -> datetime:
    """Timezone-aware current UTC time"""
    return datetime.now(timezone.utc)


def epoch_millis() -> int:
    return int(time.time() * 1000)


def generate_id(prefix: str = "ID", taken: Container[str] = ()) -> str:
    """
    Generate ``<prefix><epoch millis><0..999>``.

    Two calls inside the same millisecond can draw the same suffix, so the
    caller passes the ids its registry already holds and a clash is redrawn.
    """
    while True:
        candidate = f"{prefix}{epoch_millis()}{random.randint(0, 999)}"
        if candidate not in taken:
            return candidate


def generate_process_number(year: Optional[int] = None) -> str:
    """Formatted case number, e.g. ``1234567-12.2026.8.26.0001``"""
    if year is None:
        year = utcnow().year
    sequential = random.randint(0, 999998) + 1000000
    return f"{sequential}-12.{year}.{settings.COURT_CODE_SUFFIX}"


def truncate_text(text: str, length: int = 100) -> str:
    """Truncate text to specified length"""
    if len(text) <= length:
        return text
    return text[:length] + "..."
