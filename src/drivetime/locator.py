from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from .calendar_google import CalendarStore
from .models import DRIVE_FOR_KEY, DriveBlock

LOOKBACK = timedelta(hours=24)
LOOKAHEAD = timedelta(hours=168)
MAX_SCAN_RESULTS = 2500

Now = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class DriveBlockLocator:
    """Finds drive blocks by their private driveForEventId tag, never by title."""

    def __init__(self, store: CalendarStore, now: Now = _utcnow) -> None:
        self.store = store
        self.now = now

    def default_window(self):
        now = self.now()
        return now - LOOKBACK, now + LOOKAHEAD

    def find_all_for(
        self,
        calendar_id: str,
        source_event_id: str,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
    ) -> List[DriveBlock]:
        default_start, default_end = self.default_window()
        items = self.store.list(
            calendar_id,
            window_start or default_start,
            window_end or default_end,
            single_events=True,
            max_results=MAX_SCAN_RESULTS,
        )
        matches = []
        for item in items:
            props = (item.get("extendedProperties") or {}).get("private") or {}
            if props.get(DRIVE_FOR_KEY) == source_event_id:
                matches.append(DriveBlock.from_api(item))
        return matches

    def find_for(
        self,
        calendar_id: str,
        source_event_id: str,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
    ) -> Optional[DriveBlock]:
        matches = self.find_all_for(calendar_id, source_event_id, window_start, window_end)
        return matches[0] if matches else None
