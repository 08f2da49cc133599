from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from .calendar_google import CalendarStore
from .config import AppConfig
from .locator import DriveBlockLocator
from .models import (
    DRIVE_SUMMARY_PREFIX,
    DriveBlock,
    SourceEvent,
    drive_block_payload,
    is_meeting_link,
)
from .travel import TravelTimeResolver

logger = logging.getLogger(__name__)

CREATED = "created"
UPDATED = "updated"
UNCHANGED = "unchanged"
DELETED = "deleted"
SKIPPED = "skipped"

TOLERANCE = timedelta(minutes=2)


class DriveBlockReconciler:
    def __init__(
        self,
        config: AppConfig,
        store: CalendarStore,
        locator: DriveBlockLocator,
        resolver: Optional[TravelTimeResolver],
    ) -> None:
        self.config = config
        self.store = store
        self.locator = locator
        self.resolver = resolver

    def reconcile(self, calendar_id: str, event: SourceEvent) -> str:
        if event.drive_for:
            return SKIPPED

        if event.cancelled:
            return self._remove(calendar_id, event, "cancelled")

        if event.start is None:
            logger.debug("Skipping all-day event %s", event.id)
            return SKIPPED

        missing = self.config.missing_required()
        if missing or self.resolver is None:
            logger.warning("Skipping %s: missing configuration %s", event.id, ", ".join(missing) or "estimator")
            return SKIPPED

        location = (event.location or "").strip()
        if not location or is_meeting_link(location):
            return self._remove(calendar_id, event, "no physical location")

        home = self.config.home_address
        drive_end = event.start - timedelta(minutes=self.config.buffer_minutes)
        duration_ms = self.resolver.driving_duration_ms(home, location, drive_end)
        if duration_ms is None:
            logger.info("No drive estimate for %s (%r); leaving calendar as is", event.id, location)
            return SKIPPED

        drive_start = drive_end - timedelta(milliseconds=duration_ms)
        if drive_start >= drive_end:
            logger.warning("Non-positive drive duration %sms for %s; not writing a block", duration_ms, event.id)
            return SKIPPED

        payload = drive_block_payload(event, home, drive_start, drive_end)
        existing = self._locate(calendar_id, event)
        if existing is None:
            self.store.insert(calendar_id, payload)
            logger.info("Created %r %s-%s", payload["summary"], drive_start.isoformat(), drive_end.isoformat())
            return CREATED

        if _is_current(existing, event.id, payload["summary"], drive_start, drive_end):
            logger.debug("Drive block %s for %s is up to date", existing.id, event.id)
            return UNCHANGED

        self.store.patch(calendar_id, existing.id, payload)
        logger.info("Updated %r %s-%s", payload["summary"], drive_start.isoformat(), drive_end.isoformat())
        return UPDATED

    def _window(self, event: SourceEvent) -> Tuple[datetime, datetime]:
        window_start, window_end = self.locator.default_window()
        if event.start is not None:
            window_start = min(window_start, event.start - timedelta(hours=24))
            window_end = max(window_end, event.start)
        return window_start, window_end

    def _find_blocks(self, calendar_id: str, event: SourceEvent) -> List[DriveBlock]:
        return self.locator.find_all_for(calendar_id, event.id, *self._window(event))

    def _locate(self, calendar_id: str, event: SourceEvent) -> Optional[DriveBlock]:
        blocks = self._find_blocks(calendar_id, event)
        if not blocks:
            return None
        keep, extras = blocks[0], blocks[1:]
        for dup in extras:
            logger.warning("Removing duplicate drive block %s for %s", dup.id, event.id)
            self._delete_block(calendar_id, event, dup)
        return keep

    def _remove(self, calendar_id: str, event: SourceEvent, reason: str) -> str:
        deleted = 0
        for block in self._find_blocks(calendar_id, event):
            if self._delete_block(calendar_id, event, block):
                deleted += 1
        if not deleted:
            return UNCHANGED
        logger.info("Deleted drive block for %s (%s)", event.id, reason)
        return DELETED

    def _delete_block(self, calendar_id: str, event: SourceEvent, block: DriveBlock) -> bool:
        if block.source_event_id != event.id:
            logger.error("Refusing to delete %s: tagged for %r, not %r", block.id, block.source_event_id, event.id)
            return False
        if not block.summary.startswith(DRIVE_SUMMARY_PREFIX):
            logger.warning("Drive block %s was renamed to %r; deleting by tag", block.id, block.summary)
        self.store.delete(calendar_id, block.id)
        return True


def _is_current(block: DriveBlock, event_id: str, summary: str, start: datetime, end: datetime) -> bool:
    if block.start is None or block.end is None:
        return False
    return (
        abs(block.start - start) <= TOLERANCE
        and abs(block.end - end) <= TOLERANCE
        and block.summary == summary
        and block.source_event_id == event_id
    )
