from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional

from .calendar_google import CalendarStore
from .config import AppConfig, parse_calendar_ids
from .models import SourceEvent
from .reconcile import DriveBlockReconciler

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class ScanOrchestrator:
    def __init__(
        self,
        config: AppConfig,
        store: CalendarStore,
        reconciler: DriveBlockReconciler,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.config = config
        self.store = store
        self.reconciler = reconciler
        self.now = now

    def scan(self, calendar_ids: Optional[Iterable[str] | str] = None, lookahead_hours: Optional[int] = None) -> Counter:
        """Reconcile every upcoming event on each calendar; returns outcome counts."""
        if calendar_ids is None:
            ids = list(self.config.calendar_ids)
        elif isinstance(calendar_ids, str):
            ids = parse_calendar_ids(calendar_ids)
        else:
            ids = parse_calendar_ids(list(calendar_ids))
        hours = self.config.lookahead_hours if lookahead_hours is None else lookahead_hours

        totals: Counter = Counter()
        for cal_id in ids:
            try:
                totals.update(self._scan_calendar(cal_id, hours))
            except Exception:
                logger.exception("Scan of calendar %s failed; continuing with the rest", cal_id)
                totals["failed_calendars"] += 1
        logger.info("Scan finished: %s", dict(totals))
        return totals

    def _scan_calendar(self, calendar_id: str, lookahead_hours: int) -> Counter:
        now = self.now()
        items = self.store.list(
            calendar_id,
            now,
            now + timedelta(hours=lookahead_hours),
            single_events=True,
            max_results=self.config.page_size,
            order_by="startTime",
            show_deleted=True,
        )
        logger.debug("Calendar %s: %d events in the next %dh", calendar_id, len(items), lookahead_hours)

        counts: Counter = Counter()
        for item in items:
            try:
                event = SourceEvent.from_api(item)
                counts[self.reconciler.reconcile(calendar_id, event)] += 1
            except Exception:
                logger.exception("Failed to reconcile event %s on %s", item.get("id"), calendar_id)
                counts["failed"] += 1
        return counts

    def handle_event_by_id(self, calendar_id: str, event_id: str) -> str:
        event = SourceEvent.from_api(self.store.get(calendar_id, event_id))
        return self.reconciler.reconcile(calendar_id, event)
