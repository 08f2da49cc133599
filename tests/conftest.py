from __future__ import annotations

import copy
import itertools
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytest

from drivetime.models import parse_timestamp


class FakeCalendarStore:
    """In-memory stand-in for the Google Calendar events resource."""

    def __init__(self) -> None:
        self.calendars: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.inserts: List[tuple] = []
        self.patches: List[tuple] = []
        self.deletes: List[tuple] = []
        self.list_calls: List[dict] = []
        self.failing_calendars: set = set()
        self._ids = itertools.count(1)

    def add(self, calendar_id: str, item: Dict[str, Any]) -> Dict[str, Any]:
        item = copy.deepcopy(item)
        item.setdefault("status", "confirmed")
        self.calendars.setdefault(calendar_id, {})[item["id"]] = item
        return item

    def tagged(self, calendar_id: str, source_id: str) -> List[Dict[str, Any]]:
        return [
            item
            for item in self.calendars.get(calendar_id, {}).values()
            if ((item.get("extendedProperties") or {}).get("private") or {}).get("driveForEventId") == source_id
        ]

    def list(
        self,
        calendar_id: str,
        time_min: datetime,
        time_max: datetime,
        single_events: bool = True,
        max_results: int = 250,
        order_by: Optional[str] = None,
        show_deleted: bool = False,
    ) -> List[Dict[str, Any]]:
        self.list_calls.append(
            {
                "calendar_id": calendar_id,
                "time_min": time_min,
                "time_max": time_max,
                "single_events": single_events,
                "max_results": max_results,
                "order_by": order_by,
                "show_deleted": show_deleted,
            }
        )
        if calendar_id in self.failing_calendars:
            raise RuntimeError(f"calendar {calendar_id} unavailable")

        items = []
        for item in self.calendars.get(calendar_id, {}).values():
            if item.get("status") == "cancelled" and not show_deleted:
                continue
            start = parse_timestamp((item.get("start") or {}).get("dateTime"))
            end = parse_timestamp((item.get("end") or {}).get("dateTime")) or start
            if start is not None and not (end > time_min and start < time_max):
                continue
            items.append(copy.deepcopy(item))
        if order_by == "startTime":
            items.sort(key=lambda i: (i.get("start") or {}).get("dateTime", ""))
        return items[:max_results]

    def get(self, calendar_id: str, event_id: str) -> Dict[str, Any]:
        return copy.deepcopy(self.calendars[calendar_id][event_id])

    def insert(self, calendar_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.inserts.append((calendar_id, copy.deepcopy(payload)))
        item = dict(copy.deepcopy(payload), id=f"blk-{next(self._ids)}")
        return self.add(calendar_id, item)

    def patch(self, calendar_id: str, event_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.patches.append((calendar_id, event_id, copy.deepcopy(payload)))
        item = self.calendars[calendar_id][event_id]
        item.update(copy.deepcopy(payload))
        return copy.deepcopy(item)

    def delete(self, calendar_id: str, event_id: str) -> None:
        self.deletes.append((calendar_id, event_id))
        del self.calendars[calendar_id][event_id]


class StubDistanceMatrix:
    """Returns fixed base/traffic durations and records each request."""

    def __init__(self, base: Optional[int] = 3000, traffic: Optional[int] = 3600) -> None:
        self.base = base
        self.traffic = traffic
        self.calls: List[tuple] = []

    def estimate(self, origin, destination, departure_epoch=None, use_traffic=False):
        self.calls.append((origin, destination, departure_epoch, use_traffic))
        return self.traffic if use_traffic else self.base


@pytest.fixture
def store() -> FakeCalendarStore:
    return FakeCalendarStore()


@pytest.fixture
def distance_matrix() -> StubDistanceMatrix:
    return StubDistanceMatrix()


@pytest.fixture
def make_distance_matrix():
    return StubDistanceMatrix
