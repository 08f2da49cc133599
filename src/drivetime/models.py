from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

DRIVE_FOR_KEY = "driveForEventId"
DRIVE_SUMMARY_PREFIX = "Drive to "


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _private_props(item: Dict[str, Any]) -> Dict[str, Any]:
    return (item.get("extendedProperties") or {}).get("private") or {}


@dataclass(frozen=True)
class SourceEvent:
    id: str
    title: str
    start: Optional[datetime]   # None for all-day / untimed events
    status: str = "confirmed"
    location: Optional[str] = None
    html_link: Optional[str] = None
    drive_for: Optional[str] = None  # set when this entry is itself a drive block

    @property
    def cancelled(self) -> bool:
        return self.status == "cancelled"

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> "SourceEvent":
        # All-day events have "date" not "dateTime"
        start_obj = item.get("start") or {}
        return cls(
            id=item["id"],
            title=(item.get("summary") or "").strip(),
            start=parse_timestamp(start_obj.get("dateTime")),
            status=item.get("status", "confirmed"),
            location=item.get("location"),
            html_link=item.get("htmlLink"),
            drive_for=_private_props(item).get(DRIVE_FOR_KEY),
        )


@dataclass(frozen=True)
class DriveBlock:
    id: str
    source_event_id: str
    summary: str
    start: Optional[datetime]
    end: Optional[datetime]

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> "DriveBlock":
        return cls(
            id=item["id"],
            source_event_id=str(_private_props(item).get(DRIVE_FOR_KEY, "")),
            summary=item.get("summary", ""),
            start=parse_timestamp((item.get("start") or {}).get("dateTime")),
            end=parse_timestamp((item.get("end") or {}).get("dateTime")),
        )


def is_meeting_link(location: str) -> bool:
    lowered = location.strip().lower()
    return lowered.startswith("http://") or lowered.startswith("https://")


def drive_summary(location: str, title: str = "") -> str:
    place = location.split(",")[0].strip()
    summary = f"{DRIVE_SUMMARY_PREFIX}{place}"
    if title.strip():
        summary += f" ({title.strip()})"
    return summary


def drive_block_payload(
    event: SourceEvent,
    origin: str,
    start: datetime,
    end: datetime,
) -> Dict[str, Any]:
    location = event.location or ""
    lines = [
        f"Source event: {event.id}",
        f"Link: {event.html_link or '-'}",
        f"From: {origin}",
        f"To: {location}",
    ]
    return {
        "summary": drive_summary(location, event.title),
        "description": "\n".join(lines),
        "start": {"dateTime": start.isoformat()},
        "end": {"dateTime": end.isoformat()},
        "extendedProperties": {"private": {DRIVE_FOR_KEY: event.id}},
    }
