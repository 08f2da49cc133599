from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol
import os

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

SCOPES = ["https://www.googleapis.com/auth/calendar.events"]


class CalendarStore(Protocol):
    def list(
        self,
        calendar_id: str,
        time_min: datetime,
        time_max: datetime,
        single_events: bool = True,
        max_results: int = 250,
        order_by: Optional[str] = None,
        show_deleted: bool = False,
    ) -> List[Dict[str, Any]]: ...

    def get(self, calendar_id: str, event_id: str) -> Dict[str, Any]: ...

    def insert(self, calendar_id: str, payload: Dict[str, Any]) -> Dict[str, Any]: ...

    def patch(self, calendar_id: str, event_id: str, payload: Dict[str, Any]) -> Dict[str, Any]: ...

    def delete(self, calendar_id: str, event_id: str) -> None: ...


def _get_creds(credentials_path: str, token_path: str) -> Credentials:
    creds = None
    if os.path.exists(token_path):
        creds = Credentials.from_authorized_user_file(token_path, SCOPES)
        if creds.valid:
            return creds
        if creds.expired and creds.refresh_token:
            creds.refresh(Request())
        else:
            creds = None

    if creds is None:
        flow = InstalledAppFlow.from_client_secrets_file(credentials_path, SCOPES)
        creds = flow.run_local_server(port=0)

    token_dir = os.path.dirname(token_path)
    if token_dir:
        os.makedirs(token_dir, exist_ok=True)
    with open(token_path, "w", encoding="utf-8") as f:
        f.write(creds.to_json())
    return creds


class GoogleCalendarStore:
    """CalendarStore backed by the Google Calendar v3 events resource."""

    def __init__(self, service: Any) -> None:
        self._events = service.events()

    @classmethod
    def connect(cls, credentials_path: str, token_path: str) -> "GoogleCalendarStore":
        creds = _get_creds(credentials_path, token_path)
        return cls(build("calendar", "v3", credentials=creds, cache_discovery=False))

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
        items: List[Dict[str, Any]] = []
        page_token = None
        while len(items) < max_results:
            params: Dict[str, Any] = {
                "calendarId": calendar_id,
                "timeMin": time_min.isoformat(),
                "timeMax": time_max.isoformat(),
                "singleEvents": single_events,
                "showDeleted": show_deleted,
                "maxResults": min(max_results - len(items), 2500),
            }
            if order_by:
                params["orderBy"] = order_by
            if page_token:
                params["pageToken"] = page_token
            resp = self._events.list(**params).execute()
            items.extend(resp.get("items", []))
            page_token = resp.get("nextPageToken")
            if not page_token:
                break
        return items[:max_results]

    def get(self, calendar_id: str, event_id: str) -> Dict[str, Any]:
        return self._events.get(calendarId=calendar_id, eventId=event_id).execute()

    def insert(self, calendar_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._events.insert(calendarId=calendar_id, body=payload).execute()

    def patch(self, calendar_id: str, event_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._events.patch(calendarId=calendar_id, eventId=event_id, body=payload).execute()

    def delete(self, calendar_id: str, event_id: str) -> None:
        self._events.delete(calendarId=calendar_id, eventId=event_id).execute()
