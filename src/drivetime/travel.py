from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

import requests

from .cache import ExpiringCache

logger = logging.getLogger(__name__)

DISTANCE_MATRIX_URL = "https://maps.googleapis.com/maps/api/distancematrix/json"
CACHE_TTL_SECONDS = 3600


def mask_key(key: str) -> str:
    return f"{key[:4]}****" if len(key) > 8 else "****"


class DistanceMatrixClient:
    """Single origin/destination duration lookups against the Distance Matrix API.

    Every failure mode returns None; callers decide how to degrade.
    """

    def __init__(self, api_key: str, session: Optional[requests.Session] = None, user_agent: str = "drivetime/1.0") -> None:
        self.api_key = api_key
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": user_agent})

    def estimate(
        self,
        origin: str,
        destination: str,
        departure_epoch: Optional[int] = None,
        use_traffic: bool = False,
    ) -> Optional[int]:
        params: Dict[str, Any] = {
            "origins": origin,
            "destinations": destination,
            "mode": "driving",
            "key": self.api_key,
        }
        if departure_epoch is not None:
            params["departure_time"] = int(departure_epoch)
        if use_traffic:
            params["traffic_model"] = "best_guess"

        logger.debug(
            "Distance Matrix request origin=%r destination=%r departure=%s traffic=%s key=%s",
            origin,
            destination,
            departure_epoch,
            use_traffic,
            mask_key(self.api_key),
        )
        try:
            resp = self._session.get(DISTANCE_MATRIX_URL, params=params, timeout=8)
            resp.raise_for_status()
            payload = resp.json()
        except (requests.RequestException, ValueError) as exc:
            # str(exc) can embed the request URL, and with it the key.
            logger.warning("Distance Matrix request failed: %s", type(exc).__name__)
            return None

        if not isinstance(payload, dict) or payload.get("status") != "OK":
            logger.warning("Distance Matrix returned status %r", payload.get("status") if isinstance(payload, dict) else None)
            return None

        try:
            element = payload["rows"][0]["elements"][0]
        except (KeyError, IndexError, TypeError):
            logger.warning("Distance Matrix response had no result element")
            return None
        if element.get("status") != "OK":
            logger.info("No driving route from %r to %r (%s)", origin, destination, element.get("status"))
            return None

        if use_traffic:
            seconds = _value(element.get("duration_in_traffic"))
            if seconds is not None:
                return seconds
        return _value(element.get("duration"))


def _value(block: Any) -> Optional[int]:
    if not isinstance(block, dict) or block.get("value") is None:
        return None
    try:
        return int(block["value"])
    except (TypeError, ValueError):
        return None


class TravelTimeResolver:
    """Read-through, hour-bucketed cache over a DistanceMatrixClient."""

    def __init__(self, client: DistanceMatrixClient, cache: ExpiringCache, tz: ZoneInfo) -> None:
        self.client = client
        self.cache = cache
        self.tz = tz

    def cache_key(self, origin: str, destination: str, drive_end: datetime) -> str:
        hour = drive_end.astimezone(self.tz).hour
        return f"drive|{origin.strip()}|{destination.strip()}|{hour:02d}"

    def driving_duration_ms(self, origin: str, destination: str, drive_end: datetime) -> Optional[int]:
        key = self.cache_key(origin, destination, drive_end)
        cached = self.cache.get(key)
        if cached is not None:
            try:
                return int(cached)
            except ValueError:
                logger.warning("Ignoring unreadable cache entry for %s", key)

        base = self.client.estimate(origin, destination, use_traffic=False)
        if base is None:
            return None

        # Traffic is sampled at the time the driver would actually leave.
        departure = drive_end - timedelta(seconds=base)
        traffic = self.client.estimate(
            origin,
            destination,
            departure_epoch=int(departure.timestamp()),
            use_traffic=True,
        )
        seconds = traffic if traffic is not None else base
        duration_ms = seconds * 1000
        logger.debug("Drive %r -> %r: base=%ss traffic=%ss", origin, destination, base, traffic)

        self.cache.put(key, str(duration_ms), CACHE_TTL_SECONDS)
        return duration_ms
