"""
Content and prayer-time fetching.

Handles the HTTP side of the display: one GET per resource, validated at
the boundary. Blocking requests calls run in a worker thread so timers on
the event loop keep firing while a fetch is pending.
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, Optional

import requests
from loguru import logger

from masjid_display.core.config import ApiConfig

from .exceptions import NetworkError
from .models import Playlist, PrayerSchedule
from .records import parse_content_records, parse_prayer_schedule


class ContentRepository:
    """Reads active content and prayer schedules from the backing service.

    Owns no state beyond the last successful response of each kind.
    """

    def __init__(self, api: ApiConfig, session: Optional[requests.Session] = None):
        self.api = api
        self.session = session or requests.Session()
        self.last_playlist: Optional[Playlist] = None
        self.last_schedule: Optional[PrayerSchedule] = None

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api.api_key:
            headers["apikey"] = self.api.api_key
            headers["Authorization"] = f"Bearer {self.api.api_key}"
        return headers

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET a JSON document.

        Raises:
            NetworkError: On transport failure, non-2xx status or a body
                that is not JSON
        """
        try:
            response = self.session.get(
                url,
                params=params,
                headers=self._headers(),
                timeout=self.api.timeout_seconds,
            )
        except requests.RequestException as e:
            raise NetworkError(f"Request to {url} failed: {e}", url=url) from e

        if not response.ok:
            raise NetworkError(
                f"{url} returned HTTP {response.status_code}",
                url=url,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise NetworkError(
                f"{url} returned a non-JSON body",
                url=url,
                status_code=response.status_code,
            ) from e

    def _load_content(self) -> Playlist:
        params = {}
        if self.api.max_content_items:
            params["limit"] = self.api.max_content_items

        payload = self._get_json(self.api.content_url, params or None)
        items = parse_content_records(payload)
        playlist = Playlist.from_items(items, now=datetime.now())
        logger.debug(
            f"Fetched {len(items)} content record(s), {len(playlist)} eligible"
        )
        return playlist

    def _load_prayer_schedule(self, zone_id: str) -> PrayerSchedule:
        payload = self._get_json(self.api.prayer_url, {"zone": zone_id})
        return parse_prayer_schedule(payload)

    async def fetch_active_content(self) -> Playlist:
        """Fetch content and build the playlist of active items.

        Malformed records are dropped; an empty playlist is a valid result.

        Raises:
            NetworkError: If the fetch fails
            ValidationError: If the body is not a list of records
        """
        playlist = await asyncio.to_thread(self._load_content)
        self.last_playlist = playlist
        return playlist

    async def fetch_prayer_schedule(self, zone_id: str) -> PrayerSchedule:
        """Fetch the prayer schedule for a JAKIM zone.

        Raises:
            NetworkError: If the fetch fails
            ValidationError: If the body is not a prayer schedule
        """
        schedule = await asyncio.to_thread(self._load_prayer_schedule, zone_id)
        self.last_schedule = schedule
        return schedule

    def clear(self) -> None:
        """Discard the last snapshots."""
        self.last_playlist = None
        self.last_schedule = None

    def close(self) -> None:
        self.session.close()
