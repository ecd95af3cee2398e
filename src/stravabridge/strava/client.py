"""
Async wrapper around the Strava REST API.

requests is synchronous; every call runs in the default thread pool executor
so it doesn't block the asyncio event loop shared by the webhook routes and
the polling job.

Authentication uses the long-lived refresh token from settings: each call to
get_token() exchanges it for a short-lived access token.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

STRAVA_OAUTH_URL = "https://www.strava.com/oauth/token"
STRAVA_API_URL = "https://www.strava.com/api/v3"
STREAM_KEYS = "time,distance,heartrate,watts,cadence,velocity_smooth,temp,altitude"
PAGE_SIZE = 50


class StravaAPIError(Exception):
    """Raised when a Strava request fails (network error or non-2xx status)."""


class StravaClient:
    """
    Thin async client for the handful of Strava endpoints the bridge uses.

    Args:
        client_id / client_secret / refresh_token: Strava app credentials.
        timeout: per-request timeout in seconds.
        session: requests.Session to use (tests pass a MagicMock).
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.timeout = timeout
        self._session = session or requests.Session()

    async def _run(self, fn, *args, **kwargs):
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, lambda: fn(*args, **kwargs))

    def _request(self, method: str, url: str, **kwargs) -> Any:
        try:
            resp = self._session.request(method, url, timeout=self.timeout, **kwargs)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise StravaAPIError(f"{method} {url} failed: {exc}") from exc
        return resp.json()

    def _get(self, path: str, token: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._request(
            "GET",
            f"{STRAVA_API_URL}{path}",
            headers={"Authorization": f"Bearer {token}"},
            params=params,
        )

    async def get_token(self) -> str:
        """Exchange the refresh token for a fresh access token."""
        data = await self._run(
            self._request,
            "POST",
            STRAVA_OAUTH_URL,
            params={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "grant_type": "refresh_token",
                "refresh_token": self.refresh_token,
            },
        )
        return data["access_token"]

    async def get_activity(self, activity_id: int, token: str) -> Dict[str, Any]:
        return await self._run(self._get, f"/activities/{activity_id}", token)

    async def get_activity_streams(self, activity_id: int, token: str) -> Dict[str, Any]:
        """Fetch sample streams keyed by type: {"distance": {"data": [...]}, …}."""
        return await self._run(
            self._get,
            f"/activities/{activity_id}/streams",
            token,
            {"keys": STREAM_KEYS, "key_by_type": "true"},
        )

    async def get_activity_zones(self, activity_id: int, token: str) -> List[Dict[str, Any]]:
        """Fetch HR/power zone buckets. Zones are optional: failures return []."""
        try:
            return await self._run(self._get, f"/activities/{activity_id}/zones", token)
        except StravaAPIError as exc:
            logger.warning("Zones unavailable for activity %s: %s", activity_id, exc)
            return []

    async def list_activities(
        self,
        token: str,
        after: Optional[int] = None,
        page: int = 1,
    ) -> List[Dict[str, Any]]:
        """
        List the athlete's activities, PAGE_SIZE per page.

        Args:
            after: only activities started after this epoch second.
            page: 1-based page number.
        """
        params: Dict[str, Any] = {"per_page": PAGE_SIZE, "page": page}
        if after is not None:
            params["after"] = after
        return await self._run(self._get, "/athlete/activities", token, params)
