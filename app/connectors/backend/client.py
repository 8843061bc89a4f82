"""Pulseboard — Backend API Client.

Talks to the application's own backend (tier 1 of every fallback chain).
Sends the session cookie with every request. Transport failures and non-2xx
answers raise ``RemoteAPIError``; unparseable bodies raise ``ParseError``.
"""

from typing import Any, Dict, List, Optional

import httpx

from app.config import settings
from app.core.errors import ParseError, RemoteAPIError
from app.core.logging import get_logger

logger = get_logger("backend.client")

SESSION_COOKIE = "pulseboard_session"

PROFILES_PATH = "/api/social-profiles"
SUGGESTIONS_PATH = "/api/content/suggestions"
METRICS_PATH = "/api/metrics"


class BackendClient:
    """Async HTTP client for the Pulseboard backend."""

    def __init__(
        self,
        base_url: str | None = None,
        session_cookie: str | None = None,
        timeout: float | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or settings.api_base_url
        self.session_cookie = session_cookie or settings.api_session_cookie
        self.timeout = timeout or settings.tier_timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            cookies = {SESSION_COOKIE: self.session_cookie} if self.session_cookie else None
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                cookies=cookies,
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    # ── Core Request Method ──

    async def _request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Dict[str, Any] | None = None,
    ) -> Any:
        client = await self._get_client()
        params = {k: v for k, v in (params or {}).items() if v is not None}

        try:
            resp = await client.request(method, path, json=json, params=params or None)
        except httpx.RequestError as e:
            raise RemoteAPIError(f"{method} {path} failed: {e}") from e

        if not resp.is_success:
            detail = resp.text
            try:
                body = resp.json()
                if isinstance(body, dict):
                    detail = body.get("detail") or body.get("error") or detail
            except ValueError:
                pass
            logger.warning(
                f"{method} {path} returned {resp.status_code}",
                extra={"status_code": resp.status_code},
            )
            raise RemoteAPIError(
                f"{method} {path} returned {resp.status_code}: {detail}",
                resp.status_code,
                detail=str(detail),
            )

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise ParseError(f"{method} {path} returned invalid JSON", resp.status_code) from e

    # ── Social Profiles ──

    async def list_profiles(self) -> List[Dict[str, Any]]:
        return await self._request("GET", PROFILES_PATH)

    async def add_profile(self, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", PROFILES_PATH, json=body)

    async def update_profile(self, profile_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PUT", f"{PROFILES_PATH}/{profile_id}", json=body)

    async def delete_profile(self, profile_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"{PROFILES_PATH}/{profile_id}")

    # ── Content Suggestions ──

    async def list_suggestions(
        self, status: str | None = None, platform: str | None = None
    ) -> List[Dict[str, Any]]:
        return await self._request(
            "GET", SUGGESTIONS_PATH, params={"status": status, "platform": platform}
        )

    async def create_suggestion(self, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", SUGGESTIONS_PATH, json=body)

    async def update_suggestion(self, suggestion_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PUT", f"{SUGGESTIONS_PATH}/{suggestion_id}", json=body)

    async def update_suggestion_status(self, suggestion_id: str, status: str) -> Dict[str, Any]:
        return await self._request(
            "PATCH", f"{SUGGESTIONS_PATH}/{suggestion_id}/status", json={"status": status}
        )

    async def delete_suggestion(self, suggestion_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"{SUGGESTIONS_PATH}/{suggestion_id}")

    # ── Metrics ──

    async def list_metrics(
        self, platform: str | None = None, time_range: str | None = None
    ) -> List[Dict[str, Any]]:
        return await self._request(
            "GET", METRICS_PATH, params={"platform": platform, "timeRange": time_range}
        )

    async def follower_growth(self, time_range: int, platform: str | None = None) -> List[Dict[str, Any]]:
        return await self._request(
            "GET",
            f"{METRICS_PATH}/follower-growth",
            params={"days": time_range, "platform": platform},
        )
