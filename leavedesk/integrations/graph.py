"""
Microsoft Graph client: directory lookups, calendar events, mailbox
auto-replies, chat messages and mail.

One instance is built by the application lifespan and handed to the code
that needs it; it owns its HTTP connection pool and its app-only access
token, which is refreshed shortly before it expires.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from datetime import time as dt_time
from typing import Any, Optional

import httpx

from leavedesk.core.config import Settings

logger = logging.getLogger(__name__)

_TOKEN_REFRESH_MARGIN_SECONDS = 60


class GraphError(Exception):
    """A Graph request failed (transport error or non-2xx response)."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GraphNotConfigured(GraphError):
    pass


@dataclass(frozen=True)
class GraphSettings:
    tenant_id: str
    client_id: str
    client_secret: str
    base_url: str = "https://graph.microsoft.com/v1.0"
    authority: str = "https://login.microsoftonline.com"
    timeout_seconds: float = 10.0
    time_zone: str = "Europe/Berlin"

    @classmethod
    def from_settings(cls, settings: Settings) -> "GraphSettings":
        return cls(
            tenant_id=settings.GRAPH_TENANT_ID,
            client_id=settings.GRAPH_CLIENT_ID,
            client_secret=settings.GRAPH_CLIENT_SECRET,
            base_url=settings.GRAPH_BASE_URL,
            authority=settings.GRAPH_AUTHORITY,
            timeout_seconds=settings.GRAPH_TIMEOUT_SECONDS,
            time_zone=settings.TIME_ZONE,
        )

    @property
    def configured(self) -> bool:
        return bool(self.tenant_id and self.client_id and self.client_secret)


class GraphClient:
    def __init__(self, settings: GraphSettings, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.settings = settings
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._token: Optional[str] = None
        self._token_expires_at = 0.0
        self._token_lock = asyncio.Lock()

    @property
    def time_zone(self) -> str:
        return self.settings.time_zone

    # ── Lifecycle ───────────────────────────────────────────────────
    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            timeout = httpx.Timeout(
                timeout=self.settings.timeout_seconds,
                connect=5.0,
            )
            self._client = httpx.AsyncClient(timeout=timeout, transport=self._transport)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        self._token = None
        self._token_expires_at = 0.0

    # ── Auth ────────────────────────────────────────────────────────
    async def _access_token(self) -> str:
        if not self.settings.configured:
            raise GraphNotConfigured("Graph credentials are not configured")

        async with self._token_lock:
            if self._token and time.monotonic() < self._token_expires_at - _TOKEN_REFRESH_MARGIN_SECONDS:
                return self._token

            client = await self._get_client()
            url = f"{self.settings.authority}/{self.settings.tenant_id}/oauth2/v2.0/token"
            try:
                resp = await client.post(
                    url,
                    data={
                        "grant_type": "client_credentials",
                        "client_id": self.settings.client_id,
                        "client_secret": self.settings.client_secret,
                        "scope": "https://graph.microsoft.com/.default",
                    },
                )
            except httpx.HTTPError as exc:
                raise GraphError(f"Token request failed: {exc}") from exc

            if resp.status_code >= 400:
                logger.error("Graph token endpoint returned %s", resp.status_code)
                raise GraphError("Token request rejected", resp.status_code)

            data = resp.json()
            self._token = data["access_token"]
            self._token_expires_at = time.monotonic() + float(data.get("expires_in", 3600))
            logger.info("Acquired Graph access token (expires in %ss)", data.get("expires_in"))
            return self._token

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[dict] = None,
    ) -> Any:
        token = await self._access_token()
        client = await self._get_client()
        try:
            resp = await client.request(
                method,
                f"{self.settings.base_url}{path}",
                json=json,
                params=params,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            raise GraphError(f"{method} {path} failed: {exc}") from exc

        if resp.status_code == 404:
            return None
        if resp.status_code >= 400:
            logger.error("Graph %s %s returned %s: %s", method, path, resp.status_code, resp.text[:500])
            raise GraphError(f"{method} {path} returned {resp.status_code}", resp.status_code)
        if resp.status_code == 204 or not resp.content:
            return {}
        return resp.json()

    # ── Directory ───────────────────────────────────────────────────
    async def get_user_manager(self, user_id: str) -> Optional[dict]:
        return await self._request(
            "GET",
            f"/users/{user_id}/manager",
            params={"$select": "id,displayName,mail"},
        )

    async def get_direct_reports(self, user_id: str) -> list[dict]:
        data = await self._request(
            "GET",
            f"/users/{user_id}/directReports",
            params={"$select": "id,displayName,mail"},
        )
        return (data or {}).get("value", [])

    # ── Calendar & mailbox ──────────────────────────────────────────
    async def create_calendar_event(
        self,
        user_id: str,
        *,
        subject: str,
        body: str,
        start: date,
        end: date,
        is_all_day: bool,
        start_time: Optional[dt_time] = None,
        end_time: Optional[dt_time] = None,
    ) -> dict:
        """Create an out-of-office event spanning ``[start, end]``.

        Timed events run from *start_time* on the first day to *end_time* on
        the last one, defaulting to the whole day.
        """
        if is_all_day:
            start_dt = datetime.combine(start, dt_time.min)
            # All-day events end at midnight after the last day.
            end_dt = datetime.combine(end + timedelta(days=1), dt_time.min)
        else:
            start_dt = datetime.combine(start, start_time or dt_time.min)
            end_dt = datetime.combine(end, end_time or dt_time(23, 59, 59))
        event = {
            "subject": subject,
            "body": {"contentType": "HTML", "content": body},
            "start": {"dateTime": start_dt.isoformat(timespec="seconds"), "timeZone": self.time_zone},
            "end": {"dateTime": end_dt.isoformat(timespec="seconds"), "timeZone": self.time_zone},
            "isAllDay": is_all_day,
            "showAs": "oof",
            "categories": ["Absence"],
        }
        return await self._request("POST", f"/users/{user_id}/calendar/events", json=event)

    async def set_automatic_replies(self, user_id: str, setting: dict) -> None:
        await self._request(
            "PATCH",
            f"/users/{user_id}/mailboxSettings",
            json={"automaticRepliesSetting": setting},
        )
        logger.info("Automatic replies set for %s (status=%s)", user_id, setting.get("status"))

    async def send_mail(self, from_user: str, to_email: str, subject: str, html: str) -> None:
        message = {
            "message": {
                "subject": subject,
                "body": {"contentType": "HTML", "content": html},
                "toRecipients": [{"emailAddress": {"address": to_email}}],
            }
        }
        await self._request("POST", f"/users/{from_user}/sendMail", json=message)

    # ── Chat ────────────────────────────────────────────────────────
    async def send_chat_message(self, user_id: str, html: str) -> str:
        """Post *html* into a one-on-one chat with *user_id*; returns the chat id."""
        chat = await self._request(
            "POST",
            "/chats",
            json={
                "chatType": "oneOnOne",
                "members": [
                    {
                        "@odata.type": "#microsoft.graph.aadUserConversationMember",
                        "roles": ["owner"],
                        "user@odata.bind": f"{self.settings.base_url}/users('{user_id}')",
                    }
                ],
            },
        )
        chat_id = (chat or {}).get("id")
        if not chat_id:
            raise GraphError(f"Could not open chat with {user_id}")
        await self._request(
            "POST",
            f"/chats/{chat_id}/messages",
            json={"body": {"contentType": "html", "content": html}},
        )
        return chat_id
