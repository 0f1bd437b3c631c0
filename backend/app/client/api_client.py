"""WISMeet Backend API 클라이언트"""

import logging
from datetime import datetime
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class WISMeetAPIError(Exception):
    """API 호출 실패 (HTTP 오류 응답 포함)"""

    def __init__(self, message: str, status_code: int | None = None, detail: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class WISMeetAPIClient:
    """WISMeet Backend API 클라이언트

    사용자 ID 토큰을 Bearer로 전달합니다.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url
        self._token = token
        self._transport = transport
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        """HTTP 클라이언트 초기화"""
        if self._client is not None:
            return

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self._timeout),
            transport=self._transport,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self._token}",
            },
        )

    async def disconnect(self) -> None:
        """HTTP 클라이언트 종료"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "WISMeetAPIClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.disconnect()

    async def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        if self._client is None:
            await self.connect()

        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise WISMeetAPIError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 400:
            try:
                detail = response.json().get("detail")
            except ValueError:
                detail = response.text
            message = detail.get("message") if isinstance(detail, dict) else str(detail)
            raise WISMeetAPIError(
                message or f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
                detail=detail,
            )

        return response.json()

    # ===== Meetings =====

    async def get_meetings(self, meeting_filter: str = "all", limit: int = 50) -> list[dict]:
        data = await self._request(
            "GET", "/api/meetings/get", params={"filter": meeting_filter, "limit": limit}
        )
        return data.get("meetings", [])

    async def schedule_meeting(
        self,
        title: str,
        start_time: datetime,
        guests: list[str],
        end_time: datetime | None = None,
        description: str | None = None,
        timezone: str | None = None,
        notification_time: int | None = None,
    ) -> dict:
        body: dict[str, Any] = {
            "title": title,
            "startTime": start_time.isoformat(),
            "guests": guests,
        }
        if end_time:
            body["endTime"] = end_time.isoformat()
        if description:
            body["description"] = description
        if timezone:
            body["timezone"] = timezone
        if notification_time is not None:
            body["notificationTime"] = notification_time
        return await self._request("POST", "/api/meetings/schedule", json=body)

    async def start_instant_meeting(self, title: str | None = None) -> dict:
        return await self._request(
            "POST", "/api/meetings/instant", json={"title": title} if title else {}
        )

    async def update_meeting_status(self, meeting_id: str, status: str) -> dict:
        return await self._request(
            "PATCH", f"/api/meetings/{meeting_id}/status", json={"status": status}
        )

    # ===== Chat =====

    async def save_chat(self, meeting_id: str, messages: list[dict]) -> dict:
        return await self._request(
            "POST", "/api/chat/save", json={"meetingId": meeting_id, "messages": messages}
        )

    async def get_chat_history(self, meeting_id: str) -> list[dict]:
        data = await self._request("GET", "/api/chat/history", params={"meetingId": meeting_id})
        return data.get("messages", [])

    # ===== Recordings / Calls =====

    async def get_recordings(self, user_id: str) -> list[dict]:
        data = await self._request("GET", "/api/recordings", params={"createdBy": user_id})
        return data.get("recordings", [])

    async def get_calls(self, scope: str) -> list[dict]:
        data = await self._request("GET", "/api/stream/calls", params={"scope": scope})
        return data.get("calls", [])

    async def start_recording(self, call_id: str) -> dict:
        return await self._request("POST", f"/api/stream/calls/{call_id}/recording/start")

    async def stop_recording(self, call_id: str, meeting_id: str | None = None) -> dict:
        return await self._request(
            "POST",
            f"/api/stream/calls/{call_id}/recording/stop",
            json={"meetingId": meeting_id} if meeting_id else None,
        )

    async def end_call(self, call_id: str) -> dict:
        return await self._request("POST", f"/api/stream/calls/{call_id}/end")

    async def join_channel(self, user_id: str, meeting_id: str) -> dict:
        return await self._request(
            "POST",
            "/api/stream/join-channel",
            json={"userId": user_id, "meetingId": meeting_id},
        )
