"""Stream Video / Chat 서비스 - 토큰 생성, 통화 관리, 녹화 제어, 채팅 채널

Stream REST API를 httpx로 호출하여:
- 채팅 사용자 토큰 생성
- 채팅 사용자 조회/생성, 채널 생성/멤버 추가
- 통화 생성/조회, 녹화 시작/중지/조회, 통화 종료
"""

import json
import logging
from datetime import datetime
from typing import Any

import httpx

from app.core.config import Settings, get_settings
from app.core.constants import CHAT_CHANNEL_TYPES
from app.core.security import sign_stream_token
from app.core.telemetry import timed_vendor_call

logger = logging.getLogger(__name__)


class StreamAPIError(Exception):
    """Stream API 호출 실패"""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class StreamNotConfiguredError(StreamAPIError):
    def __init__(self):
        super().__init__("Stream API configuration is missing")


class ChannelSetupError(StreamAPIError):
    """모든 채널 타입에서 채널 생성/참여 실패"""


def _operation_label(method: str, path: str) -> str:
    """메트릭 라벨용 경로 (ID가 들어가는 하위 경로 제외)"""
    resource = path.strip("/").split("/", 1)[0]
    return f"{method} /{resource}"


class StreamClient:
    """Stream REST 공통 클라이언트 (서버 토큰 인증)"""

    log_prefix = "[Stream]"

    def __init__(
        self,
        base_url: str,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or get_settings()
        self.base_url = base_url
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def is_configured(self) -> bool:
        """Stream 설정 완료 여부"""
        return self.settings.stream_configured

    def server_token(self) -> str:
        return sign_stream_token({"server": True}, self.settings.stream_secret_key)

    async def connect(self) -> None:
        """HTTP 클라이언트 초기화"""
        if self._client is not None:
            return

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(30.0),
            transport=self._transport,
            headers={"Content-Type": "application/json"},
        )

    async def disconnect(self) -> None:
        """HTTP 클라이언트 종료"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        json_body: dict | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        if not self.is_configured:
            raise StreamNotConfiguredError()

        if self._client is None:
            await self.connect()

        query = {"api_key": self.settings.stream_api_key, **(params or {})}
        headers = {
            "Authorization": self.server_token(),
            "stream-auth-type": "jwt",
        }

        try:
            with timed_vendor_call("stream", _operation_label(method, path)):
                response = await self._client.request(
                    method, path, json=json_body, params=query, headers=headers
                )
        except httpx.HTTPError as e:
            raise StreamAPIError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 400:
            try:
                message = response.json().get("message") or response.text
            except ValueError:
                message = response.text
            raise StreamAPIError(
                f"{method} {path} returned {response.status_code}: {message}",
                status_code=response.status_code,
            )

        if not response.content:
            return {}
        return response.json()


class StreamChatService(StreamClient):
    """Stream Chat 연동 서비스"""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = settings or get_settings()
        super().__init__(settings.stream_chat_base_url, settings, transport)

    def create_user_token(self, user_id: str) -> str:
        """채팅 사용자 토큰 생성

        Raises:
            StreamNotConfiguredError: API 키/시크릿이 없는 경우
        """
        if not self.is_configured:
            raise StreamNotConfiguredError()
        token = sign_stream_token({"user_id": user_id}, self.settings.stream_secret_key)
        logger.info(f"{self.log_prefix} Generated chat token for user: {user_id}")
        return token

    async def query_users(self, user_ids: list[str]) -> list[dict]:
        if not user_ids:
            return []
        payload = {"filter_conditions": {"id": {"$in": user_ids}}, "limit": len(user_ids)}
        data = await self._request("GET", "/users", params={"payload": json.dumps(payload)})
        return data.get("users", [])

    async def upsert_users(self, users: list[dict]) -> dict[str, dict]:
        """사용자 생성/갱신

        Args:
            users: {"id", "name", "image"} 목록

        Returns:
            id -> 사용자 정보
        """
        body = {"users": {user["id"]: user for user in users}}
        data = await self._request("POST", "/users", json_body=body)
        return data.get("users", {})

    async def ensure_user(
        self, user_id: str, name: str | None = None, image: str | None = None
    ) -> dict:
        """채팅 사용자가 없으면 생성

        Returns:
            기존 또는 새로 생성된 사용자
        """
        try:
            existing = await self.query_users([user_id])
            if existing:
                return existing[0]
        except StreamAPIError as e:
            logger.info(f"{self.log_prefix} User lookup failed for {user_id}, creating: {e}")

        user: dict[str, Any] = {"id": user_id, "name": name or user_id}
        if image:
            user["image"] = image
        created = await self.upsert_users([user])
        logger.info(f"{self.log_prefix} Created chat user: {user_id}")
        return created.get(user_id, user)

    async def ensure_users(
        self, participants: list[dict]
    ) -> tuple[list[dict], list[dict]]:
        """여러 참여자 사용자 보장 (한 명 실패가 전체를 중단하지 않음)

        Returns:
            (생성/확인된 사용자 목록, 실패 목록 [{userId, error}])
        """
        users: list[dict] = []
        errors: list[dict] = []
        for participant in participants:
            user_id = participant["userId"]
            try:
                users.append(
                    await self.ensure_user(user_id, participant.get("name"), participant.get("image"))
                )
            except StreamAPIError as e:
                logger.error(f"{self.log_prefix} Failed to create user {user_id}: {e}")
                errors.append({"userId": user_id, "error": str(e)})
        return users, errors

    async def add_members(self, channel_type: str, channel_id: str, user_ids: list[str]) -> None:
        await self._request(
            "POST",
            f"/channels/{channel_type}/{channel_id}",
            json_body={"add_members": [{"user_id": user_id} for user_id in user_ids]},
        )
        logger.info(f"{self.log_prefix} Added {user_ids} to channel {channel_type}:{channel_id}")

    async def query_members(self, channel_type: str, channel_id: str) -> list[str]:
        """채널 멤버 ID 목록"""
        payload = {"type": channel_type, "id": channel_id, "filter_conditions": {}}
        data = await self._request("GET", "/members", params={"payload": json.dumps(payload)})
        return [m["user_id"] for m in data.get("members", []) if m.get("user_id")]

    async def create_channel(
        self,
        channel_type: str,
        channel_id: str,
        created_by_id: str,
        members: list[str] | None = None,
    ) -> dict:
        data = {
            "name": f"Meeting {channel_id}",
            "members": members or [created_by_id],
            "created_by_id": created_by_id,
        }
        result = await self._request(
            "POST",
            f"/channels/{channel_type}/{channel_id}/query",
            json_body={"data": data, "state": False, "watch": False},
        )
        return result.get("channel", {})

    async def get_or_create_channel(
        self,
        channel_id: str,
        created_by_id: str,
        members: list[str] | None = None,
        channel_types: tuple[str, ...] = CHAT_CHANNEL_TYPES,
    ) -> tuple[str, dict]:
        """채널 생성 (messaging -> team -> livestream 순서로 시도)

        Returns:
            (성공한 채널 타입, 채널 정보)

        Raises:
            ChannelSetupError: 모든 타입 실패 시 (마지막 실패만 보고)
        """
        last_error: StreamAPIError | None = None
        for channel_type in channel_types:
            try:
                channel = await self.create_channel(channel_type, channel_id, created_by_id, members)
                logger.info(f"{self.log_prefix} {channel_type} channel ready: {channel_id}")
                return channel_type, channel
            except StreamAPIError as e:
                logger.warning(f"{self.log_prefix} {channel_type} channel failed for {channel_id}: {e}")
                last_error = e

        raise ChannelSetupError(f"Channel setup failed for {channel_id}: {last_error}")

    async def join_channel(
        self,
        user_id: str,
        meeting_id: str,
        channel_types: tuple[str, ...] = CHAT_CHANNEL_TYPES[:2],
    ) -> tuple[str, bool]:
        """기존 채널에 참여, 실패 시 사용자를 멤버로 채널 생성

        Returns:
            (채널 타입, 새로 생성 여부)

        Raises:
            ChannelSetupError: 참여/생성 모두 실패
        """
        try:
            await self.add_members(channel_types[0], meeting_id, [user_id])
            return channel_types[0], False
        except StreamAPIError as e:
            logger.info(
                f"{self.log_prefix} Could not add {user_id} to {meeting_id}, creating channel: {e}"
            )

        channel_type, _ = await self.get_or_create_channel(
            meeting_id, user_id, [user_id], channel_types
        )
        return channel_type, True


class StreamVideoService(StreamClient):
    """Stream Video 연동 서비스"""

    log_prefix = "[StreamVideo]"

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = settings or get_settings()
        super().__init__(settings.stream_video_base_url, settings, transport)
        self.call_type = settings.stream_call_type

    def _call_path(self, call_id: str, action: str = "") -> str:
        path = f"/call/{self.call_type}/{call_id}"
        return f"{path}/{action}" if action else path

    async def get_or_create_call(
        self,
        call_id: str,
        created_by_id: str,
        starts_at: datetime | None = None,
        description: str | None = None,
        custom: dict[str, Any] | None = None,
    ) -> dict:
        """회의 ID를 통화 ID로 사용해 통화 생성 (이미 있으면 조회)"""
        data: dict[str, Any] = {
            "created_by_id": created_by_id,
            "members": [{"user_id": created_by_id, "role": "host"}],
            "custom": {**(custom or {}), "description": description or ""},
        }
        if starts_at is not None:
            data["starts_at"] = starts_at.isoformat()

        result = await self._request("POST", self._call_path(call_id), json_body={"data": data})
        logger.info(f"{self.log_prefix} Call ready: {call_id} (created={result.get('created')})")
        return result.get("call", {})

    async def get_call(self, call_id: str) -> dict:
        result = await self._request("GET", self._call_path(call_id))
        return result.get("call", {})

    async def get_participants(self, call_id: str) -> list[str]:
        """현재 세션 참여자 ID 목록 (중복 제거, 순서 유지)"""
        call = await self.get_call(call_id)
        session = call.get("session") or {}
        participant_ids: list[str] = []
        for participant in session.get("participants") or []:
            user_id = (participant.get("user") or {}).get("id")
            if user_id and user_id not in participant_ids:
                participant_ids.append(user_id)
        return participant_ids

    @staticmethod
    def join_metadata(
        display_name: str,
        camera_enabled: bool = True,
        mic_enabled: bool = True,
    ) -> dict[str, Any]:
        """참여 시 전달할 사용자 메타데이터"""
        return {
            "name": display_name,
            "custom": {
                "initialCameraEnabled": camera_enabled,
                "initialMicEnabled": mic_enabled,
            },
        }

    async def start_recording(self, call_id: str) -> None:
        await self._request("POST", self._call_path(call_id, "start_recording"), json_body={})
        logger.info(f"{self.log_prefix} Recording started: {call_id}")

    async def stop_recording(self, call_id: str) -> None:
        await self._request("POST", self._call_path(call_id, "stop_recording"), json_body={})
        logger.info(f"{self.log_prefix} Recording stopped: {call_id}")

    async def list_recordings(self, call_id: str) -> list[dict]:
        result = await self._request("GET", self._call_path(call_id, "recordings"))
        return result.get("recordings", [])

    async def end_call(self, call_id: str) -> None:
        await self._request("POST", self._call_path(call_id, "mark_ended"), json_body={})
        logger.info(f"{self.log_prefix} Call ended: {call_id}")

    async def query_calls(
        self,
        user_id: str,
        scope: str = "upcoming",
        now: datetime | None = None,
        limit: int = 25,
    ) -> list[dict]:
        """사용자의 통화 목록

        Args:
            scope: upcoming (시작 전) / ended (종료됨)
        """
        filter_conditions: dict[str, Any] = {
            "$or": [{"created_by_user_id": user_id}, {"members": {"$in": [user_id]}}]
        }
        if scope == "ended":
            filter_conditions["ended_at"] = {"$exists": True}
            sort = [{"field": "starts_at", "direction": -1}]
        else:
            if now is not None:
                filter_conditions["starts_at"] = {"$gt": now.isoformat()}
            filter_conditions["ended_at"] = {"$exists": False}
            sort = [{"field": "starts_at", "direction": 1}]

        result = await self._request(
            "POST",
            "/calls",
            json_body={"filter_conditions": filter_conditions, "sort": sort, "limit": limit},
        )
        return [entry.get("call", entry) for entry in result.get("calls", [])]
