"""회의실 세션 상태

회의 ID, 사용자, 표시 이름, 장치 설정, 수집된 채팅, 녹화 여부를
하나의 객체로 관리하며 `async with` 범위가 곧 세션 수명입니다.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from app.client.api_client import WISMeetAPIClient, WISMeetAPIError
from app.services.chat_service import resolve_private_target
from app.services.stream_service import StreamVideoService

logger = logging.getLogger(__name__)


@dataclass
class DevicePreferences:
    camera_enabled: bool = True
    mic_enabled: bool = True


@dataclass
class MeetingRoomSession:
    """회의실 세션"""

    client: WISMeetAPIClient
    meeting_id: str
    user_id: str
    display_name: str
    devices: DevicePreferences = field(default_factory=DevicePreferences)
    messages: list[dict] = field(default_factory=list)
    is_host: bool = False
    is_recording: bool = False
    is_active: bool = False

    async def __aenter__(self) -> "MeetingRoomSession":
        await self.client.connect()
        try:
            await self.client.join_channel(self.user_id, self.meeting_id)
        except WISMeetAPIError as e:
            logger.warning(f"Chat channel unavailable for {self.meeting_id}: {e}")
        self.is_active = True
        return self

    async def __aexit__(self, *exc_info) -> None:
        try:
            if self.is_active:
                await self.end_call()
        finally:
            await self.client.disconnect()

    @property
    def join_metadata(self) -> dict:
        """통화 참여 시 전달할 표시 이름 / 장치 설정"""
        return StreamVideoService.join_metadata(
            self.display_name,
            camera_enabled=self.devices.camera_enabled,
            mic_enabled=self.devices.mic_enabled,
        )

    def record_message(
        self,
        sender_id: str,
        sender_name: str,
        text: str,
        timestamp: datetime | None = None,
    ) -> dict:
        """수신한 채팅 메시지를 종료 시 저장용으로 수집"""
        target = resolve_private_target(text)
        message = {
            "senderId": sender_id,
            "senderName": sender_name or "Anonymous",
            "message": text,
            "timestamp": (timestamp or datetime.now(timezone.utc)).isoformat(),
            "isPrivate": target.is_private,
        }
        if target.recipient_id:
            message["recipientId"] = target.recipient_id
        self.messages.append(message)
        return message

    async def toggle_recording(self) -> bool:
        """녹화 시작/중지 전환

        Returns:
            전환 후 녹화 여부
        """
        if self.is_recording:
            await self.client.stop_recording(self.meeting_id, self.meeting_id)
            self.is_recording = False
        else:
            await self.client.start_recording(self.meeting_id)
            self.is_recording = True
        return self.is_recording

    async def save_chat(self) -> dict | None:
        """수집한 채팅 일괄 저장 (성공 시 버퍼 비움)"""
        if not self.messages:
            return None
        result = await self.client.save_chat(self.meeting_id, self.messages)
        self.messages.clear()
        return result

    async def end_call(self) -> None:
        """채팅 저장 후 통화 종료 (저장 실패해도 종료)

        호스트는 통화 자체를 종료하고 회의를 completed로 바꿉니다.
        """
        try:
            await self.save_chat()
        except WISMeetAPIError as e:
            logger.error(f"Failed to save chat for {self.meeting_id}: {e}")

        if self.is_recording:
            try:
                await self.client.stop_recording(self.meeting_id, self.meeting_id)
            except WISMeetAPIError as e:
                logger.error(f"Failed to stop recording for {self.meeting_id}: {e}")
            self.is_recording = False

        if self.is_host:
            try:
                await self.client.end_call(self.meeting_id)
            except WISMeetAPIError as e:
                logger.error(f"Failed to end call {self.meeting_id}: {e}")

        self.is_active = False
