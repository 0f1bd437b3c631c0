"""회의실 세션 / 예약 흐름 테스트"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.client.api_client import WISMeetAPIClient, WISMeetAPIError
from app.client.meeting_room import DevicePreferences, MeetingRoomSession
from app.client.scheduling import schedule_meeting


@pytest.fixture
def client():
    client = MagicMock(spec=WISMeetAPIClient)
    client.connect = AsyncMock()
    client.disconnect = AsyncMock()
    client.join_channel = AsyncMock(return_value={"success": True})
    client.save_chat = AsyncMock(return_value={"success": True, "savedCount": 1})
    client.start_recording = AsyncMock(return_value={"success": True})
    client.stop_recording = AsyncMock(return_value={"success": True})
    return client


@pytest.fixture
def session(client):
    return MeetingRoomSession(client, "meeting_1", "user_1", "User One")


class TestMeetingRoomSession:
    def test_record_private_message(self, session):
        message = session.record_message("user_1", "User One", "@user_2 hello")

        assert message["isPrivate"] is True
        assert message["recipientId"] == "user_2"
        assert session.messages == [message]

    def test_record_anonymous_sender(self, session):
        message = session.record_message(
            "user_3", "", "hi", timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc)
        )

        assert message["senderName"] == "Anonymous"
        assert message["timestamp"] == "2025-01-01T00:00:00+00:00"
        assert "recipientId" not in message

    @pytest.mark.asyncio
    async def test_end_call_saves_chat_and_stops_recording(self, session, client):
        """종료 시 채팅 저장 + 녹화 중지"""
        async with session:
            session.record_message("user_1", "User One", "hello")
            assert await session.toggle_recording() is True

        client.save_chat.assert_awaited_once()
        assert client.save_chat.await_args.args[0] == "meeting_1"
        client.stop_recording.assert_awaited_once_with("meeting_1", "meeting_1")
        assert session.messages == []
        assert session.is_recording is False
        assert session.is_active is False

    @pytest.mark.asyncio
    async def test_end_call_survives_save_failure(self, session, client):
        client.save_chat.side_effect = WISMeetAPIError("Failed to save chat", 500)

        async with session:
            session.record_message("user_1", "User One", "hello")

        assert session.is_active is False
        # 저장 실패한 메시지는 버퍼에 남음
        assert len(session.messages) == 1
        client.disconnect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_join_channel_failure_does_not_block(self, session, client):
        client.join_channel.side_effect = WISMeetAPIError("Failed to create or join any chat channel", 500)

        async with session:
            assert session.is_active is True

    @pytest.mark.asyncio
    async def test_host_ends_call(self, client):
        client.end_call = AsyncMock(return_value={"success": True})
        session = MeetingRoomSession(client, "meeting_1", "host_1", "Host", is_host=True)

        async with session:
            pass

        client.end_call.assert_awaited_once_with("meeting_1")
        client.disconnect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_client_closed_when_end_call_fails(self, client):
        client.end_call = AsyncMock(side_effect=RuntimeError("network down"))
        session = MeetingRoomSession(client, "meeting_1", "host_1", "Host", is_host=True)

        with pytest.raises(RuntimeError):
            async with session:
                pass

        client.disconnect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_guest_leaves_without_ending(self, session, client):
        client.end_call = AsyncMock()

        async with session:
            pass

        client.end_call.assert_not_called()

    def test_join_metadata_uses_device_preferences(self, client):
        session = MeetingRoomSession(
            client, "meeting_1", "user_1", "User One", devices=DevicePreferences(mic_enabled=False)
        )

        assert session.join_metadata == {
            "name": "User One",
            "custom": {"initialCameraEnabled": True, "initialMicEnabled": False},
        }

    @pytest.mark.asyncio
    async def test_save_chat_without_messages(self, session, client):
        assert await session.save_chat() is None
        client.save_chat.assert_not_called()


@pytest.mark.asyncio
async def test_schedule_meeting_with_warning(client):
    client.schedule_meeting = AsyncMock(
        return_value={
            "success": True,
            "meetingId": "meeting_1",
            "meetingUrl": "https://meet.example.com/meeting/meeting_1",
            "status": "scheduled",
            "invitations": {"total": 2, "successful": 1, "failed": 1, "successRate": "50.0%"},
            "warning": "1/2 invitation emails sent successfully. 1 failed.",
        }
    )

    outcome = await schedule_meeting(
        client,
        "Kickoff",
        datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc),
        ["a@x.com", "b@x.com"],
    )

    assert outcome.meeting_id == "meeting_1"
    assert outcome.statistics["successRate"] == "50.0%"
    assert outcome.fully_delivered is False
