"""회의 예약 서비스 테스트"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.models.invitation import EmailResult
from app.schemas.auth import CurrentUser
from app.schemas.common import ServiceResult
from app.schemas.meeting import (
    InstantMeetingRequest,
    ScheduleMeetingRequest,
    SendInvitationsRequest,
)
from app.services.email_service import EmailService
from app.services.invitation_service import InvitationService
from app.services.meeting_service import MeetingService
from app.services.scheduling_service import INVITATION_WARNING, SchedulingService
from app.services.stream_service import StreamAPIError

HOST = CurrentUser(id="host_1", email="host@example.com", name="Host User")


def delivery(*outcomes: tuple[str, bool]) -> list[EmailResult]:
    return [
        EmailResult(
            success=ok,
            guest_email=email,
            message_id="<id@wismeet>" if ok else None,
            error=None if ok else "550 rejected",
        )
        for email, ok in outcomes
    ]


@pytest.fixture
def email():
    email = MagicMock(spec=EmailService)
    email.verify_config = AsyncMock(return_value=ServiceResult.ok())
    email.send_bulk_invitations = AsyncMock(return_value=[])
    return email


@pytest.fixture
def scheduling_service(mock_db, mock_stream_video, email, test_settings):
    return SchedulingService(
        MeetingService(mock_db),
        InvitationService(mock_db),
        email,
        mock_stream_video,
        test_settings,
    )


def schedule_request(**kwargs) -> ScheduleMeetingRequest:
    return ScheduleMeetingRequest(
        title="Kickoff",
        start_time=datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc),
        meeting_id="meeting_1",
        **kwargs,
    )


class TestSchedule:
    @pytest.mark.asyncio
    async def test_partial_invitation_failure(self, scheduling_service, email, mock_db):
        """메일 1건 실패: 회의는 저장되고 통계에 반영"""
        email.send_bulk_invitations.return_value = delivery(("a@x.com", True), ("b@x.com", False))

        result = await scheduling_service.schedule(
            HOST,
            schedule_request(
                end_time=datetime(2025, 1, 1, 11, 0, tzinfo=timezone.utc),
                guests=["a@x.com", "b@x.com"],
            ),
        )

        assert result.success is True
        meeting = mock_db.meetings.insert_one.await_args.args[0]
        assert meeting["status"] == "scheduled"
        assert meeting["meetingUrl"] == "https://meet.example.com/meeting/meeting_1"
        assert result.data["invitations"] == {
            "total": 2,
            "successful": 1,
            "failed": 1,
            "successRate": "50.0%",
        }
        assert result.data["warning"].startswith("1/2 invitation emails sent")

        invitation = mock_db.invitations.insert_one.await_args.args[0]
        assert invitation["guestEmails"] == ["a@x.com", "b@x.com"]
        assert invitation["status"] == "sent"
        assert len(invitation["emailResults"]) == 2

    @pytest.mark.asyncio
    async def test_default_end_time_is_one_hour(self, scheduling_service, mock_db):
        await scheduling_service.schedule(HOST, schedule_request())

        meeting = mock_db.meetings.insert_one.await_args.args[0]
        assert meeting["endTime"] == datetime(2025, 1, 1, 11, 0, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_no_guests_skips_email(self, scheduling_service, email):
        result = await scheduling_service.schedule(HOST, schedule_request())

        assert result.data["invitations"] is None
        assert result.data["warning"] is None
        email.verify_config.assert_not_called()

    @pytest.mark.asyncio
    async def test_only_email_guests_are_invited(self, scheduling_service, email, mock_db):
        """사용자 ID 게스트는 회의에는 저장되지만 메일은 받지 않음"""
        email.send_bulk_invitations.return_value = delivery(("a@x.com", True))

        result = await scheduling_service.schedule(
            HOST, schedule_request(guests=["user_42", "a@x.com"])
        )

        assert result.data["invitations"]["total"] == 1
        assert email.send_bulk_invitations.await_args.args[1] == ["a@x.com"]
        assert mock_db.meetings.insert_one.await_args.args[0]["guests"] == ["user_42", "a@x.com"]

    @pytest.mark.asyncio
    async def test_user_id_guests_only_skip_email(self, scheduling_service, email):
        result = await scheduling_service.schedule(HOST, schedule_request(guests=["user_42"]))

        assert result.data["invitations"] is None
        email.verify_config.assert_not_called()

    @pytest.mark.asyncio
    async def test_email_not_configured_keeps_meeting(self, scheduling_service, email, mock_db):
        """메일 설정 오류는 경고로만 보고"""
        email.verify_config.return_value = ServiceResult.fail("auth failed")

        result = await scheduling_service.schedule(HOST, schedule_request(guests=["a@x.com"]))

        assert result.success is True
        assert result.data["warning"] == INVITATION_WARNING
        mock_db.meetings.insert_one.assert_awaited_once()
        mock_db.invitations.insert_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_call_creation_failure(self, scheduling_service, mock_stream_video, mock_db):
        mock_stream_video.get_or_create_call.side_effect = StreamAPIError("unauthorized", 401)

        result = await scheduling_service.schedule(HOST, schedule_request())

        assert result.success is False
        mock_db.meetings.insert_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_custom_timezone_and_notification(self, scheduling_service, mock_db):
        await scheduling_service.schedule(
            HOST, schedule_request(timezone="Asia/Seoul", notification_time=30)
        )

        meeting = mock_db.meetings.insert_one.await_args.args[0]
        assert meeting["timezone"] == "Asia/Seoul"
        assert meeting["notificationTime"] == 30


class TestSendInvitations:
    @pytest.mark.asyncio
    async def test_returns_statistics_and_link(self, scheduling_service, email):
        email.send_bulk_invitations.return_value = delivery(("a@x.com", True))

        result = await scheduling_service.send_invitations(
            "host_1",
            SendInvitationsRequest(
                meeting_id="meeting_1",
                title="Kickoff",
                start_time=datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc),
                guest_emails=["a@x.com"],
                host_name="Host User",
            ),
        )

        assert result.success is True
        assert result.data["meetingLink"] == "https://meet.example.com/meeting/meeting_1"
        assert result.data["statistics"]["successRate"] == "100.0%"
        assert result.data["results"] == [
            {"success": True, "guestEmail": "a@x.com", "messageId": "<id@wismeet>"}
        ]


class TestStartInstant:
    @pytest.mark.asyncio
    async def test_instant_meeting_is_ongoing(self, scheduling_service, mock_db):
        result = await scheduling_service.start_instant(HOST, InstantMeetingRequest())

        assert result.success is True
        assert result.data["status"] == "ongoing"
        meeting = mock_db.meetings.insert_one.await_args.args[0]
        assert meeting["title"] == "Instant Meeting"
        assert meeting["hostId"] == "host_1"
