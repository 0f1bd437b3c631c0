"""회의 예약 서비스

통화 생성 -> 회의 저장 -> 초대 메일 발송 -> 발송 기록 순서로 진행합니다.
초대 메일 실패는 회의 생성을 되돌리지 않고 경고로만 보고합니다.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone

from app.core.config import Settings, get_settings
from app.core.constants import DEFAULT_MEETING_DURATION_MINUTES
from app.models.invitation import InvitationRecord
from app.models.meeting import Meeting, MeetingStatus
from app.schemas.auth import CurrentUser
from app.schemas.common import ServiceResult
from app.schemas.meeting import (
    InstantMeetingRequest,
    ScheduleMeetingRequest,
    SendInvitationsRequest,
)
from app.services.email_service import (
    EmailService,
    InvitationContent,
    is_email_address,
    summarize_results,
)
from app.services.invitation_service import InvitationService
from app.services.meeting_service import MeetingService
from app.services.stream_service import StreamAPIError, StreamVideoService

logger = logging.getLogger(__name__)

INVITATION_WARNING = (
    "Meeting created successfully, but invitation emails failed to send. "
    "Please check your email configuration."
)


class SchedulingService:
    """회의 예약 / 즉시 시작 / 초대 발송"""

    def __init__(
        self,
        meetings: MeetingService,
        invitations: InvitationService,
        email: EmailService,
        video: StreamVideoService,
        settings: Settings | None = None,
    ):
        self.meetings = meetings
        self.invitations = invitations
        self.email = email
        self.video = video
        self.settings = settings or get_settings()

    async def send_invitations(
        self, host_id: str, request: SendInvitationsRequest
    ) -> ServiceResult[dict]:
        """초대 메일 발송 및 기록

        Returns:
            message, statistics, results, meetingLink.
            SMTP 설정 검증 실패 시 EMAIL_NOT_CONFIGURED
        """
        verification = await self.email.verify_config()
        if not verification.success:
            return ServiceResult.fail("EMAIL_NOT_CONFIGURED")

        meeting_link = self.settings.meeting_url(request.meeting_id)
        content = InvitationContent(
            title=request.title,
            host_name=request.host_name,
            start_time=request.start_time,
            end_time=request.end_time,
            description=request.description,
            meeting_link=meeting_link,
        )
        results = await self.email.send_bulk_invitations(content, request.guest_emails)

        record = InvitationRecord(
            meeting_id=request.meeting_id,
            host_id=host_id,
            host_name=request.host_name,
            title=request.title,
            description=request.description,
            start_time=request.start_time,
            end_time=request.end_time,
            guest_emails=request.guest_emails,
            email_results=results,
        )
        recorded = await self.invitations.record(record)
        if not recorded.success:
            logger.warning(f"Invitation history not recorded for {request.meeting_id}")

        return ServiceResult.ok(
            {
                "message": "Invitations sent successfully",
                "statistics": summarize_results(results),
                "results": [r.model_dump(by_alias=True, exclude_none=True) for r in results],
                "meetingLink": meeting_link,
            }
        )

    async def schedule(
        self, host: CurrentUser, request: ScheduleMeetingRequest
    ) -> ServiceResult[dict]:
        """회의 예약

        Returns:
            meetingId, meetingUrl, status, invitations(통계 또는 None), warning
        """
        meeting_id = request.meeting_id or str(uuid.uuid4())
        end_time = request.end_time or request.start_time + timedelta(
            minutes=DEFAULT_MEETING_DURATION_MINUTES
        )
        description = request.description or "Scheduled Meeting"

        try:
            await self.video.get_or_create_call(
                meeting_id,
                created_by_id=host.id,
                starts_at=request.start_time,
                description=description,
                custom={
                    "host": host.display_name,
                    "guests": request.guests,
                    "timezone": request.timezone,
                    "notificationTime": request.notification_time,
                },
            )
        except StreamAPIError as e:
            logger.error(f"Failed to create call for scheduled meeting {meeting_id}: {e}")
            return ServiceResult.fail(e)

        meeting = Meeting(
            meeting_id=meeting_id,
            host_id=host.id,
            host_name=host.display_name,
            title=request.title,
            description=request.description or "",
            start_time=request.start_time,
            end_time=end_time,
            guests=request.guests,
            status=MeetingStatus.SCHEDULED,
            meeting_url=self.settings.meeting_url(meeting_id),
            **self._optional_meeting_fields(request),
        )
        saved = await self.meetings.save_meeting(meeting)
        if not saved.success:
            return ServiceResult.fail(saved.error or "Failed to save meeting")

        data: dict = {
            "meetingId": meeting_id,
            "meetingUrl": meeting.meeting_url,
            "status": MeetingStatus.SCHEDULED.value,
            "invitations": None,
            "warning": None,
        }
        # 사용자 ID 게스트는 초대 메일 대상이 아님
        guest_emails = [guest for guest in request.guests if is_email_address(guest)]
        if not guest_emails:
            return ServiceResult.ok(data)

        sent = await self.send_invitations(
            host.id,
            SendInvitationsRequest(
                meeting_id=meeting_id,
                title=request.title,
                description=request.description,
                start_time=request.start_time,
                end_time=end_time,
                guest_emails=guest_emails,
                host_name=host.display_name,
            ),
        )
        if not sent.success:
            data["warning"] = INVITATION_WARNING
            return ServiceResult.ok(data)

        statistics = sent.data["statistics"]
        data["invitations"] = statistics
        if statistics["successful"] == 0:
            data["warning"] = INVITATION_WARNING
        elif statistics["failed"]:
            data["warning"] = (
                f"{statistics['successful']}/{statistics['total']} invitation emails sent "
                f"successfully. {statistics['failed']} failed."
            )
        return ServiceResult.ok(data)

    async def start_instant(
        self, host: CurrentUser, request: InstantMeetingRequest
    ) -> ServiceResult[dict]:
        """즉시 회의 시작 (상태 ongoing, 시작 시각 현재)"""
        meeting_id = request.meeting_id or str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        description = request.description or "Instant Meeting"

        try:
            await self.video.get_or_create_call(
                meeting_id,
                created_by_id=host.id,
                starts_at=now,
                description=description,
                custom={"host": host.display_name},
            )
        except StreamAPIError as e:
            logger.error(f"Failed to create instant call {meeting_id}: {e}")
            return ServiceResult.fail(e)

        meeting = Meeting(
            meeting_id=meeting_id,
            host_id=host.id,
            host_name=host.display_name,
            title=request.title or "Instant Meeting",
            description=description,
            start_time=now,
            end_time=now + timedelta(minutes=DEFAULT_MEETING_DURATION_MINUTES),
            status=MeetingStatus.ONGOING,
            meeting_url=self.settings.meeting_url(meeting_id),
        )
        saved = await self.meetings.save_meeting(meeting)
        if not saved.success:
            return ServiceResult.fail(saved.error or "Failed to save meeting")

        return ServiceResult.ok(
            {
                "meetingId": meeting_id,
                "meetingUrl": meeting.meeting_url,
                "status": MeetingStatus.ONGOING.value,
            }
        )

    @staticmethod
    def _optional_meeting_fields(request: ScheduleMeetingRequest) -> dict:
        fields = {}
        if request.timezone:
            fields["timezone"] = request.timezone
        if request.notification_time is not None:
            fields["notification_time"] = request.notification_time
        return fields
