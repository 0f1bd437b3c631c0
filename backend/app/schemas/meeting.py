from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from app.models.meeting import MeetingStatus


class MeetingFilter(str, Enum):
    """회의 목록 필터"""

    ALL = "all"
    UPCOMING = "upcoming"
    PAST = "past"


class SaveMeetingRequest(BaseModel):
    """회의 저장 요청"""

    meeting_id: str = Field(min_length=1, alias="meetingId")
    host_id: str = Field(min_length=1, alias="hostId")
    host_name: str = Field(min_length=1, alias="hostName")
    title: str = Field(min_length=1)
    start_time: datetime = Field(alias="startTime")
    end_time: datetime = Field(alias="endTime")
    description: str | None = None
    guests: list[str] = Field(default_factory=list)
    timezone: str | None = None
    notification_time: int | None = Field(default=None, alias="notificationTime")
    status: MeetingStatus = MeetingStatus.SCHEDULED

    class Config:
        populate_by_name = True


class SendInvitationsRequest(BaseModel):
    """초대 메일 발송 요청"""

    meeting_id: str = Field(min_length=1, alias="meetingId")
    title: str = Field(min_length=1)
    start_time: datetime = Field(alias="startTime")
    end_time: datetime | None = Field(default=None, alias="endTime")
    description: str | None = None
    guest_emails: list[str] = Field(min_length=1, alias="guestEmails")
    host_name: str = Field(min_length=1, alias="hostName")

    class Config:
        populate_by_name = True


class ScheduleMeetingRequest(BaseModel):
    """회의 예약 요청 (통화 생성 + 저장 + 초대)"""

    title: str = Field(min_length=1, max_length=255)
    start_time: datetime = Field(alias="startTime")
    end_time: datetime | None = Field(default=None, alias="endTime")
    description: str | None = Field(default=None, max_length=2000)
    guests: list[str] = Field(default_factory=list)
    timezone: str | None = None
    notification_time: int | None = Field(default=None, alias="notificationTime")
    meeting_id: str | None = Field(default=None, alias="meetingId")

    class Config:
        populate_by_name = True


class InstantMeetingRequest(BaseModel):
    """즉시 회의 시작 요청"""

    title: str | None = None
    description: str | None = None
    meeting_id: str | None = Field(default=None, alias="meetingId")

    class Config:
        populate_by_name = True


class UpdateMeetingStatusRequest(BaseModel):
    """회의 상태 변경 요청"""

    status: MeetingStatus
