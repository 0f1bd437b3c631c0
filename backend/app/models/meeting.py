from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from app.core.constants import DEFAULT_MEETING_TIMEZONE, DEFAULT_NOTIFICATION_MINUTES
from app.utils.documents import clean_document


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MeetingStatus(str, Enum):
    """회의 상태"""

    SCHEDULED = "scheduled"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Meeting(BaseModel):
    """회의 문서 (meetings 컬렉션)"""

    meeting_id: str = Field(alias="meetingId")
    host_id: str = Field(alias="hostId")
    host_name: str = Field(alias="hostName")
    title: str
    description: str = ""
    start_time: datetime = Field(alias="startTime")
    end_time: datetime = Field(alias="endTime")
    # 사용자 ID 또는 이메일
    guests: list[str] = Field(default_factory=list)
    timezone: str = DEFAULT_MEETING_TIMEZONE
    notification_time: int = Field(default=DEFAULT_NOTIFICATION_MINUTES, alias="notificationTime")
    status: MeetingStatus = MeetingStatus.SCHEDULED
    meeting_url: str = Field(default="", alias="meetingUrl")
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")
    updated_at: datetime = Field(default_factory=utcnow, alias="updatedAt")

    class Config:
        populate_by_name = True
        use_enum_values = True

    def to_document(self) -> dict:
        return clean_document(self.model_dump(by_alias=True))
