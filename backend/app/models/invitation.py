from datetime import datetime

from pydantic import BaseModel, Field

from app.models.meeting import utcnow
from app.utils.documents import clean_document


class EmailResult(BaseModel):
    """수신자별 발송 결과"""

    success: bool
    guest_email: str = Field(alias="guestEmail")
    message_id: str | None = Field(default=None, alias="messageId")
    error: str | None = None

    class Config:
        populate_by_name = True


class InvitationRecord(BaseModel):
    """초대 메일 발송 기록 (invitations 컬렉션, append-only)"""

    meeting_id: str = Field(alias="meetingId")
    host_id: str = Field(alias="hostId")
    host_name: str = Field(alias="hostName")
    title: str
    description: str | None = None
    start_time: datetime = Field(alias="startTime")
    end_time: datetime | None = Field(default=None, alias="endTime")
    guest_emails: list[str] = Field(alias="guestEmails")
    email_results: list[EmailResult] = Field(default_factory=list, alias="emailResults")
    sent_at: datetime = Field(default_factory=utcnow, alias="sentAt")
    status: str = "sent"

    class Config:
        populate_by_name = True

    def to_document(self) -> dict:
        return clean_document(self.model_dump(by_alias=True))
