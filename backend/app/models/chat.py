from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from app.models.meeting import utcnow
from app.utils.documents import clean_document


class MessageType(str, Enum):
    """채팅 메시지 타입"""

    TEXT = "text"
    FILE = "file"
    REACTION = "reaction"


class ChatMessage(BaseModel):
    """채팅 메시지 문서 (messages 컬렉션)"""

    message_id: str = Field(alias="messageId")
    meeting_id: str = Field(alias="meetingId")
    sender_id: str = Field(alias="senderId")
    sender_name: str = Field(alias="senderName")
    message: str
    message_type: MessageType = Field(default=MessageType.TEXT, alias="messageType")
    timestamp: datetime
    is_private: bool = Field(default=False, alias="isPrivate")
    recipient_id: str | None = Field(default=None, alias="recipientId")
    file_url: str | None = Field(default=None, alias="fileUrl")
    file_name: str | None = Field(default=None, alias="fileName")
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")

    class Config:
        populate_by_name = True
        use_enum_values = True

    def to_document(self) -> dict:
        return clean_document(self.model_dump(by_alias=True))


class ChatSession(BaseModel):
    """채팅 참여 세션 문서 (chat_sessions 컬렉션)

    lastActivity 기준 5분이 지나면 조회 시 비활성으로 간주합니다.
    """

    session_id: str = Field(alias="sessionId")
    meeting_id: str = Field(alias="meetingId")
    user_id: str = Field(alias="userId")
    joined_at: datetime = Field(default_factory=utcnow, alias="joinedAt")
    last_activity: datetime = Field(default_factory=utcnow, alias="lastActivity")
    is_active: bool = Field(default=True, alias="isActive")

    class Config:
        populate_by_name = True

    def to_document(self) -> dict:
        return clean_document(self.model_dump(by_alias=True))
