from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from app.models.chat import MessageType


class ChatMessageInput(BaseModel):
    """종료 시점에 저장할 채팅 메시지"""

    sender_id: str = Field(min_length=1, alias="senderId")
    sender_name: str = Field(alias="senderName")
    message: str
    timestamp: datetime
    message_type: MessageType = Field(default=MessageType.TEXT, alias="messageType")
    is_private: bool = Field(default=False, alias="isPrivate")
    recipient_id: str | None = Field(default=None, alias="recipientId")
    file_url: str | None = Field(default=None, alias="fileUrl")
    file_name: str | None = Field(default=None, alias="fileName")

    class Config:
        populate_by_name = True


class SaveChatRequest(BaseModel):
    """채팅 일괄 저장 요청"""

    meeting_id: str = Field(min_length=1, alias="meetingId")
    # 메시지는 항목별로 검증 (잘못된 항목만 건너뜀)
    messages: list[dict[str, Any]]

    class Config:
        populate_by_name = True


class SaveChatResponse(BaseModel):
    """채팅 일괄 저장 결과 (개수만 보고)"""

    success: bool = True
    saved_count: int = Field(serialization_alias="savedCount")
    failed_count: int = Field(serialization_alias="failedCount")
    total_count: int = Field(serialization_alias="totalCount")
    skipped_indexes: list[int] = Field(default_factory=list, serialization_alias="skippedIndexes")

    class Config:
        populate_by_name = True


class CreateChatSessionRequest(BaseModel):
    """채팅 세션 생성 요청"""

    meeting_id: str = Field(min_length=1, alias="meetingId")

    class Config:
        populate_by_name = True
