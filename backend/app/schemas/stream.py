from pydantic import BaseModel, Field, field_validator

from app.core.constants import CHAT_CHANNEL_TYPES


class ChatTokenRequest(BaseModel):
    """채팅 토큰 발급 요청"""

    user_id: str = Field(min_length=1, alias="userId")
    user_name: str | None = Field(default=None, alias="userName")
    user_image: str | None = Field(default=None, alias="userImage")

    class Config:
        populate_by_name = True


class ChatTokenResponse(BaseModel):
    token: str
    user_id: str = Field(serialization_alias="userId")
    user_name: str | None = Field(default=None, serialization_alias="userName")
    user_image: str | None = Field(default=None, serialization_alias="userImage")

    class Config:
        populate_by_name = True


class StreamParticipant(BaseModel):
    """채팅 사용자로 등록할 참여자"""

    user_id: str = Field(min_length=1, alias="userId")
    name: str | None = None
    image: str | None = None

    class Config:
        populate_by_name = True


class CreateUsersRequest(BaseModel):
    participants: list[StreamParticipant]


class JoinChannelRequest(BaseModel):
    """채팅 채널 참여 요청"""

    user_id: str = Field(min_length=1, alias="userId")
    meeting_id: str = Field(min_length=1, alias="meetingId")
    user_name: str | None = Field(default=None, alias="userName")
    user_image: str | None = Field(default=None, alias="userImage")

    class Config:
        populate_by_name = True


class ReconcileRequest(BaseModel):
    """참여자 동기화 요청"""

    meeting_id: str = Field(min_length=1, alias="meetingId")
    # 지정하지 않으면 회의 채널 타입을 자동 탐색
    channel_type: str | None = Field(default=None, alias="channelType")

    class Config:
        populate_by_name = True

    @field_validator("channel_type")
    @classmethod
    def check_channel_type(cls, value: str | None) -> str | None:
        if value is not None and value not in CHAT_CHANNEL_TYPES:
            raise ValueError(f"channelType must be one of {list(CHAT_CHANNEL_TYPES)}")
        return value
