"""녹화 관련 Pydantic 스키마"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class SaveRecordingRequest(BaseModel):
    """녹화 메타데이터 저장 요청"""

    meeting_id: str = Field(min_length=1, alias="meetingId")
    call_id: str = Field(min_length=1, alias="callId")
    recording_url: str = Field(min_length=1, alias="recordingUrl")
    started_at: datetime | None = Field(default=None, alias="startedAt")
    ended_at: datetime | None = Field(default=None, alias="endedAt")
    created_by: list[str] = Field(default_factory=lambda: ["system"], alias="createdBy")

    class Config:
        populate_by_name = True

    @field_validator("created_by", mode="before")
    @classmethod
    def wrap_single_creator(cls, value):
        if isinstance(value, str):
            return [value]
        return value


class StopRecordingRequest(BaseModel):
    """녹화 중지 요청 (meetingId 생략 시 callId 사용)"""

    meeting_id: str | None = Field(default=None, alias="meetingId")

    class Config:
        populate_by_name = True
