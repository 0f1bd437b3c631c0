from datetime import datetime

from pydantic import BaseModel, Field

from app.models.meeting import utcnow
from app.utils.documents import clean_document


class Recording(BaseModel):
    """녹화 메타데이터 문서 (recordings 컬렉션)

    녹화 중지 시 한 번 생성되며 이후 수정되지 않습니다.
    """

    recording_id: str = Field(alias="recordingId")
    meeting_id: str = Field(alias="meetingId")
    call_id: str = Field(alias="callId")
    recording_url: str = Field(alias="recordingUrl")
    started_at: datetime | None = Field(default=None, alias="startedAt")
    ended_at: datetime | None = Field(default=None, alias="endedAt")
    # 녹화 당시 참여자 ID 목록
    created_by: list[str] = Field(default_factory=list, alias="createdBy")
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")

    class Config:
        populate_by_name = True

    def to_document(self) -> dict:
        return clean_document(self.model_dump(by_alias=True))
