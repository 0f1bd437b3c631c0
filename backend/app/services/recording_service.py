"""녹화 서비스

- 녹화 메타데이터 저장/조회
- 녹화 중지 후 Stream에서 처리된 녹화 파일을 폴링하여 저장
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from app.core.constants import RECORDING_POLL_INTERVAL_SECONDS, RECORDING_POLL_MAX_ATTEMPTS
from app.core.database import MongoDatabase
from app.core.retry import RetryPolicy, poll_until
from app.core.telemetry import record_counter
from app.models.recording import Recording
from app.schemas.common import ServiceResult
from app.services.stream_service import StreamAPIError, StreamVideoService
from app.utils.documents import generate_document_id, serialize_document

logger = logging.getLogger(__name__)

RECORDING_POLL_POLICY = RetryPolicy(
    max_attempts=RECORDING_POLL_MAX_ATTEMPTS,
    interval=RECORDING_POLL_INTERVAL_SECONDS,
)


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


class RecordingService:
    """녹화 메타데이터 서비스"""

    def __init__(self, db: MongoDatabase):
        self.db = db

    async def save_recording(
        self,
        meeting_id: str,
        call_id: str,
        recording_url: str,
        created_by: list[str],
        started_at: datetime | None = None,
        ended_at: datetime | None = None,
    ) -> ServiceResult[dict]:
        """녹화 메타데이터 저장

        Returns:
            insertedId, recordingId를 담은 결과
        """
        recording = Recording(
            recording_id=generate_document_id(meeting_id),
            meeting_id=meeting_id,
            call_id=call_id,
            recording_url=recording_url,
            started_at=started_at,
            ended_at=ended_at,
            created_by=created_by,
        )
        try:
            result = await self.db.recordings.insert_one(recording.to_document())
            logger.info(f"Recording saved: {recording.recording_id}")
            record_counter("recordings_saved_total")
            return ServiceResult.ok(
                {"insertedId": str(result.inserted_id), "recordingId": recording.recording_id}
            )
        except Exception as e:
            logger.error(f"Failed to save recording for meeting {meeting_id}: {e}")
            return ServiceResult.fail(e)

    async def get_meeting_recordings(self, meeting_id: str) -> ServiceResult[list[dict]]:
        try:
            recordings = (
                await self.db.recordings.find({"meetingId": meeting_id})
                .sort("startedAt", -1)
                .to_list()
            )
            return ServiceResult.ok([serialize_document(r) for r in recordings])
        except Exception as e:
            logger.error(f"Failed to get recordings for meeting {meeting_id}: {e}")
            return ServiceResult.fail(e)

    async def get_user_recordings(self, user_id: str) -> ServiceResult[list[dict]]:
        """사용자가 참여했던 녹화 목록 (createdBy 배열 포함 여부)"""
        try:
            recordings = (
                await self.db.recordings.find({"createdBy": {"$in": [user_id]}})
                .sort("startedAt", -1)
                .to_list()
            )
            return ServiceResult.ok([serialize_document(r) for r in recordings])
        except Exception as e:
            logger.error(f"Failed to get recordings for user {user_id}: {e}")
            return ServiceResult.fail(e)


class RecordingLifecycleService:
    """녹화 시작/중지 흐름 (Stream 녹화 + 메타데이터 저장)"""

    def __init__(
        self,
        video: StreamVideoService,
        recordings: RecordingService,
        policy: RetryPolicy = RECORDING_POLL_POLICY,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ):
        self.video = video
        self.recordings = recordings
        self.policy = policy
        self._sleep = sleep

    async def start(self, call_id: str) -> ServiceResult[None]:
        try:
            await self.video.start_recording(call_id)
            return ServiceResult.ok()
        except StreamAPIError as e:
            logger.error(f"Failed to start recording for call {call_id}: {e}")
            return ServiceResult.fail(e)

    async def stop_and_capture(
        self, call_id: str, meeting_id: str | None = None
    ) -> ServiceResult[dict | None]:
        """녹화 중지 후 녹화 파일이 준비될 때까지 폴링하여 저장

        녹화 파일이 끝내 없으면 경고만 남기고 성공(data=None)으로 반환합니다.
        """
        meeting_id = meeting_id or call_id
        try:
            await self.video.stop_recording(call_id)
        except StreamAPIError as e:
            logger.error(f"Failed to stop recording for call {call_id}: {e}")
            return ServiceResult.fail(e)

        try:
            participant_ids = await self.video.get_participants(call_id)
        except StreamAPIError as e:
            logger.warning(f"Failed to read participants for call {call_id}: {e}")
            participant_ids = []

        poll_kwargs = {"sleep": self._sleep} if self._sleep else {}
        try:
            recordings = await poll_until(
                lambda: self.video.list_recordings(call_id),
                lambda items: bool(items),
                self.policy,
                label=f"recording:{call_id}",
                **poll_kwargs,
            )
        except StreamAPIError as e:
            logger.error(f"Failed to query recordings for call {call_id}: {e}")
            return ServiceResult.fail(e)

        if not recordings:
            logger.warning(
                f"No recording found for call {call_id} after {self.policy.max_attempts} attempts"
            )
            return ServiceResult.ok(None)

        latest = recordings[-1]
        result = await self.recordings.save_recording(
            meeting_id=meeting_id,
            call_id=call_id,
            recording_url=latest.get("url", ""),
            created_by=participant_ids,
            started_at=_parse_timestamp(latest.get("start_time")),
            ended_at=_parse_timestamp(latest.get("end_time")),
        )
        if not result.success:
            return ServiceResult.fail(result.error or "Failed to save recording")
        return ServiceResult.ok(result.data)
