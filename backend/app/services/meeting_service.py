"""회의 서비스"""

import logging
import math
from datetime import datetime, timezone
from typing import Any

from app.core.database import MongoDatabase
from app.models.meeting import Meeting, MeetingStatus
from app.schemas.common import ServiceResult
from app.schemas.meeting import MeetingFilter
from app.utils.documents import serialize_document

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def annotate_meeting(
    meeting: dict[str, Any],
    user_id: str,
    now: datetime | None = None,
) -> dict[str, Any]:
    """회의 문서에 사용자 관점 정보 추가

    - isHost: 요청자가 호스트인지
    - isUpcoming: 시작 시각이 현재 이후인지
    - isPast: isUpcoming의 반대
    - timeUntilStart: 시작까지 남은 일수 (내림), 지난 회의는 None
    """
    now = now or datetime.now(timezone.utc)
    start_time = _as_utc(meeting["startTime"])
    is_upcoming = start_time > now

    time_until_start = None
    if is_upcoming:
        time_until_start = math.floor((start_time - now).total_seconds() / SECONDS_PER_DAY)

    return {
        **serialize_document(meeting),
        "isHost": meeting.get("hostId") == user_id,
        "isUpcoming": is_upcoming,
        "isPast": not is_upcoming,
        "timeUntilStart": time_until_start,
    }


class MeetingService:
    """회의 문서 저장/조회 서비스"""

    def __init__(self, db: MongoDatabase):
        self.db = db

    async def save_meeting(self, meeting: Meeting) -> ServiceResult[dict]:
        """회의 저장

        Returns:
            insertedId, meetingId를 담은 결과
        """
        try:
            result = await self.db.meetings.insert_one(meeting.to_document())
            logger.info(f"Meeting saved: {meeting.meeting_id} ({result.inserted_id})")
            return ServiceResult.ok(
                {"insertedId": str(result.inserted_id), "meetingId": meeting.meeting_id}
            )
        except Exception as e:
            logger.error(f"Failed to save meeting {meeting.meeting_id}: {e}")
            return ServiceResult.fail(e)

    async def get_by_id(self, meeting_id: str) -> ServiceResult[dict | None]:
        try:
            meeting = await self.db.meetings.find_one({"meetingId": meeting_id})
            return ServiceResult.ok(serialize_document(meeting) if meeting else None)
        except Exception as e:
            logger.error(f"Failed to retrieve meeting {meeting_id}: {e}")
            return ServiceResult.fail(e)

    async def update_status(
        self, meeting_id: str, status: MeetingStatus
    ) -> ServiceResult[int]:
        """회의 상태 변경

        Returns:
            변경된 문서 수
        """
        try:
            result = await self.db.meetings.update_one(
                {"meetingId": meeting_id},
                {
                    "$set": {
                        "status": MeetingStatus(status).value,
                        "updatedAt": datetime.now(timezone.utc),
                    }
                },
            )
            return ServiceResult.ok(result.modified_count)
        except Exception as e:
            logger.error(f"Failed to update meeting status {meeting_id}: {e}")
            return ServiceResult.fail(e)

    async def list_for_user(
        self,
        user_id: str,
        email: str | None = None,
        meeting_filter: MeetingFilter = MeetingFilter.ALL,
        limit: int | None = None,
        now: datetime | None = None,
    ) -> ServiceResult[list[dict]]:
        """사용자가 호스트이거나 게스트(ID 또는 이메일)인 회의 목록

        Args:
            user_id: 사용자 ID
            email: 사용자 이메일 (게스트 매칭용)
            meeting_filter: all / upcoming / past
            limit: 최대 개수 (None이면 전체)
            now: 기준 시각

        Returns:
            isHost/isUpcoming/isPast/timeUntilStart가 추가된 회의 목록
        """
        now = now or datetime.now(timezone.utc)
        conditions: list[dict] = [{"hostId": user_id}, {"guests": {"$in": [user_id]}}]
        if email:
            conditions.append({"guests": {"$in": [email]}})

        query: dict[str, Any] = {"$or": conditions}
        if meeting_filter == MeetingFilter.UPCOMING:
            query["startTime"] = {"$gte": now}
        elif meeting_filter == MeetingFilter.PAST:
            query["startTime"] = {"$lt": now}

        # 지난 회의는 최근 것부터
        direction = -1 if meeting_filter == MeetingFilter.PAST else 1

        try:
            cursor = self.db.meetings.find(query).sort("startTime", direction)
            if limit:
                cursor = cursor.limit(limit)
            meetings = await cursor.to_list()
            return ServiceResult.ok([annotate_meeting(m, user_id, now) for m in meetings])
        except Exception as e:
            logger.error(f"Failed to retrieve meetings for user {user_id}: {e}")
            return ServiceResult.fail(e)

    async def list_all(self) -> ServiceResult[list[dict]]:
        """전체 회의 목록 (디버그용, 최근 생성순)"""
        try:
            meetings = await self.db.meetings.find({}).sort("createdAt", -1).to_list()
            logger.info(f"Total meetings in database: {len(meetings)}")
            return ServiceResult.ok([serialize_document(m) for m in meetings])
        except Exception as e:
            logger.error(f"Failed to list meetings: {e}")
            return ServiceResult.fail(e)
