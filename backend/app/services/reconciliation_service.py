"""참여자 동기화 서비스

통화 참여자와 채팅 채널 멤버를 비교하여 누락된 참여자를
채팅 사용자로 등록한 뒤 채널에 추가합니다.

- 참여자 입장/퇴장 이벤트: 1초 디바운스 후 실행
- 주기 실행: 10초 간격
- 변화가 없으면 쓰기 호출 없음
"""

import asyncio
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from app.core.constants import (
    CHAT_CHANNEL_TYPES,
    NUMERIC_PARTICIPANT_ID_PATTERN,
    RECONCILE_DEBOUNCE_SECONDS,
    RECONCILE_INTERVAL_SECONDS,
)
from app.core.telemetry import record_counter
from app.schemas.common import ServiceResult
from app.services.stream_service import StreamAPIError, StreamChatService, StreamVideoService

logger = logging.getLogger(__name__)

_NUMERIC_ID = re.compile(NUMERIC_PARTICIPANT_ID_PATTERN)


def find_missing_participants(
    video_participant_ids: Iterable[str],
    chat_member_ids: Iterable[str],
) -> list[str]:
    """채팅 채널에 없는 통화 참여자 ID (숫자로만 된 ID 제외, 순서 유지)"""
    members = set(chat_member_ids)
    missing: list[str] = []
    for participant_id in video_participant_ids:
        if not participant_id or _NUMERIC_ID.match(participant_id):
            continue
        if participant_id not in members and participant_id not in missing:
            missing.append(participant_id)
    return missing


@dataclass
class ReconcileReport:
    meeting_id: str
    added: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"meetingId": self.meeting_id, "added": self.added, "failed": self.failed}


class ParticipantReconciler:
    """통화 참여자 -> 채팅 멤버 동기화

    채널 타입을 지정하지 않으면 채널 생성 때와 같은 순서
    (messaging -> team -> livestream)로 회의 채널을 찾고,
    찾은 타입은 회의별로 기억합니다.
    """

    def __init__(
        self,
        chat: StreamChatService,
        video: StreamVideoService,
        channel_type: str | None = None,
    ):
        self.chat = chat
        self.video = video
        self.channel_type = channel_type
        self._channel_types: dict[str, str] = {}

    def remember_channel(self, meeting_id: str, channel_type: str) -> None:
        """채널 생성/참여 결과로 확정된 채널 타입 기록"""
        self._channel_types[meeting_id] = channel_type

    def forget(self, meeting_id: str) -> None:
        self._channel_types.pop(meeting_id, None)

    def _candidate_types(self, meeting_id: str) -> list[str]:
        if self.channel_type:
            return [self.channel_type]
        known = self._channel_types.get(meeting_id)
        if known is None:
            return list(CHAT_CHANNEL_TYPES)
        return [known, *(t for t in CHAT_CHANNEL_TYPES if t != known)]

    async def _find_channel(self, meeting_id: str) -> tuple[str, list[str]]:
        """회의 채널 타입과 멤버 ID 조회

        Raises:
            StreamAPIError: 어느 타입에서도 채널을 찾지 못함
        """
        last_error: StreamAPIError | None = None
        for channel_type in self._candidate_types(meeting_id):
            try:
                member_ids = await self.chat.query_members(channel_type, meeting_id)
            except StreamAPIError as e:
                last_error = e
                continue
            self._channel_types[meeting_id] = channel_type
            return channel_type, member_ids
        raise last_error

    async def reconcile(self, meeting_id: str) -> ServiceResult[ReconcileReport]:
        """한 회의에 대해 동기화 1회 실행"""
        report = ReconcileReport(meeting_id=meeting_id)
        try:
            participant_ids = await self.video.get_participants(meeting_id)
            channel_type, member_ids = await self._find_channel(meeting_id)
        except StreamAPIError as e:
            logger.error(f"Reconcile lookup failed for {meeting_id}: {e}")
            return ServiceResult.fail(e)

        missing = find_missing_participants(participant_ids, member_ids)
        if not missing:
            return ServiceResult.ok(report)

        logger.info(
            f"Reconciling {len(missing)} participant(s) into {channel_type} chat for {meeting_id}"
        )
        for user_id in missing:
            try:
                await self.chat.ensure_user(user_id)
                await self.chat.add_members(channel_type, meeting_id, [user_id])
                report.added.append(user_id)
            except StreamAPIError as e:
                logger.warning(f"Failed to add {user_id} to chat for {meeting_id}: {e}")
                report.failed.append(user_id)

        record_counter("reconcile_added_total", len(report.added))
        return ServiceResult.ok(report)


class ReconcileScheduler:
    """회의별 디바운스 / 주기 동기화 스케줄러"""

    def __init__(
        self,
        reconciler: ParticipantReconciler,
        debounce_seconds: float = RECONCILE_DEBOUNCE_SECONDS,
        interval_seconds: float = RECONCILE_INTERVAL_SECONDS,
    ):
        self.reconciler = reconciler
        self.debounce_seconds = debounce_seconds
        self.interval_seconds = interval_seconds
        self._pending: dict[str, asyncio.Task] = {}
        self._periodic: dict[str, asyncio.Task] = {}

    def notify(self, meeting_id: str) -> asyncio.Task:
        """참여자 변경 알림 (디바운스 창 안의 이전 요청은 취소)"""
        previous = self._pending.get(meeting_id)
        if previous and not previous.done():
            previous.cancel()

        task = asyncio.create_task(self._debounced(meeting_id))
        self._pending[meeting_id] = task
        return task

    async def _reconcile_safely(self, meeting_id: str) -> None:
        # 예상하지 못한 오류도 로그만 남기고 다음 실행 유지
        try:
            await self.reconciler.reconcile(meeting_id)
        except Exception:
            logger.exception(f"Reconcile crashed for {meeting_id}")

    async def _debounced(self, meeting_id: str) -> None:
        try:
            await asyncio.sleep(self.debounce_seconds)
            await self._reconcile_safely(meeting_id)
        finally:
            if self._pending.get(meeting_id) is asyncio.current_task():
                del self._pending[meeting_id]

    def start_periodic(self, meeting_id: str) -> None:
        running = self._periodic.get(meeting_id)
        if running is not None and not running.done():
            return
        self._periodic[meeting_id] = asyncio.create_task(self._run_periodic(meeting_id))
        logger.info(f"Periodic reconcile started: {meeting_id}")

    async def _run_periodic(self, meeting_id: str) -> None:
        try:
            while True:
                await asyncio.sleep(self.interval_seconds)
                await self._reconcile_safely(meeting_id)
        finally:
            if self._periodic.get(meeting_id) is asyncio.current_task():
                del self._periodic[meeting_id]

    def stop(self, meeting_id: str) -> None:
        """회의 종료 시 예약된 동기화 취소"""
        for tasks in (self._pending, self._periodic):
            task = tasks.pop(meeting_id, None)
            if task and not task.done():
                task.cancel()
        self.reconciler.forget(meeting_id)

    async def shutdown(self) -> None:
        tasks = [*self._pending.values(), *self._periodic.values()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._pending.clear()
        self._periodic.clear()
