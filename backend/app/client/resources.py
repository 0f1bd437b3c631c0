"""조회 리소스 (data / is_loading / error / refetch)

의존 값이 바뀌거나 주기 타이머가 돌면 다시 조회합니다.
"""

import asyncio
import logging
from typing import Any, Generic, TypeVar

from app.client.api_client import WISMeetAPIClient, WISMeetAPIError
from app.core.constants import CALL_LIST_REFRESH_SECONDS

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Resource(Generic[T]):
    """조회 결과와 로딩/에러 상태를 보관하는 리소스"""

    refresh_interval: float | None = None

    def __init__(self, client: WISMeetAPIClient, dependency: Any = None):
        self.client = client
        self.dependency = dependency
        self.data: T | None = None
        self.is_loading = False
        self.error: str | None = None
        self._refresh_task: asyncio.Task | None = None

    async def fetch(self) -> T:
        raise NotImplementedError

    async def refetch(self) -> T | None:
        """다시 조회 (실패 시 기존 data 유지, error 설정)"""
        self.is_loading = True
        self.error = None
        try:
            self.data = await self.fetch()
        except WISMeetAPIError as e:
            logger.error(f"{self.__class__.__name__} fetch failed: {e}")
            self.error = str(e)
        finally:
            self.is_loading = False
        return self.data

    async def set_dependency(self, dependency: Any) -> None:
        """의존 값 변경 시 재조회 (같은 값이면 무시)"""
        if dependency == self.dependency:
            return
        self.dependency = dependency
        await self.refetch()

    def start(self) -> None:
        """refresh_interval 주기로 자동 재조회"""
        if self.refresh_interval is None or self._refresh_task is not None:
            return
        self._refresh_task = asyncio.create_task(self._refresh_loop())

    async def _refresh_loop(self) -> None:
        while True:
            await self.refetch()
            await asyncio.sleep(self.refresh_interval)

    async def stop(self) -> None:
        if self._refresh_task is None:
            return
        self._refresh_task.cancel()
        try:
            await self._refresh_task
        except asyncio.CancelledError:
            pass
        self._refresh_task = None


class MeetingsResource(Resource[list[dict]]):
    """사용자 회의 목록 (예정 / 지난 회의 분리)"""

    async def fetch(self) -> list[dict]:
        return await self.client.get_meetings("all", limit=50)

    @property
    def upcoming(self) -> list[dict]:
        return [m for m in self.data or [] if m.get("isUpcoming")]

    @property
    def past(self) -> list[dict]:
        return [m for m in self.data or [] if m.get("isPast")]


class RecordingsResource(Resource[list[dict]]):
    """사용자가 참여한 녹화 목록 (dependency = 사용자 ID)"""

    async def fetch(self) -> list[dict]:
        if not self.dependency:
            return []
        return await self.client.get_recordings(self.dependency)


class CallsResource(Resource[dict[str, list[dict]]]):
    """예정 / 종료된 통화 목록 (30초마다 갱신)"""

    refresh_interval = CALL_LIST_REFRESH_SECONDS

    async def fetch(self) -> dict[str, list[dict]]:
        upcoming, ended = await asyncio.gather(
            self.client.get_calls("upcoming"),
            self.client.get_calls("ended"),
        )
        return {"upcoming": upcoming, "ended": ended}

    @property
    def upcoming(self) -> list[dict]:
        return (self.data or {}).get("upcoming", [])

    @property
    def ended(self) -> list[dict]:
        return (self.data or {}).get("ended", [])


class ChatHistoryResource(Resource[list[dict]]):
    """회의 공개 채팅 기록 (dependency = 회의 ID)"""

    async def fetch(self) -> list[dict]:
        if not self.dependency:
            return []
        return await self.client.get_chat_history(self.dependency)
