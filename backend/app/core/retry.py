"""고정 횟수 폴링 정책

지수 백오프 없이 정해진 간격으로 최대 N회까지 조회합니다.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """폴링 정책 (최대 시도 횟수, 시도 간 대기 시간)"""

    max_attempts: int
    interval: float

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.interval < 0:
            raise ValueError("interval must be >= 0")


async def poll_until(
    fetch: Callable[[], Awaitable[T]],
    is_ready: Callable[[T], bool],
    policy: RetryPolicy,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    label: str = "poll",
) -> T | None:
    """조건을 만족할 때까지 fetch를 반복 호출

    Args:
        fetch: 매 시도마다 호출할 코루틴 함수
        is_ready: 결과가 준비되었는지 판단하는 함수
        policy: 최대 시도 횟수 및 간격
        sleep: 대기 함수 (테스트에서 교체 가능)
        label: 로그용 이름

    Returns:
        준비된 결과 또는 None (모든 시도 소진 시)
    """
    for attempt in range(1, policy.max_attempts + 1):
        result = await fetch()
        if is_ready(result):
            return result

        logger.info(f"[{label}] Not ready (attempt {attempt}/{policy.max_attempts})")
        await sleep(policy.interval)

    return None
