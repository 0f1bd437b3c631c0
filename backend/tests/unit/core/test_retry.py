"""고정 횟수 폴링 테스트"""

from unittest.mock import AsyncMock

import pytest

from app.core.retry import RetryPolicy, poll_until


@pytest.fixture
def no_sleep():
    return AsyncMock()


@pytest.mark.asyncio
async def test_returns_first_ready_result(no_sleep):
    fetch = AsyncMock(side_effect=[[], [], ["rec"]])

    result = await poll_until(fetch, bool, RetryPolicy(max_attempts=5, interval=5), sleep=no_sleep)

    assert result == ["rec"]
    assert fetch.await_count == 3
    assert no_sleep.await_count == 2
    no_sleep.assert_awaited_with(5)


@pytest.mark.asyncio
async def test_returns_none_after_max_attempts(no_sleep):
    """모든 시도 소진 시 None"""
    fetch = AsyncMock(return_value=[])

    result = await poll_until(fetch, bool, RetryPolicy(max_attempts=5, interval=5), sleep=no_sleep)

    assert result is None
    assert fetch.await_count == 5


def test_policy_validation():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0, interval=1)
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=1, interval=-1)
