"""회의 예약 흐름"""

import logging
from dataclasses import dataclass
from datetime import datetime

from app.client.api_client import WISMeetAPIClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduleOutcome:
    meeting_id: str
    meeting_url: str
    statistics: dict | None = None
    warning: str | None = None

    @property
    def fully_delivered(self) -> bool:
        return self.warning is None


async def schedule_meeting(
    client: WISMeetAPIClient,
    title: str,
    start_time: datetime,
    guests: list[str],
    description: str | None = None,
    end_time: datetime | None = None,
    timezone: str | None = None,
    notification_time: int | None = None,
) -> ScheduleOutcome:
    """회의를 예약하고 초대 결과를 반환

    회의 생성이 실패하면 WISMeetAPIError가 발생하고,
    초대 메일 실패는 warning으로만 전달됩니다.
    """
    data = await client.schedule_meeting(
        title,
        start_time,
        guests,
        end_time=end_time,
        description=description,
        timezone=timezone,
        notification_time=notification_time,
    )
    outcome = ScheduleOutcome(
        meeting_id=data["meetingId"],
        meeting_url=data["meetingUrl"],
        statistics=data.get("invitations"),
        warning=data.get("warning"),
    )
    if outcome.warning:
        logger.warning(f"Meeting {outcome.meeting_id} scheduled with warning: {outcome.warning}")
    return outcome
