"""WISMeet API 클라이언트 (대시보드 / 회의실 상태)"""

from app.client.api_client import WISMeetAPIClient, WISMeetAPIError
from app.client.meeting_room import MeetingRoomSession
from app.client.resources import (
    CallsResource,
    ChatHistoryResource,
    MeetingsResource,
    RecordingsResource,
    Resource,
)
from app.client.scheduling import ScheduleOutcome, schedule_meeting

__all__ = [
    "WISMeetAPIClient",
    "WISMeetAPIError",
    "MeetingRoomSession",
    "Resource",
    "MeetingsResource",
    "RecordingsResource",
    "CallsResource",
    "ChatHistoryResource",
    "ScheduleOutcome",
    "schedule_meeting",
]
