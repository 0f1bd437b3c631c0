"""진단 API 엔드포인트"""

from enum import Enum
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import CurrentUserDep, Database, get_meeting_service, handle_service_error
from app.services.meeting_service import MeetingService

router = APIRouter(prefix="/debug", tags=["Debug"])


class DebugAction(str, Enum):
    LIST = "list"
    HEALTH = "health"
    USER = "user"


@router.get("/meetings")
async def debug_meetings(
    current_user: CurrentUserDep,
    db: Database,
    meeting_service: Annotated[MeetingService, Depends(get_meeting_service)],
    action: DebugAction = Query(default=DebugAction.LIST),
):
    """회의 저장소 진단

    - list: 전체 회의
    - health: DB 헬스 체크
    - user: 요청자의 회의
    """
    if action == DebugAction.HEALTH:
        return await db.check_health()

    if action == DebugAction.USER:
        result = await meeting_service.list_for_user(current_user.id, email=current_user.email)
    else:
        result = await meeting_service.list_all()

    if not result.success:
        handle_service_error(result.error, "Failed to list meetings")

    return {"success": True, "count": len(result.data), "meetings": result.data}
