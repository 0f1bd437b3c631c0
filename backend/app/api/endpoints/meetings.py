"""회의 API 엔드포인트"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.dependencies import (
    CurrentUserDep,
    get_meeting_service,
    get_invitation_service,
    get_scheduling_service,
    handle_service_error,
    require_query,
)
from app.core.config import get_settings
from app.core.constants import MEETINGS_DEFAULT_LIMIT
from app.models.meeting import Meeting
from app.schemas import ErrorResponse
from app.schemas.meeting import (
    InstantMeetingRequest,
    MeetingFilter,
    SaveMeetingRequest,
    ScheduleMeetingRequest,
    SendInvitationsRequest,
    UpdateMeetingStatusRequest,
)
from app.services.invitation_service import InvitationService
from app.services.meeting_service import MeetingService
from app.services.scheduling_service import SchedulingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/meetings", tags=["Meetings"])

MeetingServiceDep = Annotated[MeetingService, Depends(get_meeting_service)]
SchedulingServiceDep = Annotated[SchedulingService, Depends(get_scheduling_service)]


@router.post(
    "/save",
    status_code=status.HTTP_200_OK,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
    },
)
async def save_meeting(
    request: SaveMeetingRequest,
    current_user: CurrentUserDep,
    meeting_service: MeetingServiceDep,
):
    """회의 저장

    meetingUrl은 공유 링크 기본 주소로 생성됩니다.
    """
    meeting_url = get_settings().meeting_url(request.meeting_id)
    meeting = Meeting(
        meeting_id=request.meeting_id,
        host_id=request.host_id,
        host_name=request.host_name,
        title=request.title,
        description=request.description or "",
        start_time=request.start_time,
        end_time=request.end_time,
        guests=request.guests,
        status=request.status,
        meeting_url=meeting_url,
        **({"timezone": request.timezone} if request.timezone else {}),
        **(
            {"notification_time": request.notification_time}
            if request.notification_time is not None
            else {}
        ),
    )

    result = await meeting_service.save_meeting(meeting)
    if not result.success:
        handle_service_error(result.error, "Failed to save meeting")

    return {
        "success": True,
        "message": "Meeting saved successfully",
        "data": result.data,
        "meetingUrl": meeting_url,
    }


@router.get("/get")
async def get_meetings(
    current_user: CurrentUserDep,
    meeting_service: MeetingServiceDep,
    meeting_filter: MeetingFilter = Query(default=MeetingFilter.ALL, alias="filter"),
    limit: int = Query(default=MEETINGS_DEFAULT_LIMIT, ge=1, le=100),
):
    """사용자가 호스트 또는 게스트인 회의 목록

    각 회의에 isHost, isUpcoming, isPast, timeUntilStart가 포함됩니다.
    """
    result = await meeting_service.list_for_user(
        current_user.id,
        email=current_user.email,
        meeting_filter=meeting_filter,
        limit=limit,
    )
    if not result.success:
        handle_service_error(result.error, "Failed to fetch meetings")

    return {
        "success": True,
        "meetings": result.data,
        "count": len(result.data),
        "filter": meeting_filter.value,
        "userId": current_user.id,
    }


@router.post("/send-invitations")
async def send_invitations(
    request: SendInvitationsRequest,
    current_user: CurrentUserDep,
    scheduling_service: SchedulingServiceDep,
):
    """초대 메일 발송

    SMTP 설정 확인 후 게스트마다 순차 발송하고 결과를 기록합니다.
    일부 실패는 통계로만 보고됩니다.
    """
    result = await scheduling_service.send_invitations(current_user.id, request)
    if not result.success:
        handle_service_error(result.error, "Failed to send invitations")

    return {"success": True, **result.data}


@router.get("/send-invitations")
async def get_invitation_history(
    current_user: CurrentUserDep,
    invitation_service: Annotated[InvitationService, Depends(get_invitation_service)],
    meeting_id: str | None = Query(default=None, alias="meetingId"),
):
    """회의의 초대 발송 기록"""
    require_query(meetingId=meeting_id)

    result = await invitation_service.get_history(meeting_id, current_user.id)
    if not result.success:
        handle_service_error(result.error, "Failed to fetch invitation history")

    return {"success": True, "invitations": result.data}


@router.post(
    "/schedule",
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
    },
)
async def schedule_meeting(
    request: ScheduleMeetingRequest,
    current_user: CurrentUserDep,
    scheduling_service: SchedulingServiceDep,
):
    """회의 예약 (통화 생성, 저장, 초대 발송)

    초대 메일 실패 시에도 회의는 생성되며 warning이 포함됩니다.
    """
    result = await scheduling_service.schedule(current_user, request)
    if not result.success:
        handle_service_error(result.error, "Failed to schedule meeting")

    return {"success": True, **result.data}


@router.post("/instant", status_code=status.HTTP_201_CREATED)
async def start_instant_meeting(
    current_user: CurrentUserDep,
    scheduling_service: SchedulingServiceDep,
    request: InstantMeetingRequest | None = None,
):
    """즉시 회의 시작"""
    result = await scheduling_service.start_instant(current_user, request or InstantMeetingRequest())
    if not result.success:
        handle_service_error(result.error, "Failed to create meeting")

    return {"success": True, **result.data}


@router.patch(
    "/{meeting_id}/status",
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def update_meeting_status(
    meeting_id: str,
    request: UpdateMeetingStatusRequest,
    current_user: CurrentUserDep,
    meeting_service: MeetingServiceDep,
):
    """회의 상태 변경 (호스트만)"""
    found = await meeting_service.get_by_id(meeting_id)
    if not found.success:
        handle_service_error(found.error, "Failed to fetch meeting")
    if found.data is None:
        handle_service_error("MEETING_NOT_FOUND")
    if found.data.get("hostId") != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": "FORBIDDEN", "message": "Only the meeting host can change status"},
        )

    result = await meeting_service.update_status(meeting_id, request.status)
    if not result.success:
        handle_service_error(result.error, "Failed to update meeting status")

    logger.info(f"Meeting {meeting_id} status -> {request.status.value}")
    return {"success": True, "modifiedCount": result.data, "status": request.status.value}
