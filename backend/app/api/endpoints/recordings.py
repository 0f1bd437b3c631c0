"""녹화 메타데이터 API 엔드포인트"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import (
    CurrentUserDep,
    get_recording_service,
    handle_service_error,
    raise_missing_fields,
)
from app.schemas.recording import SaveRecordingRequest
from app.services.recording_service import RecordingService

router = APIRouter(prefix="/recordings", tags=["Recordings"])

RecordingServiceDep = Annotated[RecordingService, Depends(get_recording_service)]


@router.post("")
async def save_recording(
    request: SaveRecordingRequest,
    current_user: CurrentUserDep,
    recording_service: RecordingServiceDep,
):
    """녹화 메타데이터 저장"""
    result = await recording_service.save_recording(
        meeting_id=request.meeting_id,
        call_id=request.call_id,
        recording_url=request.recording_url,
        created_by=request.created_by,
        started_at=request.started_at,
        ended_at=request.ended_at,
    )
    if not result.success:
        handle_service_error(result.error, "Failed to save recording")

    return {"success": True, **result.data}


@router.get("")
async def list_recordings(
    current_user: CurrentUserDep,
    recording_service: RecordingServiceDep,
    created_by: str | None = Query(default=None, alias="createdBy"),
    meeting_id: str | None = Query(default=None, alias="meetingId"),
):
    """녹화 목록

    createdBy: 해당 참여자가 포함된 녹화
    meetingId: 해당 회의의 녹화
    """
    if not created_by and not meeting_id:
        raise_missing_fields(["createdBy"])

    if created_by:
        result = await recording_service.get_user_recordings(created_by)
    else:
        result = await recording_service.get_meeting_recordings(meeting_id)

    if not result.success:
        handle_service_error(result.error, "Failed to get recordings")

    return {"success": True, "recordings": result.data}
