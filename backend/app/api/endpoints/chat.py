"""채팅 API 엔드포인트"""

import logging
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from app.api.dependencies import (
    CurrentUserDep,
    Database,
    get_chat_service,
    get_meeting_service,
    handle_service_error,
    require_query,
)
from app.core.constants import CHAT_HISTORY_LIMIT
from app.schemas.chat import CreateChatSessionRequest, SaveChatRequest, SaveChatResponse
from app.services.chat_service import ChatService
from app.services.meeting_service import MeetingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["Chat"])

ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]


@router.post("/save")
async def save_chat(
    request: SaveChatRequest,
    current_user: CurrentUserDep,
    chat_service: ChatServiceDep,
):
    """통화 종료 시 채팅 일괄 저장

    모든 메시지를 동시에 저장하며 부분 실패는 개수로만 보고합니다.
    """
    stats = await chat_service.save_messages(request.meeting_id, request.messages)
    return SaveChatResponse(
        saved_count=stats.saved,
        failed_count=stats.failed,
        total_count=stats.total,
        skipped_indexes=list(stats.skipped),
    ).model_dump(by_alias=True)


@router.get("/history")
async def get_chat_history(
    current_user: CurrentUserDep,
    chat_service: ChatServiceDep,
    meeting_id: str | None = Query(default=None, alias="meetingId"),
):
    """공개 채팅 기록 (최근 100개, 시간순)"""
    require_query(meetingId=meeting_id)

    result = await chat_service.get_messages(meeting_id, CHAT_HISTORY_LIMIT)
    if not result.success:
        handle_service_error(result.error, "Failed to retrieve chat messages")

    return {"success": True, "messages": result.data, "count": len(result.data)}


@router.get("/private")
async def get_private_messages(
    current_user: CurrentUserDep,
    chat_service: ChatServiceDep,
    meeting_id: str | None = Query(default=None, alias="meetingId"),
):
    """요청자가 보내거나 받은 비공개 메시지"""
    require_query(meetingId=meeting_id)

    result = await chat_service.get_private_messages(meeting_id, current_user.id)
    if not result.success:
        handle_service_error(result.error, "Failed to retrieve private messages")

    return {"success": True, "messages": result.data, "count": len(result.data)}


@router.delete("/messages/{message_id}")
async def delete_message(
    message_id: str,
    current_user: CurrentUserDep,
    chat_service: ChatServiceDep,
    meeting_service: Annotated[MeetingService, Depends(get_meeting_service)],
    meeting_id: str | None = Query(default=None, alias="meetingId"),
):
    """메시지 삭제 (보낸 사람 또는 회의 호스트)"""
    is_host = False
    if meeting_id:
        meeting = await meeting_service.get_by_id(meeting_id)
        is_host = bool(meeting.success and meeting.data and meeting.data.get("hostId") == current_user.id)

    result = await chat_service.delete_message(message_id, current_user.id, is_host)
    if not result.success:
        handle_service_error(result.error, "Failed to delete message")

    return {"success": True, "deletedCount": result.data}


@router.post("/sessions", status_code=status.HTTP_201_CREATED)
async def create_chat_session(
    request: CreateChatSessionRequest,
    current_user: CurrentUserDep,
    chat_service: ChatServiceDep,
):
    """채팅 세션 시작"""
    result = await chat_service.create_session(request.meeting_id, current_user.id)
    if not result.success:
        handle_service_error(result.error, "Failed to create chat session")

    return {"success": True, "sessionId": result.data}


@router.post("/sessions/{session_id}/activity")
async def touch_chat_session(
    session_id: str,
    current_user: CurrentUserDep,
    chat_service: ChatServiceDep,
):
    """세션 활동 시각 갱신"""
    result = await chat_service.touch_session(session_id)
    if not result.success:
        handle_service_error(result.error, "Failed to update chat session activity")

    return {"success": True}


@router.get("/participants")
async def get_active_participants(
    current_user: CurrentUserDep,
    chat_service: ChatServiceDep,
    meeting_id: str | None = Query(default=None, alias="meetingId"),
):
    """최근 5분 내 활동한 채팅 참여자"""
    require_query(meetingId=meeting_id)

    result = await chat_service.get_active_participants(meeting_id)
    if not result.success:
        handle_service_error(result.error, "Failed to get active chat participants")

    return {"success": True, "participants": result.data}


@router.get("/debug")
async def chat_debug(current_user: CurrentUserDep, db: Database):
    """채팅 저장소 진단"""
    health = await db.check_health()
    collections_check = await db.ensure_collections()

    try:
        names = await db.db.list_collection_names()
        database_test = {
            "success": True,
            "collections": names,
            "messagesCollection": db.collections.messages,
        }
    except Exception as e:
        logger.error(f"Chat debug collection listing failed: {e}")
        database_test = {"success": False, "error": str(e)}

    return {
        "success": True,
        "userId": current_user.id,
        "databaseHealth": health,
        "collectionsCheck": collections_check,
        "databaseTest": database_test,
        "collections": asdict(db.collections),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
