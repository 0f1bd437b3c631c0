"""Stream Video / Chat API 엔드포인트

- 채팅 토큰 발급, 채팅 사용자 생성, 채널 참여
- 참여자 동기화 (수동 / 웹훅)
- 통화 목록/종료, 녹화 시작/중지
"""

import hashlib
import hmac
import json
import logging
from datetime import datetime, timezone
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status

from app.api.dependencies import (
    CurrentUserDep,
    get_meeting_service,
    get_participant_reconciler,
    get_reconcile_scheduler,
    get_recording_lifecycle_service,
    get_stream_chat_service,
    get_stream_video_service,
    handle_service_error,
)
from app.core.config import get_settings
from app.models.meeting import MeetingStatus
from app.schemas.recording import StopRecordingRequest
from app.schemas.stream import (
    ChatTokenRequest,
    ChatTokenResponse,
    CreateUsersRequest,
    JoinChannelRequest,
    ReconcileRequest,
)
from app.services.meeting_service import MeetingService
from app.services.reconciliation_service import ParticipantReconciler, ReconcileScheduler
from app.services.recording_service import RecordingLifecycleService
from app.services.stream_service import (
    ChannelSetupError,
    StreamAPIError,
    StreamChatService,
    StreamNotConfiguredError,
    StreamVideoService,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stream", tags=["Stream"])

StreamChatDep = Annotated[StreamChatService, Depends(get_stream_chat_service)]
StreamVideoDep = Annotated[StreamVideoService, Depends(get_stream_video_service)]

PARTICIPANT_EVENTS = {"call.session_participant_joined", "call.session_participant_left"}


def require_stream_configured(chat: StreamChatDep) -> None:
    if not chat.is_configured:
        handle_service_error("STREAM_NOT_CONFIGURED")


@router.get("/config")
async def stream_config(current_user: CurrentUserDep, chat: StreamChatDep):
    """Stream 설정 점검 (시크릿은 반환하지 않음)"""
    settings = get_settings()
    config = {
        "apiKey": "Present" if settings.stream_api_key else "Missing",
        "apiSecret": "Present" if settings.stream_secret_key else "Missing",
        "hasBoth": settings.stream_configured,
    }
    if not chat.is_configured:
        return {
            "success": False,
            "error": "Stream configuration incomplete",
            "config": config,
            "message": "Please check your environment variables",
        }

    try:
        token = chat.create_user_token("test-user")
    except StreamNotConfiguredError:
        token = ""

    return {
        "success": True,
        "config": config,
        "message": "Stream configuration is working",
        "testToken": "Generated successfully" if token else "Failed to generate",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post(
    "/chat-token",
    response_model=ChatTokenResponse,
    dependencies=[Depends(require_stream_configured)],
)
async def create_chat_token(
    request: ChatTokenRequest,
    current_user: CurrentUserDep,
    chat: StreamChatDep,
):
    """채팅 사용자 토큰 발급"""
    token = chat.create_user_token(request.user_id)
    return ChatTokenResponse(
        token=token,
        user_id=request.user_id,
        user_name=request.user_name,
        user_image=request.user_image,
    )


@router.post("/create-users", dependencies=[Depends(require_stream_configured)])
async def create_chat_users(
    request: CreateUsersRequest,
    current_user: CurrentUserDep,
    chat: StreamChatDep,
):
    """참여자를 채팅 사용자로 등록 (이미 있으면 유지)"""
    users, errors = await chat.ensure_users(
        [p.model_dump(by_alias=True) for p in request.participants]
    )
    return {
        "success": True,
        "createdUsers": users,
        "errors": errors,
        "message": f"Successfully processed {len(request.participants)} participants",
    }


@router.post("/join-channel", dependencies=[Depends(require_stream_configured)])
async def join_chat_channel(
    request: JoinChannelRequest,
    current_user: CurrentUserDep,
    chat: StreamChatDep,
    reconciler: Annotated[ParticipantReconciler, Depends(get_participant_reconciler)],
):
    """회의 채팅 채널 참여 (없으면 생성)"""
    try:
        channel_type, created = await chat.join_channel(request.user_id, request.meeting_id)
    except ChannelSetupError as e:
        logger.error(f"[Stream] Channel setup failed for {request.meeting_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "CHANNEL_SETUP_FAILED",
                "message": "Failed to create or join any chat channel",
                "details": "Please check Stream Chat permissions and try again",
            },
        )

    reconciler.remember_channel(request.meeting_id, channel_type)

    if created:
        message = f"New {channel_type} channel created successfully"
    else:
        message = "User added to channel successfully"

    return {
        "success": True,
        "message": message,
        "channelType": channel_type,
        "userId": request.user_id,
        "meetingId": request.meeting_id,
    }


@router.post("/reconcile", dependencies=[Depends(require_stream_configured)])
async def reconcile_participants(
    request: ReconcileRequest,
    current_user: CurrentUserDep,
    reconciler: Annotated[ParticipantReconciler, Depends(get_participant_reconciler)],
):
    """통화 참여자를 채팅 채널에 동기화"""
    if request.channel_type and request.channel_type != reconciler.channel_type:
        reconciler = ParticipantReconciler(reconciler.chat, reconciler.video, request.channel_type)

    result = await reconciler.reconcile(request.meeting_id)
    if not result.success:
        handle_service_error(result.error, "Failed to reconcile participants")

    return {"success": True, **result.data.to_dict()}


@router.get("/calls", dependencies=[Depends(require_stream_configured)])
async def list_calls(
    current_user: CurrentUserDep,
    video: StreamVideoDep,
    scope: str = Query(default="upcoming", pattern="^(upcoming|ended)$"),
):
    """사용자의 예정 / 종료된 통화 목록"""
    try:
        calls = await video.query_calls(
            current_user.id, scope=scope, now=datetime.now(timezone.utc)
        )
    except StreamAPIError as e:
        handle_service_error(str(e), "Failed to fetch calls")

    return {"success": True, "calls": calls, "count": len(calls), "scope": scope}


@router.post(
    "/calls/{call_id}/recording/start",
    dependencies=[Depends(require_stream_configured)],
)
async def start_recording(
    call_id: str,
    current_user: CurrentUserDep,
    lifecycle: Annotated[RecordingLifecycleService, Depends(get_recording_lifecycle_service)],
):
    """녹화 시작"""
    result = await lifecycle.start(call_id)
    if not result.success:
        handle_service_error(result.error, "Failed to start recording")

    return {"success": True, "callId": call_id, "recording": True}


@router.post(
    "/calls/{call_id}/recording/stop",
    dependencies=[Depends(require_stream_configured)],
)
async def stop_recording(
    call_id: str,
    current_user: CurrentUserDep,
    lifecycle: Annotated[RecordingLifecycleService, Depends(get_recording_lifecycle_service)],
    request: StopRecordingRequest | None = None,
):
    """녹화 중지

    녹화 파일이 준비되면 현재 참여자 목록과 함께 저장합니다.
    정해진 횟수 안에 준비되지 않으면 저장 없이 성공 응답합니다.
    """
    meeting_id = request.meeting_id if request else None
    result = await lifecycle.stop_and_capture(call_id, meeting_id)
    if not result.success:
        handle_service_error(result.error, "Failed to stop recording")

    return {
        "success": True,
        "callId": call_id,
        "recording": False,
        "saved": result.data is not None,
        "data": result.data,
    }


@router.post("/calls/{call_id}/end", dependencies=[Depends(require_stream_configured)])
async def end_call(
    call_id: str,
    current_user: CurrentUserDep,
    video: StreamVideoDep,
    scheduler: Annotated[ReconcileScheduler, Depends(get_reconcile_scheduler)],
    meeting_service: Annotated[MeetingService, Depends(get_meeting_service)],
):
    """통화 종료 (호스트만, 회의 상태 completed)"""
    found = await meeting_service.get_by_id(call_id)
    if not found.success:
        handle_service_error(found.error, "Failed to fetch meeting")
    if found.data is None:
        handle_service_error("MEETING_NOT_FOUND")
    if found.data.get("hostId") != current_user.id:
        handle_service_error("NOT_MEETING_HOST")

    try:
        await video.end_call(call_id)
    except StreamAPIError as e:
        handle_service_error(str(e), "Failed to end call")

    scheduler.stop(call_id)
    result = await meeting_service.update_status(call_id, MeetingStatus.COMPLETED)
    if not result.success:
        handle_service_error(result.error, "Failed to update meeting status")

    return {"success": True, "callId": call_id, "status": MeetingStatus.COMPLETED.value}


def verify_webhook_signature(body: bytes, signature: str | None, secret: str) -> bool:
    """Stream 웹훅 서명 검증 (본문 HMAC-SHA256 hex)"""
    if not signature or not secret:
        return False
    expected = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


def _meeting_id_from_event(event: dict[str, Any]) -> str | None:
    call_cid = event.get("call_cid") or ""
    if ":" in call_cid:
        return call_cid.split(":", 1)[1]
    return (event.get("call") or {}).get("id")


@router.post("/webhook")
async def stream_webhook(
    request: Request,
    scheduler: Annotated[ReconcileScheduler, Depends(get_reconcile_scheduler)],
    meeting_service: Annotated[MeetingService, Depends(get_meeting_service)],
    x_signature: str | None = Header(default=None),
):
    """Stream 이벤트 웹훅

    - call.session_participant_joined/left: 디바운스 후 참여자 동기화
    - call.ended: 회의 상태 completed, 예약된 동기화 중지
    """
    body = await request.body()
    if not verify_webhook_signature(body, x_signature, get_settings().stream_secret_key):
        logger.warning("[Stream Webhook] Invalid webhook signature")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "UNAUTHORIZED", "message": "Invalid webhook signature"},
        )

    try:
        event = json.loads(body)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "BAD_REQUEST", "message": "Invalid webhook payload"},
        )

    event_type = event.get("type")
    meeting_id = _meeting_id_from_event(event)
    logger.info(f"[Stream Webhook] Received event: {event_type} ({meeting_id})")

    if not meeting_id:
        return {"status": "ignored"}

    if event_type in PARTICIPANT_EVENTS:
        scheduler.notify(meeting_id)
        scheduler.start_periodic(meeting_id)
    elif event_type == "call.ended":
        scheduler.stop(meeting_id)
        result = await meeting_service.update_status(meeting_id, MeetingStatus.COMPLETED)
        if not result.success:
            logger.error(f"[Stream Webhook] Failed to complete meeting {meeting_id}: {result.error}")
    else:
        logger.debug(f"[Stream Webhook] Unhandled event type: {event_type}")

    return {"status": "ok"}
