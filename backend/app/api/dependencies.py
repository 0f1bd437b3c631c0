"""공유 API dependencies - 엔드포인트 간 중복 제거"""

from typing import Annotated, NoReturn

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.database import MongoDatabase, get_database
from app.core.security import decode_token
from app.schemas.auth import CurrentUser
from app.services.assembly_service import AssemblyService
from app.services.chat_service import ChatService
from app.services.email_service import EmailService
from app.services.invitation_service import InvitationService
from app.services.meeting_service import MeetingService
from app.services.reconciliation_service import ParticipantReconciler, ReconcileScheduler
from app.services.recording_service import RecordingLifecycleService, RecordingService
from app.services.scheduling_service import SchedulingService
from app.services.stream_service import StreamChatService, StreamVideoService

security = HTTPBearer(auto_error=False)

Database = Annotated[MongoDatabase, Depends(get_database)]


# ===== Auth Dependencies =====


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> CurrentUser:
    """현재 사용자 조회 (ID 토큰의 sub 클레임)"""
    payload = decode_token(credentials.credentials) if credentials else None
    if not payload or not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "UNAUTHORIZED", "message": "Invalid or expired token"},
        )

    return CurrentUser(
        id=str(payload["sub"]),
        email=payload.get("email"),
        name=payload.get("name"),
    )


CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]


# ===== Service Dependencies =====


def get_meeting_service(db: Database) -> MeetingService:
    return MeetingService(db)


def get_chat_service(db: Database) -> ChatService:
    return ChatService(db)


def get_recording_service(db: Database) -> RecordingService:
    return RecordingService(db)


def get_invitation_service(db: Database) -> InvitationService:
    return InvitationService(db)


def get_email_service() -> EmailService:
    return EmailService()


def get_assembly_service() -> AssemblyService:
    return AssemblyService()


def get_stream_chat_service(request: Request) -> StreamChatService:
    """프로세스 공용 Stream Chat 클라이언트"""
    return request.app.state.stream_chat


def get_stream_video_service(request: Request) -> StreamVideoService:
    """프로세스 공용 Stream Video 클라이언트"""
    return request.app.state.stream_video


def get_reconcile_scheduler(request: Request) -> ReconcileScheduler:
    return request.app.state.reconcile_scheduler


def get_participant_reconciler(
    scheduler: Annotated[ReconcileScheduler, Depends(get_reconcile_scheduler)],
) -> ParticipantReconciler:
    return scheduler.reconciler


def get_recording_lifecycle_service(
    video: Annotated[StreamVideoService, Depends(get_stream_video_service)],
    recordings: Annotated[RecordingService, Depends(get_recording_service)],
) -> RecordingLifecycleService:
    return RecordingLifecycleService(video, recordings)


def get_scheduling_service(
    meetings: Annotated[MeetingService, Depends(get_meeting_service)],
    invitations: Annotated[InvitationService, Depends(get_invitation_service)],
    email: Annotated[EmailService, Depends(get_email_service)],
    video: Annotated[StreamVideoService, Depends(get_stream_video_service)],
) -> SchedulingService:
    return SchedulingService(meetings, invitations, email, video)


# ===== Validation Helpers =====


def raise_missing_fields(fields: list[str]) -> NoReturn:
    """필수 필드 누락 400 응답"""
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={
            "error": "VALIDATION_ERROR",
            "message": f"Missing required fields: {', '.join(fields)}",
            "missingFields": fields,
        },
    )


def require_query(**params: str | None) -> None:
    """필수 쿼리 파라미터 확인"""
    missing = [name for name, value in params.items() if not value]
    if missing:
        raise_missing_fields(missing)


# ===== Service Error Handling =====

# 서비스 레이어 에러 코드와 HTTP 응답 매핑
# (status_code, error_code, message)
SERVICE_ERROR_MAPPING: dict[str, tuple[int, str, str]] = {
    "MEETING_NOT_FOUND": (404, "NOT_FOUND", "Meeting not found"),
    "MESSAGE_NOT_FOUND": (404, "NOT_FOUND", "Message not found"),
    "PERMISSION_DENIED": (403, "FORBIDDEN", "Unauthorized to delete this message"),
    "NOT_MEETING_HOST": (403, "FORBIDDEN", "Only the meeting host can perform this action"),
    "EMAIL_NOT_CONFIGURED": (500, "EMAIL_NOT_CONFIGURED", "Email service not configured properly"),
    "STREAM_NOT_CONFIGURED": (500, "STREAM_NOT_CONFIGURED", "Stream API configuration is missing"),
    "ASSEMBLY_NOT_CONFIGURED": (500, "ASSEMBLY_NOT_CONFIGURED", "AssemblyAI API key is missing"),
}


def handle_service_error(error: str | None, default_message: str = "Internal server error") -> NoReturn:
    """서비스 결과의 에러를 HTTPException으로 변환

    Args:
        error: ServiceResult.error (에러 코드 또는 예외 메시지)
        default_message: 매핑되지 않은 에러의 기본 메시지

    Raises:
        HTTPException: 매핑된 에러 또는 500 (상세 메시지 포함)
    """
    error_code = error or ""

    if error_code in SERVICE_ERROR_MAPPING:
        status_code, code, message = SERVICE_ERROR_MAPPING[error_code]
        raise HTTPException(
            status_code=status_code,
            detail={"error": code, "message": message},
        )

    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": "INTERNAL_ERROR", "message": default_message, "details": error_code},
    )
