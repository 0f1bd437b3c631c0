import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.router import api_router
from app.core.config import get_settings
from app.core.database import create_database
from app.core.telemetry import instrument_fastapi, setup_telemetry
from app.services.reconciliation_service import ParticipantReconciler, ReconcileScheduler
from app.services.stream_service import StreamChatService, StreamVideoService

# 로깅 설정
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

# MONGODB_URI가 없으면 여기서 ValidationError로 기동 실패
settings = get_settings()

MISSING_ERROR_TYPES = {"missing", "string_too_short", "too_short"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """애플리케이션 라이프사이클"""
    # 시작 시: Telemetry, MongoDB 핸들, Stream 클라이언트 초기화
    if settings.telemetry_enabled:
        setup_telemetry(settings, "wismeet-backend", "0.1.0")

    database = create_database(settings)
    await database.ensure_indexes()
    app.state.database = database

    stream_chat = StreamChatService(settings)
    stream_video = StreamVideoService(settings)
    app.state.stream_chat = stream_chat
    app.state.stream_video = stream_video
    app.state.reconcile_scheduler = ReconcileScheduler(
        ParticipantReconciler(stream_chat, stream_video)
    )
    if not stream_chat.is_configured:
        logger.warning("[Stream] API key/secret not configured")

    yield

    # 종료 시
    await app.state.reconcile_scheduler.shutdown()
    await stream_chat.disconnect()
    await stream_video.disconnect()
    await database.close()


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    description="WISMeet - Video meeting orchestration API",
    lifespan=lifespan,
)

# OpenTelemetry FastAPI 계측
if settings.telemetry_enabled:
    instrument_fastapi(app)

# CORS 설정
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    """요청 검증 실패 -> 400 (누락 필드 목록 포함)"""
    missing_fields: list[str] = []
    invalid_fields: list[str] = []
    for error in exc.errors():
        name = ".".join(str(part) for part in error["loc"][1:]) or str(error["loc"][0])
        target = missing_fields if error["type"] in MISSING_ERROR_TYPES else invalid_fields
        if name not in target:
            target.append(name)

    if missing_fields:
        message = f"Missing required fields: {', '.join(missing_fields)}"
    else:
        message = f"Invalid fields: {', '.join(invalid_fields)}"

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": {
                "error": "VALIDATION_ERROR",
                "message": message,
                "missingFields": missing_fields,
                "invalidFields": invalid_fields,
            }
        },
    )


# API 라우터 등록
app.include_router(api_router)


@app.get("/health")
async def health_check(request: Request) -> dict:
    """헬스 체크 (DB 상태 포함)"""
    database = getattr(request.app.state, "database", None)
    if database is None:
        return {"status": "ok"}
    return {"status": "ok", "database": await database.check_health()}
