"""pytest 설정 및 공유 fixture

테스트 인프라:
- 필수 환경변수 (앱 import 전에 설정)
- MongoDB 핸들 Mock (컬렉션 / 커서)
- Stream 서비스 Mock
- FastAPI 비동기 클라이언트 + 인증 헤더
"""

import os

os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017/wismeet_test")
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret-key")
os.environ.setdefault("STREAM_API_KEY", "test-stream-key")
os.environ.setdefault("STREAM_SECRET_KEY", "test-stream-secret")

from collections.abc import AsyncGenerator, Callable, Iterable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from app.api.dependencies import (
    get_email_service,
    get_reconcile_scheduler,
    get_stream_chat_service,
    get_stream_video_service,
)
from app.core.config import Settings
from app.core.database import CollectionNames, get_database
from app.core.security import create_access_token
from app.main import app
from app.services.email_service import EmailService
from app.services.reconciliation_service import ParticipantReconciler, ReconcileScheduler
from app.services.stream_service import StreamChatService, StreamVideoService

TEST_USER_ID = "user_host_123"
TEST_USER_EMAIL = "host@example.com"


# ===== 테스트 설정 =====


@pytest.fixture
def test_settings() -> Settings:
    """테스트용 설정"""
    return Settings(
        mongodb_uri="mongodb://localhost:27017/wismeet_test",
        app_env="test",
        debug=True,
        stream_api_key="test-stream-key",
        stream_secret_key="test-stream-secret",
        assembly_api_key="test-assembly-key",
        email_user="mailer@example.com",
        email_pass="app-password",
        base_url="https://meet.example.com",
        auth_jwt_secret="test-secret-key",
    )


# ===== MongoDB Mock =====


def build_cursor(documents: Iterable[dict] = ()) -> MagicMock:
    """find() 결과 커서 Mock (sort/limit 체이닝)"""
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=list(documents))
    return cursor


def build_collection() -> MagicMock:
    collection = MagicMock()
    collection.insert_one = AsyncMock(return_value=MagicMock(inserted_id="665f1c2e9b1e8a3d4c5b6a70"))
    collection.find_one = AsyncMock(return_value=None)
    collection.update_one = AsyncMock(return_value=MagicMock(modified_count=1))
    collection.delete_one = AsyncMock(return_value=MagicMock(deleted_count=1))
    collection.find.return_value = build_cursor()
    return collection


@pytest.fixture
def make_cursor() -> Callable[..., MagicMock]:
    return build_cursor


@pytest.fixture
def mock_db() -> MagicMock:
    """MongoDatabase Mock"""
    db = MagicMock()
    db.collections = CollectionNames()
    for name in CollectionNames().__dataclass_fields__:
        setattr(db, name, build_collection())
    db.check_health = AsyncMock(
        return_value={"status": "healthy", "collections": 6, "timestamp": "2025-01-01T00:00:00+00:00"}
    )
    db.ensure_collections = AsyncMock(return_value={"success": True, "missingCollections": []})
    db.db.list_collection_names = AsyncMock(return_value=CollectionNames().all())
    return db


# ===== Stream Mock =====


@pytest.fixture
def mock_stream_chat() -> MagicMock:
    chat = MagicMock(spec=StreamChatService)
    chat.is_configured = True
    chat.create_user_token.return_value = "chat-user-token"
    chat.query_members = AsyncMock(return_value=[])
    chat.ensure_user = AsyncMock(side_effect=lambda user_id, *args, **kwargs: {"id": user_id})
    chat.add_members = AsyncMock()
    return chat


@pytest.fixture
def mock_stream_video() -> MagicMock:
    video = MagicMock(spec=StreamVideoService)
    video.is_configured = True
    video.get_participants = AsyncMock(return_value=[])
    video.get_or_create_call = AsyncMock(return_value={"id": "call"})
    return video


@pytest.fixture
def mock_email_service() -> MagicMock:
    return MagicMock(spec=EmailService)


# ===== FastAPI Client Fixture =====


@pytest.fixture
async def async_client(
    mock_db,
    mock_stream_chat,
    mock_stream_video,
    mock_email_service,
) -> AsyncGenerator[AsyncClient, None]:
    """비동기 FastAPI 클라이언트 (lifespan 없이 의존성 오버라이드)"""
    scheduler = ReconcileScheduler(ParticipantReconciler(mock_stream_chat, mock_stream_video))

    app.dependency_overrides[get_database] = lambda: mock_db
    app.dependency_overrides[get_stream_chat_service] = lambda: mock_stream_chat
    app.dependency_overrides[get_stream_video_service] = lambda: mock_stream_video
    app.dependency_overrides[get_reconcile_scheduler] = lambda: scheduler
    app.dependency_overrides[get_email_service] = lambda: mock_email_service

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    await scheduler.shutdown()
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    """테스트용 인증 헤더"""
    token = create_access_token(TEST_USER_ID, email=TEST_USER_EMAIL, name="Host User")
    return {"Authorization": f"Bearer {token}"}


def stream_participants(*user_ids: str) -> dict[str, Any]:
    """Stream get call 응답 형태의 세션 참여자"""
    return {"session": {"participants": [{"user": {"id": user_id}} for user_id in user_ids]}}
