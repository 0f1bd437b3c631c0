"""MongoDB 연결 핸들

프로세스 시작 시 한 번 생성되어 app.state에 저장되고,
의존성 주입(get_database)으로 모든 요청에서 재사용됩니다.
"""

import logging
from dataclasses import astuple, dataclass, fields
from datetime import datetime, timezone
from typing import Any

from fastapi import Request
from pymongo import ASCENDING, AsyncMongoClient
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import OperationFailure

from app.core.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CollectionNames:
    """컬렉션 이름 (환경변수로 재정의 가능)"""

    meetings: str = "meetings"
    messages: str = "messages"
    chat_sessions: str = "chat_sessions"
    invitations: str = "invitations"
    summaries: str = "meeting_summaries"
    recordings: str = "recordings"

    def __post_init__(self):
        for field in fields(self):
            value = getattr(self, field.name)
            if not value or not value.strip():
                raise ValueError(
                    f"MONGODB_{field.name.upper()}_COLLECTION must be a non-empty string"
                )
            object.__setattr__(self, field.name, value.strip())

    @classmethod
    def from_settings(cls, settings: Settings) -> "CollectionNames":
        return cls(
            meetings=settings.mongodb_meetings_collection,
            messages=settings.mongodb_messages_collection,
            chat_sessions=settings.mongodb_chat_sessions_collection,
            invitations=settings.mongodb_invitations_collection,
            summaries=settings.mongodb_summaries_collection,
            recordings=settings.mongodb_recordings_collection,
        )

    def all(self) -> list[str]:
        return list(astuple(self))


class MongoDatabase:
    """MongoDB 클라이언트 + 데이터베이스 핸들"""

    def __init__(
        self,
        client: AsyncMongoClient,
        database_name: str,
        collections: CollectionNames | None = None,
    ):
        self.client = client
        self.database_name = database_name
        self.collections = collections or CollectionNames()

    @property
    def db(self) -> AsyncDatabase:
        return self.client[self.database_name]

    def collection(self, name: str) -> AsyncCollection:
        return self.db[name]

    @property
    def meetings(self) -> AsyncCollection:
        return self.collection(self.collections.meetings)

    @property
    def messages(self) -> AsyncCollection:
        return self.collection(self.collections.messages)

    @property
    def chat_sessions(self) -> AsyncCollection:
        return self.collection(self.collections.chat_sessions)

    @property
    def invitations(self) -> AsyncCollection:
        return self.collection(self.collections.invitations)

    @property
    def summaries(self) -> AsyncCollection:
        return self.collection(self.collections.summaries)

    @property
    def recordings(self) -> AsyncCollection:
        return self.collection(self.collections.recordings)

    async def ping(self) -> None:
        await self.db.command("ping")

    async def check_health(self) -> dict[str, Any]:
        """DB 헬스 체크 (ping + 컬렉션 접근)"""
        timestamp = datetime.now(timezone.utc).isoformat()
        try:
            await self.ping()
            names = await self.db.list_collection_names()
            return {"status": "healthy", "collections": len(names), "timestamp": timestamp}
        except Exception as e:
            logger.error(f"[MongoDB] Health check failed: {e}")
            return {"status": "unhealthy", "error": str(e), "timestamp": timestamp}

    async def ensure_indexes(self) -> None:
        """조회 성능용 인덱스 생성 (실패해도 기동은 계속)"""
        try:
            await self.messages.create_index([("meetingId", ASCENDING), ("timestamp", ASCENDING)])
            await self.messages.create_index([("senderId", ASCENDING)])
            await self.meetings.create_index([("meetingId", ASCENDING)], unique=True)
            await self.meetings.create_index([("hostId", ASCENDING)])
            await self.meetings.create_index([("guests", ASCENDING)])
            await self.chat_sessions.create_index([("meetingId", ASCENDING), ("userId", ASCENDING)])
            await self.summaries.create_index(
                [("meetingId", ASCENDING), ("endTime", ASCENDING)],
                unique=True,
                name="meeting_summary_unique",
            )
            logger.info("[MongoDB] Indexes ensured")
        except OperationFailure as e:
            logger.warning(f"[MongoDB] Failed to create indexes: {e}")

    async def ensure_collections(self) -> dict[str, Any]:
        """필수 컬렉션 존재 확인 및 누락분 생성"""
        try:
            existing = await self.db.list_collection_names()
            required = self.collections.all()
            missing = [name for name in required if name not in existing]

            for name in missing:
                try:
                    await self.db.create_collection(name)
                    logger.info(f"[MongoDB] Created collection: {name}")
                except OperationFailure as e:
                    logger.error(f"[MongoDB] Failed to create collection {name}: {e}")

            return {
                "success": True,
                "existingCollections": existing,
                "requiredCollections": required,
                "missingCollections": missing,
            }
        except Exception as e:
            logger.error(f"[MongoDB] Failed to ensure collections: {e}")
            return {"success": False, "error": str(e)}

    async def close(self) -> None:
        await self.client.close()


def create_database(settings: Settings) -> MongoDatabase:
    """설정으로부터 MongoDB 핸들 생성

    커넥션 풀은 프로세스 수명 동안 재사용됩니다.
    """
    client: AsyncMongoClient = AsyncMongoClient(
        settings.mongodb_uri,
        maxPoolSize=10,
        minPoolSize=2,
        maxIdleTimeMS=30000,
        serverSelectionTimeoutMS=5000,
        socketTimeoutMS=45000,
        connectTimeoutMS=10000,
        retryWrites=True,
        retryReads=True,
        tls=settings.mongodb_tls,
        tz_aware=True,
    )
    return MongoDatabase(
        client,
        settings.mongodb_database,
        CollectionNames.from_settings(settings),
    )


def get_database(request: Request) -> MongoDatabase:
    """MongoDB 핸들 의존성"""
    return request.app.state.database
