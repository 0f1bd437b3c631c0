"""채팅 서비스"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import ValidationError

from app.core.constants import CHAT_DEFAULT_LIMIT, CHAT_SESSION_ACTIVE_WINDOW_SECONDS
from app.core.database import MongoDatabase
from app.models.chat import ChatMessage, ChatSession
from app.schemas.chat import ChatMessageInput
from app.schemas.common import ServiceResult
from app.utils.documents import generate_document_id, serialize_document

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PrivateTarget:
    """비공개 메시지 판별 결과"""

    is_private: bool
    recipient_id: str | None = None
    message: str = ""


def resolve_private_target(
    message: str,
    is_private: bool = False,
    recipient_id: str | None = None,
) -> PrivateTarget:
    """메시지의 비공개 여부와 수신자 판별

    구조화된 필드(isPrivate/recipientId)가 있으면 우선 사용하고,
    없으면 "@수신자 본문" 형식의 접두어를 해석합니다.
    """
    if is_private or recipient_id:
        return PrivateTarget(is_private=True, recipient_id=recipient_id, message=message)

    stripped = message.lstrip()
    if stripped.startswith("@") and len(stripped) > 1:
        target, _, body = stripped[1:].partition(" ")
        if target and body.strip():
            return PrivateTarget(is_private=True, recipient_id=target, message=body.strip())

    return PrivateTarget(is_private=False, message=message)


@dataclass(frozen=True)
class BulkSaveStats:
    saved: int
    failed: int
    total: int
    skipped: tuple[int, ...] = ()


class ChatService:
    """채팅 메시지 / 세션 서비스"""

    def __init__(self, db: MongoDatabase):
        self.db = db

    async def save_message(self, meeting_id: str, data: ChatMessageInput) -> ServiceResult[dict]:
        """채팅 메시지 단건 저장"""
        target = resolve_private_target(data.message, data.is_private, data.recipient_id)
        message = ChatMessage(
            message_id=generate_document_id(meeting_id),
            meeting_id=meeting_id,
            sender_id=data.sender_id,
            sender_name=data.sender_name,
            message=target.message,
            message_type=data.message_type,
            timestamp=data.timestamp,
            is_private=target.is_private,
            recipient_id=target.recipient_id,
            file_url=data.file_url,
            file_name=data.file_name,
        )

        try:
            result = await self.db.messages.insert_one(message.to_document())
            return ServiceResult.ok(
                {"insertedId": str(result.inserted_id), "messageId": message.message_id}
            )
        except Exception as e:
            logger.error(f"Failed to save chat message for meeting {meeting_id}: {e}")
            return ServiceResult.fail(e)

    async def save_messages(
        self, meeting_id: str, messages: list[ChatMessageInput | dict[str, Any]]
    ) -> BulkSaveStats:
        """채팅 메시지 일괄 저장

        모든 메시지를 동시에 저장하고 개별 결과를 집계합니다.
        형식이 잘못된 항목은 건너뛰고 인덱스를 보고하며,
        일부 실패는 재시도하지 않습니다.
        """
        logger.info(f"Saving {len(messages)} chat messages for meeting: {meeting_id}")
        valid: list[ChatMessageInput] = []
        skipped: list[int] = []
        for index, raw in enumerate(messages):
            if isinstance(raw, ChatMessageInput):
                valid.append(raw)
                continue
            try:
                valid.append(ChatMessageInput.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping invalid chat message #{index} ({meeting_id}): {e}")
                skipped.append(index)

        results = await asyncio.gather(
            *(self.save_message(meeting_id, msg) for msg in valid),
            return_exceptions=True,
        )
        saved = sum(1 for r in results if isinstance(r, ServiceResult) and r.success)
        failed = len(messages) - saved

        if failed:
            logger.warning(f"Failed to save {failed} of {len(messages)} messages ({meeting_id})")

        return BulkSaveStats(
            saved=saved, failed=failed, total=len(messages), skipped=tuple(skipped)
        )

    async def get_messages(
        self, meeting_id: str, limit: int = CHAT_DEFAULT_LIMIT
    ) -> ServiceResult[list[dict]]:
        """공개 메시지 조회 (최근 limit개를 시간순으로)"""
        try:
            cursor = (
                self.db.messages.find({"meetingId": meeting_id, "isPrivate": False})
                .sort("timestamp", -1)
                .limit(limit)
            )
            messages = await cursor.to_list()
            messages.reverse()
            return ServiceResult.ok([serialize_document(m) for m in messages])
        except Exception as e:
            logger.error(f"Failed to retrieve chat messages for meeting {meeting_id}: {e}")
            return ServiceResult.fail(e)

    async def get_private_messages(
        self, meeting_id: str, user_id: str
    ) -> ServiceResult[list[dict]]:
        """사용자가 보내거나 받은 비공개 메시지"""
        try:
            cursor = self.db.messages.find(
                {
                    "meetingId": meeting_id,
                    "isPrivate": True,
                    "$or": [{"senderId": user_id}, {"recipientId": user_id}],
                }
            ).sort("timestamp", 1)
            messages = await cursor.to_list()
            return ServiceResult.ok([serialize_document(m) for m in messages])
        except Exception as e:
            logger.error(f"Failed to retrieve private messages for meeting {meeting_id}: {e}")
            return ServiceResult.fail(e)

    async def delete_message(
        self, message_id: str, user_id: str, is_host: bool = False
    ) -> ServiceResult[int]:
        """메시지 삭제 (보낸 사람 또는 호스트만)

        Returns:
            삭제된 문서 수. 실패 시 MESSAGE_NOT_FOUND / PERMISSION_DENIED
        """
        try:
            message = await self.db.messages.find_one({"messageId": message_id})
            if not message:
                return ServiceResult.fail("MESSAGE_NOT_FOUND")

            if message.get("senderId") != user_id and not is_host:
                return ServiceResult.fail("PERMISSION_DENIED")

            result = await self.db.messages.delete_one({"messageId": message_id})
            return ServiceResult.ok(result.deleted_count)
        except Exception as e:
            logger.error(f"Failed to delete chat message {message_id}: {e}")
            return ServiceResult.fail(e)

    async def create_session(self, meeting_id: str, user_id: str) -> ServiceResult[str]:
        """채팅 세션 생성

        Returns:
            sessionId
        """
        now = datetime.now(timezone.utc)
        session = ChatSession(
            session_id=f"{meeting_id}_{user_id}_{int(now.timestamp() * 1000)}",
            meeting_id=meeting_id,
            user_id=user_id,
            joined_at=now,
            last_activity=now,
        )
        try:
            await self.db.chat_sessions.insert_one(session.to_document())
            return ServiceResult.ok(session.session_id)
        except Exception as e:
            logger.error(f"Failed to create chat session for meeting {meeting_id}: {e}")
            return ServiceResult.fail(e)

    async def touch_session(self, session_id: str) -> ServiceResult[None]:
        """세션 lastActivity 갱신"""
        try:
            await self.db.chat_sessions.update_one(
                {"sessionId": session_id},
                {"$set": {"lastActivity": datetime.now(timezone.utc)}},
            )
            return ServiceResult.ok()
        except Exception as e:
            logger.error(f"Failed to update chat session activity {session_id}: {e}")
            return ServiceResult.fail(e)

    async def get_active_participants(
        self, meeting_id: str, now: datetime | None = None
    ) -> ServiceResult[list[dict[str, Any]]]:
        """최근 5분 내 활동한 세션 목록"""
        now = now or datetime.now(timezone.utc)
        since = now - timedelta(seconds=CHAT_SESSION_ACTIVE_WINDOW_SECONDS)
        try:
            sessions = await self.db.chat_sessions.find(
                {"meetingId": meeting_id, "isActive": True, "lastActivity": {"$gte": since}}
            ).to_list()
            return ServiceResult.ok([serialize_document(s) for s in sessions])
        except Exception as e:
            logger.error(f"Failed to get active chat participants for {meeting_id}: {e}")
            return ServiceResult.fail(e)
