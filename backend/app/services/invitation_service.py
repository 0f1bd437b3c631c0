"""초대 기록 서비스"""

import logging

from app.core.database import MongoDatabase
from app.models.invitation import InvitationRecord
from app.schemas.common import ServiceResult
from app.utils.documents import serialize_document

logger = logging.getLogger(__name__)


class InvitationService:
    """초대 메일 발송 기록 (append-only)"""

    def __init__(self, db: MongoDatabase):
        self.db = db

    async def record(self, invitation: InvitationRecord) -> ServiceResult[str]:
        """발송 기록 저장

        Returns:
            insertedId
        """
        try:
            result = await self.db.invitations.insert_one(invitation.to_document())
            return ServiceResult.ok(str(result.inserted_id))
        except Exception as e:
            logger.error(f"Failed to record invitations for meeting {invitation.meeting_id}: {e}")
            return ServiceResult.fail(e)

    async def get_history(self, meeting_id: str, host_id: str) -> ServiceResult[list[dict]]:
        """호스트의 회의별 발송 기록 (최근순)"""
        try:
            invitations = (
                await self.db.invitations.find({"meetingId": meeting_id, "hostId": host_id})
                .sort("sentAt", -1)
                .to_list()
            )
            return ServiceResult.ok([serialize_document(i) for i in invitations])
        except Exception as e:
            logger.error(f"Failed to fetch invitation history for meeting {meeting_id}: {e}")
            return ServiceResult.fail(e)
