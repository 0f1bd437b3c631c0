from app.models.chat import ChatMessage, ChatSession, MessageType
from app.models.invitation import EmailResult, InvitationRecord
from app.models.meeting import Meeting, MeetingStatus
from app.models.recording import Recording

__all__ = [
    "Meeting",
    "MeetingStatus",
    "ChatMessage",
    "ChatSession",
    "MessageType",
    "Recording",
    "InvitationRecord",
    "EmailResult",
]
