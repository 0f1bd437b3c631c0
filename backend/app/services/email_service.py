"""이메일 발송 서비스

fastapi-mail(SMTP)로 초대 메일과 요약 메일을 발송합니다.
초대 메일은 수신자마다 순차 발송하며, 한 명의 실패가 전체를 중단하지 않습니다.
"""

import html
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from email.utils import make_msgid

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType
from fastapi_mail.connection import Connection
from fastapi_mail.schemas import MultipartSubtypeEnum
from pydantic import SecretStr

from app.core.config import Settings, get_settings
from app.core.constants import DEFAULT_MEETING_DURATION_MINUTES, EMAIL_ADDRESS_PATTERN
from app.core.telemetry import record_counter
from app.models.invitation import EmailResult
from app.schemas.common import ServiceResult

logger = logging.getLogger(__name__)

TRACKING_HEADER = "X-WISMeet-Message-ID"

_EMAIL_ADDRESS = re.compile(EMAIL_ADDRESS_PATTERN)


def is_email_address(value: str) -> bool:
    """게스트 값이 이메일 주소인지 (사용자 ID 게스트 구분)"""
    return bool(_EMAIL_ADDRESS.match(value))


@dataclass(frozen=True)
class InvitationContent:
    """초대 메일 내용"""

    title: str
    host_name: str
    start_time: datetime
    meeting_link: str
    end_time: datetime | None = None
    description: str | None = None

    @property
    def resolved_end_time(self) -> datetime:
        return self.end_time or self.start_time + timedelta(minutes=DEFAULT_MEETING_DURATION_MINUTES)

    @property
    def duration_minutes(self) -> int:
        return round((self.resolved_end_time - self.start_time).total_seconds() / 60)


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str
    text: str


def _format_time(value: datetime) -> str:
    return value.strftime("%I:%M %p").lstrip("0")


def render_invitation(content: InvitationContent) -> RenderedEmail:
    """초대 메일 HTML / 텍스트 본문 생성"""
    formatted_date = content.start_time.strftime("%A, %B %d, %Y")
    time_range = (
        f"{_format_time(content.start_time)} - {_format_time(content.resolved_end_time)} "
        f"({content.duration_minutes} minutes)"
    )
    title = html.escape(content.title)
    host = html.escape(content.host_name)
    link = html.escape(content.meeting_link, quote=True)

    description_html = ""
    description_text = ""
    if content.description:
        description_html = (
            '<div class="description"><strong>Description:</strong><br>'
            f"{html.escape(content.description)}</div>"
        )
        description_text = f"- Description: {content.description}\n"

    html_body = f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Meeting invitation</title></head>
<body>
  <div class="container">
    <div class="header">
      <h1>Meeting invitation</h1>
      <p>{host} invited you to a meeting</p>
    </div>
    <div class="content">
      <h2 class="meeting-title">{title}</h2>
      <div class="meeting-details">
        <div class="detail-row">{formatted_date}</div>
        <div class="detail-row">{time_range}</div>
        <div class="detail-row">{host}</div>
      </div>
      {description_html}
      <div style="text-align: center;">
        <a href="{link}" class="join-button">Join meeting</a>
      </div>
      <div class="link-text">
        Or copy and paste this link into your browser:<br>
        <a href="{link}">{link}</a>
      </div>
    </div>
    <div class="footer">
      <p>This invitation was sent from WISMeet</p>
      <p>If you have any questions, please contact the meeting host</p>
    </div>
  </div>
</body>
</html>"""

    text_body = (
        f"Meeting invitation: {content.title}\n\n"
        f"{content.host_name} invited you to a meeting.\n\n"
        "Meeting Details:\n"
        f"- Title: {content.title}\n"
        f"- Date: {formatted_date}\n"
        f"- Time: {time_range}\n"
        f"- Host: {content.host_name}\n"
        f"{description_text}\n"
        f"Join the meeting by clicking this link: {content.meeting_link}\n\n"
        "If you have any questions, please contact the meeting host.\n\n"
        "Best regards,\nWISMeet\n"
    )

    return RenderedEmail(
        subject=f"Meeting invitation: {content.title}",
        html=html_body,
        text=text_body,
    )


def summarize_results(results: list[EmailResult]) -> dict:
    """발송 결과 통계 (successRate는 소수점 한 자리 퍼센트 문자열)"""
    total = len(results)
    successful = sum(1 for r in results if r.success)
    rate = (successful / total * 100) if total else 0.0
    return {
        "total": total,
        "successful": successful,
        "failed": total - successful,
        "successRate": f"{rate:.1f}%",
    }


class EmailService:
    """SMTP 메일 발송 서비스"""

    def __init__(self, settings: Settings | None = None, mailer: FastMail | None = None):
        self.settings = settings or get_settings()
        self._mailer = mailer

    def connection_config(self) -> ConnectionConfig:
        settings = self.settings
        return ConnectionConfig(
            MAIL_USERNAME=settings.email_user,
            MAIL_PASSWORD=SecretStr(settings.email_pass),
            MAIL_FROM=settings.email_sender,
            MAIL_FROM_NAME=settings.email_from_name,
            MAIL_PORT=settings.email_port,
            MAIL_SERVER=settings.email_host,
            MAIL_STARTTLS=settings.email_port != 465,
            MAIL_SSL_TLS=settings.email_port == 465,
            USE_CREDENTIALS=True,
        )

    @property
    def mailer(self) -> FastMail:
        if self._mailer is None:
            self._mailer = FastMail(self.connection_config())
        return self._mailer

    async def verify_config(self) -> ServiceResult[None]:
        """SMTP 연결/인증 확인 (발송 전 점검)"""
        settings = self.settings
        logger.info(
            "[Email] Verifying configuration: host=%s port=%s user=%s pass=%s from=%s",
            settings.email_host,
            settings.email_port,
            "***configured***" if settings.email_user else "NOT CONFIGURED",
            "***configured***" if settings.email_pass else "NOT CONFIGURED",
            settings.email_sender or "NOT CONFIGURED",
        )
        try:
            async with Connection(self.connection_config()):
                pass
            logger.info("[Email] Configuration verified")
            return ServiceResult.ok()
        except Exception as e:
            logger.error(f"[Email] Configuration error: {e}")
            return ServiceResult.fail(e)

    async def _send(
        self,
        recipients: list[str],
        subject: str,
        html_body: str,
        text_body: str | None = None,
    ) -> str:
        message_id = make_msgid(domain="wismeet")
        kwargs = {}
        if text_body:
            kwargs = {
                "alternative_body": text_body,
                "multipart_subtype": MultipartSubtypeEnum.alternative,
            }
        message = MessageSchema(
            subject=subject,
            recipients=recipients,
            body=html_body,
            subtype=MessageType.html,
            headers={TRACKING_HEADER: message_id},
            **kwargs,
        )
        await self.mailer.send_message(message)
        return message_id

    async def send_invitation(self, content: InvitationContent, guest_email: str) -> EmailResult:
        """초대 메일 1건 발송 (예외 대신 실패 결과 반환)"""
        rendered = render_invitation(content)
        try:
            message_id = await self._send([guest_email], rendered.subject, rendered.html, rendered.text)
            record_counter("invitations_sent_total", attributes={"result": "success"})
            return EmailResult(success=True, guest_email=guest_email, message_id=message_id)
        except Exception as e:
            logger.error(f"[Email] Failed to send invitation to {guest_email}: {e}")
            record_counter("invitations_sent_total", attributes={"result": "failed"})
            return EmailResult(success=False, guest_email=guest_email, error=str(e) or "Unknown error")

    async def send_bulk_invitations(
        self, content: InvitationContent, guest_emails: list[str]
    ) -> list[EmailResult]:
        """초대 메일 순차 발송 (수신자 수만큼 결과 반환)"""
        results = []
        for guest_email in guest_emails:
            if not is_email_address(guest_email):
                results.append(
                    EmailResult(success=False, guest_email=guest_email, error="Invalid email address")
                )
                continue
            results.append(await self.send_invitation(content, guest_email))
        return results

    async def send_summary_email(
        self, to_emails: list[str], subject: str, html_content: str
    ) -> ServiceResult[dict]:
        """요약 메일 발송 (여러 수신자에게 한 통)"""
        try:
            message_id = await self._send(to_emails, subject, html_content)
            return ServiceResult.ok({"messageId": message_id, "recipients": to_emails})
        except Exception as e:
            logger.error(f"[Email] Failed to send summary email: {e}")
            return ServiceResult.fail(e)
