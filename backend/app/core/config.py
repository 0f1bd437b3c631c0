from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """애플리케이션 설정"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # 앱 설정
    app_name: str = "WISMeet API"
    app_env: str = "development"
    debug: bool = False

    # MongoDB (필수 - 없으면 기동 실패)
    mongodb_uri: str = Field(validation_alias=AliasChoices("MONGODB_URI", "mongodb_uri"))
    mongodb_database: str = "wismeet"
    mongodb_tls: bool = True
    mongodb_meetings_collection: str = "meetings"
    mongodb_messages_collection: str = "messages"
    mongodb_chat_sessions_collection: str = "chat_sessions"
    mongodb_invitations_collection: str = "invitations"
    mongodb_summaries_collection: str = "meeting_summaries"
    mongodb_recordings_collection: str = "recordings"

    # 이메일 (SMTP)
    email_host: str = "smtp.gmail.com"
    email_port: int = 587
    email_user: str = ""
    email_pass: str = ""
    email_from: str = ""
    email_from_name: str = "WISMeet"

    # Stream (Video / Chat)
    stream_api_key: str = Field(
        default="",
        validation_alias=AliasChoices(
            "NEXT_PUBLIC_STREAM_API_KEY", "STREAM_API_KEY", "stream_api_key"
        ),
    )
    stream_secret_key: str = Field(
        default="",
        validation_alias=AliasChoices("STREAM_SECRET_KEY", "stream_secret_key"),
    )
    stream_chat_base_url: str = "https://chat.stream-io-api.com"
    stream_video_base_url: str = "https://video.stream-io-api.com/api/v2/video"
    stream_call_type: str = "default"

    # AssemblyAI
    assembly_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("ASSEMBLY_API_KEY", "assembly_api_key"),
    )
    assembly_api_url: str = "https://api.assemblyai.com"
    assembly_streaming_url: str = "https://streaming.assemblyai.com"
    assembly_lemur_model: str = "anthropic/claude-sonnet-4-20250514"

    # 공유 링크
    base_url: str = Field(
        default="http://localhost:3000",
        validation_alias=AliasChoices("NEXT_PUBLIC_BASE_URL", "BASE_URL", "base_url"),
    )

    # 인증 (외부 ID 제공자가 발급한 토큰 검증)
    auth_jwt_secret: str = "your-super-secret-key-change-in-production"
    auth_jwt_algorithm: str = "HS256"
    auth_jwt_issuer: str | None = None
    access_token_expire_minutes: int = 60

    # OpenTelemetry
    telemetry_enabled: bool = True
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    @property
    def email_sender(self) -> str:
        """발신자 주소 (EMAIL_FROM 없으면 EMAIL_USER)"""
        return self.email_from or self.email_user

    @property
    def stream_configured(self) -> bool:
        """Stream 설정 완료 여부"""
        return bool(self.stream_api_key and self.stream_secret_key)

    def meeting_url(self, meeting_id: str) -> str:
        """공유용 회의 URL 생성"""
        return f"{self.base_url.rstrip('/')}/meeting/{meeting_id}"


@lru_cache
def get_settings() -> Settings:
    """설정 싱글톤 반환"""
    return Settings()
