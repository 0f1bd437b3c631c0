"""AssemblyAI 서비스 - 실시간 전사 토큰, LeMUR 회의 어시스턴트"""

import logging

import httpx

from app.core.config import Settings, get_settings
from app.core.constants import ASSEMBLY_TOKEN_TTL_SECONDS
from app.schemas.common import ServiceResult

logger = logging.getLogger(__name__)

ASSISTANT_PREAMBLE = (
    "You act as an assistant during a video call. You get a question and I want you "
    "to answer it directly without repeating it.\n"
    "If you do not know the answer, clearly state that.\n"
    "Here is the user question:\n"
)
CALL_CONTEXT = "This is a conversation during a video call."


class AssemblyService:
    """AssemblyAI REST 연동"""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.assembly_api_key)

    def _client(self, base_url: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(60.0),
            transport=self._transport,
            headers={"Authorization": self.settings.assembly_api_key},
        )

    async def create_streaming_token(
        self, expires_in_seconds: int = ASSEMBLY_TOKEN_TTL_SECONDS
    ) -> ServiceResult[str]:
        """브라우저 실시간 전사용 임시 토큰"""
        if not self.is_configured:
            return ServiceResult.fail("ASSEMBLY_NOT_CONFIGURED")

        try:
            async with self._client(self.settings.assembly_streaming_url) as client:
                response = await client.get(
                    "/v3/token", params={"expires_in_seconds": expires_in_seconds}
                )
                response.raise_for_status()
                return ServiceResult.ok(response.json()["token"])
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.error(f"[AssemblyAI] Failed to create streaming token: {e}")
            return ServiceResult.fail(e)

    async def ask_assistant(self, prompt: str) -> ServiceResult[str]:
        """통화 중 질문에 대한 LeMUR 응답"""
        if not self.is_configured:
            return ServiceResult.fail("ASSEMBLY_NOT_CONFIGURED")

        body = {
            "prompt": f"{ASSISTANT_PREAMBLE}{prompt}",
            "input_text": CALL_CONTEXT,
            "final_model": self.settings.assembly_lemur_model,
        }
        try:
            async with self._client(self.settings.assembly_api_url) as client:
                response = await client.post("/lemur/v3/generate/task", json=body)
                response.raise_for_status()
                answer = response.json()["response"]
                logger.info(f"[AssemblyAI] LeMUR answered ({len(answer)} chars)")
                return ServiceResult.ok(answer)
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.error(f"[AssemblyAI] LeMUR request failed: {e}")
            return ServiceResult.fail(e)
