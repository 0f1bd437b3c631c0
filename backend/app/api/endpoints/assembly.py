"""AssemblyAI API 엔드포인트"""

from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.dependencies import CurrentUserDep, get_assembly_service, handle_service_error
from app.schemas.assembly import AssemblyTokenResponse, LemurRequest, LemurResponse
from app.services.assembly_service import AssemblyService

router = APIRouter(prefix="/assembly", tags=["AssemblyAI"])

AssemblyServiceDep = Annotated[AssemblyService, Depends(get_assembly_service)]


@router.post("/token", response_model=AssemblyTokenResponse)
async def create_streaming_token(
    current_user: CurrentUserDep,
    assembly_service: AssemblyServiceDep,
):
    """실시간 전사용 임시 토큰 (10분)"""
    result = await assembly_service.create_streaming_token()
    if not result.success:
        handle_service_error(result.error, "Failed to create transcription token")

    return AssemblyTokenResponse(token=result.data)


@router.post("/lemur", response_model=LemurResponse)
async def ask_assistant(
    request: LemurRequest,
    current_user: CurrentUserDep,
    assembly_service: AssemblyServiceDep,
):
    """통화 중 어시스턴트 질문"""
    result = await assembly_service.ask_assistant(request.prompt)
    if not result.success:
        handle_service_error(result.error, "Assistant request failed")

    return LemurResponse(prompt=request.prompt, response=result.data)
