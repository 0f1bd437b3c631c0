from pydantic import BaseModel, Field


class LemurRequest(BaseModel):
    """회의 중 어시스턴트 질문"""

    prompt: str = Field(min_length=1)


class LemurResponse(BaseModel):
    prompt: str
    response: str


class AssemblyTokenResponse(BaseModel):
    token: str
