from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ErrorResponse(BaseModel):
    """에러 응답"""

    error: str
    message: str
    details: dict[str, Any] | None = None


class ServiceResult(BaseModel, Generic[T]):
    """서비스(facade) 결과

    서비스 계층은 예외를 밖으로 던지지 않고 항상 이 형태로 반환합니다.
    """

    success: bool
    data: T | None = None
    error: str | None = None

    @classmethod
    def ok(cls, data: T | None = None) -> "ServiceResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str | Exception) -> "ServiceResult[T]":
        message = str(error) or error.__class__.__name__
        return cls(success=False, error=message)
