from app.schemas.auth import CurrentUser
from app.schemas.common import ErrorResponse, ServiceResult

__all__ = [
    "CurrentUser",
    "ErrorResponse",
    "ServiceResult",
]
