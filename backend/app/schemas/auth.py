from pydantic import BaseModel


class CurrentUser(BaseModel):
    """인증된 사용자 (ID 토큰 클레임에서 추출)"""

    id: str
    email: str | None = None
    name: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.email or self.id
