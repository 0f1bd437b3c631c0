from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from app.core.config import get_settings


def create_access_token(subject: str, email: str | None = None, name: str | None = None) -> str:
    """Access token 생성 (로컬 개발 및 테스트용)"""
    settings = get_settings()
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=settings.access_token_expire_minutes
    )
    to_encode: dict = {"sub": subject, "exp": expire, "type": "access"}
    if email:
        to_encode["email"] = email
    if name:
        to_encode["name"] = name
    if settings.auth_jwt_issuer:
        to_encode["iss"] = settings.auth_jwt_issuer
    return jwt.encode(to_encode, settings.auth_jwt_secret, algorithm=settings.auth_jwt_algorithm)


def decode_token(token: str) -> dict | None:
    """토큰 디코딩 (검증 포함)"""
    settings = get_settings()
    options = {"verify_aud": False}
    try:
        if settings.auth_jwt_issuer:
            return jwt.decode(
                token,
                settings.auth_jwt_secret,
                algorithms=[settings.auth_jwt_algorithm],
                issuer=settings.auth_jwt_issuer,
                options=options,
            )
        return jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[settings.auth_jwt_algorithm],
            options=options,
        )
    except JWTError:
        return None


def sign_stream_token(payload: dict, secret: str) -> str:
    """Stream API용 HS256 토큰 서명"""
    return jwt.encode(payload, secret, algorithm="HS256")
