"""MongoDB 문서 정리 유틸리티"""

import secrets
import time
from datetime import datetime
from typing import Any


def clean_document(value: Any) -> Any:
    """None 필드를 재귀적으로 제거

    - dict: 값이 None인 키는 제외
    - list: 길이를 유지하며 각 원소만 정리
    - datetime 및 스칼라는 그대로 반환
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, dict):
        return {k: clean_document(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [clean_document(item) for item in value]
    return value


def generate_document_id(prefix: str) -> str:
    """{prefix}_{밀리초}_{랜덤 9자} 형식의 ID"""
    return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(5)[:9]}"


def serialize_document(document: dict[str, Any]) -> dict[str, Any]:
    """응답용 직렬화 (_id -> 문자열)"""
    result = dict(document)
    if "_id" in result:
        result["_id"] = str(result["_id"])
    return result
