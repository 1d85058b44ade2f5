"""settings/config 처럼 문자열로 저장되는 JSON 컬럼 변환 유틸리티."""

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


def load_json_object(raw: Any) -> dict:
    """저장된 JSON 문자열을 dict로 읽는다. 해석할 수 없으면 빈 dict로 취급한다."""
    if raw is None:
        return {}
    if isinstance(raw, dict):
        return raw
    text = str(raw).strip()
    if not text:
        return {}
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        logger.warning("[json] ignoring undecodable json column value: %.80s", text)
        return {}
    if not isinstance(parsed, dict):
        return {}
    return parsed


def dump_json(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False)


def flag_enabled(raw_settings: Any, key: str) -> bool:
    value = load_json_object(raw_settings).get(key)
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes", "on"}
    return bool(value)


def serialize_answer_value(value: Any) -> str | None:
    """답변 값은 문자열 컬럼에 저장한다. 문자열은 그대로, 나머지는 JSON으로 인코딩한다."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)
