"""응답 제출/조회 API 스키마입니다."""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field

from formbuilder.schemas.common import ApiModel


class AnswerInput(ApiModel):
    question_id: Optional[int] = None
    # 문자열, 배열(체크박스), 파일 메타데이터 배열(파일 업로드) 등 유형별로 다르다.
    value: Any = None


class ResponseRequest(ApiModel):
    email: Optional[str] = None
    answers: List[AnswerInput] = Field(default_factory=list)


class AnswerOut(ApiModel):
    id: int
    question_id: Optional[int] = None
    value: Optional[str] = None


class ResponseOut(ApiModel):
    id: int
    form_id: int
    email: Optional[str] = None
    submitted_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    answers: List[AnswerOut] = Field(default_factory=list)
