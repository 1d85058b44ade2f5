"""섹션 API 스키마입니다."""

from typing import List, Optional

from pydantic import Field

from formbuilder.schemas.common import ApiModel
from formbuilder.schemas.question import PublicQuestionOut, QuestionCreate, QuestionOut


class SectionCreate(ApiModel):
    title: str = Field(default="", max_length=255)
    description: Optional[str] = None
    order_index: Optional[int] = None
    questions: List[QuestionCreate] = Field(default_factory=list)


class SectionUpdate(ApiModel):
    title: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    order_index: Optional[int] = None


class SectionOut(ApiModel):
    id: int
    form_id: int
    title: str
    description: Optional[str] = None
    order_index: int
    questions: List[QuestionOut] = Field(default_factory=list)


class PublicSectionOut(ApiModel):
    id: int
    title: str
    description: Optional[str] = None
    order_index: int
    questions: List[PublicQuestionOut] = Field(default_factory=list)
