"""설문 폼 API 스키마입니다."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from formbuilder.schemas.common import ApiModel
from formbuilder.schemas.question import PublicQuestionOut, QuestionCreate, QuestionOut
from formbuilder.schemas.section import PublicSectionOut, SectionCreate, SectionOut
from formbuilder.utils.json_fields import load_json_object


class FormSettings(ApiModel):
    model_config = {**ApiModel.model_config, "extra": "allow"}

    collect_email: bool = False
    allow_response_edit: bool = False
    show_progress_bar: bool = True
    shuffle_questions: Optional[bool] = None


class FormCreate(ApiModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    settings: Optional[FormSettings] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    sections: List[SectionCreate] = Field(default_factory=list)
    questions: List[QuestionCreate] = Field(default_factory=list)


class FormUpdate(FormCreate):
    pass


class FormOut(ApiModel):
    id: int
    title: str
    description: Optional[str] = None
    settings: Dict[str, Any] = Field(default_factory=dict)
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    sections: List[SectionOut] = Field(default_factory=list)
    # 섹션에 속하지 않은 질문만 담는다.
    questions: List[QuestionOut] = Field(default_factory=list)

    @field_validator("settings", mode="before")
    @classmethod
    def _decode_settings(cls, value):
        return load_json_object(value)


class PublicFormOut(ApiModel):
    id: int
    title: str
    description: Optional[str] = None
    settings: Dict[str, Any] = Field(default_factory=dict)
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    sections: List[PublicSectionOut] = Field(default_factory=list)
    questions: List[PublicQuestionOut] = Field(default_factory=list)

    @field_validator("settings", mode="before")
    @classmethod
    def _decode_settings(cls, value):
        return load_json_object(value)
