"""질문 API 스키마와 질문 유형별 config 모델입니다."""

from typing import Any, Dict, List, Optional, Union

from pydantic import Field, ValidationError, computed_field, field_validator, model_validator

from formbuilder.schemas.common import ApiModel
from formbuilder.utils.json_fields import load_json_object


QUESTION_TYPES = (
    "short-text",
    "long-text",
    "multiple-choice",
    "checkbox",
    "dropdown",
    "file-upload",
    "linear-scale",
    "date",
)
OPTION_BASED_TYPES = {"multiple-choice", "checkbox", "dropdown"}
TEXT_TYPES = {"short-text", "long-text"}

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024


class _ConfigModel(ApiModel):
    # 클라이언트 전용 키도 그대로 보존한다.
    model_config = {**ApiModel.model_config, "extra": "allow"}


class ChoiceOption(_ConfigModel):
    id: Optional[Union[int, str]] = None
    label: str = Field(min_length=1)
    order: Optional[int] = None


class ChoiceConfig(_ConfigModel):
    options: List[ChoiceOption] = Field(min_length=1)
    min_selection: Optional[int] = Field(default=None, ge=0)
    max_selection: Optional[int] = Field(default=None, ge=1)

    @field_validator("options", mode="before")
    @classmethod
    def _wrap_plain_labels(cls, value):
        if isinstance(value, list):
            return [{"label": item} if isinstance(item, str) else item for item in value]
        return value

    @model_validator(mode="after")
    def _check_selection_range(self):
        if (
            self.min_selection is not None
            and self.max_selection is not None
            and self.min_selection > self.max_selection
        ):
            raise ValueError("minSelection must not exceed maxSelection")
        return self

    def labels(self) -> list[str]:
        return [option.label for option in self.options]


class TextConfig(_ConfigModel):
    min_length: Optional[int] = Field(default=None, ge=0)
    max_length: Optional[int] = Field(default=None, ge=1)
    placeholder: Optional[str] = None

    @model_validator(mode="after")
    def _check_length_range(self):
        if self.min_length is not None and self.max_length is not None and self.min_length > self.max_length:
            raise ValueError("minLength must not exceed maxLength")
        return self


class LinearScaleConfig(_ConfigModel):
    min: int = Field(default=1, ge=0, le=1)
    max: int = Field(default=5, ge=2, le=10)
    min_label: Optional[str] = None
    max_label: Optional[str] = None


class FileUploadConfig(_ConfigModel):
    allowed_extensions: List[str] = Field(default_factory=list)
    max_file_size: int = Field(default=DEFAULT_MAX_FILE_SIZE, gt=0)
    allow_multiple: bool = False


class DateConfig(_ConfigModel):
    include_time: bool = False


CONFIG_MODELS = {
    "short-text": TextConfig,
    "long-text": TextConfig,
    "multiple-choice": ChoiceConfig,
    "checkbox": ChoiceConfig,
    "dropdown": ChoiceConfig,
    "file-upload": FileUploadConfig,
    "linear-scale": LinearScaleConfig,
    "date": DateConfig,
}


def normalize_question_config(question_type: str, raw: Optional[dict]) -> dict:
    """유형에 맞는 config 모델로 검증한 뒤 저장용 dict(camelCase)로 돌려준다.

    형식이 맞지 않으면 pydantic ``ValidationError``가 그대로 올라간다.
    """
    model = CONFIG_MODELS[question_type]
    parsed = model.model_validate(raw or {})
    return parsed.model_dump(by_alias=True, exclude_none=True)


def read_question_config(question_type: str, raw: Any):
    """저장된 config를 유형별 모델로 읽는다. 해석할 수 없으면 None."""
    model = CONFIG_MODELS.get(question_type)
    if model is None:
        return None
    try:
        return model.model_validate(load_json_object(raw))
    except ValidationError:
        return None


class QuestionBase(ApiModel):
    type: str = "short-text"
    title: str = Field(default="", max_length=500)
    description: Optional[str] = None
    required: Optional[bool] = False
    order_index: Optional[int] = None
    config: Optional[Dict[str, Any]] = None


class QuestionCreate(QuestionBase):
    section_id: Optional[int] = None
    # 폼 전체 재구성 시 이미 업로드된 첨부파일 정보를 유지하기 위한 필드
    attachment_filename: Optional[str] = None
    attachment_stored_name: Optional[str] = None
    attachment_content_type: Optional[str] = None


class QuestionUpdate(ApiModel):
    type: Optional[str] = None
    title: Optional[str] = Field(default=None, max_length=500)
    description: Optional[str] = None
    required: Optional[bool] = None
    order_index: Optional[int] = None
    config: Optional[Dict[str, Any]] = None
    section_id: Optional[int] = None


class QuestionOut(ApiModel):
    id: int
    form_id: int
    section_id: Optional[int] = None
    type: str
    title: str
    description: Optional[str] = None
    required: bool
    order_index: int
    config: Dict[str, Any] = Field(default_factory=dict)
    attachment_filename: Optional[str] = None
    attachment_stored_name: Optional[str] = None
    attachment_content_type: Optional[str] = None

    @field_validator("config", mode="before")
    @classmethod
    def _decode_config(cls, value):
        return load_json_object(value)


class PublicQuestionOut(ApiModel):
    id: int
    section_id: Optional[int] = None
    type: str
    title: str
    description: Optional[str] = None
    required: bool
    order_index: int
    config: Dict[str, Any] = Field(default_factory=dict)
    attachment_filename: Optional[str] = None
    attachment_content_type: Optional[str] = None

    @field_validator("config", mode="before")
    @classmethod
    def _decode_config(cls, value):
        return load_json_object(value)

    @computed_field(alias="hasAttachment")
    @property
    def has_attachment(self) -> bool:
        return self.attachment_filename is not None


class QuestionOrder(ApiModel):
    id: int
    order: int
    section_id: Optional[int] = None


class ReorderQuestionsRequest(ApiModel):
    questions: List[QuestionOrder] = Field(default_factory=list)
