"""API 스키마 공통 베이스입니다. JSON 필드는 camelCase, 입력은 snake_case도 허용합니다."""

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }
