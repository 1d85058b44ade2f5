"""파일 업로드 요청/응답 계약을 위한 Pydantic 스키마입니다."""

from datetime import datetime
from typing import Optional

from formbuilder.schemas.common import ApiModel


class FileMetadataOut(ApiModel):
    id: int
    original_filename: str
    stored_filename: str
    file_size: int
    content_type: str
    response_id: Optional[int] = None
    question_id: Optional[int] = None
    temp_form_id: Optional[str] = None
    temp_question_id: Optional[str] = None
    uploaded_at: Optional[datetime] = None
