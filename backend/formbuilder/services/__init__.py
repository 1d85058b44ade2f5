"""서비스 레이어 패키지 초기화 모듈입니다."""

from formbuilder.services import (
    ordering,
    question_service,
    form_service,
    section_service,
    file_service,
    response_service,
    admin_service,
)
