"""환경 변수 기반 애플리케이션 설정을 중앙에서 관리합니다."""

from pydantic_settings import BaseSettings
from typing import List
from pathlib import Path


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./survey_forms.db"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8080"]

    # File upload
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10 MB
    ALLOWED_EXTENSIONS: List[str] = [
        "jpg", "jpeg", "png", "gif", "webp", "bmp", "tiff", "tif", "svg", "heic", "heif",
        "pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx", "txt", "zip", "rar", "7z", "csv",
    ]
    ALLOWED_CONTENT_TYPES: List[str] = [
        "image/jpeg", "image/png", "image/gif", "image/webp", "image/bmp", "image/tiff",
        "image/svg+xml", "image/heic", "image/heif",
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "application/vnd.ms-powerpoint",
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
        "text/plain", "text/csv",
        "application/zip", "application/x-zip-compressed",
        "application/x-rar-compressed", "application/x-7z-compressed",
    ]
    UPLOAD_DIR: str = "uploads"

    # 단계적 오픈 중인 질문 유형은 생성/수정 시 거부한다.
    DISABLED_QUESTION_TYPES: List[str] = ["file-upload", "linear-scale", "date"]

    # 응답
    VALIDATE_ANSWERS: bool = True
    # 0이면 중복 제출 방지를 하지 않는다.
    RESPONSE_DEDUP_WINDOW_SECONDS: int = 0

    # 개발용 전체 초기화 API
    ADMIN_RESET_ENABLED: bool = True

    # 클라이언트 임시저장(draft) 한도
    DRAFT_ATTACHMENT_MAX_BYTES: int = 1024 * 1024
    DRAFT_STORAGE_QUOTA_BYTES: int = 5 * 1024 * 1024

    class Config:
        # 실행 cwd와 무관하게 backend/.env를 로드한다.
        env_file = str(Path(__file__).resolve().parents[1] / ".env")


settings = Settings()
