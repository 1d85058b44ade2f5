"""SQLAlchemy 모델 패키지 초기화 모듈입니다."""

from formbuilder.models.form import Form, Section, Question
from formbuilder.models.response import Response, Answer
from formbuilder.models.file_metadata import FileMetadata

__all__ = [
    "Form", "Section", "Question",
    "Response", "Answer",
    "FileMetadata",
]
