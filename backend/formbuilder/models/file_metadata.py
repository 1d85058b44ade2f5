"""업로드 파일 메타데이터 SQLAlchemy 모델입니다."""

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from formbuilder.database import Base


class FileMetadata(Base):
    __tablename__ = "file_metadata"

    id = Column(Integer, primary_key=True, autoincrement=True)
    original_filename = Column(String(255), nullable=False)
    stored_filename = Column(String(255), nullable=False)
    file_size = Column(BigInteger, nullable=False)
    content_type = Column(String(255), nullable=False)
    response_id = Column(Integer, ForeignKey("response.id", ondelete="CASCADE"), nullable=True)
    question_id = Column(Integer, ForeignKey("question.id", ondelete="CASCADE"), nullable=True)
    # 응답 제출 전 임시 업로드 (응답/질문 FK 없이 클라이언트 식별자만 보관)
    temp_form_id = Column(String(64), nullable=True)
    temp_question_id = Column(String(64), nullable=True)
    uploaded_at = Column(DateTime, server_default=func.now())

    response = relationship("Response", back_populates="files")
    question = relationship("Question", back_populates="files")

    __table_args__ = (
        Index("idx_file_metadata_response_question", "response_id", "question_id"),
    )
