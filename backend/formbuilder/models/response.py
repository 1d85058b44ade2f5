"""응답/답변 SQLAlchemy 모델입니다."""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from formbuilder.database import Base


class Response(Base):
    __tablename__ = "response"

    id = Column(Integer, primary_key=True, autoincrement=True)
    form_id = Column(Integer, ForeignKey("form.id", ondelete="CASCADE"), nullable=False)
    email = Column(String(255), nullable=True)
    submitted_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())

    form = relationship("Form", back_populates="responses")
    answers = relationship(
        "Answer",
        back_populates="response",
        cascade="all, delete-orphan",
        order_by="Answer.id.asc()",
    )
    files = relationship(
        "FileMetadata",
        back_populates="response",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_response_form", "form_id"),
    )


class Answer(Base):
    __tablename__ = "answer"

    id = Column(Integer, primary_key=True, autoincrement=True)
    response_id = Column(Integer, ForeignKey("response.id", ondelete="CASCADE"), nullable=False)
    # 질문 재생성 후에도 답변이 남도록 FK를 걸지 않는다.
    question_id = Column(Integer, nullable=True)
    value = Column(Text, nullable=True)

    response = relationship("Response", back_populates="answers")
