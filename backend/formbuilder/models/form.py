"""설문 폼/섹션/질문 SQLAlchemy 모델입니다."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from formbuilder.database import Base


class Form(Base):
    __tablename__ = "form"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    settings = Column(Text)  # JSON: {collectEmail, allowResponseEdit, showProgressBar, shuffleQuestions}
    start_at = Column(DateTime, nullable=True)
    end_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    sections = relationship(
        "Section",
        back_populates="form",
        cascade="all, delete-orphan",
        order_by="Section.order_index.asc(), Section.id.asc()",
    )
    questions = relationship(
        "Question",
        back_populates="form",
        cascade="all, delete-orphan",
        order_by="Question.order_index.asc(), Question.id.asc()",
    )
    responses = relationship(
        "Response",
        back_populates="form",
        cascade="all, delete-orphan",
        order_by="Response.id.asc()",
    )


class Section(Base):
    __tablename__ = "section"

    id = Column(Integer, primary_key=True, autoincrement=True)
    form_id = Column(Integer, ForeignKey("form.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    order_index = Column(Integer, nullable=False, default=0)

    form = relationship("Form", back_populates="sections")
    questions = relationship(
        "Question",
        back_populates="section",
        # 질문의 소유자는 Form 이다. 섹션 밖으로 옮겨도 질문은 남는다.
        cascade="save-update, merge",
        order_by="Question.order_index.asc(), Question.id.asc()",
    )

    __table_args__ = (
        Index("idx_section_form_order", "form_id", "order_index"),
        # 삭제된 id 를 재사용하지 않는다.
        {"sqlite_autoincrement": True},
    )


class Question(Base):
    __tablename__ = "question"

    id = Column(Integer, primary_key=True, autoincrement=True)
    form_id = Column(Integer, ForeignKey("form.id", ondelete="CASCADE"), nullable=False)
    section_id = Column(Integer, ForeignKey("section.id", ondelete="CASCADE"), nullable=True)
    type = Column(String(30), nullable=False)
    title = Column(String(500), nullable=False)
    description = Column(Text)
    required = Column(Boolean, nullable=False, default=False)
    order_index = Column(Integer, nullable=False, default=0)
    config = Column(Text)  # JSON, 유형별 구조는 schemas.question 참고
    attachment_filename = Column(String(255), nullable=True)
    attachment_stored_name = Column(String(255), nullable=True)
    attachment_content_type = Column(String(255), nullable=True)

    form = relationship("Form", back_populates="questions")
    section = relationship("Section", back_populates="questions")
    files = relationship(
        "FileMetadata",
        back_populates="question",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_question_form_section_order", "form_id", "section_id", "order_index"),
        {"sqlite_autoincrement": True},
    )
