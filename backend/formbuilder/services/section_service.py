"""섹션 서비스 레이어입니다."""

import logging

from sqlalchemy.orm import Session

from formbuilder.models.form import Section
from formbuilder.schemas.section import SectionCreate, SectionUpdate
from formbuilder.services import ordering
from formbuilder.services.question_service import (
    build_questions,
    get_form_or_404,
    get_section_for_form,
    validate_question_payloads,
)
from formbuilder.utils import file_storage

logger = logging.getLogger(__name__)


def create_section(db: Session, *, form_id: int, data: SectionCreate) -> Section:
    form = get_form_or_404(db, form_id)
    validated = validate_question_payloads(data.questions)

    siblings = ordering.sorted_siblings(form.sections)
    row = Section(
        form=form,
        title=data.title or "",
        description=data.description,
        order_index=len(siblings),
    )
    ordering.insert(siblings, row, data.order_index)
    db.add(row)
    build_questions(db, form, row, validated)
    db.commit()
    db.refresh(row)
    logger.info("[section] created section %s in form %s at %s", row.id, form.id, row.order_index)
    return row


def list_sections(db: Session, *, form_id: int) -> list[Section]:
    form = get_form_or_404(db, form_id)
    return ordering.sorted_siblings(form.sections)


def get_section(db: Session, *, form_id: int, section_id: int) -> Section:
    return get_section_for_form(db, form_id, section_id)


def update_section(db: Session, *, form_id: int, section_id: int, data: SectionUpdate) -> Section:
    row = get_section_for_form(db, form_id, section_id)
    payload = data.model_dump(exclude_unset=True)

    if payload.get("title") is not None:
        row.title = payload["title"]
    if "description" in payload:
        row.description = payload["description"]
    if payload.get("order_index") is not None:
        siblings = ordering.sorted_siblings(row.form.sections)
        ordering.move_within(siblings, siblings.index(row), payload["order_index"])

    db.commit()
    db.refresh(row)
    return row


def delete_section(db: Session, *, form_id: int, section_id: int):
    """섹션과 소속 질문(첨부파일, 응답 파일 포함)을 함께 지우고 남은 섹션을 다시 매긴다."""
    row = get_section_for_form(db, form_id, section_id)
    form = row.form

    questions = list(row.questions)
    for question in questions:
        if question.attachment_stored_name:
            file_storage.delete_file_quietly(question.attachment_stored_name, context=f"(question {question.id})")
        for file_row in question.files:
            file_storage.delete_file_quietly(file_row.stored_filename, context=f"(file {file_row.id})")
        # 질문 삭제 시 FileMetadata 도 함께 지워진다.
        db.delete(question)

    siblings = ordering.sorted_siblings(form.sections)
    ordering.remove(siblings, row)
    db.delete(row)
    db.commit()
    logger.info("[section] deleted section %s from form %s", section_id, form_id)
