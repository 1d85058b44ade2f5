"""설문 폼 서비스 레이어입니다.

폼 수정은 섹션/질문을 모두 지우고 요청 내용으로 다시 만든다(전체 교체).
기존 질문 id 는 수정 후 더 이상 유효하지 않다.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from formbuilder.models.file_metadata import FileMetadata
from formbuilder.models.form import Form, Question, Section
from formbuilder.models.response import Response
from formbuilder.schemas.form import FormCreate, FormSettings, FormUpdate
from formbuilder.services import ordering
from formbuilder.services.question_service import (
    build_questions,
    container_questions,
    get_form_or_404,
    validate_question_payloads,
)
from formbuilder.utils import file_storage
from formbuilder.utils.json_fields import dump_json

logger = logging.getLogger(__name__)


def _validate_window(start_at: Optional[datetime], end_at: Optional[datetime]):
    if start_at and end_at and start_at > end_at:
        raise HTTPException(status_code=400, detail="설문 시작 시각은 종료 시각보다 이후일 수 없습니다.")


def _encode_settings(value: Optional[FormSettings]) -> Optional[str]:
    if value is None:
        return None
    return dump_json(value.model_dump(by_alias=True, exclude_none=True))


def ensure_accepting_responses(form: Form, now: Optional[datetime] = None):
    """시작/종료 시각이 지정된 폼은 그 구간 안에서만 응답을 받는다."""
    current = now or datetime.now()
    if form.start_at and current < form.start_at:
        raise HTTPException(status_code=403, detail="아직 응답을 받지 않는 설문입니다.")
    if form.end_at and current > form.end_at:
        raise HTTPException(status_code=403, detail="응답 기간이 종료된 설문입니다.")


def _validate_children(data: FormCreate) -> tuple[list, list]:
    """저장 전에 모든 질문 유형/config 를 검증한다. 하나라도 틀리면 아무것도 쓰지 않는다."""
    section_payloads = [
        (section_data, validate_question_payloads(section_data.questions)) for section_data in data.sections
    ]
    root_payloads = validate_question_payloads(data.questions)
    return section_payloads, root_payloads


def _build_children(
    db: Session,
    form: Form,
    section_payloads: list,
    root_payloads: list,
    kept_attachments: Optional[set[str]] = None,
):
    requested = []
    for position, (section_data, validated) in enumerate(section_payloads):
        section = Section(
            form=form,
            title=section_data.title or "",
            description=section_data.description,
            order_index=position,
        )
        db.add(section)
        build_questions(db, form, section, validated, kept_attachments)
        target = section_data.order_index if section_data.order_index is not None else position
        requested.append((section, target))
    ordering.apply_requested_order([], requested)
    build_questions(db, form, None, root_payloads, kept_attachments)


def _delete_rows(db: Session, rows: list):
    for row in rows:
        db.delete(row)
    db.flush()
    db.expire_all()


def _form_payload(form: Form) -> dict:
    return {
        "id": form.id,
        "title": form.title,
        "description": form.description,
        "settings": form.settings,
        "start_at": form.start_at,
        "end_at": form.end_at,
        "created_at": form.created_at,
        "updated_at": form.updated_at,
        "sections": ordering.sorted_siblings(form.sections),
        "questions": container_questions(form, None),
    }


def create_form(db: Session, data: FormCreate) -> dict:
    _validate_window(data.start_at, data.end_at)
    section_payloads, root_payloads = _validate_children(data)

    form = Form(
        title=data.title.strip(),
        description=data.description,
        settings=_encode_settings(data.settings),
        start_at=data.start_at,
        end_at=data.end_at,
    )
    db.add(form)
    _build_children(db, form, section_payloads, root_payloads)
    db.commit()
    db.refresh(form)
    logger.info(
        "[form] created form %s (%d sections, %d root questions)",
        form.id,
        len(section_payloads),
        len(root_payloads),
    )
    return _form_payload(form)


def list_forms(db: Session) -> list[dict]:
    rows = db.query(Form).order_by(Form.id.asc()).all()
    return [_form_payload(row) for row in rows]


def get_form(db: Session, *, form_id: int) -> dict:
    return _form_payload(get_form_or_404(db, form_id))


def update_form(db: Session, *, form_id: int, data: FormUpdate) -> dict:
    form = get_form_or_404(db, form_id)
    _validate_window(data.start_at, data.end_at)
    section_payloads, root_payloads = _validate_children(data)

    old_questions = list(form.questions)
    # 이 폼의 기존 질문이 갖고 있던 첨부파일만 유지할 수 있다.
    old_attachments = {row.attachment_stored_name for row in old_questions if row.attachment_stored_name}
    kept_attachments = {
        payload.attachment_stored_name
        for payload, _, _ in root_payloads + [item for _, validated in section_payloads for item in validated]
        if payload.attachment_stored_name in old_attachments
    }
    stale_files = sorted(old_attachments - kept_attachments)

    # 파일 메타데이터 -> 질문 -> 섹션 순서로 지운다.
    # 단계마다 flush 후 expire 해서 이미 지운 행이 컬렉션에 남지 않게 한다.
    old_question_ids = [row.id for row in old_questions]
    if old_question_ids:
        file_rows = db.query(FileMetadata).filter(FileMetadata.question_id.in_(old_question_ids)).all()
        stale_files.extend(row.stored_filename for row in file_rows)
        _delete_rows(db, file_rows)
    _delete_rows(db, db.query(Question).filter(Question.form_id == form.id).all())
    _delete_rows(db, db.query(Section).filter(Section.form_id == form.id).all())

    form.title = data.title.strip()
    form.description = data.description
    form.settings = _encode_settings(data.settings)
    form.start_at = data.start_at
    form.end_at = data.end_at
    _build_children(db, form, section_payloads, root_payloads, kept_attachments)
    db.commit()
    db.refresh(form)

    for stored_name in stale_files:
        file_storage.delete_file_quietly(stored_name, context=f"(form {form.id} rebuild)")
    logger.info(
        "[form] rebuilt form %s: removed %d questions, cleaned %d files",
        form.id,
        len(old_question_ids),
        len(stale_files),
    )
    return _form_payload(form)


def delete_form(db: Session, *, form_id: int):
    form = get_form_or_404(db, form_id)

    for question in form.questions:
        if question.attachment_stored_name:
            file_storage.delete_file_quietly(
                question.attachment_stored_name, context=f"(question {question.id}, form {form.id})"
            )

    question_ids = [row.id for row in form.questions]
    response_ids = [row.id for row in form.responses]
    file_rows = []
    if question_ids:
        file_rows.extend(db.query(FileMetadata).filter(FileMetadata.question_id.in_(question_ids)).all())
    if response_ids:
        file_rows.extend(
            row
            for row in db.query(FileMetadata).filter(FileMetadata.response_id.in_(response_ids)).all()
            if row not in file_rows
        )
    stored_names = [row.stored_filename for row in file_rows]

    _delete_rows(db, file_rows)
    _delete_rows(db, db.query(Question).filter(Question.form_id == form_id).all())
    _delete_rows(db, db.query(Section).filter(Section.form_id == form_id).all())
    _delete_rows(db, db.query(Response).filter(Response.form_id == form_id).all())
    db.delete(get_form_or_404(db, form_id))
    db.commit()

    for stored_name in stored_names:
        file_storage.delete_file_quietly(stored_name, context=f"(form {form_id} delete)")
    logger.info("[form] deleted form %s", form_id)


def get_public_form(db: Session, *, form_id: int) -> dict:
    """응답자용 조회. 저장 파일명 같은 내부 정보는 스키마 단계에서 빠진다."""
    return _form_payload(get_form_or_404(db, form_id))
