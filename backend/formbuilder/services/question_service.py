"""질문 서비스 레이어입니다. 질문 CRUD, 순서 변경/컨테이너 이동, 질문 첨부파일을 담당합니다."""

import logging
from typing import Iterable, Optional

from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy.orm import Session

from formbuilder.config import settings
from formbuilder.models.form import Form, Question, Section
from formbuilder.schemas.question import (
    QUESTION_TYPES,
    QuestionCreate,
    QuestionUpdate,
    ReorderQuestionsRequest,
    normalize_question_config,
)
from formbuilder.services import ordering
from formbuilder.utils import file_storage
from formbuilder.utils.file_storage import IncomingFile
from formbuilder.utils.json_fields import dump_json, load_json_object

logger = logging.getLogger(__name__)


def get_form_or_404(db: Session, form_id: int) -> Form:
    row = db.query(Form).filter(Form.id == int(form_id)).first()
    if not row:
        raise HTTPException(status_code=404, detail="설문을 찾을 수 없습니다.")
    return row


def get_section_for_form(db: Session, form_id: int, section_id: int) -> Section:
    row = db.query(Section).filter(Section.id == int(section_id)).first()
    if not row or int(row.form_id) != int(form_id):
        raise HTTPException(status_code=404, detail="섹션을 찾을 수 없습니다.")
    return row


def get_question_or_404(db: Session, form_id: int, question_id: int) -> Question:
    row = db.query(Question).filter(Question.id == int(question_id)).first()
    if not row or int(row.form_id) != int(form_id):
        raise HTTPException(status_code=404, detail="질문을 찾을 수 없습니다.")
    return row


def validate_question_type(question_type: Optional[str]) -> str:
    normalized = str(question_type or "").strip().lower()
    if normalized not in QUESTION_TYPES:
        raise HTTPException(status_code=400, detail=f"알 수 없는 질문 유형입니다: {question_type}")
    disabled = {str(value).strip().lower() for value in settings.DISABLED_QUESTION_TYPES}
    if normalized in disabled:
        raise HTTPException(status_code=400, detail=f"'{normalized}' 질문 유형은 현재 지원하지 않습니다.")
    return normalized


def encode_question_config(question_type: str, config: Optional[dict]) -> str:
    try:
        normalized = normalize_question_config(question_type, config)
    except ValidationError as exc:
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = first.get("msg", "invalid")
        raise HTTPException(
            status_code=400,
            detail=f"질문 설정(config) 형식이 올바르지 않습니다. ({question_type} {location}: {message})",
        ) from exc
    return dump_json(normalized)


def validate_question_payloads(payloads: Iterable[QuestionCreate]) -> list[tuple[QuestionCreate, str, str]]:
    """저장 전에 모든 질문의 유형/config를 검증해 (payload, type, config_json) 목록으로 돌려준다."""
    validated = []
    for payload in payloads:
        question_type = validate_question_type(payload.type)
        validated.append((payload, question_type, encode_question_config(question_type, payload.config)))
    return validated


def build_questions(
    db: Session,
    form: Form,
    section: Optional[Section],
    validated: list[tuple[QuestionCreate, str, str]],
    kept_attachments: Optional[set[str]] = None,
) -> list[Question]:
    """요청 payload 로 질문을 만들고 컨테이너 안에서 0부터 연속되도록 순서를 매긴다.

    payload 의 orderIndex 가 있으면 정렬 키로 쓰고, 없으면 배열 위치를 쓴다.
    첨부파일 필드는 저장 파일명이 ``kept_attachments`` 에 있을 때만 옮긴다.
    """
    kept = kept_attachments or set()
    requested = []
    for position, (payload, question_type, config_json) in enumerate(validated):
        question = Question(
            form=form,
            section=section,
            type=question_type,
            title=payload.title or "",
            description=payload.description,
            required=bool(payload.required),
            order_index=position,
            config=config_json,
        )
        if payload.attachment_stored_name:
            if payload.attachment_stored_name in kept:
                question.attachment_filename = payload.attachment_filename
                question.attachment_stored_name = payload.attachment_stored_name
                question.attachment_content_type = payload.attachment_content_type
            else:
                logger.warning(
                    "[question] ignored unknown attachment %s for form %s",
                    payload.attachment_stored_name,
                    form.id,
                )
        db.add(question)
        target = payload.order_index if payload.order_index is not None else position
        requested.append((question, target))
    return ordering.apply_requested_order([], requested)


def container_questions(form: Form, section: Optional[Section]) -> list[Question]:
    """같은 컨테이너(섹션 또는 폼 루트)의 질문을 현재 순서대로 돌려준다."""
    if section is not None:
        members = [row for row in form.questions if row.section is section]
    else:
        members = [row for row in form.questions if row.section is None]
    return ordering.sorted_siblings(members)


def ordered_form_questions(form: Form) -> list[Question]:
    """루트 질문 다음에 섹션 순서대로 섹션 질문을 이어 붙인다."""
    rows = container_questions(form, None)
    for section in ordering.sorted_siblings(form.sections):
        rows.extend(container_questions(form, section))
    return rows


def create_question(db: Session, *, form_id: int, data: QuestionCreate) -> Question:
    form = get_form_or_404(db, form_id)
    section = get_section_for_form(db, form_id, data.section_id) if data.section_id is not None else None
    question_type = validate_question_type(data.type)
    config_json = encode_question_config(question_type, data.config)

    siblings = container_questions(form, section)
    row = Question(
        form=form,
        section=section,
        type=question_type,
        title=data.title or "",
        description=data.description,
        required=bool(data.required),
        order_index=len(siblings),
        config=config_json,
    )
    ordering.insert(siblings, row, data.order_index)
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("[question] created question %s in form %s (section=%s)", row.id, form.id, row.section_id)
    return row


def list_questions(db: Session, *, form_id: int) -> list[Question]:
    form = get_form_or_404(db, form_id)
    return ordered_form_questions(form)


def get_question(db: Session, *, form_id: int, question_id: int) -> Question:
    return get_question_or_404(db, form_id, question_id)


def _move_question(form: Form, row: Question, target_section: Optional[Section], to_index: Optional[int]):
    source = container_questions(form, row.section)
    if target_section is row.section:
        to = to_index if to_index is not None else source.index(row)
        ordering.move_within(source, source.index(row), to)
        return
    destination = container_questions(form, target_section)
    ordering.move_across(source, destination, row, to_index)
    row.section = target_section


def update_question(db: Session, *, form_id: int, question_id: int, data: QuestionUpdate) -> Question:
    row = get_question_or_404(db, form_id, question_id)
    form = row.form
    payload = data.model_dump(exclude_unset=True)

    next_type = validate_question_type(payload["type"]) if payload.get("type") is not None else row.type
    if "config" in payload or next_type != row.type:
        next_config = payload["config"] if "config" in payload else load_json_object(row.config)
        row.config = encode_question_config(next_type, next_config)
    row.type = next_type

    if payload.get("title") is not None:
        row.title = payload["title"]
    if "description" in payload:
        row.description = payload["description"]
    if payload.get("required") is not None:
        row.required = bool(payload["required"])

    moving_container = "section_id" in payload and payload["section_id"] != row.section_id
    if moving_container or payload.get("order_index") is not None:
        target_section = row.section
        if "section_id" in payload:
            target_section = (
                get_section_for_form(db, form_id, payload["section_id"])
                if payload["section_id"] is not None
                else None
            )
        _move_question(form, row, target_section, payload.get("order_index"))

    db.commit()
    db.refresh(row)
    return row


def delete_question(db: Session, *, form_id: int, question_id: int):
    row = get_question_or_404(db, form_id, question_id)
    form = row.form

    if row.attachment_stored_name:
        file_storage.delete_file_quietly(row.attachment_stored_name, context=f"(question {row.id})")
    for file_row in list(row.files):
        file_storage.delete_file_quietly(file_row.stored_filename, context=f"(file {file_row.id})")

    siblings = container_questions(form, row.section)
    ordering.remove(siblings, row)
    db.delete(row)
    db.commit()
    logger.info("[question] deleted question %s from form %s", question_id, form_id)


def reorder_questions(db: Session, *, form_id: int, data: ReorderQuestionsRequest) -> list[Question]:
    """여러 질문의 위치/소속 섹션을 한 번에 바꾼다. 영향을 받은 모든 컨테이너를 다시 매긴다."""
    form = get_form_or_404(db, form_id)
    if not data.questions:
        logger.warning("[question] empty reorder request for form %s", form_id)
        return ordered_form_questions(form)

    by_id = {int(row.id): row for row in form.questions}
    sections_by_id = {int(row.id): row for row in form.sections}

    moves = []
    for item in data.questions:
        row = by_id.get(int(item.id))
        if row is None:
            raise HTTPException(status_code=404, detail=f"질문을 찾을 수 없습니다: {item.id}")
        target = None
        if item.section_id is not None:
            target = sections_by_id.get(int(item.section_id))
            if target is None:
                raise HTTPException(status_code=404, detail=f"섹션을 찾을 수 없습니다: {item.section_id}")
        moves.append((row, target, int(item.order)))

    touched: list[Optional[Section]] = []

    def _touch(section: Optional[Section]):
        if not any(section is seen for seen in touched):
            touched.append(section)

    for row, target, _ in moves:
        _touch(row.section)
        _touch(target)
        row.section = target

    for section in touched:
        members = [row for row in form.questions if row.section is section]
        requested = [(row, order) for row, target, order in moves if target is section]
        ordering.apply_requested_order(members, requested)

    db.commit()
    logger.info("[question] reordered %d questions in form %s", len(moves), form_id)
    db.refresh(form)
    return ordered_form_questions(form)


def upload_attachment(db: Session, *, form_id: int, question_id: int, incoming: IncomingFile) -> Question:
    row = get_question_or_404(db, form_id, question_id)
    logger.info("[attachment] uploading attachment for question %s: %s", question_id, incoming.filename)
    file_storage.validate_file(incoming)

    if row.attachment_stored_name:
        if file_storage.delete_file_quietly(row.attachment_stored_name, context=f"(question {row.id})"):
            logger.info("[attachment] deleted previous attachment: %s", row.attachment_stored_name)

    stored_name = file_storage.save_file(incoming)
    row.attachment_filename = incoming.filename
    row.attachment_stored_name = stored_name
    row.attachment_content_type = incoming.content_type
    db.commit()
    db.refresh(row)
    return row


def delete_attachment(db: Session, *, form_id: int, question_id: int) -> Question:
    row = get_question_or_404(db, form_id, question_id)
    if not row.attachment_stored_name:
        raise HTTPException(status_code=404, detail="질문에 첨부파일이 없습니다.")

    file_storage.delete_file_or_500(row.attachment_stored_name)
    row.attachment_filename = None
    row.attachment_stored_name = None
    row.attachment_content_type = None
    db.commit()
    db.refresh(row)
    logger.info("[attachment] deleted attachment for question %s", question_id)
    return row


def download_attachment(db: Session, *, form_id: int, question_id: int) -> tuple[Question, bytes]:
    row = get_question_or_404(db, form_id, question_id)
    if not row.attachment_stored_name:
        raise HTTPException(status_code=404, detail="질문에 첨부파일이 없습니다.")
    return row, file_storage.read_file(row.attachment_stored_name)
