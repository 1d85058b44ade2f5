"""응답 제출/수정 서비스 레이어입니다."""

import csv
import io
import json
import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session, selectinload

from formbuilder.config import settings
from formbuilder.models.form import Form, Question
from formbuilder.models.response import Answer, Response
from formbuilder.schemas.question import OPTION_BASED_TYPES, TEXT_TYPES, read_question_config
from formbuilder.schemas.response import AnswerInput, ResponseRequest
from formbuilder.services import file_service
from formbuilder.services.form_service import ensure_accepting_responses
from formbuilder.services.question_service import get_form_or_404, ordered_form_questions
from formbuilder.utils.json_fields import flag_enabled, serialize_answer_value

logger = logging.getLogger(__name__)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict)):
        return len(value) == 0
    return False


def _as_list(value: Any) -> Optional[list]:
    if isinstance(value, list):
        return value
    if isinstance(value, str) and value.strip().startswith("["):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            return None
        return parsed if isinstance(parsed, list) else None
    return None


def _validate_answer_value(question: Question, value: Any):
    config = read_question_config(question.type, question.config)
    if config is None:
        return

    if question.type in TEXT_TYPES:
        text = value if isinstance(value, str) else str(value)
        if config.min_length is not None and len(text) < config.min_length:
            raise HTTPException(status_code=400, detail=f"'{question.title}' 답변이 너무 짧습니다.")
        if config.max_length is not None and len(text) > config.max_length:
            raise HTTPException(status_code=400, detail=f"'{question.title}' 답변이 너무 깁니다.")
        return

    if question.type in OPTION_BASED_TYPES:
        labels = set(config.labels())
        if question.type == "checkbox":
            selected = _as_list(value)
            if selected is None:
                selected = [value]
            selected = [str(item) for item in selected]
            if any(item not in labels for item in selected):
                raise HTTPException(status_code=400, detail="항목형 응답 값이 유효하지 않습니다.")
            if config.min_selection is not None and len(selected) < config.min_selection:
                raise HTTPException(status_code=400, detail=f"'{question.title}' 항목을 더 선택해야 합니다.")
            if config.max_selection is not None and len(selected) > config.max_selection:
                raise HTTPException(status_code=400, detail=f"'{question.title}' 항목을 너무 많이 선택했습니다.")
        elif str(value) not in labels:
            raise HTTPException(status_code=400, detail="항목형 응답 값이 유효하지 않습니다.")
        return

    if question.type == "linear-scale":
        try:
            score = int(str(value).strip())
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="점수형 응답 값이 유효하지 않습니다.") from exc
        if score < config.min or score > config.max:
            raise HTTPException(status_code=400, detail="점수형 응답 값이 유효하지 않습니다.")
        return

    if question.type == "file-upload":
        files = _as_list(value)
        if files is None:
            raise HTTPException(status_code=400, detail="파일 응답 값이 유효하지 않습니다.")
        if len(files) > 1 and not config.allow_multiple:
            raise HTTPException(status_code=400, detail=f"'{question.title}' 질문은 파일을 하나만 올릴 수 있습니다.")


def validate_answers(form: Form, answers: list[AnswerInput]):
    question_map = {int(row.id): row for row in form.questions}
    answered = {}
    for answer in answers:
        if answer.question_id is None or int(answer.question_id) not in question_map:
            raise HTTPException(status_code=400, detail="설문 문항 정보가 올바르지 않습니다.")
        question = question_map[int(answer.question_id)]
        answered[question.id] = answer.value
        if not _is_blank(answer.value):
            _validate_answer_value(question, answer.value)

    missing_required = [
        question_id
        for question_id, question in question_map.items()
        if question.required and _is_blank(answered.get(question_id))
    ]
    if missing_required:
        raise HTTPException(status_code=400, detail="필수 문항에 모두 응답해야 제출할 수 있습니다.")


def _build_answers(answers: list[AnswerInput]) -> list[Answer]:
    return [
        Answer(question_id=answer.question_id, value=serialize_answer_value(answer.value))
        for answer in answers
    ]


def _find_duplicate(db: Session, form: Form, email: Optional[str], answers: list[Answer]) -> Optional[Response]:
    window = int(settings.RESPONSE_DEDUP_WINDOW_SECONDS or 0)
    if window <= 0:
        return None
    since = datetime.now() - timedelta(seconds=window)
    signature = [(row.question_id, row.value) for row in answers]
    candidates = (
        db.query(Response)
        .options(selectinload(Response.answers))
        .filter(Response.form_id == form.id, Response.submitted_at >= since)
        .order_by(Response.id.desc())
        .all()
    )
    for row in candidates:
        if row.email == email and [(a.question_id, a.value) for a in row.answers] == signature:
            return row
    return None


def submit_response(db: Session, *, form_id: int, data: ResponseRequest) -> Response:
    form = get_form_or_404(db, form_id)
    ensure_accepting_responses(form)

    email = None
    if flag_enabled(form.settings, "collectEmail") and data.email and data.email.strip():
        email = data.email.strip()
    elif data.email:
        logger.debug("[response] form %s does not collect email, dropping it", form.id)

    if settings.VALIDATE_ANSWERS:
        validate_answers(form, data.answers)

    answers = _build_answers(data.answers)
    duplicate = _find_duplicate(db, form, email, answers)
    if duplicate is not None:
        logger.info("[response] duplicate submission for form %s, returning response %s", form.id, duplicate.id)
        return duplicate

    row = Response(form=form, email=email, answers=answers, submitted_at=datetime.now())
    db.add(row)
    db.flush()
    linked = file_service.link_temp_files(db, row, data.answers)
    db.commit()
    db.refresh(row)
    logger.info("[response] submitted response %s for form %s (%d files linked)", row.id, form.id, linked)
    return row


def _get_response_for_form(db: Session, form_id: int, response_id: int) -> Response:
    row = (
        db.query(Response)
        .options(selectinload(Response.answers))
        .filter(Response.id == int(response_id))
        .first()
    )
    if not row or int(row.form_id) != int(form_id):
        raise HTTPException(status_code=404, detail="응답을 찾을 수 없습니다.")
    return row


def get_response(db: Session, *, form_id: int, response_id: int) -> Response:
    get_form_or_404(db, form_id)
    return _get_response_for_form(db, form_id, response_id)


def list_responses(db: Session, *, form_id: int) -> list[Response]:
    get_form_or_404(db, form_id)
    return (
        db.query(Response)
        .options(selectinload(Response.answers))
        .filter(Response.form_id == int(form_id))
        .order_by(Response.id.asc())
        .all()
    )


def update_response(db: Session, *, form_id: int, response_id: int, data: ResponseRequest) -> Response:
    form = get_form_or_404(db, form_id)
    if not flag_enabled(form.settings, "allowResponseEdit"):
        raise HTTPException(status_code=403, detail="응답 수정이 허용되지 않은 설문입니다.")
    row = _get_response_for_form(db, form_id, response_id)

    if settings.VALIDATE_ANSWERS:
        validate_answers(form, data.answers)

    # 부분 수정은 없다. 기존 답변은 모두 지우고 새 답변으로 바꾼다.
    row.answers.clear()
    db.flush()
    row.answers.extend(_build_answers(data.answers))
    row.updated_at = datetime.now()
    db.flush()
    linked = file_service.link_temp_files(db, row, data.answers)
    db.commit()
    db.refresh(row)
    logger.info("[response] updated response %s for form %s (%d files linked)", row.id, form.id, linked)
    return row


def _export_value(raw: Optional[str]) -> str:
    if raw is None:
        return ""
    items = _as_list(raw)
    if items is None:
        return raw
    values = []
    for item in items:
        if isinstance(item, dict):
            values.append(str(item.get("originalFilename") or item.get("name") or item.get("id") or ""))
        else:
            values.append(str(item))
    return "|".join(values)


def export_responses_csv(db: Session, *, form_id: int) -> str:
    form = get_form_or_404(db, form_id)
    questions = ordered_form_questions(form)
    rows = list_responses(db, form_id=form_id)

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(["응답 ID", "이메일", "제출 시각"] + [question.title for question in questions])
    for row in rows:
        answer_map = {answer.question_id: answer.value for answer in row.answers}
        values = [
            row.id,
            row.email or "",
            row.submitted_at.isoformat(sep=" ", timespec="seconds") if row.submitted_at else "",
        ]
        values.extend(_export_value(answer_map.get(question.id)) for question in questions)
        writer.writerow(values)
    return output.getvalue()
