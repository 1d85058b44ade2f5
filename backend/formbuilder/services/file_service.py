"""응답 첨부파일 서비스 레이어입니다.

응답 제출 전에는 폼/질문 식별자만 가진 임시 파일로 올리고,
제출 시 답변 값에 들어 있는 파일 id 로 응답과 질문에 연결한다.
"""

import json
import logging
from typing import Any, Iterable, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from formbuilder.models.file_metadata import FileMetadata
from formbuilder.models.form import Question
from formbuilder.models.response import Response
from formbuilder.schemas.question import read_question_config
from formbuilder.utils import file_storage
from formbuilder.utils.file_storage import IncomingFile

logger = logging.getLogger(__name__)


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _check_question_constraints(question: Optional[Question], incoming: IncomingFile):
    """파일 업로드 질문의 config(허용 확장자, 최대 크기)를 추가로 적용한다."""
    if question is None or question.type != "file-upload":
        return
    config = read_question_config(question.type, question.config)
    if config is None:
        return
    allowed = {ext.strip().lstrip(".").lower() for ext in config.allowed_extensions if ext.strip()}
    if allowed and incoming.extension not in allowed:
        raise HTTPException(
            status_code=400,
            detail=f"이 질문에서 허용하지 않는 파일 형식입니다. 허용 확장자: {', '.join(sorted(allowed))}",
        )
    if incoming.size > config.max_file_size:
        raise HTTPException(
            status_code=400,
            detail=f"이 질문의 최대 파일 크기({config.max_file_size} bytes)를 초과했습니다.",
        )


def upload_temp_file(db: Session, *, form_id: str, question_id: str, incoming: IncomingFile) -> FileMetadata:
    form_key = str(form_id or "").strip()
    question_key = str(question_id or "").strip()
    if not form_key or not question_key:
        raise HTTPException(status_code=400, detail="formId와 questionId가 필요합니다.")

    parsed_question_id = _to_int(question_key)
    question = db.get(Question, parsed_question_id) if parsed_question_id is not None else None
    _check_question_constraints(question, incoming)

    stored_name = file_storage.save_file(incoming)
    row = FileMetadata(
        original_filename=incoming.filename,
        stored_filename=stored_name,
        file_size=incoming.size,
        content_type=incoming.content_type,
        temp_form_id=form_key,
        temp_question_id=question_key,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("[file] temp upload %s for form=%s question=%s", row.id, form_key, question_key)
    return row


def upload_response_file(db: Session, *, response_id: int, question_id: int, incoming: IncomingFile) -> FileMetadata:
    response = db.get(Response, int(response_id))
    if not response:
        raise HTTPException(status_code=404, detail="응답을 찾을 수 없습니다.")
    question = db.get(Question, int(question_id))
    if not question:
        raise HTTPException(status_code=404, detail="질문을 찾을 수 없습니다.")
    _check_question_constraints(question, incoming)

    stored_name = file_storage.save_file(incoming)
    row = FileMetadata(
        original_filename=incoming.filename,
        stored_filename=stored_name,
        file_size=incoming.size,
        content_type=incoming.content_type,
        response=response,
        question=question,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("[file] uploaded %s for response=%s question=%s", row.id, response.id, question.id)
    return row


def get_file_or_404(db: Session, file_id: int) -> FileMetadata:
    row = db.get(FileMetadata, int(file_id))
    if not row:
        raise HTTPException(status_code=404, detail="파일을 찾을 수 없습니다.")
    return row


def get_file_metadata(db: Session, *, file_id: int) -> FileMetadata:
    return get_file_or_404(db, file_id)


def download_file(db: Session, *, file_id: int) -> tuple[FileMetadata, bytes]:
    row = get_file_or_404(db, file_id)
    return row, file_storage.read_file(row.stored_filename)


def list_files_by_response(db: Session, *, response_id: int) -> list[FileMetadata]:
    return (
        db.query(FileMetadata)
        .filter(FileMetadata.response_id == int(response_id))
        .order_by(FileMetadata.id.asc())
        .all()
    )


def list_files_by_question(db: Session, *, question_id: int) -> list[FileMetadata]:
    return (
        db.query(FileMetadata)
        .filter(FileMetadata.question_id == int(question_id))
        .order_by(FileMetadata.id.asc())
        .all()
    )


def list_files_by_response_and_question(db: Session, *, response_id: int, question_id: int) -> list[FileMetadata]:
    return (
        db.query(FileMetadata)
        .filter(
            FileMetadata.response_id == int(response_id),
            FileMetadata.question_id == int(question_id),
        )
        .order_by(FileMetadata.id.asc())
        .all()
    )


def delete_file(db: Session, *, file_id: int):
    row = get_file_or_404(db, file_id)
    file_storage.delete_file_or_500(row.stored_filename)
    db.delete(row)
    db.commit()
    logger.info("[file] deleted file %s", file_id)


def _file_references(value: Any) -> list[int]:
    """답변 값에서 [{"id": ...}, ...] 형태의 파일 참조 id 를 뽑는다. 문자열 JSON 도 허용한다."""
    if isinstance(value, str):
        text = value.strip()
        if not text.startswith("["):
            return []
        try:
            value = json.loads(text)
        except json.JSONDecodeError:
            return []
    if not isinstance(value, list):
        return []
    ids = []
    for entry in value:
        if isinstance(entry, dict) and "id" in entry:
            file_id = _to_int(entry.get("id"))
            if file_id is not None:
                ids.append(file_id)
    return ids


def link_temp_files(db: Session, response: Response, answers: Iterable[Any]) -> int:
    """답변이 참조하는 파일을 응답과 질문에 연결한다.

    다른 응답에 이미 연결된 파일은 건드리지 않는다. 호출자가 commit 한다.
    """
    linked = 0
    for answer in answers:
        question_id = getattr(answer, "question_id", None)
        for file_id in _file_references(getattr(answer, "value", None)):
            row = db.get(FileMetadata, file_id)
            if row is None:
                logger.warning("[file] referenced file %s not found (response %s)", file_id, response.id)
                continue
            if row.response_id is not None and row.response_id != response.id:
                logger.warning(
                    "[file] file %s already belongs to response %s, skipped", file_id, row.response_id
                )
                continue
            row.response = response
            if question_id is not None:
                question = (
                    db.query(Question)
                    .filter(Question.id == int(question_id), Question.form_id == response.form_id)
                    .first()
                )
                if question is not None:
                    row.question = question
                else:
                    logger.warning(
                        "[file] question %s is not part of form %s, file %s keeps its question",
                        question_id,
                        response.form_id,
                        file_id,
                    )
            linked += 1
            logger.info("[file] linked file %s to response %s question %s", file_id, response.id, question_id)
    return linked
