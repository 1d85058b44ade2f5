"""질문 API 라우터입니다. 질문 CRUD, 순서 변경, 질문 첨부파일 엔드포인트를 제공합니다."""

from typing import List

from fastapi import APIRouter, Depends, File, Response, UploadFile
from sqlalchemy.orm import Session

from formbuilder.database import get_db
from formbuilder.schemas.question import QuestionCreate, QuestionOut, QuestionUpdate, ReorderQuestionsRequest
from formbuilder.services import question_service
from formbuilder.utils.file_storage import content_disposition, read_upload

router = APIRouter(prefix="/api/forms/{form_id}/questions", tags=["questions"])


@router.post("", response_model=QuestionOut, status_code=201)
def create_question(form_id: int, data: QuestionCreate, db: Session = Depends(get_db)):
    return question_service.create_question(db, form_id=form_id, data=data)


@router.get("", response_model=List[QuestionOut])
def list_questions(form_id: int, db: Session = Depends(get_db)):
    return question_service.list_questions(db, form_id=form_id)


# /{question_id} 보다 먼저 등록해야 "reorder"가 id 로 해석되지 않는다.
@router.put("/reorder", response_model=List[QuestionOut])
def reorder_questions(form_id: int, data: ReorderQuestionsRequest, db: Session = Depends(get_db)):
    return question_service.reorder_questions(db, form_id=form_id, data=data)


@router.get("/{question_id}", response_model=QuestionOut)
def get_question(form_id: int, question_id: int, db: Session = Depends(get_db)):
    return question_service.get_question(db, form_id=form_id, question_id=question_id)


@router.put("/{question_id}", response_model=QuestionOut)
def update_question(form_id: int, question_id: int, data: QuestionUpdate, db: Session = Depends(get_db)):
    return question_service.update_question(db, form_id=form_id, question_id=question_id, data=data)


@router.delete("/{question_id}", status_code=204)
def delete_question(form_id: int, question_id: int, db: Session = Depends(get_db)):
    question_service.delete_question(db, form_id=form_id, question_id=question_id)
    return Response(status_code=204)


@router.post("/{question_id}/attachment", response_model=QuestionOut)
async def upload_attachment(
    form_id: int,
    question_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    incoming = await read_upload(file)
    return question_service.upload_attachment(db, form_id=form_id, question_id=question_id, incoming=incoming)


@router.get("/{question_id}/attachment")
def download_attachment(form_id: int, question_id: int, db: Session = Depends(get_db)):
    row, content = question_service.download_attachment(db, form_id=form_id, question_id=question_id)
    media_type = row.attachment_content_type or "application/octet-stream"
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": content_disposition(row.attachment_filename or "attachment", media_type)},
    )


@router.delete("/{question_id}/attachment", status_code=204)
def delete_attachment(form_id: int, question_id: int, db: Session = Depends(get_db)):
    question_service.delete_attachment(db, form_id=form_id, question_id=question_id)
    return Response(status_code=204)
