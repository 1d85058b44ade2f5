"""응답 첨부파일 업로드/다운로드 API 라우터입니다."""

from typing import List

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile
from sqlalchemy.orm import Session

from formbuilder.database import get_db
from formbuilder.schemas.file import FileMetadataOut
from formbuilder.services import file_service
from formbuilder.utils.file_storage import content_disposition, read_upload

router = APIRouter(prefix="/api", tags=["files"])


@router.post("/files/upload", response_model=FileMetadataOut, status_code=201)
async def upload_temp_file(
    file: UploadFile = File(...),
    form_id: str = Form(..., alias="formId"),
    question_id: str = Form(..., alias="questionId"),
    db: Session = Depends(get_db),
):
    incoming = await read_upload(file)
    return file_service.upload_temp_file(db, form_id=form_id, question_id=question_id, incoming=incoming)


@router.post(
    "/responses/{response_id}/questions/{question_id}/files",
    response_model=FileMetadataOut,
    status_code=201,
)
async def upload_response_file(
    response_id: int,
    question_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    incoming = await read_upload(file)
    return file_service.upload_response_file(
        db, response_id=response_id, question_id=question_id, incoming=incoming
    )


@router.get("/responses/{response_id}/questions/{question_id}/files", response_model=List[FileMetadataOut])
def list_files_by_response_and_question(response_id: int, question_id: int, db: Session = Depends(get_db)):
    return file_service.list_files_by_response_and_question(db, response_id=response_id, question_id=question_id)


@router.get("/files/{file_id}")
def download_file(file_id: int, db: Session = Depends(get_db)):
    row, content = file_service.download_file(db, file_id=file_id)
    return Response(
        content=content,
        media_type=row.content_type or "application/octet-stream",
        headers={"Content-Disposition": content_disposition(row.original_filename, row.content_type)},
    )


@router.get("/files/{file_id}/metadata", response_model=FileMetadataOut)
def get_file_metadata(file_id: int, db: Session = Depends(get_db)):
    return file_service.get_file_metadata(db, file_id=file_id)


@router.get("/responses/{response_id}/files", response_model=List[FileMetadataOut])
def list_files_by_response(response_id: int, db: Session = Depends(get_db)):
    return file_service.list_files_by_response(db, response_id=response_id)


@router.get("/questions/{question_id}/files", response_model=List[FileMetadataOut])
def list_files_by_question(question_id: int, db: Session = Depends(get_db)):
    return file_service.list_files_by_question(db, question_id=question_id)


@router.delete("/files/{file_id}", status_code=204)
def delete_file(file_id: int, db: Session = Depends(get_db)):
    file_service.delete_file(db, file_id=file_id)
    return Response(status_code=204)
