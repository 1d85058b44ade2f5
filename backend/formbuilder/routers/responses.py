"""응답 제출/조회/수정 API 라우터입니다."""

from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from formbuilder.database import get_db
from formbuilder.schemas.response import ResponseOut, ResponseRequest
from formbuilder.services import response_service

router = APIRouter(prefix="/api/forms/{form_id}/responses", tags=["responses"])


@router.post("", response_model=ResponseOut, status_code=201)
def submit_response(form_id: int, data: ResponseRequest, db: Session = Depends(get_db)):
    return response_service.submit_response(db, form_id=form_id, data=data)


@router.get("", response_model=List[ResponseOut])
def list_responses(form_id: int, db: Session = Depends(get_db)):
    return response_service.list_responses(db, form_id=form_id)


@router.get("/export.csv")
def export_responses_csv(form_id: int, db: Session = Depends(get_db)):
    content = response_service.export_responses_csv(db, form_id=form_id)
    return Response(
        content=content.encode("utf-8-sig"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="form_{form_id}_responses.csv"'},
    )


@router.get("/{response_id}", response_model=ResponseOut)
def get_response(form_id: int, response_id: int, db: Session = Depends(get_db)):
    return response_service.get_response(db, form_id=form_id, response_id=response_id)


@router.put("/{response_id}", response_model=ResponseOut)
def update_response(form_id: int, response_id: int, data: ResponseRequest, db: Session = Depends(get_db)):
    return response_service.update_response(db, form_id=form_id, response_id=response_id, data=data)
