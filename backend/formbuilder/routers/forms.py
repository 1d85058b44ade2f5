"""설문 폼 API 라우터입니다."""

from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from formbuilder.database import get_db
from formbuilder.schemas.form import FormCreate, FormOut, FormUpdate, PublicFormOut
from formbuilder.services import form_service

router = APIRouter(prefix="/api/forms", tags=["forms"])


@router.post("", response_model=FormOut, status_code=201)
def create_form(data: FormCreate, db: Session = Depends(get_db)):
    return form_service.create_form(db, data)


@router.get("", response_model=List[FormOut])
def list_forms(db: Session = Depends(get_db)):
    return form_service.list_forms(db)


@router.get("/{form_id}", response_model=FormOut)
def get_form(form_id: int, db: Session = Depends(get_db)):
    return form_service.get_form(db, form_id=form_id)


@router.put("/{form_id}", response_model=FormOut)
def update_form(form_id: int, data: FormUpdate, db: Session = Depends(get_db)):
    return form_service.update_form(db, form_id=form_id, data=data)


@router.delete("/{form_id}", status_code=204)
def delete_form(form_id: int, db: Session = Depends(get_db)):
    form_service.delete_form(db, form_id=form_id)
    return Response(status_code=204)


@router.get("/{form_id}/public", response_model=PublicFormOut)
def get_public_form(form_id: int, db: Session = Depends(get_db)):
    return form_service.get_public_form(db, form_id=form_id)
