"""섹션 API 라우터입니다."""

from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from formbuilder.database import get_db
from formbuilder.schemas.section import SectionCreate, SectionOut, SectionUpdate
from formbuilder.services import section_service

router = APIRouter(prefix="/api/forms/{form_id}/sections", tags=["sections"])


@router.post("", response_model=SectionOut, status_code=201)
def create_section(form_id: int, data: SectionCreate, db: Session = Depends(get_db)):
    return section_service.create_section(db, form_id=form_id, data=data)


@router.get("", response_model=List[SectionOut])
def list_sections(form_id: int, db: Session = Depends(get_db)):
    return section_service.list_sections(db, form_id=form_id)


@router.get("/{section_id}", response_model=SectionOut)
def get_section(form_id: int, section_id: int, db: Session = Depends(get_db)):
    return section_service.get_section(db, form_id=form_id, section_id=section_id)


@router.put("/{section_id}", response_model=SectionOut)
def update_section(form_id: int, section_id: int, data: SectionUpdate, db: Session = Depends(get_db)):
    return section_service.update_section(db, form_id=form_id, section_id=section_id, data=data)


@router.delete("/{section_id}", status_code=204)
def delete_section(form_id: int, section_id: int, db: Session = Depends(get_db)):
    section_service.delete_section(db, form_id=form_id, section_id=section_id)
    return Response(status_code=204)
