"""개발용 관리 API 라우터입니다."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from formbuilder.database import get_db
from formbuilder.services import admin_service

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.delete("/reset")
def reset_database(db: Session = Depends(get_db)):
    return admin_service.reset_database(db)
