"""개발/테스트용 전체 데이터 초기화 서비스입니다."""

import logging

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from formbuilder.config import settings
from formbuilder.models.file_metadata import FileMetadata
from formbuilder.models.form import Form, Question, Section
from formbuilder.models.response import Answer, Response
from formbuilder.utils import file_storage

logger = logging.getLogger(__name__)

# FK 참조하는 쪽부터 지운다.
RESET_ORDER = (
    ("answers", Answer),
    ("files", FileMetadata),
    ("responses", Response),
    ("questions", Question),
    ("sections", Section),
    ("forms", Form),
)


def reset_database(db: Session) -> dict:
    if not settings.ADMIN_RESET_ENABLED:
        raise HTTPException(status_code=403, detail="데이터 초기화가 비활성화되어 있습니다.")

    stored_names = [row[0] for row in db.query(FileMetadata.stored_filename).all()]
    stored_names.extend(
        row[0]
        for row in db.query(Question.attachment_stored_name)
        .filter(Question.attachment_stored_name.isnot(None))
        .all()
    )

    deleted = {}
    try:
        for name, model in RESET_ORDER:
            deleted[name] = db.query(model).delete(synchronize_session=False)
            logger.info("[admin] reset: deleted %d %s", deleted[name], name)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error("[admin] database reset failed", exc_info=True)
        raise HTTPException(status_code=500, detail="데이터베이스 초기화에 실패했습니다.")
    db.expire_all()

    removed = sum(
        1 for stored_name in stored_names if file_storage.delete_file_quietly(stored_name, context="(reset)")
    )
    logger.warning("[admin] database reset completed, %d stored files removed", removed)
    return {"message": "데이터베이스가 초기화되었습니다.", "deleted": deleted, "removedFiles": removed}
