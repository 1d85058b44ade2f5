"""Seed the database with a sample survey form."""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from formbuilder.database import SessionLocal, engine, Base
import formbuilder.models  # noqa: F401

from formbuilder.models.form import Form
from formbuilder.schemas.form import FormCreate
from formbuilder.services import form_service


SAMPLE_FORM = {
    "title": "교육 만족도 조사",
    "description": "과정 종료 후 만족도를 조사합니다.",
    "settings": {"collectEmail": True, "allowResponseEdit": True},
    "sections": [
        {
            "title": "기본 정보",
            "questions": [
                {"type": "short-text", "title": "이름", "required": True, "config": {"maxLength": 30}},
                {"type": "dropdown", "title": "소속", "config": {"options": ["개발팀", "기획팀", "HR팀"]}},
            ],
        },
        {
            "title": "만족도",
            "questions": [
                {
                    "type": "multiple-choice",
                    "title": "전반적인 만족도",
                    "required": True,
                    "config": {"options": ["매우 만족", "만족", "보통", "불만족"]},
                },
                {
                    "type": "checkbox",
                    "title": "도움이 된 항목",
                    "config": {"options": ["강의", "실습", "코칭"], "maxSelection": 2},
                },
            ],
        },
    ],
    "questions": [{"type": "long-text", "title": "기타 의견"}],
}


def seed():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        if db.query(Form).count() > 0:
            print("Database already seeded. Skipping.")
            return
        created = form_service.create_form(db, FormCreate.model_validate(SAMPLE_FORM))
        print(f"Seeded sample form id={created['id']}")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
