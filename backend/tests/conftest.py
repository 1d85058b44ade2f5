import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from formbuilder.config import settings
from formbuilder.database import Base, enable_sqlite_foreign_keys, get_db
from formbuilder.main import app

TEST_DB_URL = "sqlite:///./test_forms.db"

engine = create_engine(TEST_DB_URL, connect_args={"check_same_thread": False})
enable_sqlite_foreign_keys(engine)
TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    path.mkdir()
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(path))
    return path


@pytest.fixture
def enable_all_question_types(monkeypatch):
    monkeypatch.setattr(settings, "DISABLED_QUESTION_TYPES", [])


@pytest.fixture
def db():
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    return TestClient(app)


def choice_question(title: str, options: list[str], **extra) -> dict:
    return {
        "type": "multiple-choice",
        "title": title,
        "config": {"options": [{"label": label} for label in options]},
        **extra,
    }


def create_form(client, **overrides) -> dict:
    payload = {"title": "Survey", "settings": {"collectEmail": False}}
    payload.update(overrides)
    resp = client.post("/api/forms", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()


def section_questions(form: dict, index: int = 0) -> list[dict]:
    return form["sections"][index]["questions"]
