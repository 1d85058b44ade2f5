"""FastAPI 애플리케이션 진입점. 미들웨어와 API 라우터를 등록합니다."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from formbuilder.config import settings
from formbuilder.database import Base, engine
import formbuilder.models  # noqa: F401 - 모델 import로 metadata 등록
from formbuilder.routers import admin, files, forms, questions, responses, sections

logging.basicConfig(
    level=getattr(logging, str(settings.LOG_LEVEL).upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="설문 폼 빌더",
    description="섹션/질문 구성, 응답 수집, 첨부파일 관리를 제공하는 설문 폼 백엔드",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(forms.router)
app.include_router(sections.router)
app.include_router(questions.router)
app.include_router(responses.router)
app.include_router(files.router)
app.include_router(admin.router)


@app.on_event("startup")
def ensure_schema():
    # 누락된 테이블을 자동 생성합니다.
    Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {"status": "ok", "service": "설문 폼 빌더"}
