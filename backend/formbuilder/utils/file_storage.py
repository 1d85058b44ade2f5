"""업로드 파일의 로컬 디스크 저장소입니다.

저장 파일명은 업로드마다 새로 만들어지므로 쓰기는 덮어쓰지 않는다.
삭제는 파일 단위로 독립적이며, 정리 목적의 삭제는 ``delete_file_quietly`` 를 쓴다.
"""

import logging
import os
import re
import time
import uuid
from dataclasses import dataclass
from urllib.parse import quote

from fastapi import HTTPException, UploadFile

from formbuilder.config import settings

logger = logging.getLogger(__name__)

GENERIC_CONTENT_TYPES = {"", "application/octet-stream"}
_UNSAFE_CHARS_RE = re.compile(r"[^\w.-]+")


@dataclass
class IncomingFile:
    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        return file_extension(self.filename)


def file_extension(filename: str | None) -> str:
    name = os.path.basename(filename or "")
    if "." not in name.strip("."):
        return ""
    return name.rsplit(".", 1)[-1].lower()


async def read_upload(file: UploadFile) -> IncomingFile:
    content = await file.read()
    return IncomingFile(
        filename=os.path.basename(file.filename or ""),
        content_type=file.content_type or "application/octet-stream",
        content=content,
    )


def validate_file(incoming: IncomingFile) -> None:
    if not incoming.content:
        raise HTTPException(status_code=400, detail="빈 파일은 업로드할 수 없습니다.")
    if incoming.size > settings.MAX_UPLOAD_SIZE:
        raise HTTPException(
            status_code=400,
            detail=f"파일 크기가 최대 허용 크기({settings.MAX_UPLOAD_SIZE} bytes)를 초과했습니다.",
        )
    if not incoming.filename:
        raise HTTPException(status_code=400, detail="파일 이름이 올바르지 않습니다.")

    ext = incoming.extension
    allowed_extensions = {value.lower() for value in settings.ALLOWED_EXTENSIONS}
    if ext not in allowed_extensions:
        raise HTTPException(
            status_code=400,
            detail=f"지원하지 않는 파일 형식입니다. 허용 확장자: {', '.join(sorted(allowed_extensions))}",
        )

    # 브라우저가 MIME 타입을 비워 보내면 확장자 검사만으로 허용한다.
    content_type = (incoming.content_type or "").strip().lower()
    if content_type not in GENERIC_CONTENT_TYPES and content_type not in settings.ALLOWED_CONTENT_TYPES:
        raise HTTPException(status_code=400, detail=f"허용되지 않는 콘텐츠 형식입니다: {content_type}")


def generate_stored_name(original_filename: str) -> str:
    name = os.path.basename(original_filename)
    ext = file_extension(name)
    stem = name[: -(len(ext) + 1)] if ext else name
    stem = _UNSAFE_CHARS_RE.sub("_", stem).strip("._") or "file"
    suffix = f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"
    return f"{stem}_{suffix}.{ext}" if ext else f"{stem}_{suffix}"


def file_path(stored_name: str) -> str:
    return os.path.join(settings.UPLOAD_DIR, os.path.basename(stored_name))


def save_file(incoming: IncomingFile) -> str:
    validate_file(incoming)
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)

    stored_name = generate_stored_name(incoming.filename)
    path = file_path(stored_name)
    try:
        with open(path, "wb") as f:
            f.write(incoming.content)
    except OSError:
        logger.error("[storage] failed to save file: %s", stored_name, exc_info=True)
        raise HTTPException(status_code=500, detail="파일 저장에 실패했습니다.")

    logger.info("[storage] saved %s -> %s (%d bytes)", incoming.filename, stored_name, incoming.size)
    return stored_name


def read_file(stored_name: str) -> bytes:
    path = file_path(stored_name)
    if not os.path.exists(path):
        raise HTTPException(status_code=404, detail="파일을 찾을 수 없습니다.")
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError:
        logger.error("[storage] failed to read file: %s", stored_name, exc_info=True)
        raise HTTPException(status_code=500, detail="파일을 읽을 수 없습니다.")


def delete_file(stored_name: str | None) -> None:
    """저장 파일을 지운다. 이미 없으면 경고만 남긴다. OSError 는 호출자에게 전달된다."""
    if not stored_name:
        return
    path = file_path(stored_name)
    if not os.path.exists(path):
        logger.warning("[storage] file not found for deletion: %s", stored_name)
        return
    try:
        os.remove(path)
    except OSError:
        logger.error("[storage] failed to delete file: %s", stored_name, exc_info=True)
        raise
    logger.info("[storage] deleted %s", stored_name)


def delete_file_or_500(stored_name: str | None) -> None:
    try:
        delete_file(stored_name)
    except OSError:
        raise HTTPException(status_code=500, detail="파일 삭제에 실패했습니다.")


def delete_file_quietly(stored_name: str | None, context: str = "") -> bool:
    """정리용 삭제. 실패해도 예외를 올리지 않고 경고 로그만 남긴다."""
    try:
        delete_file(stored_name)
    except OSError as exc:
        logger.warning("[storage] cleanup failed for %s %s: %s", stored_name, context, exc)
        return False
    return True


def content_disposition(filename: str, content_type: str | None = None) -> str:
    """이미지는 브라우저에서 바로 보이도록 inline, 나머지는 attachment 로 내려준다."""
    disposition = "inline" if (content_type or "").lower().startswith("image/") else "attachment"
    fallback = filename.encode("ascii", "ignore").decode("ascii").replace('"', "").strip() or "download"
    return f"{disposition}; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"
