"""폼 편집기의 임시저장(draft)과 게시(publish) 흐름입니다.

편집 중인 폼은 용량 제한이 있는 key/value 저장소에 JSON 으로 보관한다.
게시 전 질문 첨부파일은 base64 data URL 로 draft 안에 들고 있다가,
게시 후 서버가 돌려준 질문 id 에 위치 순서로 대응시켜 업로드한다.
"""

import base64
import copy
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

import httpx

from formbuilder.config import settings

logger = logging.getLogger(__name__)

STATUS_DRAFT = "draft"
STATUS_PUBLISHED = "published"
STATUS_ARCHIVED = "archived"
FORM_STATUSES = (STATUS_DRAFT, STATUS_PUBLISHED, STATUS_ARCHIVED)

QUESTION_FIELDS = ("type", "title", "description", "required", "config")
ATTACHMENT_FIELDS = ("attachmentFilename", "attachmentStoredName", "attachmentContentType")


class StorageQuotaExceeded(Exception):
    pass


class DraftError(Exception):
    pass


def _now_iso() -> str:
    return datetime.now().isoformat(timespec="seconds")


class MemoryBackend:
    """용량(바이트) 한도가 있는 문자열 key/value 저장소."""

    def __init__(self, quota_bytes: Optional[int] = None):
        self.quota_bytes = settings.DRAFT_STORAGE_QUOTA_BYTES if quota_bytes is None else quota_bytes
        self._data: dict[str, str] = {}

    def used_bytes(self) -> int:
        return sum(len(key.encode("utf-8")) + len(value.encode("utf-8")) for key, value in self._data.items())

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str):
        current = self._data.get(key)
        used = self.used_bytes()
        if current is not None:
            used -= len(key.encode("utf-8")) + len(current.encode("utf-8"))
        if used + len(key.encode("utf-8")) + len(value.encode("utf-8")) > self.quota_bytes:
            raise StorageQuotaExceeded(key)
        self._data[key] = value

    def delete(self, key: str):
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data.keys())


def new_draft(title: str = "새 설문지") -> dict:
    now = _now_iso()
    return {
        "id": uuid.uuid4().hex,
        "title": title,
        "description": "",
        "status": STATUS_DRAFT,
        "createdAt": now,
        "updatedAt": now,
        "publishedId": None,
        "publishedAt": None,
        "originalFormId": None,
        "settings": {"collectEmail": False, "allowResponseEdit": False, "showProgressBar": True},
        "sections": [],
        "questions": [],
    }


def iter_questions(draft: dict):
    """섹션 질문을 섹션 순서대로, 그 다음 루트 질문을 돌려준다."""
    for section in draft.get("sections") or []:
        for question in section.get("questions") or []:
            yield question
    for question in draft.get("questions") or []:
        yield question


def find_question(draft: dict, question_id: str) -> Optional[dict]:
    for question in iter_questions(draft):
        if str(question.get("id")) == str(question_id):
            return question
    return None


def strip_pending_attachments(draft: dict) -> tuple[dict, int]:
    """대기 중인 첨부파일의 base64 데이터를 모두 뺀 사본과 제거 개수를 돌려준다."""
    stripped = copy.deepcopy(draft)
    removed = 0
    for question in iter_questions(stripped):
        pending = question.get("pendingAttachment")
        if pending and pending.get("base64Data"):
            pending["base64Data"] = None
            question.pop("attachmentPreviewUrl", None)
            removed += 1
    return stripped, removed


def decode_data_url(data_url: str) -> bytes:
    _, _, encoded = data_url.partition(",")
    return base64.b64decode(encoded or data_url)


class DraftStore:
    KEY_PREFIX = "draftForm:"

    def __init__(self, backend: Optional[MemoryBackend] = None, attachment_max_bytes: Optional[int] = None):
        self.backend = backend if backend is not None else MemoryBackend()
        self.attachment_max_bytes = (
            settings.DRAFT_ATTACHMENT_MAX_BYTES if attachment_max_bytes is None else attachment_max_bytes
        )

    def _key(self, draft_id: str) -> str:
        return f"{self.KEY_PREFIX}{draft_id}"

    def save(self, draft: dict) -> dict:
        """draft 를 저장한다. 용량 초과 시 대기 첨부파일 데이터를 버리고 한 번 더 시도한다."""
        if draft.get("status", STATUS_DRAFT) not in FORM_STATUSES:
            raise DraftError(f"알 수 없는 폼 상태입니다: {draft.get('status')}")
        draft["updatedAt"] = _now_iso()
        try:
            self.backend.set(self._key(draft["id"]), json.dumps(draft, ensure_ascii=False))
            return draft
        except StorageQuotaExceeded:
            stripped, removed = strip_pending_attachments(draft)
            logger.warning(
                "[draft] storage quota exceeded for %s, dropped %d pending attachments", draft["id"], removed
            )
        self.backend.set(self._key(stripped["id"]), json.dumps(stripped, ensure_ascii=False))
        return stripped

    def load(self, draft_id: str) -> Optional[dict]:
        raw = self.backend.get(self._key(draft_id))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("[draft] corrupted draft %s ignored", draft_id)
            return None

    def list(self) -> list[dict]:
        rows = []
        for key in self.backend.keys():
            if key.startswith(self.KEY_PREFIX):
                row = self.load(key[len(self.KEY_PREFIX):])
                if row is not None:
                    rows.append(row)
        return sorted(rows, key=lambda row: row.get("updatedAt") or "", reverse=True)

    def delete(self, draft_id: str):
        self.backend.delete(self._key(draft_id))

    def attach_pending(
        self,
        draft: dict,
        question_id: str,
        *,
        filename: str,
        content_type: str,
        content: bytes,
    ) -> dict:
        """게시 전 폼의 질문에 첨부파일을 base64 로 임시 보관한다."""
        if draft.get("publishedId") and draft.get("status") == STATUS_PUBLISHED:
            raise DraftError("게시된 폼의 첨부파일은 서버에 바로 업로드해야 합니다.")
        if len(content) > self.attachment_max_bytes:
            raise DraftError(f"임시저장 첨부파일은 최대 {self.attachment_max_bytes} bytes 까지 가능합니다.")
        question = find_question(draft, question_id)
        if question is None:
            raise DraftError("질문 정보를 찾을 수 없습니다.")

        data_url = f"data:{content_type};base64,{base64.b64encode(content).decode('ascii')}"
        question["pendingAttachment"] = {
            "filename": filename,
            "contentType": content_type,
            "base64Data": data_url,
        }
        question["attachmentFilename"] = filename
        question["attachmentContentType"] = content_type
        question["attachmentPreviewUrl"] = data_url
        return self.save(draft)

    def create_draft_copy(self, published: dict) -> dict:
        """게시된 폼을 수정하기 위한 draft 사본. 질문/선택지 id 를 새로 만든다."""
        if published.get("status") != STATUS_PUBLISHED:
            return published
        now = _now_iso()
        draft_copy = copy.deepcopy(published)
        draft_copy.update(
            {
                "id": uuid.uuid4().hex,
                "status": STATUS_DRAFT,
                "originalFormId": published.get("publishedId") or published.get("id"),
                "createdAt": now,
                "updatedAt": now,
            }
        )
        for question in iter_questions(draft_copy):
            question["id"] = uuid.uuid4().hex
            question.pop("serverId", None)
            options = (question.get("config") or {}).get("options") or []
            for option in options:
                if isinstance(option, dict):
                    option["id"] = uuid.uuid4().hex
        return self.save(draft_copy)

    def archive(self, draft: dict) -> dict:
        draft["status"] = STATUS_ARCHIVED
        return self.save(draft)


def _question_payload(question: dict, position: int) -> dict:
    payload = {name: question[name] for name in QUESTION_FIELDS if name in question}
    payload["orderIndex"] = position
    if question.get("attachmentStoredName"):
        payload.update({name: question.get(name) for name in ATTACHMENT_FIELDS})
    return payload


def to_server_payload(draft: dict) -> dict:
    return {
        "title": draft.get("title") or "새 설문지",
        "description": draft.get("description"),
        "settings": draft.get("settings") or {},
        "sections": [
            {
                "title": section.get("title") or "",
                "description": section.get("description"),
                "orderIndex": section_position,
                "questions": [
                    _question_payload(question, position)
                    for position, question in enumerate(section.get("questions") or [])
                ],
            }
            for section_position, section in enumerate(draft.get("sections") or [])
        ],
        "questions": [
            _question_payload(question, position) for position, question in enumerate(draft.get("questions") or [])
        ],
    }


@dataclass
class PublishResult:
    form: dict
    failed_uploads: list[str] = field(default_factory=list)


class FormPublisher:
    """draft 를 서버에 게시하고 대기 중인 첨부파일을 올린다."""

    def __init__(self, store: DraftStore, client: httpx.Client):
        self.store = store
        self.client = client

    def _create(self, payload: dict) -> httpx.Response:
        return self.client.post("/api/forms", json=payload)

    def publish(self, draft: dict) -> PublishResult:
        payload = to_server_payload(draft)
        if draft.get("publishedId"):
            response = self.client.put(f"/api/forms/{draft['publishedId']}", json=payload)
            if response.status_code == 404:
                logger.info("[draft] published form %s is gone, creating a new one", draft["publishedId"])
                draft["publishedId"] = None
                response = self._create(payload)
        else:
            response = self._create(payload)
        response.raise_for_status()
        result = response.json()

        draft["publishedId"] = result["id"]
        draft["publishedAt"] = _now_iso()
        draft["status"] = STATUS_PUBLISHED
        self._assign_server_ids(draft, result)

        failed = self._upload_pending_attachments(draft)
        self.store.save(draft)
        logger.info("[draft] published %s as form %s (%d uploads failed)", draft["id"], result["id"], len(failed))
        return PublishResult(form=result, failed_uploads=failed)

    def _assign_server_ids(self, draft: dict, result: dict):
        # 서버는 요청 순서대로 질문을 만들므로 위치로 대응시킨다.
        local_questions = list(iter_questions(draft))
        server_questions = [q for section in result.get("sections") or [] for q in section.get("questions") or []]
        server_questions.extend(result.get("questions") or [])
        for local, server in zip(local_questions, server_questions):
            local["serverId"] = server["id"]
            for name in ATTACHMENT_FIELDS:
                if server.get(name):
                    local[name] = server[name]

    def _upload_pending_attachments(self, draft: dict) -> list[str]:
        failed = []
        for question in iter_questions(draft):
            pending = question.get("pendingAttachment")
            if not pending:
                continue
            name = pending.get("filename") or str(question.get("id"))
            if not question.get("serverId"):
                failed.append(f"{name} (원인: serverId 없음)")
                continue
            if not pending.get("base64Data"):
                failed.append(f"{name} (원인: 파일 데이터 손실)")
                continue

            url = f"/api/forms/{draft['publishedId']}/questions/{question['serverId']}/attachment"
            files = {"file": (name, decode_data_url(pending["base64Data"]), pending.get("contentType"))}
            try:
                response = self.client.post(url, files=files)
                response.raise_for_status()
            except httpx.HTTPError as exc:
                logger.warning("[draft] attachment upload failed for question %s: %s", question["serverId"], exc)
                failed.append(f"{name} (원인: {exc})")
                continue

            updated = response.json()
            question["pendingAttachment"] = None
            question["attachmentPreviewUrl"] = None
            for key in ATTACHMENT_FIELDS:
                question[key] = updated.get(key)
        return failed
