"""설문 폼 생성/조회/전체 교체 수정/삭제 테스트입니다."""

import os

from formbuilder.config import settings
from formbuilder.models.file_metadata import FileMetadata
from formbuilder.models.form import Question, Section
from tests.conftest import choice_question, create_form, section_questions


def _two_section_payload():
    return {
        "title": "고객 만족도",
        "description": "분기 설문",
        "settings": {"collectEmail": True, "allowResponseEdit": False},
        "sections": [
            {
                "title": "기본 정보",
                "questions": [
                    {"type": "short-text", "title": "이름", "required": True},
                    choice_question("성별", ["남", "여"]),
                ],
            },
            {
                "title": "만족도",
                "questions": [{"type": "long-text", "title": "의견"}],
            },
        ],
        "questions": [{"type": "short-text", "title": "루트 질문"}],
    }


def test_create_form_round_trip(client):
    created = create_form(client, **_two_section_payload())
    assert created["title"] == "고객 만족도"
    assert created["settings"]["collectEmail"] is True
    assert [s["orderIndex"] for s in created["sections"]] == [0, 1]
    assert [q["orderIndex"] for q in section_questions(created, 0)] == [0, 1]
    assert section_questions(created, 0)[1]["config"]["options"][0]["label"] == "남"
    assert [q["title"] for q in created["questions"]] == ["루트 질문"]
    assert created["questions"][0]["sectionId"] is None

    fetched = client.get(f"/api/forms/{created['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["sections"][1]["questions"][0]["title"] == "의견"

    listed = client.get("/api/forms")
    assert listed.status_code == 200
    assert [row["id"] for row in listed.json()] == [created["id"]]


def test_create_form_densifies_requested_order(client):
    created = create_form(
        client,
        questions=[
            {"type": "short-text", "title": "b", "orderIndex": 5},
            {"type": "short-text", "title": "a", "orderIndex": 0},
            {"type": "short-text", "title": "c", "orderIndex": 5},
        ],
    )
    assert [q["title"] for q in created["questions"]] == ["a", "b", "c"]
    assert [q["orderIndex"] for q in created["questions"]] == [0, 1, 2]


def test_create_form_requires_title(client):
    resp = client.post("/api/forms", json={"title": ""})
    assert resp.status_code == 422


def test_get_missing_form_returns_404(client):
    resp = client.get("/api/forms/999")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "설문을 찾을 수 없습니다."


def test_disabled_question_types_are_rejected(client, db):
    for question_type in ("file-upload", "linear-scale", "date"):
        resp = client.post(
            "/api/forms",
            json={"title": "x", "questions": [{"type": question_type, "title": "q"}]},
        )
        assert resp.status_code == 400, question_type
        assert "지원하지 않습니다" in resp.json()["detail"]
    assert db.query(Question).count() == 0


def test_unknown_question_type_is_rejected(client):
    resp = client.post("/api/forms", json={"title": "x", "questions": [{"type": "slider", "title": "q"}]})
    assert resp.status_code == 400
    assert "알 수 없는 질문 유형" in resp.json()["detail"]


def test_disabled_types_can_be_enabled(client, enable_all_question_types):
    created = create_form(
        client,
        questions=[
            {"type": "linear-scale", "title": "점수"},
            {"type": "date", "title": "날짜"},
        ],
    )
    assert created["questions"][0]["config"]["min"] == 1
    assert created["questions"][0]["config"]["max"] == 5


def test_choice_question_without_options_is_rejected(client):
    resp = client.post(
        "/api/forms",
        json={"title": "x", "questions": [{"type": "checkbox", "title": "q", "config": {"options": []}}]},
    )
    assert resp.status_code == 400
    assert "config" in resp.json()["detail"]


def test_start_after_end_is_rejected(client):
    resp = client.post(
        "/api/forms",
        json={"title": "x", "startAt": "2026-05-02T00:00:00", "endAt": "2026-05-01T00:00:00"},
    )
    assert resp.status_code == 400


def test_update_replaces_structure_and_shrinks(client, db):
    created = create_form(client, **_two_section_payload())
    old_ids = {q["id"] for s in created["sections"] for q in s["questions"]}

    resp = client.put(
        f"/api/forms/{created['id']}",
        json={
            "title": "축소된 설문",
            "settings": {"allowResponseEdit": True},
            "sections": [{"title": "유일한 섹션", "questions": [{"type": "short-text", "title": "새 질문"}]}],
        },
    )
    assert resp.status_code == 200, resp.text
    updated = resp.json()
    assert updated["title"] == "축소된 설문"
    assert updated["settings"] == {"collectEmail": False, "allowResponseEdit": True, "showProgressBar": True}
    assert len(updated["sections"]) == 1
    assert updated["questions"] == []
    assert [q["title"] for q in section_questions(updated)] == ["새 질문"]
    assert section_questions(updated)[0]["id"] not in old_ids

    assert db.query(Section).filter(Section.form_id == created["id"]).count() == 1
    assert db.query(Question).filter(Question.form_id == created["id"]).count() == 1


def test_update_with_invalid_question_keeps_existing_structure(client, db):
    created = create_form(client, **_two_section_payload())
    resp = client.put(
        f"/api/forms/{created['id']}",
        json={"title": "x", "questions": [{"type": "date", "title": "q"}]},
    )
    assert resp.status_code == 400
    assert db.query(Question).filter(Question.form_id == created["id"]).count() == 4


def test_update_cleans_dropped_attachments_and_keeps_listed_ones(client, upload_dir):
    created = create_form(
        client,
        questions=[{"type": "short-text", "title": "keep"}, {"type": "short-text", "title": "drop"}],
    )
    keep_id, drop_id = [q["id"] for q in created["questions"]]
    files = {"file": ("guide.pdf", b"%PDF-1.4 keep", "application/pdf")}
    keep = client.post(f"/api/forms/{created['id']}/questions/{keep_id}/attachment", files=files).json()
    files = {"file": ("old.pdf", b"%PDF-1.4 drop", "application/pdf")}
    drop = client.post(f"/api/forms/{created['id']}/questions/{drop_id}/attachment", files=files).json()
    assert os.path.exists(upload_dir / keep["attachmentStoredName"])
    assert os.path.exists(upload_dir / drop["attachmentStoredName"])

    resp = client.put(
        f"/api/forms/{created['id']}",
        json={
            "title": "Survey",
            "questions": [
                {
                    "type": "short-text",
                    "title": "keep",
                    "attachmentFilename": keep["attachmentFilename"],
                    "attachmentStoredName": keep["attachmentStoredName"],
                    "attachmentContentType": keep["attachmentContentType"],
                }
            ],
        },
    )
    assert resp.status_code == 200, resp.text
    rebuilt = resp.json()["questions"][0]
    assert rebuilt["attachmentStoredName"] == keep["attachmentStoredName"]
    assert os.path.exists(upload_dir / keep["attachmentStoredName"])
    assert not os.path.exists(upload_dir / drop["attachmentStoredName"])

    download = client.get(f"/api/forms/{created['id']}/questions/{rebuilt['id']}/attachment")
    assert download.status_code == 200
    assert download.content == b"%PDF-1.4 keep"


def test_delete_form_removes_children_and_files(client, db, upload_dir):
    created = create_form(client, **_two_section_payload())
    question_id = section_questions(created)[0]["id"]
    files = {"file": ("note.txt", b"hello", "text/plain")}
    attached = client.post(f"/api/forms/{created['id']}/questions/{question_id}/attachment", files=files).json()

    submitted = client.post(
        f"/api/forms/{created['id']}/responses",
        json={"email": "a@b.com", "answers": [{"questionId": question_id, "value": "홍길동"}]},
    )
    assert submitted.status_code == 201, submitted.text

    resp = client.delete(f"/api/forms/{created['id']}")
    assert resp.status_code == 204
    assert client.get(f"/api/forms/{created['id']}").status_code == 404
    assert db.query(Question).count() == 0
    assert db.query(Section).count() == 0
    assert db.query(FileMetadata).count() == 0
    assert not os.path.exists(os.path.join(settings.UPLOAD_DIR, attached["attachmentStoredName"]))


def test_delete_missing_form_returns_404(client):
    assert client.delete("/api/forms/12345").status_code == 404


def test_public_form_hides_stored_names(client):
    created = create_form(client, **_two_section_payload())
    question_id = section_questions(created)[0]["id"]
    files = {"file": ("map.png", b"\x89PNG\r\n\x1a\n", "image/png")}
    client.post(f"/api/forms/{created['id']}/questions/{question_id}/attachment", files=files)

    resp = client.get(f"/api/forms/{created['id']}/public")
    assert resp.status_code == 200
    body = resp.json()
    first = body["sections"][0]["questions"][0]
    assert first["hasAttachment"] is True
    assert first["attachmentFilename"] == "map.png"
    assert "attachmentStoredName" not in first
    assert "createdAt" not in body
    assert [q["orderIndex"] for q in body["sections"][0]["questions"]] == [0, 1]


def test_health_check(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_nested_children_are_stored(client, db):
    created = create_form(client, **_two_section_payload())

    assert db.query(Section).filter(Section.form_id == created["id"]).count() == 2
    assert db.query(Question).filter(Question.form_id == created["id"]).count() == 4
    root = db.query(Question).filter(Question.form_id == created["id"], Question.section_id.is_(None)).all()
    assert [row.title for row in root] == ["루트 질문"]

    fetched = client.get(f"/api/forms/{created['id']}").json()
    assert [s["title"] for s in fetched["sections"]] == ["기본 정보", "만족도"]
    assert [q["title"] for q in section_questions(fetched, 0)] == ["이름", "성별"]


def test_rebuild_never_reuses_deleted_ids(client):
    created = create_form(client, **_two_section_payload())
    old_question_ids = {q["id"] for q in created["questions"]}
    old_question_ids |= {q["id"] for s in created["sections"] for q in s["questions"]}
    old_section_ids = {s["id"] for s in created["sections"]}

    resp = client.put(f"/api/forms/{created['id']}", json=_two_section_payload())
    assert resp.status_code == 200, resp.text
    updated = resp.json()
    new_question_ids = {q["id"] for q in updated["questions"]}
    new_question_ids |= {q["id"] for s in updated["sections"] for q in s["questions"]}

    assert len(new_question_ids) == 4
    assert not new_question_ids & old_question_ids
    assert not {s["id"] for s in updated["sections"]} & old_section_ids
    for question_id in old_question_ids:
        assert client.get(f"/api/forms/{created['id']}/questions/{question_id}").status_code == 404


def test_rebuild_ignores_attachments_of_other_forms(client, upload_dir):
    owner = create_form(client, questions=[{"type": "short-text", "title": "안내"}])
    owner_question = owner["questions"][0]["id"]
    files = {"file": ("guide.pdf", b"%PDF-1.4 owner", "application/pdf")}
    attached = client.post(f"/api/forms/{owner['id']}/questions/{owner_question}/attachment", files=files).json()

    other = create_form(client, questions=[{"type": "short-text", "title": "x"}])
    resp = client.put(
        f"/api/forms/{other['id']}",
        json={
            "title": "Survey",
            "questions": [
                {
                    "type": "short-text",
                    "title": "borrowed",
                    "attachmentFilename": "guide.pdf",
                    "attachmentStoredName": attached["attachmentStoredName"],
                    "attachmentContentType": "application/pdf",
                }
            ],
        },
    )
    assert resp.status_code == 200, resp.text
    borrowed = resp.json()["questions"][0]
    assert borrowed["attachmentStoredName"] is None
    assert client.get(f"/api/forms/{other['id']}/questions/{borrowed['id']}/attachment").status_code == 404

    assert client.delete(f"/api/forms/{other['id']}/questions/{borrowed['id']}").status_code == 204
    assert os.path.exists(upload_dir / attached["attachmentStoredName"])
    download = client.get(f"/api/forms/{owner['id']}/questions/{owner_question}/attachment")
    assert download.status_code == 200
    assert download.content == b"%PDF-1.4 owner"


def test_create_ignores_client_supplied_attachment(client, upload_dir):
    (upload_dir / "someone_else.pdf").write_bytes(b"%PDF")
    created = create_form(
        client,
        questions=[
            {
                "type": "short-text",
                "title": "q",
                "attachmentFilename": "someone_else.pdf",
                "attachmentStoredName": "someone_else.pdf",
            }
        ],
    )
    assert created["questions"][0]["attachmentStoredName"] is None
    assert created["questions"][0]["attachmentFilename"] is None
