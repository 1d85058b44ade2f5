"""응답 첨부파일(임시 업로드 -> 응답 연결) 테스트입니다."""

import os

from formbuilder.config import settings
from formbuilder.models.file_metadata import FileMetadata
from tests.conftest import create_form


def _file_form(client, **config):
    return create_form(
        client,
        questions=[
            {"type": "file-upload", "title": "증빙 자료", "config": config},
            {"type": "short-text", "title": "메모"},
        ],
    )


def _temp_upload(client, form_id, question_id, name="report.pdf", content=b"%PDF-1.4 data", mime="application/pdf"):
    return client.post(
        "/api/files/upload",
        files={"file": (name, content, mime)},
        data={"formId": str(form_id), "questionId": str(question_id)},
    )


def test_temp_upload_is_linked_on_submit(client, db, enable_all_question_types):
    form = _file_form(client)
    question_id = form["questions"][0]["id"]

    uploaded = _temp_upload(client, form["id"], question_id)
    assert uploaded.status_code == 201, uploaded.text
    temp = uploaded.json()
    assert temp["responseId"] is None
    assert temp["questionId"] is None
    assert temp["tempFormId"] == str(form["id"])
    assert temp["tempQuestionId"] == str(question_id)
    assert temp["fileSize"] == len(b"%PDF-1.4 data")

    submitted = client.post(
        f"/api/forms/{form['id']}/responses",
        json={
            "answers": [
                {
                    "questionId": question_id,
                    "value": [{"id": temp["id"], "originalFilename": "report.pdf"}],
                }
            ]
        },
    )
    assert submitted.status_code == 201, submitted.text
    response_id = submitted.json()["id"]

    metadata = client.get(f"/api/files/{temp['id']}/metadata").json()
    assert metadata["responseId"] == response_id
    assert metadata["questionId"] == question_id

    by_response = client.get(f"/api/responses/{response_id}/files").json()
    assert [row["id"] for row in by_response] == [temp["id"]]
    by_question = client.get(f"/api/questions/{question_id}/files").json()
    assert [row["id"] for row in by_question] == [temp["id"]]
    both = client.get(f"/api/responses/{response_id}/questions/{question_id}/files").json()
    assert [row["id"] for row in both] == [temp["id"]]


def test_file_reference_inside_json_string_is_linked(client, db, enable_all_question_types):
    form = _file_form(client)
    question_id = form["questions"][0]["id"]
    temp = _temp_upload(client, form["id"], question_id).json()

    submitted = client.post(
        f"/api/forms/{form['id']}/responses",
        json={"answers": [{"questionId": question_id, "value": f'[{{"id": {temp["id"]}}}]'}]},
    )
    assert submitted.status_code == 201, submitted.text
    row = db.get(FileMetadata, temp["id"])
    assert row.response_id == submitted.json()["id"]


def test_file_already_linked_to_other_response_is_not_stolen(client, db, enable_all_question_types):
    form = _file_form(client, allowMultiple=True)
    question_id = form["questions"][0]["id"]
    temp = _temp_upload(client, form["id"], question_id).json()
    answer = {"questionId": question_id, "value": [{"id": temp["id"]}]}

    first = client.post(f"/api/forms/{form['id']}/responses", json={"answers": [answer]}).json()
    client.post(f"/api/forms/{form['id']}/responses", json={"answers": [answer]})

    assert db.get(FileMetadata, temp["id"]).response_id == first["id"]


def test_temp_upload_enforces_question_config(client, enable_all_question_types):
    form = _file_form(client, allowedExtensions=["pdf"], maxFileSize=8)
    question_id = form["questions"][0]["id"]

    wrong_ext = _temp_upload(client, form["id"], question_id, name="photo.png", content=b"png", mime="image/png")
    assert wrong_ext.status_code == 400
    too_big = _temp_upload(client, form["id"], question_id, content=b"%PDF-1.4 0123456789")
    assert too_big.status_code == 400
    ok = _temp_upload(client, form["id"], question_id, content=b"%PDF")
    assert ok.status_code == 201


def test_temp_upload_requires_identifiers(client):
    resp = client.post(
        "/api/files/upload",
        files={"file": ("a.txt", b"x", "text/plain")},
        data={"formId": " ", "questionId": "1"},
    )
    assert resp.status_code == 400
    missing = client.post("/api/files/upload", files={"file": ("a.txt", b"x", "text/plain")})
    assert missing.status_code == 422


def test_temp_upload_accepts_client_side_identifiers(client):
    resp = _temp_upload(client, "local-form-uuid", "local-question-uuid")
    assert resp.status_code == 201
    assert resp.json()["tempQuestionId"] == "local-question-uuid"


def test_direct_response_upload_download_and_delete(client, upload_dir):
    form = create_form(client, questions=[{"type": "short-text", "title": "메모"}])
    question_id = form["questions"][0]["id"]
    response = client.post(
        f"/api/forms/{form['id']}/responses",
        json={"answers": [{"questionId": question_id, "value": "x"}]},
    ).json()

    uploaded = client.post(
        f"/api/responses/{response['id']}/questions/{question_id}/files",
        files={"file": ("data.csv", b"a,b\n1,2\n", "text/csv")},
    )
    assert uploaded.status_code == 201, uploaded.text
    row = uploaded.json()
    assert row["responseId"] == response["id"]
    assert row["questionId"] == question_id

    download = client.get(f"/api/files/{row['id']}")
    assert download.status_code == 200
    assert download.content == b"a,b\n1,2\n"
    assert download.headers["content-disposition"].startswith('attachment; filename="data.csv"')

    deleted = client.delete(f"/api/files/{row['id']}")
    assert deleted.status_code == 204
    assert not os.path.exists(upload_dir / row["storedFilename"])
    assert client.get(f"/api/files/{row['id']}/metadata").status_code == 404
    assert client.delete(f"/api/files/{row['id']}").status_code == 404


def test_response_upload_for_missing_targets_returns_404(client):
    files = {"file": ("a.txt", b"x", "text/plain")}
    assert client.post("/api/responses/1/questions/1/files", files=files).status_code == 404
    assert client.get("/api/files/123").status_code == 404


def test_deleting_question_removes_response_files(client, db, upload_dir, enable_all_question_types):
    form = _file_form(client)
    question_id = form["questions"][0]["id"]
    temp = _temp_upload(client, form["id"], question_id).json()
    client.post(
        f"/api/forms/{form['id']}/responses",
        json={"answers": [{"questionId": question_id, "value": [{"id": temp["id"]}]}]},
    )

    resp = client.delete(f"/api/forms/{form['id']}/questions/{question_id}")
    assert resp.status_code == 204
    assert db.query(FileMetadata).count() == 0
    assert not os.path.exists(upload_dir / temp["storedFilename"])


def test_linking_ignores_question_of_other_form(client, db, monkeypatch, enable_all_question_types):
    monkeypatch.setattr(settings, "VALIDATE_ANSWERS", False)
    source = _file_form(client)
    foreign_question = source["questions"][0]["id"]
    target = create_form(client, questions=[{"type": "short-text", "title": "메모"}])
    temp = _temp_upload(client, target["id"], "local-question").json()

    submitted = client.post(
        f"/api/forms/{target['id']}/responses",
        json={"answers": [{"questionId": foreign_question, "value": [{"id": temp["id"]}]}]},
    )
    assert submitted.status_code == 201, submitted.text

    row = db.get(FileMetadata, temp["id"])
    assert row.response_id == submitted.json()["id"]
    assert row.question_id is None
    assert client.get(f"/api/questions/{foreign_question}/files").json() == []
