"""Integration tests: /assignments endpoints over HTTP."""

import json
from uuid import uuid4

import pytest
from httpx import AsyncClient


async def _create_quiz(client: AsyncClient, api_base: str, headers: dict, questions: list, **fields) -> dict:
    data = {"title": "Weekly quiz", "kind": "quiz", "questions": json.dumps(questions), **fields}
    resp = await client.post(f"{api_base}/assignments", data=data, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


@pytest.mark.asyncio
async def test_teacher_creates_quiz(async_client, api_base, auth_headers, teacher, quiz_questions):
    data = await _create_quiz(async_client, api_base, auth_headers(teacher), quiz_questions)
    assert data["kind"] == "quiz"
    assert data["total_points"] == 9
    assert data["allow_automatic_grading"] is True
    assert data["created_by"] == str(teacher.id)
    assert [q["id"] for q in data["questions"]][:2] == ["q-capital", "q-element"]


@pytest.mark.asyncio
async def test_create_with_attachment(async_client, api_base, auth_headers, teacher):
    resp = await async_client.post(
        f"{api_base}/assignments",
        data={"title": "Project brief", "kind": "mini-project", "allow_resubmission": "true"},
        files=[("attachments", ("brief.pdf", b"%PDF-1.4", "application/pdf"))],
        headers=auth_headers(teacher),
    )
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["kind"] == "mini_project"
    assert data["allow_resubmission"] is True
    assert data["allow_automatic_grading"] is False
    assert data["attachments"][0]["filename"] == "brief.pdf"
    assert data["attachments"][0]["url"] is None


@pytest.mark.asyncio
async def test_student_cannot_create_assignment(async_client, api_base, auth_headers, student):
    resp = await async_client.post(
        f"{api_base}/assignments", data={"title": "Nope"}, headers=auth_headers(student)
    )
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "FORBIDDEN"


@pytest.mark.asyncio
async def test_requests_without_token_are_rejected(async_client, api_base):
    resp = await async_client.get(f"{api_base}/assignments")
    assert resp.status_code in (401, 403)


@pytest.mark.asyncio
async def test_invalid_token_rejected(async_client, api_base):
    resp = await async_client.get(
        f"{api_base}/assignments", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "UNAUTHORIZED"
    assert resp.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_invalid_question_returns_error_envelope(async_client, api_base, auth_headers, teacher):
    resp = await async_client.post(
        f"{api_base}/assignments",
        data={"title": "Bad quiz", "kind": "quiz", "questions": json.dumps([{"text": "", "points": 1}])},
        headers=auth_headers(teacher),
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["error"]["code"] == "INVALID_REQUEST"
    assert body["error"]["message"].startswith("questions[0].text")


@pytest.mark.asyncio
async def test_unknown_assignment_is_404(async_client, api_base, auth_headers, student):
    resp = await async_client.get(f"{api_base}/assignments/{uuid4()}", headers=auth_headers(student))
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


@pytest.mark.asyncio
async def test_list_and_get_assignments(async_client, api_base, auth_headers, teacher, student, quiz_questions):
    lesson_id = str(uuid4())
    created = await _create_quiz(
        async_client, api_base, auth_headers(teacher), quiz_questions, lesson_id=lesson_id
    )
    await _create_quiz(async_client, api_base, auth_headers(teacher), quiz_questions)

    resp = await async_client.get(
        f"{api_base}/assignments", params={"lesson_id": lesson_id}, headers=auth_headers(student)
    )
    assert resp.status_code == 200
    assert [a["id"] for a in resp.json()["data"]] == [created["id"]]

    resp = await async_client.get(f"{api_base}/assignments/{created['id']}", headers=auth_headers(student))
    assert resp.status_code == 200
    assert resp.json()["data"]["title"] == "Weekly quiz"


@pytest.mark.asyncio
async def test_update_by_owner_and_forbidden_for_others(
    async_client, api_base, auth_headers, teacher, other_teacher, quiz_questions
):
    created = await _create_quiz(async_client, api_base, auth_headers(teacher), quiz_questions)
    url = f"{api_base}/assignments/{created['id']}"

    resp = await async_client.put(url, data={"title": "Hijacked"}, headers=auth_headers(other_teacher))
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "FORBIDDEN"

    resp = await async_client.put(
        url,
        data={"questions": json.dumps([{"text": "Only one", "points": 4}])},
        headers=auth_headers(teacher),
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["total_points"] == 4
    assert data["title"] == "Weekly quiz"


@pytest.mark.asyncio
async def test_submit_grade_and_statistics_flow(
    async_client, api_base, auth_headers, teacher, student, other_student, quiz_questions
):
    created = await _create_quiz(async_client, api_base, auth_headers(teacher), quiz_questions)
    base = f"{api_base}/assignments/{created['id']}"

    answers = [
        {"question_id": "q-capital", "answer": "Paris"},
        {"question_id": "q-colors", "answers": ["red", "blue"]},
        {"question_id": "q-upload", "type": "file_upload", "file_index": 0},
    ]
    resp = await async_client.post(
        f"{base}/submit",
        data={"content": "My work", "answers": json.dumps(answers)},
        files=[("files", ("diagram.png", b"png-bytes", "image/png"))],
        headers=auth_headers(student),
    )
    assert resp.status_code == 201, resp.text
    submission = resp.json()["data"]
    assert submission["grade"] == 4
    assert submission["total_points"] == 9
    assert submission["state"] == "graded"
    assert submission["auto_graded"] is True
    assert submission["answers"][2]["files"][0]["filename"] == "diagram.png"

    # Resubmission is not allowed on this quiz
    resp = await async_client.post(
        f"{base}/submit", data={"answers": json.dumps(answers)}, headers=auth_headers(student)
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_REQUEST"

    resp = await async_client.post(f"{base}/submit", data={"content": "Blank"}, headers=auth_headers(other_student))
    assert resp.status_code == 201
    other_submission = resp.json()["data"]
    assert other_submission["grade"] is None

    resp = await async_client.put(
        f"{base}/submissions/{submission['id']}/grade",
        json={"feedback": "Good diagram", "answers": [{"question_id": "q-upload", "points": 1}]},
        headers=auth_headers(teacher),
    )
    assert resp.status_code == 200, resp.text
    graded = resp.json()["data"]
    assert graded["grade"] == 5
    assert graded["feedback"] == "Good diagram"

    resp = await async_client.get(f"{base}/submissions", headers=auth_headers(teacher))
    assert resp.status_code == 200
    assert len(resp.json()["data"]) == 2

    resp = await async_client.get(f"{base}/statistics", headers=auth_headers(teacher))
    assert resp.status_code == 200
    stats = resp.json()["data"]
    assert stats["total"] == 2
    assert stats["graded"] == 1
    assert stats["average"] == 5
    assert stats["distribution"]["needs_improvement"] == 1
    assert stats["distribution"]["ungraded"] == 1


@pytest.mark.asyncio
async def test_students_cannot_view_statistics(async_client, api_base, auth_headers, teacher, student, quiz_questions):
    created = await _create_quiz(async_client, api_base, auth_headers(teacher), quiz_questions)
    resp = await async_client.get(
        f"{api_base}/assignments/{created['id']}/statistics", headers=auth_headers(student)
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_grade_validation_error(async_client, api_base, auth_headers, teacher, student, quiz_questions):
    created = await _create_quiz(async_client, api_base, auth_headers(teacher), quiz_questions)
    resp = await async_client.put(
        f"{api_base}/assignments/{created['id']}/submissions/{uuid4()}/grade",
        json={"grade": -5},
        headers=auth_headers(teacher),
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_student_lists_own_submissions(
    async_client, api_base, auth_headers, teacher, student, quiz_questions
):
    created = await _create_quiz(async_client, api_base, auth_headers(teacher), quiz_questions)
    resp = await async_client.post(
        f"{api_base}/assignments/{created['id']}/submit",
        data={"answers": json.dumps([{"question_id": "q-element", "answer": "Au"}])},
        headers=auth_headers(student),
    )
    assert resp.status_code == 201

    resp = await async_client.get(f"{api_base}/assignments/submissions/student", headers=auth_headers(student))
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert len(data) == 1
    assert data[0]["assignment"]["id"] == created["id"]
    assert data[0]["grade"] == 1

    resp = await async_client.get(f"{api_base}/assignments/submissions/student", headers=auth_headers(teacher))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_request_id_is_echoed(async_client, api_base, auth_headers, student):
    resp = await async_client.get(
        f"{api_base}/assignments",
        headers={**auth_headers(student), "X-Request-ID": "req-123"},
    )
    assert resp.status_code == 200
    assert resp.headers["X-Request-ID"] == "req-123"
    assert resp.headers["Cache-Control"] == "no-store"
