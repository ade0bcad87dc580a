from __future__ import annotations

from kormo.models import JobApplication, ProfileRole
from kormo.repositories.analysis_repository import upsert_analysis
from kormo.schemas.analysis import AnalysisResult


def _analyze(db, worker, task, score: float = 0.7):
    return upsert_analysis(
        db,
        worker.id,
        task.id,
        AnalysisResult(score=score, strengths=["Reliable"], weaknesses=["New to SQL"], suggestions=["Practice SQL"]),
    )


def test_worker_applies_with_stored_analysis(client, db, make_profile, make_task, auth_headers) -> None:
    worker = make_profile()
    task = make_task()
    analysis = _analyze(db, worker, task)

    response = client.post("/api/apply-for-job", json={"taskId": task.id}, headers=auth_headers(worker))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["taskId"] == task.id
    application = db.query(JobApplication).filter(JobApplication.id == data["applicationId"]).one()
    assert application.worker_id == worker.id
    assert application.analysis_id == analysis.id


def test_second_application_is_a_conflict(client, db, make_profile, make_task, auth_headers) -> None:
    worker = make_profile()
    task = make_task()
    _analyze(db, worker, task)

    first = client.post("/api/apply-for-job", json={"taskId": task.id}, headers=auth_headers(worker))
    second = client.post("/api/apply-for-job", json={"taskId": task.id}, headers=auth_headers(worker))

    assert first.status_code == 200
    assert second.status_code == 409
    assert second.json()["error"]["code"] == "ALREADY_APPLIED"
    assert db.query(JobApplication).count() == 1


def test_application_requires_an_analysis(client, db, make_profile, make_task, auth_headers) -> None:
    worker = make_profile()
    task = make_task()

    response = client.post("/api/apply-for-job", json={"taskId": task.id}, headers=auth_headers(worker))

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "ANALYSIS_REQUIRED"
    assert db.query(JobApplication).count() == 0


def test_another_workers_analysis_does_not_count(client, db, make_profile, make_task, auth_headers) -> None:
    worker, other = make_profile(), make_profile()
    task = make_task()
    _analyze(db, other, task)

    response = client.post("/api/apply-for-job", json={"taskId": task.id}, headers=auth_headers(worker))

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "ANALYSIS_REQUIRED"


def test_private_task_cannot_be_applied_for(client, db, make_profile, make_task, auth_headers) -> None:
    worker = make_profile()
    task = make_task(is_public=False)
    _analyze(db, worker, task)

    response = client.post("/api/apply-for-job", json={"taskId": task.id}, headers=auth_headers(worker))

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "TASK_NOT_FOUND"
    assert db.query(JobApplication).count() == 0


def test_company_accounts_cannot_apply(client, make_profile, make_task, auth_headers) -> None:
    company = make_profile(role=ProfileRole.COMPANY)
    task = make_task()

    response = client.post("/api/apply-for-job", json={"taskId": task.id}, headers=auth_headers(company))

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"


def test_worker_lists_own_applications(client, db, make_profile, make_task, auth_headers) -> None:
    worker, other = make_profile(), make_profile()
    mine, theirs = make_task(title="Data Analyst"), make_task()
    _analyze(db, worker, mine)
    _analyze(db, other, theirs)
    client.post("/api/apply-for-job", json={"taskId": mine.id}, headers=auth_headers(worker))
    client.post("/api/apply-for-job", json={"taskId": theirs.id}, headers=auth_headers(other))

    response = client.get("/api/applications", headers=auth_headers(worker))

    assert response.status_code == 200
    data = response.json()["data"]
    assert [a["task_id"] for a in data] == [mine.id]
    assert data[0]["analysis"]["score"] == 0.7


def test_company_sees_applicants_best_score_first(client, db, make_profile, make_task, auth_headers) -> None:
    company = make_profile(role=ProfileRole.COMPANY, first_name="Acme")
    task = make_task(company=company)
    weaker = make_profile(first_name="Karim", last_name="Uddin")
    stronger = make_profile(first_name="Nadia", last_name="Islam")
    _analyze(db, weaker, task, score=0.4)
    _analyze(db, stronger, task, score=0.9)
    for worker in (weaker, stronger):
        client.post("/api/apply-for-job", json={"taskId": task.id}, headers=auth_headers(worker))

    response = client.get(f"/api/tasks/{task.id}/applications", headers=auth_headers(company))

    assert response.status_code == 200
    data = response.json()["data"]
    assert [a["worker_name"] for a in data] == ["Nadia Islam", "Karim Uddin"]
    assert [a["analysis"]["score"] for a in data] == [0.9, 0.4]


def test_company_cannot_see_another_companys_applicants(client, make_profile, make_task, auth_headers) -> None:
    owner = make_profile(role=ProfileRole.COMPANY)
    outsider = make_profile(role=ProfileRole.COMPANY)
    task = make_task(company=owner)

    response = client.get(f"/api/tasks/{task.id}/applications", headers=auth_headers(outsider))

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "TASK_NOT_FOUND"
