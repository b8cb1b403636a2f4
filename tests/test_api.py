import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError

from careermatch.main import app
from careermatch.services.data_service import InterestDataService, get_job_data, get_student_data

BASE_URL = "https://careermatch.test-host.com"


# ============================================================
# ASSESSMENT
# ============================================================

def test_submit_assessment_creates_student_and_recommendations(client, assessment):
    response = client.post("/api/submit-assessment", json=assessment())
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["created"] is True
    assert body["student"]["email"] == "asha.rao@mail.com"
    recs = body["recommendations"]
    assert 4 <= len(recs) <= 6
    assert [r["match"] for r in recs] == sorted((r["match"] for r in recs), reverse=True)

    stored = client.get(f"/api/students/{body['student']['student_id']}/recommendations")
    assert len(stored.json()) == len(recs)


def test_resubmitting_updates_the_same_student(client, assessment):
    first = client.post("/api/submit-assessment", json=assessment()).json()
    second = client.post("/api/submit-assessment", json=assessment(specialization="Data Science")).json()
    assert second["created"] is False
    assert second["student"]["student_id"] == first["student"]["student_id"]
    assert second["student"]["specialization"] == "Data Science"


def test_email_and_phone_of_two_students_is_rejected(client, assessment, create_student):
    create_student()
    create_student(email="other@mail.com", phone="9111111111")
    response = client.post("/api/submit-assessment", json=assessment(email="other@mail.com"))
    assert response.status_code == 400


def test_four_core_values_is_a_bad_request(client, assessment):
    response = client.post("/api/submit-assessment",
                           json=assessment(core_values=["Innovation", "Growth", "Impact", "Balance"]))
    assert response.status_code == 400
    assert "core_values" in response.json()["detail"]


def test_bad_phone_is_a_bad_request(client, assessment):
    response = client.post("/api/submit-assessment", json=assessment(phone="12345"))
    assert response.status_code == 400
    assert "phone" in response.json()["detail"]


def test_career_recommendations_save_nothing(client, assessment):
    response = client.post("/api/career-recommendations", json=assessment())
    assert response.status_code == 200
    assert 4 <= len(response.json()["recommendations"]) <= 6
    assert client.post("/api/check-phone", json={"phone": "9876543210"}).json()["exists"] is False


def test_validate_step(client):
    response = client.post("/api/assessment/validate-step",
                           json={"step": "core_values", "core_values": ["Innovation"]})
    assert response.status_code == 200
    assert response.json()["complete"] is False

    response = client.post("/api/assessment/validate-step", json={
        "step": "basic_info", "name": "Asha", "email": "asha@mail.com", "phone": "9876543210",
        "education_degree": "B.Tech", "specialization": "CS",
    })
    assert response.json() == {"step": "basic_info", "complete": True, "errors": []}


def test_validate_step_agrees_with_submit_on_repeated_values(client, assessment):
    values = ["Innovation", "Innovation", "Growth", "Impact", "Service", "Balance"]
    step = client.post("/api/assessment/validate-step", json={"step": "core_values", "core_values": values})
    assert step.json()["complete"] is False
    assert client.post("/api/submit-assessment", json=assessment(core_values=values)).status_code == 400


def test_check_phone_for_returning_student(client, create_student):
    student = create_student()
    body = client.post("/api/check-phone", json={"phone": "98765 43210"}).json()
    assert body["exists"] is True
    assert body["student_id"] == student["student_id"]
    assert body["student_name"] == "Asha Rao"
    assert body["has_completed_assessment"] is True


def test_check_phone_unknown(client):
    body = client.post("/api/check-phone", json={"phone": "9000000000"}).json()
    assert body == {"exists": False, "student_id": None, "student_name": None,
                    "has_completed_assessment": False, "student_data": None}


# ============================================================
# FIELD VALIDATION
# ============================================================

def test_validate_field_reports_taken_email(client, create_student):
    create_student()
    body = client.post("/api/validate-field", json={"field": "email", "value": "Asha.Rao@mail.com"}).json()
    assert body["valid"] is False
    assert body["message"] == "This email is already registered. Please use a different email."
    assert body["error"] == "Email already exists"


def test_validate_field_available_phone(client):
    body = client.post("/api/validate-field", json={"field": "phone", "value": "9000000000"}).json()
    assert body == {"valid": True, "message": "phone is available", "error": None}


@pytest.mark.parametrize("payload, message", [
    ({"field": "email"}, "Field and value are required"),
    ({"field": "name", "value": "Asha"}, "Only email and phone can be validated"),
    ({"field": "email", "value": "not-an-email"}, "Please enter a valid email address"),
])
def test_validate_field_rejections_are_200(client, payload, message):
    response = client.post("/api/validate-field", json=payload)
    assert response.status_code == 200
    assert response.json()["valid"] is False
    assert response.json()["message"] == message


def test_validate_field_fails_open(client):
    class BrokenStudents:
        def phone_exists(self, value):
            raise SQLAlchemyError("database is down")

    app.dependency_overrides[get_student_data] = BrokenStudents
    response = client.post("/api/validate-field", json={"field": "phone", "value": "9876543210"})
    assert response.status_code == 200
    assert response.json()["valid"] is True


# ============================================================
# JOBS
# ============================================================

def test_post_job(client, job_data):
    response = client.post("/api/post-job", json=job_data(key_skills="Python, SQL", contact_email=""))
    assert response.status_code == 201, response.text
    body = response.json()
    job = body["job"]
    assert job["job_id"].startswith("JOB_")
    assert job["key_skills"] == ["Python", "SQL"]
    assert job["contact_email"] is None
    assert body["job_link"] == f"{BASE_URL}/job/{job['job_id']}"


def test_post_job_missing_fields(client, job_data):
    response = client.post("/api/post-job", json=job_data(company_name="", job_title="  "))
    assert response.status_code == 400
    assert "company_name" in response.json()["detail"]
    assert "job_title" in response.json()["detail"]


def test_get_job_by_token_and_row_id(client, create_job):
    job = create_job()
    assert client.get(f"/api/jobs/{job['job_id']}").json()["id"] == job["id"]
    assert client.get(f"/api/jobs/{job['id']}").json()["job_id"] == job["job_id"]

    response = client.get("/api/jobs/JOB_99999")
    assert response.status_code == 404
    assert response.json()["detail"] == "Job not found for ID: JOB_99999"


def test_list_jobs_filters(client, create_job):
    create_job()
    create_job(job_title="Graphic Designer", job_type="Internship")
    assert client.get("/api/jobs").json()["total"] == 2
    designers = client.get("/api/jobs", params={"category": "UI/UX Designer"}).json()
    assert [j["job_title"] for j in designers["jobs"]] == ["Graphic Designer"]
    interns = client.get("/api/jobs", params={"job_type": "Internship"}).json()
    assert interns["total"] == 1


def test_jobs_by_career_accepts_role_titles(client, create_job):
    create_job()
    create_job(job_title="Graphic Designer")
    body = client.get("/api/jobs-by-career", params={"careerType": "Full Stack Developer"}).json()
    assert body["category"] == "software"
    assert [j["job_title"] for j in body["jobs"]] == ["Software Developer"]

    assert client.get("/api/jobs-by-career", params={"careerType": "software"}).json()["total"] == 1
    assert client.get("/api/jobs-by-career").status_code == 400


def test_qr_redirect(client):
    response = client.get("/api/qr", params={"id": "JOB_0007"}, follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == f"{BASE_URL}/job/JOB_0007"
    assert client.get("/api/qr", follow_redirects=False).status_code == 400


def test_job_page_without_frontend_redirects_to_api(client):
    response = client.get("/job/JOB_0007", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/api/jobs/JOB_0007"


def test_qr_image_is_proxied(client, create_job, monkeypatch):
    job = create_job()

    async def fake_fetch(url):
        return b"\x89PNG fake", "image/png"

    monkeypatch.setattr("careermatch.api.routes.job_routes.fetch_qr_image", fake_fetch)
    response = client.get(f"/api/jobs/{job['job_id']}/qr-image")
    assert response.status_code == 200
    assert response.content == b"\x89PNG fake"
    assert f"{job['job_id']}-qr.png" in response.headers["content-disposition"]


def test_qr_image_falls_back_to_redirect(client, create_job, monkeypatch):
    import httpx

    job = create_job()

    async def failing_fetch(url):
        raise httpx.ConnectError("qr service unreachable")

    monkeypatch.setattr("careermatch.api.routes.job_routes.fetch_qr_image", failing_fetch)
    response = client.get(f"/api/jobs/{job['job_id']}/qr-image", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == job["qr_code_url"]


def test_parse_voice_input(client):
    transcript = "My name is John Doe, company TechCorp, job title Data Analyst, internship, location Pune"
    body = client.post("/api/parse-voice-input", json={"transcript": transcript}).json()
    assert body["source"] == "fallback"
    assert body["data"]["company_name"] == "TechCorp"
    assert body["data"]["job_type"] == "Internship"
    assert body["original_transcript"] == transcript

    empty = client.post("/api/parse-voice-input", json={"transcript": ""}).json()
    assert empty["source"] == "empty"
    assert empty["data"]["job_title"] == ""


# ============================================================
# MATCHING
# ============================================================

def test_fitment_for_aligned_student(client, create_student, create_job):
    student = create_student()
    job = create_job()
    response = client.post("/api/calculate-fitment",
                           json={"student_id": student["student_id"], "job_id": job["job_id"]})
    assert response.status_code == 200
    body = response.json()
    assert 70 <= body["score"] <= 100
    assert body["source"] == "fallback"
    assert body["reasoning"]


def test_fitment_is_returned_when_storing_it_fails(client, create_student, create_job, monkeypatch):
    student = create_student()
    job = create_job()

    def failing_write(self, student_id, job_pk, fitment_score):
        raise SQLAlchemyError("db write failed")

    monkeypatch.setattr(InterestDataService, "record_fitment", failing_write)
    response = client.post("/api/calculate-fitment",
                           json={"student_id": student["student_id"], "job_id": job["job_id"]})
    assert response.status_code == 200
    assert 70 <= response.json()["score"] <= 100


def test_fitment_unknown_student_or_job(client, create_student, create_job):
    student = create_student()
    job = create_job()
    response = client.post("/api/calculate-fitment", json={"student_id": 999999, "job_id": job["job_id"]})
    assert response.status_code == 404
    assert response.json()["detail"] == "Student not found for ID: 999999"
    response = client.post("/api/calculate-fitment",
                           json={"student_id": student["student_id"], "job_id": "JOB_99999"})
    assert response.json()["detail"] == "Job not found for ID: JOB_99999"


def test_express_interest_twice_keeps_one_record(client, create_student, create_job):
    student = create_student()
    job = create_job()
    payload = {"student_id": student["student_id"], "job_id": job["id"], "fitment_score": 80}
    first = client.post("/api/express-interest", json=payload).json()["data"]
    second = client.post("/api/express-interest", json=payload).json()["data"]
    assert first["interest_id"] == second["interest_id"]
    assert second["status"] == "interested"

    interests = client.get(f"/api/students/{student['student_id']}/interests").json()
    assert len(interests) == 1
    assert interests[0]["job_token"] == job["job_id"]


def test_apply_once(client, create_student, create_job):
    student = create_student()
    job = create_job()
    payload = {"student_id": student["student_id"], "job_id": job["job_id"]}
    response = client.post("/api/apply", json=payload)
    assert response.status_code == 201
    assert response.json()["data"]["status"] == "applied"

    again = client.post("/api/apply", json=payload)
    assert again.status_code == 409
    assert "already applied" in again.json()["detail"]


# ============================================================
# STUDENTS
# ============================================================

def test_student_summary(client, create_student, create_job):
    student = create_student()
    job = create_job()
    client.post("/api/express-interest", json={"student_id": student["student_id"], "job_id": job["id"]})

    body = client.post("/api/student-summary", json={"student_id": student["student_id"]}).json()
    assert body["source"] == "fallback"
    assert body["summary"].startswith("Asha Rao is a motivated B.Tech graduate")
    assert body["stats"]["job_interests_count"] == 1
    assert body["stats"]["profile_completion"] == 100
    assert 4 <= body["stats"]["recommendations_count"] <= 6


def test_unknown_student_is_404(client):
    assert client.get("/api/students/999999").status_code == 404
    assert client.post("/api/student-summary", json={"student_id": 999999}).status_code == 404


# ============================================================
# APP
# ============================================================

def test_health(client):
    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert body["database"] == "connected"
    assert body["mongodb"] == "disabled"
    assert body["llm"] == "fallback"
    assert body["base_url"] == BASE_URL


def test_unhandled_errors_become_500():
    def broken_jobs():
        raise RuntimeError("boom")

    app.dependency_overrides[get_job_data] = broken_jobs
    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/api/jobs")
    assert response.status_code == 500
    assert response.json() == {"detail": "Internal Server Error"}
