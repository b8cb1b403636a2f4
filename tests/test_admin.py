from sqlalchemy import text

from careermatch.core.auth import create_access_token, hash_password
from careermatch.db.postgres import get_db_session
from careermatch.main import app
from careermatch.services.mongo_service import VoiceTranscriptService, get_voice_transcript_service


def _viewer_headers():
    with get_db_session() as db:
        row = db.execute(text("SELECT user_id FROM users WHERE email = 'viewer@careermatch.com'")).fetchone()
        if row is None:
            row = db.execute(text("""
                INSERT INTO users (email, password_hash, role, is_active)
                VALUES ('viewer@careermatch.com', :hash, 'viewer', :active)
                RETURNING user_id
            """), {"hash": hash_password("viewer-pass"), "active": True}).fetchone()
    token = create_access_token(data={"sub": str(row[0]), "role": "viewer"})
    return {"Authorization": f"Bearer {token}"}


# ============================================================
# AUTH
# ============================================================

def test_admin_routes_need_a_token(client):
    assert client.get("/api/admin/dashboard").status_code == 401
    response = client.get("/api/admin/stats", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_non_admin_is_forbidden(client):
    response = client.get("/api/admin/stats", headers=_viewer_headers())
    assert response.status_code == 403
    assert response.json()["detail"] == "Admins only"


def test_login(client):
    response = client.post("/api/auth/login",
                           json={"email": "Admin@CareerMatch.com", "password": "admin-pass-123"})
    assert response.status_code == 200
    body = response.json()
    assert body["role"] == "admin"
    assert body["token_type"] == "bearer"

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.json()["email"] == "admin@careermatch.com"


def test_wrong_password(client):
    response = client.post("/api/auth/login",
                           json={"email": "admin@careermatch.com", "password": "wrong"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


# ============================================================
# DASHBOARD
# ============================================================

def test_dashboard(client, admin_headers, create_student, create_job):
    create_student()
    create_job()
    create_job(job_title="Marketing Executive", job_type="Internship")

    body = client.get("/api/admin/dashboard", headers=admin_headers).json()
    assert len(body["jobs"]) == 2
    assert len(body["students"]) == 1
    assert body["stats"]["total_jobs"] == 2
    assert body["stats"]["jobs_by_type"] == {"Full-Time": 1, "Internship": 1}
    assert body["stats"]["jobs_by_category"] == {"software": 1, "marketing": 1}


def test_search_students(client, admin_headers, create_student):
    create_student()
    create_student(name="Vikram Singh", email="vikram@mail.com", phone="9222222222")
    body = client.get("/api/admin/students", params={"search": "vikram"}, headers=admin_headers).json()
    assert body["total"] == 1
    assert body["students"][0]["name"] == "Vikram Singh"


def test_search_jobs(client, admin_headers, create_job):
    job = create_job()
    create_job(company_name="Pixel Studio", job_title="UI Designer")
    body = client.get("/api/admin/jobs", params={"search": job["job_id"]}, headers=admin_headers).json()
    assert [j["job_id"] for j in body["jobs"]] == [job["job_id"]]


# ============================================================
# DELETES
# ============================================================

def test_delete_job(client, admin_headers, create_job):
    job = create_job()
    response = client.delete(f"/api/admin/jobs/{job['job_id']}", headers=admin_headers)
    assert response.status_code == 200
    assert client.get(f"/api/jobs/{job['job_id']}").status_code == 404
    assert client.delete(f"/api/admin/jobs/{job['job_id']}", headers=admin_headers).status_code == 404


def test_delete_student(client, admin_headers, create_student):
    student = create_student()
    response = client.delete(f"/api/admin/students/{student['student_id']}", headers=admin_headers)
    assert response.status_code == 200
    assert client.get(f"/api/students/{student['student_id']}").status_code == 404
    assert client.post("/api/check-phone", json={"phone": "9876543210"}).json()["exists"] is False


# ============================================================
# LOOKUPS
# ============================================================

def test_student_by_phone(client, admin_headers, create_student, create_job):
    student = create_student()
    job = create_job()
    client.post("/api/apply", json={"student_id": student["student_id"], "job_id": job["job_id"]})

    body = client.get("/api/admin/students/by-phone/9876543210", headers=admin_headers).json()
    assert body["student"]["student_id"] == student["student_id"]
    assert body["summary"]
    assert len(body["recommendations"]) >= 4
    assert body["interests"][0]["status"] == "applied"

    assert client.get("/api/admin/students/by-phone/9000000000", headers=admin_headers).status_code == 404


def test_job_interests_best_fit_first(client, admin_headers, create_student, create_job):
    job = create_job()
    asha = create_student()
    vikram = create_student(name="Vikram Singh", email="vikram@mail.com", phone="9222222222")
    client.post("/api/express-interest",
                json={"student_id": asha["student_id"], "job_id": job["id"], "fitment_score": 60})
    client.post("/api/express-interest",
                json={"student_id": vikram["student_id"], "job_id": job["id"], "fitment_score": 85})

    rows = client.get(f"/api/admin/jobs/{job['job_id']}/interests", headers=admin_headers).json()
    assert [r["student_name"] for r in rows] == ["Vikram Singh", "Asha Rao"]


# ============================================================
# QR CODES
# ============================================================

def test_qr_print_page(client, admin_headers, create_job):
    job = create_job(company_name="Fish & Chips Co")
    response = client.get(f"/api/admin/jobs/{job['job_id']}/qr-print", headers=admin_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "Fish &amp; Chips Co" in response.text
    assert f"Job ID: {job['job_id']}" in response.text
    assert "window.print()" in response.text


def test_fix_qr_codes(client, admin_headers, create_job):
    job = create_job()
    with get_db_session() as db:
        db.execute(text("UPDATE jobs SET qr_code_url = 'http://localhost:3000/job/x' WHERE id = :id"),
                   {"id": job["id"]})

    body = client.post("/api/admin/fix-qr-codes", headers=admin_headers).json()
    assert body["fixed"] == 1
    assert body["jobs"][0]["job_id"] == job["job_id"]
    assert body["jobs"][0]["old_url"] == "http://localhost:3000/job/x"
    assert "careermatch.test-host.com" in body["jobs"][0]["new_url"]

    assert client.post("/api/admin/fix-qr-codes", headers=admin_headers).json()["fixed"] == 0


# ============================================================
# VOICE TRANSCRIPTS
# ============================================================

def test_voice_transcripts_empty_without_mongo(client, admin_headers):
    body = client.get("/api/admin/voice-transcripts", headers=admin_headers).json()
    assert body == {"transcripts": [], "total": 0}


def test_voice_transcripts_listing(client, admin_headers, fake_collection):
    store = VoiceTranscriptService(collection=fake_collection())
    store.insert("company TechCorp, job title Data Analyst", {"job_title": "Data Analyst"}, "fallback")
    store.insert("my name is Priya", {"contact_name": "Priya"}, "ai")
    app.dependency_overrides[get_voice_transcript_service] = lambda: store

    body = client.get("/api/admin/voice-transcripts", params={"limit": 5}, headers=admin_headers).json()
    assert body["total"] == 2
    assert {t["source"] for t in body["transcripts"]} == {"fallback", "ai"}
    assert all(t["_id"] for t in body["transcripts"])
