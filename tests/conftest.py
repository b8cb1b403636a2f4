"""
Shared fixtures.

The environment is set before anything from careermatch is imported:
settings are read once and the engine is created at import time.
"""

import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="careermatch-tests-")

os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'careermatch.db')}"
os.environ["MONGODB_ENABLED"] = "false"
os.environ["LLM_API_KEY"] = ""
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["ADMIN_EMAIL"] = "admin@careermatch.com"
os.environ["ADMIN_PASSWORD"] = "admin-pass-123"
os.environ["ENVIRONMENT"] = "production"
os.environ["PUBLIC_BASE_URL"] = "https://careermatch.test-host.com"

import pytest
from fastapi.testclient import TestClient
from pymongo.errors import PyMongoError
from sqlalchemy import text

from careermatch.db.postgres import get_db_session, init_db
from careermatch.main import app
from careermatch.services.llm_client import LLMClient, LLMError

ADMIN_EMAIL = os.environ["ADMIN_EMAIL"]
ADMIN_PASSWORD = os.environ["ADMIN_PASSWORD"]

init_db()


@pytest.fixture(autouse=True)
def clean_tables():
    with get_db_session() as db:
        for table in ("student_job_interests", "career_recommendations", "jobs", "students"):
            db.execute(text(f"DELETE FROM {table}"))
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_headers(client):
    response = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


# ============================================================
# SAMPLE DATA
# ============================================================

def assessment_payload(**overrides):
    payload = {
        "name": "Asha Rao",
        "email": "asha.rao@mail.com",
        "phone": "9876543210",
        "education_degree": "B.Tech",
        "specialization": "Computer Science",
        "core_values": ["Innovation", "Growth", "Collaboration", "Excellence", "Impact"],
        "work_preferences": {"independence": 60, "structure": 40, "pace": 70,
                             "innovation": 70, "interaction": 65},
        "personality_scores": {"analytical": 4, "leadership": 3, "pressure": 3, "creativity": 4,
                               "conscientiousness": 4, "mentoring": 3, "competitiveness": 2},
    }
    payload.update(overrides)
    return payload


def job_payload(**overrides):
    payload = {
        "contact_name": "Ravi Kumar",
        "contact_number": "9123456780",
        "contact_email": "ravi@acmelabs.com",
        "company_name": "Acme Labs",
        "job_title": "Software Developer",
        "job_type": "Full-Time",
        "job_description": "Build web applications with JavaScript",
        "location": "Bangalore",
        "salary_stipend": "50000 per month",
        "key_skills": ["JavaScript", "React"],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def assessment():
    return assessment_payload


@pytest.fixture
def job_data():
    return job_payload


@pytest.fixture
def create_student(client):
    def _create(**overrides):
        response = client.post("/api/submit-assessment", json=assessment_payload(**overrides))
        assert response.status_code == 200, response.text
        return response.json()["student"]
    return _create


@pytest.fixture
def create_job(client):
    def _create(**overrides):
        response = client.post("/api/post-job", json=job_payload(**overrides))
        assert response.status_code == 201, response.text
        return response.json()["job"]
    return _create


# ============================================================
# FAKES
# ============================================================

class FakeLLM(LLMClient):
    """Configured-looking client that returns a canned reply (or raises)."""

    def __init__(self, reply=None, error=None):
        self.api_key = "fake-key"
        self.model = "fake-model"
        self.client = None
        self.reply = reply
        self.error = error
        self.calls = []

    @property
    def is_configured(self):
        return True

    def _call_api(self, system_prompt, user_content, max_tokens=1000, temperature=0.1):
        self.calls.append({"user": user_content, "max_tokens": max_tokens, "temperature": temperature})
        if self.error is not None:
            raise self.error
        return self.reply


class FakeInsertResult:
    def __init__(self, inserted_id):
        self.inserted_id = inserted_id


class FakeCollection:
    """The handful of pymongo Collection methods the services use."""

    def __init__(self, fail=False):
        self.docs = []
        self.fail = fail

    def _check(self):
        if self.fail:
            raise PyMongoError("mongo is down")

    @staticmethod
    def _matches(doc, query):
        return all(doc.get(k) == v for k, v in query.items())

    def insert_one(self, doc):
        self._check()
        doc = dict(doc, _id=f"id{len(self.docs) + 1}")
        self.docs.append(doc)
        return FakeInsertResult(doc["_id"])

    def find_one(self, query):
        self._check()
        for doc in self.docs:
            if self._matches(doc, query):
                return dict(doc)
        return None

    def find(self, query, sort=None, limit=0):
        self._check()
        docs = [dict(d) for d in self.docs if self._matches(d, query)]
        if sort:
            key, direction = sort[0]
            docs.sort(key=lambda d: d.get(key), reverse=direction < 0)
        return docs[:limit] if limit else docs

    def update_one(self, query, update, upsert=False):
        self._check()
        for doc in self.docs:
            if self._matches(doc, query):
                doc.update(update.get("$set", {}))
                return
        if upsert:
            self.docs.append(dict(query, **update.get("$set", {}), _id=f"id{len(self.docs) + 1}"))

    def delete_many(self, query):
        self._check()
        self.docs = [d for d in self.docs if not self._matches(d, query)]


@pytest.fixture
def fake_llm():
    return FakeLLM


@pytest.fixture
def fake_collection():
    return FakeCollection
