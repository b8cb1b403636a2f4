import random
import re

import pytest

from careermatch.core.catalog import is_valid_phone, normalize_personality, normalize_phone
from careermatch.core.config import Settings
from careermatch.services.llm_client import LLMClient, LLMError
from careermatch.services.mongo_service import (
    StudentSummaryCacheService, VoiceTranscriptService, profile_hash
)
from careermatch.services.qr_service import (
    generate_job_id, is_job_token, is_stale_qr_url, job_link, qr_code_url
)
from careermatch.services.summary_service import (
    StudentSummaryService, build_fallback_summary, profile_completion
)

STUDENT = {
    "student_id": 7,
    "name": "Asha Rao",
    "email": "asha@mail.com",
    "phone": "9876543210",
    "education_degree": "B.Tech",
    "specialization": "Computer Science",
    "core_values": ["Innovation", "Growth", "Collaboration", "Excellence", "Impact"],
    "work_preferences": {"independence": 80, "pace": 75, "structure": 20},
    "personality_scores": {"analytical": 5, "creativity": 4, "leadership": 2},
}


def _settings(**overrides):
    values = dict(environment="production", public_base_url="https://careermatch.example.org/",
                  local_base_url="http://localhost:3000", vercel=None, railway_environment=None,
                  netlify=None)
    values.update(overrides)
    return Settings(_env_file=None, **values)


# ============================================================
# CATALOG
# ============================================================

def test_phone_normalization():
    assert normalize_phone("+91 98765-43210") == "9876543210"
    assert normalize_phone("(987) 654 3210") == "9876543210"
    assert is_valid_phone("9876543210")
    assert not is_valid_phone("5876543210")
    assert not is_valid_phone("98765")


def test_personality_accepts_question_indexes():
    assert normalize_personality({"0": 4, "6": "2", "9": 5, "leadership": 3, "bogus": 1}) == {
        "analytical": 4, "competitiveness": 2, "leadership": 3
    }


# ============================================================
# CONFIG + QR LINKS
# ============================================================

def test_base_url_is_public_unless_local_development():
    assert _settings().app_base_url == "https://careermatch.example.org"
    assert _settings(environment="development").app_base_url == "http://localhost:3000"
    assert _settings(environment="development", vercel="1").app_base_url == "https://careermatch.example.org"
    assert _settings(environment="development", netlify="true").is_hosted


def test_qr_code_url_format():
    url = qr_code_url("JOB_0007", _settings())
    assert url == (
        "https://api.qrserver.com/v1/create-qr-code/?size=400x400"
        "&data=https%3A%2F%2Fcareermatch.example.org%2Fjob%2FJOB_0007&format=png"
    )
    assert job_link("JOB_0007", _settings()) == "https://careermatch.example.org/job/JOB_0007"


def test_job_tokens():
    token = generate_job_id(random.Random(42))
    assert re.fullmatch(r"JOB_\d{4}", token)
    assert is_job_token("job_0042")
    assert not is_job_token("42")
    assert not is_job_token("JOB_ABCD")


def test_stale_qr_urls():
    assert is_stale_qr_url(None)
    assert is_stale_qr_url("https://api.qrserver.com/v1/create-qr-code/?data=http%3A%2F%2Flocalhost%3A3000")
    assert is_stale_qr_url("http://127.0.0.1:3000/job/JOB_0001")
    assert not is_stale_qr_url(qr_code_url("JOB_0001", _settings()))


# ============================================================
# LLM CLIENT
# ============================================================

def test_unconfigured_client_raises():
    client = LLMClient(api_key="")
    assert not client.is_configured
    with pytest.raises(LLMError):
        client._call_api("system", "user")
    assert client.test_connection() is False


def test_extract_json_strips_code_fences():
    client = LLMClient(api_key="")
    assert client._extract_json('```json\n[{"role": "x"}]\n```') == [{"role": "x"}]
    assert client._extract_json('{"score": 80}') == {"score": 80}
    with pytest.raises(LLMError):
        client._extract_json("not json")


def test_extract_json_object_ignores_prose():
    client = LLMClient(api_key="")
    assert client._extract_json_object('Result: {"score": 70, "reasoning": "ok"} hope this helps') == {
        "score": 70, "reasoning": "ok"
    }
    with pytest.raises(LLMError):
        client._extract_json_object("no braces")


# ============================================================
# MONGO SERVICES
# ============================================================

def test_voice_transcripts_are_stored_and_listed(fake_collection):
    service = VoiceTranscriptService(collection=fake_collection())
    first = service.insert("first", {"job_title": "A"}, "fallback")
    service.insert("second", {"job_title": "B"}, "ai")
    assert first is not None
    recent = service.get_recent()
    assert {d["transcript"] for d in recent} == {"first", "second"}
    assert recent[0]["created_at"] >= recent[1]["created_at"]
    assert isinstance(recent[0]["_id"], str)
    assert len(service.get_recent(limit=1)) == 1


def test_mongo_failures_are_swallowed(fake_collection):
    broken = fake_collection(fail=True)
    assert VoiceTranscriptService(collection=broken).insert("t", {}, "ai") is None
    assert VoiceTranscriptService(collection=broken).get_recent() == []
    cache = StudentSummaryCacheService(collection=broken)
    assert cache.get(1, "abc") is None
    assert cache.store(1, "abc", "summary", "ai") is False
    cache.delete_for_student(1)


def test_profile_hash_tracks_assessment_answers():
    same = dict(STUDENT, email="other@mail.com")
    changed = dict(STUDENT, core_values=["Balance"])
    assert profile_hash(STUDENT) == profile_hash(same)
    assert profile_hash(STUDENT) != profile_hash(changed)


# ============================================================
# SUMMARIES
# ============================================================

def test_fallback_summary_mentions_profile():
    summary = build_fallback_summary(STUDENT)
    assert summary.startswith("Asha Rao is a motivated B.Tech graduate specializing in Computer Science")
    assert "Innovation, Growth, Collaboration" in summary
    assert "prefers independent work and excels in fast-paced settings" in summary
    assert "strong analytical and problem-solving abilities" in summary


def test_profile_completion():
    assert profile_completion(STUDENT) == 100
    assert profile_completion({"name": "A", "email": "a@x.com", "phone": " "}) == 40


def test_summary_is_cached_per_profile(fake_collection):
    cache = StudentSummaryCacheService(collection=fake_collection())
    service = StudentSummaryService(ai_client=LLMClient(api_key=""), cache=cache)

    summary, source = service.summarize(STUDENT)
    assert source == "fallback"
    again, source = service.summarize(STUDENT)
    assert source == "cache"
    assert again == summary

    _, source = service.summarize(dict(STUDENT, specialization="Data Science"))
    assert source == "fallback"


def test_ai_summary(fake_llm):
    service = StudentSummaryService(ai_client=fake_llm(reply="  Asha is a strong engineer.  "))
    assert service.summarize(STUDENT) == ("Asha is a strong engineer.", "ai")


def test_ai_summary_failure_uses_template(fake_llm):
    service = StudentSummaryService(ai_client=fake_llm(error=LLMError("quota")))
    summary, source = service.summarize(STUDENT)
    assert source == "fallback"
    assert summary == build_fallback_summary(STUDENT)
