import json
import random

import pytest

from careermatch.services.llm_client import LLMError
from careermatch.services.recommendation_service import (
    FILLER_ROLES, MATCH_RANGE, CareerRecommendationService, StudentSignals,
    generate_fallback_recommendations,
    validate_ai_recommendations
)

CS_STUDENT = {
    "name": "Asha",
    "education_degree": "B.Tech",
    "specialization": "Computer Science",
    "core_values": ["Innovation", "Growth", "Collaboration", "Excellence", "Impact"],
    "work_preferences": {"independence": 60, "structure": 40, "pace": 70, "innovation": 70, "interaction": 65},
    "personality_scores": {"analytical": 4, "leadership": 3, "pressure": 3, "creativity": 4,
                           "conscientiousness": 4, "mentoring": 3, "competitiveness": 2},
}

MBA_STUDENT = {
    "education_degree": "MBA",
    "specialization": "Marketing",
    "core_values": ["Leadership", "Impact", "Growth", "Integrity", "Service"],
    "work_preferences": {"independence": 40, "structure": 50, "pace": 80, "innovation": 60, "interaction": 90},
    "personality_scores": {"analytical": 3, "leadership": 5, "pressure": 4, "creativity": 3,
                           "conscientiousness": 4, "mentoring": 4, "competitiveness": 4},
}


def _check_batch(recommendations):
    assert 4 <= len(recommendations) <= 6
    matches = [r["match"] for r in recommendations]
    assert matches == sorted(matches, reverse=True)
    for rec in recommendations:
        assert MATCH_RANGE[0] <= rec["match"] <= MATCH_RANGE[1]
        assert rec["role"] and rec["explanation"] and rec["category"]
        assert rec["openings"] > 0


@pytest.mark.parametrize("student", [CS_STUDENT, MBA_STUDENT, {}])
def test_fallback_batches_are_well_formed(student):
    _check_batch(generate_fallback_recommendations(student, random.Random(7)))


def test_cs_student_gets_software_roles():
    recs = generate_fallback_recommendations(CS_STUDENT, random.Random(1))
    roles = {r["role"]: r for r in recs}
    assert "Software Developer" in roles
    assert roles["Software Developer"]["category"] == "software"
    # interaction 65 > 60 unlocks full stack
    assert "Full Stack Developer" in roles


def test_business_student_gets_business_roles():
    roles = {r["role"] for r in generate_fallback_recommendations(MBA_STUDENT, random.Random(1))}
    assert "Digital Marketing Specialist" in roles
    assert "Product Manager" in roles
    assert "Software Developer" not in roles


def test_empty_profile_gets_filler_roles():
    recs = generate_fallback_recommendations({}, random.Random(3))
    assert {r["role"] for r in recs} == {filler[0] for filler in FILLER_ROLES}


def test_explanation_mentions_education_and_values():
    recs = generate_fallback_recommendations(CS_STUDENT, random.Random(2))
    developer = next(r for r in recs if r["role"] == "Software Developer")
    assert developer["explanation"].startswith("Your B.Tech in Computer Science")
    assert "Innovation and Growth and Excellence" in developer["explanation"]


def test_validate_ai_recommendations_drops_bad_entries():
    data = [
        {"role": "Data Scientist", "match": "88", "explanation": "Good", "openings": 900},
        {"role": "", "match": 70},
        {"role": "Designer", "match": "high"},
        "not a dict",
        {"role": "Cloud Engineer", "match": 140, "openings": "many"},
    ]
    result = validate_ai_recommendations(data)
    assert [r["role"] for r in result] == ["Cloud Engineer", "Data Scientist"]
    assert result[0]["match"] == 100
    assert result[0]["openings"] == 0
    assert result[1]["category"] == "data"


def test_ai_recommendations_are_used(fake_llm):
    reply = json.dumps([
        {"role": "Data Scientist", "match": 91, "explanation": "a", "openings": 100},
        {"role": "Backend Developer", "match": 85, "explanation": "b", "openings": 200},
        {"role": "Product Manager", "match": 80, "explanation": "c", "openings": 300},
        {"role": "UX Researcher", "match": 75, "explanation": "d", "openings": 400},
    ])
    llm = fake_llm(reply=f"```json\n{reply}\n```")
    recs = CareerRecommendationService(ai_client=llm).recommend(CS_STUDENT)
    assert [r["role"] for r in recs] == ["Data Scientist", "Backend Developer", "Product Manager", "UX Researcher"]
    assert [r["category"] for r in recs] == ["data", "software", "product", "design"]
    assert llm.calls[0]["temperature"] == 0.7


def test_too_few_ai_recommendations_fall_back(fake_llm):
    reply = json.dumps([{"role": "Data Scientist", "match": 91, "explanation": "a", "openings": 100}])
    recs = CareerRecommendationService(ai_client=fake_llm(reply=reply), rng=random.Random(1)).recommend(CS_STUDENT)
    _check_batch(recs)
    assert "Software Developer" in {r["role"] for r in recs}


def test_provider_error_falls_back(fake_llm):
    service = CareerRecommendationService(ai_client=fake_llm(error=LLMError("down")), rng=random.Random(1))
    _check_batch(service.recommend(MBA_STUDENT))


def test_non_finite_matches_are_dropped():
    data = [
        {"role": "Data Scientist", "match": float("nan")},
        {"role": "Cloud Engineer", "match": float("inf"), "openings": 10},
        {"role": "Product Manager", "match": 80, "openings": float("inf")},
    ]
    result = validate_ai_recommendations(data)
    assert [r["role"] for r in result] == ["Product Manager"]
    assert result[0]["openings"] == 0


def test_infinite_ai_matches_fall_back(fake_llm):
    roles = ", ".join(f'{{"role": "Role {i}", "match": Infinity, "explanation": "x", "openings": 1}}'
                      for i in range(5))
    service = CareerRecommendationService(ai_client=fake_llm(reply=f"[{roles}]"), rng=random.Random(1))
    recs = service.recommend(CS_STUDENT)
    _check_batch(recs)
    assert "Software Developer" in {r["role"] for r in recs}


@pytest.mark.parametrize("degree, engineer", [
    ("B.Tech", True),
    ("b.tech", True),
    ("B.E. Mechanical", True),
    ("B.E", True),
    ("B.Ed", False),
    ("BE.Tech", False),
])
def test_degree_tokens_match_whole_words(degree, engineer):
    assert StudentSignals({"education_degree": degree}).degree_has("B.Tech", "B.E") is engineer


def test_education_degree_is_not_an_engineering_degree():
    student = dict(CS_STUDENT, education_degree="B.Ed", specialization="English Literature")
    roles = {r["role"] for r in generate_fallback_recommendations(student, random.Random(4))}
    assert "Technical Project Manager" not in roles

    engineer = dict(student, education_degree="B.E", specialization="Mechanical")
    roles = {r["role"] for r in generate_fallback_recommendations(engineer, random.Random(4))}
    assert "Technical Project Manager" in roles
